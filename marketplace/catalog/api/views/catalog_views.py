from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from authentication.permissions import SellerRequired
from infrastructure.container import container
from marketplace.api.serializers import ErrorResponseSerializer, page_data
from marketplace.catalog.api.serializers import (
    CategorySerializer,
    ProductDetailSerializer,
    ProductListSerializer,
    ProductRequestSerializer,
    ProductStatusRequestSerializer,
)
from marketplace.catalog.domain.models import Product
from utils.api_responses import error_response, page_params
from utils.service_base import ErrorCodes, service_err


class CategoryViewSet(viewsets.ViewSet):
    permission_classes = [AllowAny]
    lookup_field = "slug"

    def get_service(self):
        return container.catalog_service()

    @extend_schema(
        operation_id="categories_list",
        responses={200: CategorySerializer(many=True)},
        tags=["Marketplace - Catalog"],
    )
    def list(self, request):
        result = self.get_service().list_categories()
        return Response(CategorySerializer(result.value, many=True).data)

    @extend_schema(
        operation_id="categories_retrieve",
        responses={200: CategorySerializer, 404: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Catalog"],
    )
    def retrieve(self, request, slug=None):
        result = self.get_service().get_category(slug)
        if not result.ok:
            return error_response(result)
        return Response(CategorySerializer(result.value).data)


class ProductViewSet(viewsets.ViewSet):
    """
    Public catalog browsing plus product management for sellers.

    Buyers only ever see active products; sellers see their own drafts too.
    """

    def get_permissions(self):
        if self.action in ("list", "retrieve"):
            return [AllowAny()]
        return [SellerRequired()]

    def get_service(self):
        return container.catalog_service()

    @extend_schema(
        operation_id="products_list",
        summary="Browse active products",
        description="""
        **What it receives:**
        - Optional filters: `category` (slug), `store` (UUID), `search`, `min_price`, `max_price`
        - `page` / `page_size` (1..100)

        **What it returns:**
        - A page of product cards, newest first
        """,
        parameters=[
            OpenApiParameter("category", str),
            OpenApiParameter("store", str),
            OpenApiParameter("search", str),
            OpenApiParameter("min_price", str),
            OpenApiParameter("max_price", str),
            OpenApiParameter("page", int),
            OpenApiParameter("page_size", int),
        ],
        responses={200: ProductListSerializer(many=True), 400: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Catalog"],
    )
    def list(self, request):
        filters = {
            key: request.query_params.get(key)
            for key in ("category", "store", "search", "min_price", "max_price")
            if request.query_params.get(key)
        }
        page, page_size = page_params(request)
        result = self.get_service().list_products(filters, page=page, page_size=page_size)
        if not result.ok:
            return error_response(result)
        return Response(page_data(result.value, ProductListSerializer))

    @extend_schema(
        operation_id="products_retrieve",
        responses={200: ProductDetailSerializer, 404: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Catalog"],
    )
    def retrieve(self, request, pk=None):
        result = self.get_service().get_product(pk)
        if not result.ok:
            return error_response(result)
        product = result.value
        is_owner = request.user.is_authenticated and product.store.owner_id == request.user.id
        if not product.is_active and not is_owner:
            return error_response(service_err(ErrorCodes.PRODUCT_NOT_FOUND, "Product not found."))
        return Response(ProductDetailSerializer(product).data)

    @extend_schema(
        operation_id="products_create",
        summary="Create a product",
        description="""
        **What it receives:**
        - `title` (2..200), `price` (> 0), `stock` (>= 0)
        - optional `description` (max 5000), `category_id`, `images` (list of URLs)

        **What it returns:**
        - The product, created as a draft in the seller's store
        """,
        request=ProductRequestSerializer,
        responses={201: ProductDetailSerializer, 400: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Catalog"],
    )
    def create(self, request):
        serializer = ProductRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.get_service().create_product(request.user, serializer.validated_data)
        if not result.ok:
            return error_response(result)
        return Response(ProductDetailSerializer(result.value).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="products_update",
        request=ProductRequestSerializer,
        responses={200: ProductDetailSerializer, 403: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Catalog"],
    )
    def partial_update(self, request, pk=None):
        serializer = ProductRequestSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        result = self.get_service().update_product(request.user, pk, serializer.validated_data)
        if not result.ok:
            return error_response(result)
        return Response(ProductDetailSerializer(result.value).data)

    @extend_schema(
        operation_id="products_set_status",
        summary="Publish, hide or archive a product",
        request=ProductStatusRequestSerializer,
        responses={200: ProductDetailSerializer, 400: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Catalog"],
    )
    @action(detail=True, methods=["post"], url_path="status")
    def set_status(self, request, pk=None):
        serializer = ProductStatusRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.get_service().change_status(request.user, pk, serializer.validated_data["status"])
        if not result.ok:
            return error_response(result)
        return Response(ProductDetailSerializer(result.value).data)

    @extend_schema(
        operation_id="products_mine",
        parameters=[OpenApiParameter("status", str, enum=[choice for choice, _ in Product.STATUS_CHOICES])],
        responses={200: ProductListSerializer(many=True)},
        tags=["Marketplace - Catalog"],
    )
    @action(detail=False, methods=["get"])
    def mine(self, request):
        result = self.get_service().list_store_products(request.user, status=request.query_params.get("status"))
        if not result.ok:
            return error_response(result)
        return Response(ProductListSerializer(result.value, many=True).data)
