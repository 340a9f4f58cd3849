from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from authentication.permissions import AdminRequired, BuyerRequired
from infrastructure.container import container
from marketplace.api.serializers import ErrorResponseSerializer, SuccessResponseSerializer
from marketplace.cart.api.serializers import (
    AddToCartRequestSerializer,
    AppliedPromoCodeSerializer,
    ApplyPromoCodeRequestSerializer,
    CartItemSerializer,
    CartSerializer,
    CheckoutValidationSerializer,
    PromoCodeRequestSerializer,
    PromoCodeSerializer,
    UpdateCartItemRequestSerializer,
)
from utils.api_responses import error_response


class CartViewSet(viewsets.ViewSet):
    """
    The authenticated buyer's cart.

    One cart per buyer, created lazily. Items keep a snapshot of title, price
    and store taken when they were added.
    """

    permission_classes = [BuyerRequired]

    def get_service(self):
        return container.cart_service()

    def _cart_response(self, request, status_code=status.HTTP_200_OK):
        result = self.get_service().get_cart(request.user)
        return Response(CartSerializer(result.value).data, status=status_code)

    @extend_schema(
        operation_id="cart_retrieve",
        summary="Get the cart",
        description="""
        **What it receives:**
        - Nothing (the cart of the authenticated buyer)

        **What it returns:**
        - Items grouped by store with subtotal and shipping per store
        - `discount`, `promo_code`, `shipping_total` and `total`
        """,
        responses={200: CartSerializer},
        tags=["Marketplace - Cart"],
    )
    def list(self, request):
        return self._cart_response(request)

    @extend_schema(
        operation_id="cart_add_item",
        summary="Add a product to the cart",
        description="""
        **What it receives:**
        - `product_id`, optional `quantity` (default 1)

        **What it returns:**
        - The updated cart. Adding a product already in the cart increases its quantity.
        - 400 with `available_stock` when the stock is not enough
        """,
        request=AddToCartRequestSerializer,
        responses={201: CartSerializer, 400: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Cart"],
    )
    @action(detail=False, methods=["post"], url_path="items")
    def add_item(self, request):
        serializer = AddToCartRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.get_service().add_item(
            request.user, serializer.validated_data["product_id"], serializer.validated_data["quantity"]
        )
        if not result.ok:
            return error_response(result)
        return self._cart_response(request, status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="cart_update_item",
        request=UpdateCartItemRequestSerializer,
        responses={200: CartSerializer, 404: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Cart"],
    )
    @action(detail=False, methods=["patch"], url_path=r"items/(?P<item_id>[^/.]+)")
    def update_item(self, request, item_id=None):
        serializer = UpdateCartItemRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.get_service().update_quantity(request.user, item_id, serializer.validated_data["quantity"])
        if not result.ok:
            return error_response(result)
        return self._cart_response(request)

    @extend_schema(
        operation_id="cart_remove_item",
        request=None,
        responses={200: CartSerializer, 404: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Cart"],
    )
    @update_item.mapping.delete
    def remove_item(self, request, item_id=None):
        result = self.get_service().remove_item(request.user, item_id)
        if not result.ok:
            return error_response(result)
        return self._cart_response(request)

    @extend_schema(
        operation_id="cart_clear",
        request=None,
        responses={200: CartSerializer},
        tags=["Marketplace - Cart"],
    )
    @action(detail=False, methods=["post"])
    def clear(self, request):
        self.get_service().clear_cart(request.user)
        return self._cart_response(request)

    @extend_schema(
        operation_id="cart_item_count",
        responses={200: OpenApiResponse(description="{'count': int}")},
        tags=["Marketplace - Cart"],
    )
    @action(detail=False, methods=["get"])
    def count(self, request):
        return Response({"count": self.get_service().get_item_count(request.user)})

    @extend_schema(
        operation_id="cart_apply_promo",
        summary="Apply a promo code",
        description="""
        **What it receives:**
        - `code` (case-insensitive)

        **What it returns:**
        - The code and the discount it gives on the current cart
        - 400 when the code is unknown, inactive, expired, used up or below its minimum
        - 409 when a code is already applied
        """,
        request=ApplyPromoCodeRequestSerializer,
        responses={
            200: AppliedPromoCodeSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer),
            409: OpenApiResponse(response=ErrorResponseSerializer),
        },
        tags=["Marketplace - Cart"],
    )
    @action(detail=False, methods=["post"], url_path="promo")
    def apply_promo(self, request):
        serializer = ApplyPromoCodeRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = container.promo_code_service().apply_promo_code(request.user, serializer.validated_data["code"])
        if not result.ok:
            return error_response(result)
        return Response(AppliedPromoCodeSerializer(result.value).data)

    @extend_schema(
        operation_id="cart_remove_promo",
        request=None,
        responses={200: CartSerializer},
        tags=["Marketplace - Cart"],
    )
    @apply_promo.mapping.delete
    def remove_promo(self, request):
        container.promo_code_service().remove_promo_code(request.user)
        return self._cart_response(request)

    @extend_schema(
        operation_id="cart_validate",
        summary="Validate the cart before checkout",
        description="""
        **What it receives:**
        - Nothing

        **What it returns:**
        - `is_valid` plus the items short on stock and the items whose price changed
        """,
        responses={200: CheckoutValidationSerializer, 400: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Cart"],
    )
    @action(detail=False, methods=["get"])
    def validate(self, request):
        result = container.checkout_validation_service().validate_checkout(request.user)
        if result.ok:
            return Response({"is_valid": True, "stock_issues": [], "price_changes": []})
        if not isinstance(result.value, dict):
            return error_response(result)
        return Response(
            CheckoutValidationSerializer(
                {
                    "is_valid": False,
                    "stock_issues": result.value["stock_issues"],
                    "price_changes": result.value["price_changes"],
                }
            ).data
        )

    @extend_schema(
        operation_id="cart_refresh_prices",
        summary="Accept current catalog prices",
        request=None,
        responses={200: CartSerializer},
        tags=["Marketplace - Cart"],
    )
    @action(detail=False, methods=["post"], url_path="refresh-prices")
    def refresh_prices(self, request):
        container.checkout_validation_service().update_cart_prices_to_current(request.user)
        return self._cart_response(request)


class PromoCodeAdminViewSet(viewsets.ViewSet):
    permission_classes = [AdminRequired]

    def get_service(self):
        return container.promo_code_service()

    @extend_schema(
        operation_id="promo_codes_list",
        parameters=[OpenApiParameter("active", bool)],
        responses={200: PromoCodeSerializer(many=True)},
        tags=["Marketplace - Admin"],
    )
    def list(self, request):
        active_only = request.query_params.get("active", "").lower() in ("1", "true")
        result = self.get_service().list_promo_codes(active_only=active_only)
        return Response(PromoCodeSerializer(result.value, many=True).data)

    @extend_schema(
        operation_id="promo_codes_create",
        request=PromoCodeRequestSerializer,
        responses={201: PromoCodeSerializer, 400: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Admin"],
    )
    def create(self, request):
        serializer = PromoCodeRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.get_service().create_promo_code(serializer.validated_data)
        if not result.ok:
            return error_response(result)
        return Response(PromoCodeSerializer(result.value).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="promo_codes_deactivate",
        request=None,
        responses={200: SuccessResponseSerializer, 404: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Admin"],
    )
    @action(detail=True, methods=["post"])
    def deactivate(self, request, pk=None):
        result = self.get_service().deactivate_promo_code(pk)
        if not result.ok:
            return error_response(result)
        return Response({"message": "Promo code deactivated."})
