from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.permissions import SellerRequired
from infrastructure.container import container
from sellers.api.serializers import (
    PayoutSettingsRequestSerializer,
    PayoutSettingsSerializer,
    PublicStoreSerializer,
    ShippingMethodRequestSerializer,
    ShippingMethodSerializer,
    ShippingRuleSerializer,
    StoreProfileRequestSerializer,
    StoreSerializer,
)
from utils.api_responses import error_response


def get_own_store(request):
    return container.store_profile_service().get_store_by_seller(request.user.id)


class StoreProfileView(APIView):
    permission_classes = [SellerRequired]

    @extend_schema(operation_id="store_get_own", responses={200: StoreSerializer}, tags=["Sellers - Store"])
    def get(self, request):
        result = get_own_store(request)
        if not result.ok:
            return error_response(result)
        return Response(StoreSerializer(result.value).data)

    @extend_schema(
        operation_id="store_update_own",
        summary="Update store profile",
        description="""
        **What it receives:**
        - `name` (2..200, unique), `description` (max 2000)
        - optional `logo_url` / `website_url` (http or https), `contact_email`, `contact_phone`

        **What it returns:**
        - The store; the slug follows the name
        """,
        request=StoreProfileRequestSerializer,
        responses={200: StoreSerializer, 400: OpenApiResponse(description="Validation failed")},
        tags=["Sellers - Store"],
    )
    def put(self, request):
        serializer = StoreProfileRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = container.store_profile_service().create_or_update_store_profile(
            request.user.id, serializer.validated_data
        )
        if not result.ok:
            return error_response(result)
        return Response(StoreSerializer(result.value).data)


class PublicStoreView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(operation_id="store_public", responses={200: PublicStoreSerializer}, tags=["Sellers - Store"])
    def get(self, request, slug):
        result = container.store_profile_service().get_public_store_by_slug(slug)
        if not result.ok:
            return error_response(result)
        return Response(PublicStoreSerializer(result.value).data)


class PayoutSettingsView(APIView):
    permission_classes = [SellerRequired]

    @extend_schema(
        operation_id="payout_settings_get", responses={200: PayoutSettingsSerializer}, tags=["Sellers - Payouts"]
    )
    def get(self, request):
        result = container.payout_settings_service().get_or_create_payout_settings(request.user.id)
        return Response(PayoutSettingsSerializer(result.value).data)

    @extend_schema(
        operation_id="payout_settings_update",
        request=PayoutSettingsRequestSerializer,
        responses={200: PayoutSettingsSerializer, 400: OpenApiResponse(description="Validation failed")},
        tags=["Sellers - Payouts"],
    )
    def put(self, request):
        serializer = PayoutSettingsRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = container.payout_settings_service().save_payout_settings(request.user.id, serializer.validated_data)
        if not result.ok:
            return error_response(result)
        return Response(PayoutSettingsSerializer(result.value).data)


class ShippingMethodViewSet(viewsets.ViewSet):
    permission_classes = [SellerRequired]

    def get_service(self):
        return container.shipping_service()

    def _store_or_error(self, request):
        result = get_own_store(request)
        return result.value, (None if result.ok else error_response(result))

    @extend_schema(
        operation_id="shipping_methods_list",
        responses={200: ShippingMethodSerializer(many=True)},
        tags=["Sellers - Shipping"],
    )
    def list(self, request):
        store, error = self._store_or_error(request)
        if error:
            return error
        include_inactive = request.query_params.get("include_inactive") == "true"
        result = self.get_service().list_shipping_methods(store, active_only=not include_inactive)
        return Response(ShippingMethodSerializer(result.value, many=True).data)

    @extend_schema(
        operation_id="shipping_methods_create",
        request=ShippingMethodRequestSerializer,
        responses={201: ShippingMethodSerializer},
        tags=["Sellers - Shipping"],
    )
    def create(self, request):
        store, error = self._store_or_error(request)
        if error:
            return error
        serializer = ShippingMethodRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.get_service().create_shipping_method(store, **serializer.validated_data)
        if not result.ok:
            return error_response(result)
        return Response(ShippingMethodSerializer(result.value).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="shipping_methods_update",
        request=ShippingMethodRequestSerializer,
        responses={200: ShippingMethodSerializer},
        tags=["Sellers - Shipping"],
    )
    def partial_update(self, request, pk=None):
        store, error = self._store_or_error(request)
        if error:
            return error
        serializer = ShippingMethodRequestSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        result = self.get_service().update_shipping_method(store, pk, **serializer.validated_data)
        if not result.ok:
            return error_response(result)
        return Response(ShippingMethodSerializer(result.value).data)

    @extend_schema(
        operation_id="shipping_methods_deactivate",
        responses={200: ShippingMethodSerializer},
        tags=["Sellers - Shipping"],
    )
    def destroy(self, request, pk=None):
        store, error = self._store_or_error(request)
        if error:
            return error
        result = self.get_service().deactivate_shipping_method(store, pk)
        if not result.ok:
            return error_response(result)
        return Response(ShippingMethodSerializer(result.value).data)

    @extend_schema(
        operation_id="shipping_rule",
        request=ShippingRuleSerializer,
        responses={200: ShippingRuleSerializer},
        tags=["Sellers - Shipping"],
    )
    @action(detail=False, methods=["get", "put"])
    def rule(self, request):
        store, error = self._store_or_error(request)
        if error:
            return error
        service = self.get_service()

        if request.method == "GET":
            rule = service.get_shipping_rule(store)
            if not rule:
                return Response({"detail": "No shipping rule configured."}, status=status.HTTP_404_NOT_FOUND)
            return Response(ShippingRuleSerializer(rule).data)

        result = service.save_shipping_rule(
            store,
            request.data.get("flat_rate"),
            request.data.get("per_item_rate", "0"),
            request.data.get("free_shipping_threshold"),
        )
        if not result.ok:
            return error_response(result)
        return Response(ShippingRuleSerializer(result.value).data)
