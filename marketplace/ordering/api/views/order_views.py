from django.http import HttpResponse
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.permissions import AdminRequired, BuyerRequired, SellerRequired
from infrastructure.container import container
from marketplace.api.serializers import ErrorResponseSerializer, page_data
from marketplace.ordering.api.serializers import (
    CancelOrderRequestSerializer,
    CheckoutRequestSerializer,
    CheckoutResponseSerializer,
    ItemStatusesRequestSerializer,
    OrderFilterSerializer,
    OrderSerializer,
    SellerSubOrderDetailSerializer,
    SellerSubOrderSerializer,
    ShippingStatusHistorySerializer,
    SubOrderStatusRequestSerializer,
    TrackingRequestSerializer,
)
from utils.api_responses import error_response
from utils.service_base import ErrorCodes, service_err

ORDER_FILTER_PARAMETERS = [
    OpenApiParameter("status", str, description="Comma separated statuses"),
    OpenApiParameter("from_date", str, description="YYYY-MM-DD"),
    OpenApiParameter("to_date", str, description="YYYY-MM-DD"),
    OpenApiParameter("page", int),
    OpenApiParameter("page_size", int),
]


def read_filters(request):
    serializer = OrderFilterSerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    return serializer.to_filters()


class CheckoutView(APIView):
    permission_classes = [BuyerRequired]

    @extend_schema(
        operation_id="checkout_create",
        summary="Place an order from the cart",
        description="""
        **What it receives:**
        - `delivery_address` (full name, address line 1, city, postal code and country required)
        - `payment_method`: credit_card, paypal, bank_transfer or blik
        - `return_url`, optional `cancel_url`, `idempotency_key`, `blik_code`, `delivery_instructions`

        **What it returns:**
        - The order (status `new`, or `paid` for a BLIK payment authorized with its code)
        - The payment transaction, the provider redirect URL and whether a BLIK code is still needed
        - 400 with `stock_issues` / `price_changes` when the cart no longer matches the catalog
        """,
        request=CheckoutRequestSerializer,
        responses={
            201: CheckoutResponseSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer),
            502: OpenApiResponse(response=ErrorResponseSerializer, description="Payment provider error"),
        },
        tags=["Marketplace - Checkout"],
    )
    def post(self, request):
        serializer = CheckoutRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = container.checkout_service().create_order_from_cart(
            buyer=request.user,
            delivery_address=dict(data["delivery_address"]),
            payment_method=data["payment_method"],
            return_url=data["return_url"],
            cancel_url=data["cancel_url"],
            idempotency_key=data["idempotency_key"],
            blik_code=data["blik_code"],
            delivery_instructions=data["delivery_instructions"],
        )
        if not result.ok:
            return error_response(result)
        return Response(CheckoutResponseSerializer(result.value).data, status=status.HTTP_201_CREATED)


class OrderViewSet(viewsets.ViewSet):
    """Orders of the authenticated buyer."""

    permission_classes = [BuyerRequired]

    def get_service(self):
        return container.order_service()

    @extend_schema(
        operation_id="orders_list",
        summary="List the buyer's orders",
        description="""
        **What it receives:**
        - Optional filters: `status`, `from_date`, `to_date`, `store_id`
        - `page` / `page_size` (1..100)

        **What it returns:**
        - A page of orders, newest first
        """,
        parameters=ORDER_FILTER_PARAMETERS + [OpenApiParameter("store_id", str)],
        responses={200: OrderSerializer(many=True), 400: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Orders"],
    )
    def list(self, request):
        result = self.get_service().get_filtered_orders_for_buyer(request.user, read_filters(request))
        if not result.ok:
            return error_response(result)
        return Response(page_data(result.value, OrderSerializer))

    @extend_schema(
        operation_id="orders_retrieve",
        responses={200: OrderSerializer, 404: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Orders"],
    )
    def retrieve(self, request, pk=None):
        result = self.get_service().get_order(pk, request.user)
        if not result.ok:
            return error_response(result)
        return Response(OrderSerializer(result.value).data)

    @extend_schema(
        operation_id="orders_by_transaction",
        summary="Find the order paid by a payment transaction",
        responses={200: OrderSerializer, 404: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Orders"],
    )
    @action(detail=False, methods=["get"], url_path=r"by-transaction/(?P<transaction_id>[^/.]+)")
    def by_transaction(self, request, transaction_id=None):
        result = self.get_service().get_order_by_transaction(transaction_id, buyer=request.user)
        if not result.ok:
            return error_response(result)
        return Response(OrderSerializer(result.value).data)

    @extend_schema(
        operation_id="orders_cancel",
        summary="Cancel an order",
        description="""
        **What it receives:**
        - Optional `reason`

        **What it returns:**
        - The cancelled order. A paid order is refunded in full first.
        - 400 once a seller has started preparing any part of the order
        """,
        request=CancelOrderRequestSerializer,
        responses={200: OrderSerializer, 400: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Orders"],
    )
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        serializer = CancelOrderRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.get_service().cancel_order(pk, request.user, serializer.validated_data["reason"])
        if not result.ok:
            return error_response(result)
        return Response(OrderSerializer(result.value).data)

    @extend_schema(
        operation_id="orders_sub_order_history",
        summary="Shipping history of one of the order's sub-orders",
        responses={
            200: ShippingStatusHistorySerializer(many=True),
            404: OpenApiResponse(response=ErrorResponseSerializer),
        },
        tags=["Marketplace - Orders"],
    )
    @action(detail=True, methods=["get"], url_path=r"sub-orders/(?P<sub_order_id>[^/.]+)/history")
    def sub_order_history(self, request, pk=None, sub_order_id=None):
        order = self.get_service().get_order(pk, request.user)
        if not order.ok:
            return error_response(order)
        if not order.value.sub_orders.filter(id=sub_order_id).exists():
            return error_response(service_err(ErrorCodes.ORDER_NOT_FOUND, "Sub-order not found."))
        result = self.get_service().get_shipping_status_history(sub_order_id)
        return Response(ShippingStatusHistorySerializer(result.value, many=True).data)


class SellerSubOrderViewSet(viewsets.ViewSet):
    """
    Fulfilment of the sub-orders addressed to the seller's store.

    Every lookup is scoped to the caller's store, so another store's
    sub-order is reported as not found.
    """

    permission_classes = [SellerRequired]

    def get_service(self):
        return container.order_service()

    def get_store_id(self, request):
        store = self.get_service().store_for_seller(request.user)
        return store.id if store else None

    def no_store(self):
        return error_response(service_err(ErrorCodes.NOT_FOUND, "You do not have a store yet."))

    @extend_schema(
        operation_id="seller_sub_orders_list",
        parameters=ORDER_FILTER_PARAMETERS + [OpenApiParameter("search", str, description="Sub-order number")],
        responses={200: SellerSubOrderSerializer(many=True), 400: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Seller Orders"],
    )
    def list(self, request):
        store_id = self.get_store_id(request)
        if not store_id:
            return self.no_store()
        result = self.get_service().get_filtered_seller_sub_orders(store_id, read_filters(request))
        if not result.ok:
            return error_response(result)
        return Response(page_data(result.value, SellerSubOrderSerializer))

    @extend_schema(
        operation_id="seller_sub_orders_retrieve",
        responses={200: SellerSubOrderDetailSerializer, 404: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Seller Orders"],
    )
    def retrieve(self, request, pk=None):
        store_id = self.get_store_id(request)
        if not store_id:
            return self.no_store()
        result = self.get_service().get_seller_sub_order(pk, store_id)
        if not result.ok:
            return error_response(result)
        return Response(SellerSubOrderDetailSerializer(result.value).data)

    @extend_schema(
        operation_id="seller_sub_orders_update_status",
        summary="Move a sub-order through fulfilment",
        description="""
        **What it receives:**
        - `status`, with `tracking_number` and `shipping_carrier` when shipping
        - Optional `notes` for the history

        **What it returns:**
        - The updated sub-order
        - 400 for a transition the workflow does not allow
        """,
        request=SubOrderStatusRequestSerializer,
        responses={200: SellerSubOrderDetailSerializer, 400: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Seller Orders"],
    )
    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request, pk=None):
        store_id = self.get_store_id(request)
        if not store_id:
            return self.no_store()
        serializer = SubOrderStatusRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = self.get_service().update_seller_sub_order_status(
            pk,
            store_id,
            data["status"],
            tracking_number=data["tracking_number"],
            shipping_carrier=data["shipping_carrier"],
            changed_by=request.user,
            notes=data["notes"],
        )
        if not result.ok:
            return error_response(result)
        return Response(SellerSubOrderDetailSerializer(result.value).data)

    @extend_schema(
        operation_id="seller_sub_orders_tracking",
        request=TrackingRequestSerializer,
        responses={200: SellerSubOrderDetailSerializer, 400: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Seller Orders"],
    )
    @action(detail=True, methods=["post"])
    def tracking(self, request, pk=None):
        store_id = self.get_store_id(request)
        if not store_id:
            return self.no_store()
        serializer = TrackingRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.get_service().update_tracking_info(
            pk,
            store_id,
            serializer.validated_data["tracking_number"],
            serializer.validated_data["shipping_carrier"],
            changed_by=request.user,
        )
        if not result.ok:
            return error_response(result)
        return Response(SellerSubOrderDetailSerializer(result.value).data)

    @extend_schema(
        operation_id="seller_sub_orders_item_statuses",
        summary="Update item statuses",
        description="""
        **What it receives:**
        - `updates`: list of `{item_id, status}`

        **What it returns:**
        - The sub-order with its status derived from the items
        """,
        request=ItemStatusesRequestSerializer,
        responses={200: SellerSubOrderDetailSerializer, 400: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Seller Orders"],
    )
    @action(detail=True, methods=["post"], url_path="item-statuses")
    def item_statuses(self, request, pk=None):
        store_id = self.get_store_id(request)
        if not store_id:
            return self.no_store()
        serializer = ItemStatusesRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        updates = [dict(update) for update in serializer.validated_data["updates"]]
        result = self.get_service().update_sub_order_item_statuses(pk, store_id, updates, changed_by=request.user)
        if not result.ok:
            return error_response(result)
        return Response(SellerSubOrderDetailSerializer(result.value).data)

    @extend_schema(
        operation_id="seller_sub_orders_cancelled_refund",
        responses={200: OpenApiResponse(description="{'amount': decimal}")},
        tags=["Marketplace - Seller Orders"],
    )
    @action(detail=True, methods=["get"], url_path="cancelled-refund")
    def cancelled_refund(self, request, pk=None):
        store_id = self.get_store_id(request)
        if not store_id:
            return self.no_store()
        result = self.get_service().calculate_cancelled_items_refund(pk, store_id)
        if not result.ok:
            return error_response(result)
        return Response({"amount": str(result.value)})

    @extend_schema(
        operation_id="seller_sub_orders_history",
        responses={200: ShippingStatusHistorySerializer(many=True)},
        tags=["Marketplace - Seller Orders"],
    )
    @action(detail=True, methods=["get"])
    def history(self, request, pk=None):
        store_id = self.get_store_id(request)
        if not store_id:
            return self.no_store()
        sub_order = self.get_service().get_seller_sub_order(pk, store_id)
        if not sub_order.ok:
            return error_response(sub_order)
        result = self.get_service().get_shipping_status_history(pk)
        return Response(ShippingStatusHistorySerializer(result.value, many=True).data)

    @extend_schema(
        operation_id="seller_sub_orders_export",
        summary="Export sub-orders as CSV",
        parameters=ORDER_FILTER_PARAMETERS,
        responses={200: OpenApiResponse(description="text/csv attachment")},
        tags=["Marketplace - Seller Orders"],
    )
    @action(detail=False, methods=["get"])
    def export(self, request):
        store_id = self.get_store_id(request)
        if not store_id:
            return self.no_store()
        filters = read_filters(request)
        if "page_size" not in request.query_params:
            filters.pop("page_size", None)
        result = self.get_service().export_seller_sub_orders_csv(store_id, filters)
        if not result.ok:
            return error_response(result)
        response = HttpResponse(result.value["content"], content_type="text/csv")
        response["Content-Disposition"] = f'attachment; filename="{result.value["filename"]}"'
        return response


class AdminOrderViewSet(viewsets.ViewSet):
    permission_classes = [AdminRequired]

    def get_service(self):
        return container.order_service()

    @extend_schema(
        operation_id="admin_orders_list",
        parameters=ORDER_FILTER_PARAMETERS
        + [
            OpenApiParameter("store_id", str),
            OpenApiParameter("search", str, description="Order number or buyer e-mail"),
        ],
        responses={200: OrderSerializer(many=True), 400: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Admin"],
    )
    def list(self, request):
        result = self.get_service().get_admin_orders(read_filters(request))
        if not result.ok:
            return error_response(result)
        return Response(page_data(result.value, OrderSerializer))

    @extend_schema(
        operation_id="admin_orders_retrieve",
        responses={200: OrderSerializer, 404: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Admin"],
    )
    def retrieve(self, request, pk=None):
        result = self.get_service().get_order_for_admin(pk)
        if not result.ok:
            return error_response(result)
        return Response(OrderSerializer(result.value).data)
