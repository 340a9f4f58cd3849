from django.http import HttpResponse
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from authentication.permissions import SellerRequired
from infrastructure.container import container
from marketplace.api.serializers import ErrorResponseSerializer
from payment_system.api.serializers import (
    CommissionInvoiceSerializer,
    CommissionRecordSerializer,
    EscrowEntrySerializer,
    EscrowFilterSerializer,
    OrderQuerySerializer,
    PayoutSerializer,
    RefundEligibilitySerializer,
    RefundSerializer,
    SellerRefundRequestSerializer,
    SettlementDetailSerializer,
    SettlementSerializer,
)
from sellers.domain.models import Store
from utils.api_responses import error_response
from utils.service_base import ErrorCodes, service_err


class SellerFinanceViewSet(viewsets.ViewSet):
    """
    The seller's money: escrow, commission, payouts, settlements and
    commission invoices of the caller's store, plus seller-granted refunds.

    Records of another store are reported as not found.
    """

    permission_classes = [SellerRequired]

    def get_store(self, request):
        return Store.objects.filter(owner=request.user).first()

    def no_store(self):
        return error_response(service_err(ErrorCodes.NOT_FOUND, "You do not have a store yet."))

    def not_found(self, message):
        return error_response(service_err(ErrorCodes.NOT_FOUND, message))

    @extend_schema(
        operation_id="seller_finance_escrow",
        summary="Escrow entries of the seller's store",
        parameters=[OpenApiParameter("status", str, description="held, released, refunded or partially_refunded")],
        responses={200: EscrowEntrySerializer(many=True)},
        tags=["Payments - Seller"],
    )
    @action(detail=False, methods=["get"])
    def escrow(self, request):
        store = self.get_store(request)
        if not store:
            return self.no_store()
        filters = EscrowFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        result = container.escrow_service().get_escrow_entries_by_seller(
            store.id, status=filters.validated_data.get("status")
        )
        return Response(EscrowEntrySerializer(result.value, many=True).data)

    @extend_schema(
        operation_id="seller_finance_commissions",
        summary="Commission charged on the store's orders",
        responses={200: CommissionRecordSerializer(many=True)},
        tags=["Payments - Seller"],
    )
    @action(detail=False, methods=["get"])
    def commissions(self, request):
        store = self.get_store(request)
        if not store:
            return self.no_store()
        result = container.commission_service().get_commission_records_by_seller(store.id)
        return Response(CommissionRecordSerializer(result.value, many=True).data)

    @extend_schema(
        operation_id="seller_finance_refund_eligibility",
        summary="Whether the seller can still refund an order",
        description="""
        **What it receives:**
        - `order_id` query parameter

        **What it returns:**
        - `eligible` with the `reason` when not, the remaining escrow balance and the most the seller may refund
        """,
        parameters=[OpenApiParameter("order_id", str, required=True)],
        responses={200: RefundEligibilitySerializer, 404: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Payments - Seller"],
    )
    @action(detail=False, methods=["get"], url_path="refund-eligibility")
    def refund_eligibility(self, request):
        store = self.get_store(request)
        if not store:
            return self.no_store()
        query = OrderQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        result = container.refund_service().check_seller_refund_eligibility(query.validated_data["order_id"], store.id)
        if not result.ok:
            return error_response(result)
        return Response(RefundEligibilitySerializer(result.value).data)

    @extend_schema(
        operation_id="seller_finance_refund",
        summary="Refund part of an order from the store's escrow",
        description="""
        **What it receives:**
        - `order_id`, `amount` and `reason`

        **What it returns:**
        - The completed refund
        - 400 outside the refund window or above the refundable maximum
        - 502 when the payment provider rejects the refund
        """,
        request=SellerRefundRequestSerializer,
        responses={
            201: RefundSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer),
            502: OpenApiResponse(response=ErrorResponseSerializer),
        },
        tags=["Payments - Seller"],
    )
    @action(detail=False, methods=["post"])
    def refunds(self, request):
        store = self.get_store(request)
        if not store:
            return self.no_store()
        serializer = SellerRefundRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = container.refund_service().process_seller_refund(
            data["order_id"], store.id, data["amount"], data["reason"], initiated_by_user_id=request.user.id
        )
        if not result.ok:
            return error_response(result)
        return Response(RefundSerializer(result.value).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="seller_finance_payouts",
        parameters=[OpenApiParameter("status", str)],
        responses={200: PayoutSerializer(many=True)},
        tags=["Payments - Seller"],
    )
    @action(detail=False, methods=["get"])
    def payouts(self, request):
        store = self.get_store(request)
        if not store:
            return self.no_store()
        result = container.payout_service().get_payouts_by_seller(store.id, status=request.query_params.get("status"))
        return Response(PayoutSerializer(result.value, many=True).data)

    @extend_schema(
        operation_id="seller_finance_settlements",
        responses={200: SettlementSerializer(many=True)},
        tags=["Payments - Seller"],
    )
    @action(detail=False, methods=["get"])
    def settlements(self, request):
        store = self.get_store(request)
        if not store:
            return self.no_store()
        result = container.settlement_service().get_filtered_settlements(seller_id=store.id)
        return Response(SettlementSerializer(result.value, many=True).data)

    @extend_schema(
        operation_id="seller_finance_settlement_detail",
        responses={200: SettlementDetailSerializer, 404: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Payments - Seller"],
    )
    @action(detail=False, methods=["get"], url_path=r"settlements/(?P<settlement_id>[0-9a-f-]{36})")
    def settlement_detail(self, request, settlement_id=None):
        store = self.get_store(request)
        if not store:
            return self.no_store()
        result = container.settlement_service().get_settlement(settlement_id)
        if not result.ok:
            return error_response(result)
        if result.value.seller_id != store.id:
            return self.not_found("Settlement not found.")
        return Response(SettlementDetailSerializer(result.value).data)

    @extend_schema(
        operation_id="seller_finance_invoices",
        responses={200: CommissionInvoiceSerializer(many=True)},
        tags=["Payments - Seller"],
    )
    @action(detail=False, methods=["get"])
    def invoices(self, request):
        store = self.get_store(request)
        if not store:
            return self.no_store()
        result = container.invoice_service().get_invoices_by_seller(store.id)
        return Response(CommissionInvoiceSerializer(result.value, many=True).data)

    @extend_schema(
        operation_id="seller_finance_invoice_pdf",
        summary="Download a commission invoice as PDF",
        responses={200: OpenApiResponse(description="application/pdf attachment")},
        tags=["Payments - Seller"],
    )
    @action(detail=False, methods=["get"], url_path=r"invoices/(?P<invoice_id>[0-9a-f-]{36})/pdf")
    def invoice_pdf(self, request, invoice_id=None):
        store = self.get_store(request)
        if not store:
            return self.no_store()
        result = container.invoice_service().generate_invoice_pdf(invoice_id, seller_id=store.id)
        if not result.ok:
            return error_response(result)
        response = HttpResponse(result.value["content"], content_type="application/pdf")
        response["Content-Disposition"] = f'attachment; filename="{result.value["filename"]}"'
        return response
