from django.http import HttpResponse
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from authentication.permissions import AdminRequired
from infrastructure.container import container
from marketplace.api.serializers import ErrorResponseSerializer
from payment_system.api.serializers import (
    CommissionInvoiceSerializer,
    CommissionRecordSerializer,
    CommissionRuleRequestSerializer,
    CommissionRuleSerializer,
    CreditNoteRequestSerializer,
    OrderQuerySerializer,
    OrderRefundsSerializer,
    RefundRequestSerializer,
    RefundSerializer,
    RegenerateSettlementRequestSerializer,
    SellerPeriodRequestSerializer,
    SettlementDetailSerializer,
    SettlementFilterSerializer,
    SettlementSerializer,
)
from payment_system.domain.models import Refund
from utils.api_responses import error_response
from utils.service_base import ErrorCodes, service_err

UUID_PATTERN = "[0-9a-f-]{36}"


def file_response(value, content_type):
    response = HttpResponse(value["content"], content_type=content_type)
    response["Content-Disposition"] = f'attachment; filename="{value["filename"]}"'
    return response


# ==============================================================================
# Refunds
# ==============================================================================


class AdminRefundViewSet(viewsets.ViewSet):
    permission_classes = [AdminRequired]
    lookup_value_regex = UUID_PATTERN

    def get_service(self):
        return container.refund_service()

    @extend_schema(
        operation_id="admin_refunds_list",
        summary="Refunds of an order",
        parameters=[OpenApiParameter("order_id", str, required=True)],
        responses={200: OrderRefundsSerializer},
        tags=["Payments - Admin Refunds"],
    )
    def list(self, request):
        query = OrderQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        result = self.get_service().get_refunds_by_order(query.validated_data["order_id"])
        return Response(OrderRefundsSerializer(result.value).data)

    @extend_schema(
        operation_id="admin_refunds_retrieve",
        responses={200: RefundSerializer, 404: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Payments - Admin Refunds"],
    )
    def retrieve(self, request, pk=None):
        result = self.get_service().get_refund(pk)
        if not result.ok:
            return error_response(result)
        return Response(RefundSerializer(result.value).data)

    @extend_schema(
        operation_id="admin_refunds_create",
        summary="Refund a buyer",
        description="""
        **What it receives:**
        - `order_id`, `payment_transaction_id` and `reason`
        - `refund_type`: `full` refunds everything still in escrow, `partial` refunds `amount`
        - Optional `seller_id` to limit the refund to one store's share, optional `audit_note`

        **What it returns:**
        - The completed refund
        - 400 when the escrow balance does not cover the amount
        - 502 when the payment provider fails; the refund is kept as `failed`
        """,
        request=RefundRequestSerializer,
        responses={
            201: RefundSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer),
            502: OpenApiResponse(response=ErrorResponseSerializer),
        },
        tags=["Payments - Admin Refunds"],
    )
    def create(self, request):
        serializer = RefundRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        common = {
            "order_id": data["order_id"],
            "payment_transaction_id": data["payment_transaction_id"],
            "reason": data["reason"],
            "initiated_by_user_id": request.user.id,
            "initiated_by_role": "admin",
            "audit_note": data["audit_note"] or None,
            "seller_id": data.get("seller_id"),
        }
        if data["refund_type"] == Refund.TYPE_FULL:
            result = self.get_service().process_full_refund(**common)
        else:
            result = self.get_service().process_partial_refund(amount=data["amount"], **common)
        if not result.ok:
            return error_response(result)
        return Response(RefundSerializer(result.value).data, status=status.HTTP_201_CREATED)


# ==============================================================================
# Commission
# ==============================================================================


class AdminCommissionRuleViewSet(viewsets.ViewSet):
    """
    Commission rules. The most specific active rule wins: seller and
    category, then seller, then category, then the platform default.
    """

    permission_classes = [AdminRequired]
    lookup_value_regex = UUID_PATTERN

    def get_service(self):
        return container.commission_service()

    @extend_schema(
        operation_id="admin_commission_rules_list",
        parameters=[OpenApiParameter("active_only", bool), OpenApiParameter("seller_id", str)],
        responses={200: CommissionRuleSerializer(many=True)},
        tags=["Payments - Admin Commission"],
    )
    def list(self, request):
        active_only = request.query_params.get("active_only", "").lower() in ("1", "true", "yes")
        result = self.get_service().list_rules(
            active_only=active_only, seller_id=request.query_params.get("seller_id") or None
        )
        return Response(CommissionRuleSerializer(result.value, many=True).data)

    @extend_schema(
        operation_id="admin_commission_rules_retrieve",
        responses={200: CommissionRuleSerializer, 404: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Payments - Admin Commission"],
    )
    def retrieve(self, request, pk=None):
        result = self.get_service().get_rule(pk)
        if not result.ok:
            return error_response(result)
        return Response(CommissionRuleSerializer(result.value).data)

    @extend_schema(
        operation_id="admin_commission_rules_create",
        description="""
        **What it receives:**
        - `name` and `commission_rate` (percent, 0..100)
        - Optional scope (`seller_id`, `category`), `fixed_fee`, `min_commission` / `max_commission`,
          `priority`, `effective_date`

        **What it returns:**
        - The new rule
        - 409 when an active rule already covers the same scope
        """,
        request=CommissionRuleRequestSerializer,
        responses={
            201: CommissionRuleSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer),
            409: OpenApiResponse(response=ErrorResponseSerializer),
        },
        tags=["Payments - Admin Commission"],
    )
    def create(self, request):
        serializer = CommissionRuleRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.get_service().create_rule(dict(serializer.validated_data), created_by=request.user)
        if not result.ok:
            return error_response(result)
        return Response(CommissionRuleSerializer(result.value).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="admin_commission_rules_update",
        request=CommissionRuleRequestSerializer,
        responses={
            200: CommissionRuleSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer),
            409: OpenApiResponse(response=ErrorResponseSerializer),
        },
        tags=["Payments - Admin Commission"],
    )
    def partial_update(self, request, pk=None):
        serializer = CommissionRuleRequestSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        result = self.get_service().update_rule(pk, dict(serializer.validated_data), modified_by=request.user)
        if not result.ok:
            return error_response(result)
        return Response(CommissionRuleSerializer(result.value).data)

    @extend_schema(
        operation_id="admin_commission_rules_deactivate",
        request=None,
        responses={200: CommissionRuleSerializer, 400: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Payments - Admin Commission"],
    )
    @action(detail=True, methods=["post"])
    def deactivate(self, request, pk=None):
        result = self.get_service().deactivate_rule(pk, modified_by=request.user)
        if not result.ok:
            return error_response(result)
        return Response(CommissionRuleSerializer(result.value).data)


class AdminCommissionRecordViewSet(viewsets.ViewSet):
    permission_classes = [AdminRequired]

    @extend_schema(
        operation_id="admin_commission_records_list",
        summary="Commission records of an order or a seller",
        parameters=[OpenApiParameter("order_id", str), OpenApiParameter("seller_id", str)],
        responses={200: CommissionRecordSerializer(many=True), 400: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Payments - Admin Commission"],
    )
    def list(self, request):
        service = container.commission_service()
        order_id = request.query_params.get("order_id")
        seller_id = request.query_params.get("seller_id")
        if order_id:
            result = service.get_commission_records_by_order(order_id)
        elif seller_id:
            result = service.get_commission_records_by_seller(seller_id)
        else:
            return error_response(service_err(ErrorCodes.VALIDATION_ERROR, "Provide order_id or seller_id."))
        return Response(CommissionRecordSerializer(result.value, many=True).data)


# ==============================================================================
# Settlements
# ==============================================================================


class AdminSettlementViewSet(viewsets.ViewSet):
    """
    Monthly settlements. Drafts can be regenerated until they are finalized
    or exported.
    """

    permission_classes = [AdminRequired]
    lookup_value_regex = UUID_PATTERN

    def get_service(self):
        return container.settlement_service()

    @extend_schema(
        operation_id="admin_settlements_list",
        parameters=[
            OpenApiParameter("seller_id", str),
            OpenApiParameter("year", int),
            OpenApiParameter("month", int),
            OpenApiParameter("status", str, description="draft, finalized or exported"),
        ],
        responses={200: SettlementSerializer(many=True)},
        tags=["Payments - Admin Settlements"],
    )
    def list(self, request):
        filters = SettlementFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        result = self.get_service().get_filtered_settlements(**filters.validated_data)
        return Response(SettlementSerializer(result.value, many=True).data)

    @extend_schema(
        operation_id="admin_settlements_retrieve",
        responses={200: SettlementDetailSerializer, 404: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Payments - Admin Settlements"],
    )
    def retrieve(self, request, pk=None):
        result = self.get_service().get_settlement(pk)
        if not result.ok:
            return error_response(result)
        return Response(SettlementDetailSerializer(result.value).data)

    @extend_schema(
        operation_id="admin_settlements_generate",
        summary="Generate a seller's settlement for a month",
        description="""
        **What it receives:**
        - `seller_id`, `year` and `month`

        **What it returns:**
        - The draft settlement with its line items
        - 409 when the period already has a settlement (regenerate it instead)
        """,
        request=SellerPeriodRequestSerializer,
        responses={
            201: SettlementDetailSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer),
            409: OpenApiResponse(response=ErrorResponseSerializer),
        },
        tags=["Payments - Admin Settlements"],
    )
    @action(detail=False, methods=["post"])
    def generate(self, request):
        serializer = SellerPeriodRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = self.get_service().generate_settlement(data["seller_id"], data["year"], data["month"])
        if not result.ok:
            return error_response(result)
        return Response(SettlementDetailSerializer(result.value).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="admin_settlements_regenerate",
        request=RegenerateSettlementRequestSerializer,
        responses={200: SettlementDetailSerializer, 400: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Payments - Admin Settlements"],
    )
    @action(detail=True, methods=["post"])
    def regenerate(self, request, pk=None):
        serializer = RegenerateSettlementRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.get_service().regenerate_settlement(pk, reason=serializer.validated_data["reason"] or None)
        if not result.ok:
            return error_response(result)
        data = SettlementDetailSerializer(result.value["settlement"]).data
        data["previous_version"] = result.value["previous_version"]
        return Response(data)

    @extend_schema(
        operation_id="admin_settlements_finalize",
        request=None,
        responses={200: SettlementSerializer, 400: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Payments - Admin Settlements"],
    )
    @action(detail=True, methods=["post"])
    def finalize(self, request, pk=None):
        result = self.get_service().finalize_settlement(pk)
        if not result.ok:
            return error_response(result)
        return Response(SettlementSerializer(result.value).data)

    @extend_schema(
        operation_id="admin_settlements_export",
        summary="Export a settlement as CSV",
        description="Marks the settlement exported; it can no longer be regenerated.",
        request=None,
        responses={200: OpenApiResponse(description="text/csv attachment")},
        tags=["Payments - Admin Settlements"],
    )
    @action(detail=True, methods=["post"])
    def export(self, request, pk=None):
        result = self.get_service().export_settlement(pk)
        if not result.ok:
            return error_response(result)
        return file_response(result.value, "text/csv")


# ==============================================================================
# Commission invoices
# ==============================================================================


class AdminInvoiceViewSet(viewsets.ViewSet):
    permission_classes = [AdminRequired]
    lookup_value_regex = UUID_PATTERN

    def get_service(self):
        return container.invoice_service()

    @extend_schema(
        operation_id="admin_invoices_list",
        parameters=[OpenApiParameter("seller_id", str, required=True)],
        responses={200: CommissionInvoiceSerializer(many=True), 400: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Payments - Admin Invoices"],
    )
    def list(self, request):
        seller_id = request.query_params.get("seller_id")
        if not seller_id:
            return error_response(service_err(ErrorCodes.VALIDATION_ERROR, "seller_id is required."))
        result = self.get_service().get_invoices_by_seller(seller_id)
        return Response(CommissionInvoiceSerializer(result.value, many=True).data)

    @extend_schema(
        operation_id="admin_invoices_retrieve",
        responses={200: CommissionInvoiceSerializer, 404: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Payments - Admin Invoices"],
    )
    def retrieve(self, request, pk=None):
        result = self.get_service().get_invoice(pk)
        if not result.ok:
            return error_response(result)
        return Response(CommissionInvoiceSerializer(result.value).data)

    @extend_schema(
        operation_id="admin_invoices_generate",
        summary="Issue a seller's commission invoice for a month",
        description="""
        **What it receives:**
        - `seller_id`, `year` and `month`

        **What it returns:**
        - The issued invoice; it is e-mailed to the store owner with the PDF attached
        - 404 when the seller has no commission records in the month, 409 when already invoiced
        """,
        request=SellerPeriodRequestSerializer,
        responses={
            201: CommissionInvoiceSerializer,
            404: OpenApiResponse(response=ErrorResponseSerializer),
            409: OpenApiResponse(response=ErrorResponseSerializer),
        },
        tags=["Payments - Admin Invoices"],
    )
    @action(detail=False, methods=["post"])
    def generate(self, request):
        serializer = SellerPeriodRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = self.get_service().generate_invoice(data["seller_id"], data["year"], data["month"])
        if not result.ok:
            return error_response(result)
        return Response(CommissionInvoiceSerializer(result.value).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="admin_invoices_credit_note",
        summary="Correct an invoice with a credit note",
        request=CreditNoteRequestSerializer,
        responses={201: CommissionInvoiceSerializer, 400: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Payments - Admin Invoices"],
    )
    @action(detail=True, methods=["post"], url_path="credit-note")
    def credit_note(self, request, pk=None):
        serializer = CreditNoteRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = self.get_service().create_credit_note(pk, data["credit_amount"], data["reason"])
        if not result.ok:
            return error_response(result)
        return Response(CommissionInvoiceSerializer(result.value).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="admin_invoices_mark_paid",
        request=None,
        responses={200: CommissionInvoiceSerializer, 400: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Payments - Admin Invoices"],
    )
    @action(detail=True, methods=["post"], url_path="mark-paid")
    def mark_paid(self, request, pk=None):
        result = self.get_service().mark_invoice_paid(pk)
        if not result.ok:
            return error_response(result)
        return Response(CommissionInvoiceSerializer(result.value).data)

    @extend_schema(
        operation_id="admin_invoices_pdf",
        responses={200: OpenApiResponse(description="application/pdf attachment")},
        tags=["Payments - Admin Invoices"],
    )
    @action(detail=True, methods=["get"])
    def pdf(self, request, pk=None):
        result = self.get_service().generate_invoice_pdf(pk)
        if not result.ok:
            return error_response(result)
        return file_response(result.value, "application/pdf")
