from rest_framework import serializers

from payment_system.domain.models import (
    CommissionInvoice,
    CommissionInvoiceLineItem,
    CommissionRecord,
    CommissionRule,
    EscrowEntry,
    PaymentTransaction,
    Payout,
    Refund,
    Settlement,
    SettlementLineItem,
)
from payment_system.domain.services.payment_status import format_refund_display, status_display


# ==============================================================================
# Payments
# ==============================================================================


class PaymentMethodSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    description = serializers.CharField()
    icon_class = serializers.CharField()
    is_default = serializers.BooleanField()
    sort_order = serializers.IntegerField()


class PaymentTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentTransaction
        fields = (
            "id",
            "payment_method",
            "status",
            "amount",
            "currency",
            "refunded_amount",
            "external_reference",
            "redirect_url",
            "created_at",
            "completed_at",
        )
        read_only_fields = fields


class PaymentInitiationSerializer(serializers.Serializer):
    """Result of starting a payment"""

    transaction = PaymentTransactionSerializer()
    redirect_url = serializers.CharField(allow_null=True)
    requires_blik_code = serializers.BooleanField()
    authorized = serializers.BooleanField()


class PaymentStatusSerializer(PaymentTransactionSerializer):
    """Transaction with the buyer-facing status display"""

    display = serializers.SerializerMethodField()

    class Meta(PaymentTransactionSerializer.Meta):
        fields = PaymentTransactionSerializer.Meta.fields + ("display",)
        read_only_fields = fields

    def get_display(self, obj) -> dict:
        display = status_display(obj.status, refunded_amount=obj.refunded_amount)
        display["refund_display"] = format_refund_display(obj.refunded_amount, obj.amount)
        return display


# ==============================================================================
# Escrow, commission and refunds
# ==============================================================================


class EscrowEntrySerializer(serializers.ModelSerializer):
    remaining_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = EscrowEntry
        fields = (
            "id",
            "order_id",
            "seller_id",
            "payment_transaction_id",
            "amount",
            "refunded_amount",
            "remaining_amount",
            "currency",
            "status",
            "is_eligible_for_payout",
            "payout_id",
            "audit_note",
            "created_at",
            "released_at",
            "refunded_at",
        )
        read_only_fields = fields


class CommissionRuleSerializer(serializers.ModelSerializer):
    description = serializers.CharField(source="get_description", read_only=True)

    class Meta:
        model = CommissionRule
        fields = (
            "id",
            "name",
            "seller_id",
            "category",
            "commission_rate",
            "fixed_fee",
            "min_commission",
            "max_commission",
            "priority",
            "is_active",
            "effective_date",
            "version",
            "description",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class CommissionRecordSerializer(serializers.ModelSerializer):
    class Meta:
        model = CommissionRecord
        fields = (
            "id",
            "order_id",
            "seller_id",
            "order_amount",
            "commission_rate",
            "commission_amount",
            "refunded_amount",
            "refunded_commission_amount",
            "net_commission_amount",
            "applied_rule_description",
            "calculated_at",
            "last_refund_recalculated_at",
        )
        read_only_fields = fields


class RefundSerializer(serializers.ModelSerializer):
    class Meta:
        model = Refund
        fields = (
            "id",
            "order_id",
            "payment_transaction_id",
            "seller_id",
            "refund_type",
            "status",
            "amount",
            "currency",
            "reason",
            "initiated_by_role",
            "escrow_refunded_amount",
            "commission_refunded_amount",
            "external_reference",
            "created_at",
            "completed_at",
        )
        read_only_fields = fields


class OrderRefundsSerializer(serializers.Serializer):
    refunds = RefundSerializer(many=True)
    total_refunded = serializers.DecimalField(max_digits=12, decimal_places=2)


class RefundEligibilitySerializer(serializers.Serializer):
    eligible = serializers.BooleanField()
    reason = serializers.CharField(allow_blank=True)
    remaining_balance = serializers.DecimalField(max_digits=12, decimal_places=2)
    max_refundable = serializers.DecimalField(max_digits=12, decimal_places=2)


# ==============================================================================
# Payouts
# ==============================================================================


class PayoutSerializer(serializers.ModelSerializer):
    seller_name = serializers.CharField(source="seller.name", read_only=True)

    class Meta:
        model = Payout
        fields = (
            "id",
            "seller_id",
            "seller_name",
            "status",
            "amount",
            "currency",
            "schedule_frequency",
            "scheduled_at",
            "batch_id",
            "escrow_entry_ids",
            "retry_count",
            "last_retry_at",
            "error_reference",
            "error_message",
            "external_transfer_reference",
            "processing_started_at",
            "processing_completed_at",
        )
        read_only_fields = fields


class PayoutScheduleResultSerializer(serializers.Serializer):
    payouts = PayoutSerializer(many=True)
    rolled_over = serializers.IntegerField()
    total_amount = serializers.DecimalField(max_digits=14, decimal_places=2)


class PayoutBatchResultSerializer(serializers.Serializer):
    batch_id = serializers.CharField()
    success_count = serializers.IntegerField()
    failed_count = serializers.IntegerField()


# ==============================================================================
# Settlements and invoices
# ==============================================================================


class SettlementLineItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = SettlementLineItem
        fields = (
            "order_id",
            "order_number",
            "order_date",
            "gross_amount",
            "refund_amount",
            "net_amount",
            "commission_amount",
            "is_adjustment",
            "original_year",
            "original_month",
            "notes",
        )
        read_only_fields = fields


class SettlementSerializer(serializers.ModelSerializer):
    seller_name = serializers.CharField(source="seller.name", read_only=True)

    class Meta:
        model = Settlement
        fields = (
            "id",
            "seller_id",
            "seller_name",
            "year",
            "month",
            "period_start",
            "period_end",
            "gross_sales",
            "total_refunds",
            "net_sales",
            "total_commission",
            "previous_month_adjustments",
            "net_payable",
            "order_count",
            "currency",
            "status",
            "version",
            "audit_note",
            "generated_at",
            "regenerated_at",
            "finalized_at",
            "exported_at",
        )
        read_only_fields = fields


class SettlementDetailSerializer(SettlementSerializer):
    line_items = SettlementLineItemSerializer(many=True, read_only=True)

    class Meta(SettlementSerializer.Meta):
        fields = SettlementSerializer.Meta.fields + ("line_items",)
        read_only_fields = fields


class CommissionInvoiceLineItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = CommissionInvoiceLineItem
        fields = ("order_id", "description", "order_amount", "commission_rate", "amount")
        read_only_fields = fields


class CommissionInvoiceSerializer(serializers.ModelSerializer):
    line_items = CommissionInvoiceLineItemSerializer(many=True, read_only=True)
    original_invoice_number = serializers.SerializerMethodField()

    class Meta:
        model = CommissionInvoice
        fields = (
            "id",
            "invoice_number",
            "seller_id",
            "year",
            "month",
            "invoice_type",
            "status",
            "net_amount",
            "tax_rate",
            "tax_amount",
            "gross_amount",
            "currency",
            "issue_date",
            "due_date",
            "paid_at",
            "original_invoice_number",
            "correction_reason",
            "line_items",
        )
        read_only_fields = fields

    def get_original_invoice_number(self, obj):
        return obj.original_invoice.invoice_number if obj.original_invoice_id else None
