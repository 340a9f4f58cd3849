from rest_framework import serializers

from payment_system.domain.models import EscrowEntry, Payout, PaymentTransaction, Refund, Settlement


class InitiatePaymentRequestSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, help_text="Amount to charge")
    payment_method = serializers.ChoiceField(choices=PaymentTransaction.PAYMENT_METHOD_CHOICES)
    return_url = serializers.URLField(help_text="Where the provider sends the buyer afterwards")
    cancel_url = serializers.URLField(required=False, allow_blank=True, default="")
    idempotency_key = serializers.CharField(required=False, allow_blank=True, max_length=100, default="")
    blik_code = serializers.CharField(required=False, allow_blank=True, max_length=6, default="")


class PaymentCallbackRequestSerializer(serializers.Serializer):
    transaction_id = serializers.UUIDField()
    is_success = serializers.BooleanField()
    external_reference = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")


class BlikCodeRequestSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=6, help_text="Six-digit BLIK code from the buyer's banking app")


class RefundRequestSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    payment_transaction_id = serializers.UUIDField()
    refund_type = serializers.ChoiceField(choices=Refund.REFUND_TYPE_CHOICES)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    seller_id = serializers.UUIDField(required=False, allow_null=True)
    reason = serializers.CharField(max_length=1000)
    audit_note = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if attrs["refund_type"] == Refund.TYPE_PARTIAL and attrs.get("amount") is None:
            raise serializers.ValidationError({"amount": "Amount is required for a partial refund."})
        return attrs


class SellerRefundRequestSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    reason = serializers.CharField(max_length=1000)


class OrderQuerySerializer(serializers.Serializer):
    order_id = serializers.UUIDField()


class EscrowFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=EscrowEntry.STATUS_CHOICES, required=False)


class SchedulePayoutsRequestSerializer(serializers.Serializer):
    scheduled_at = serializers.DateTimeField()
    frequency = serializers.ChoiceField(choices=Payout.FREQUENCY_CHOICES, default=Payout.FREQUENCY_WEEKLY)


class ProcessPayoutsRequestSerializer(serializers.Serializer):
    process_before = serializers.DateTimeField(required=False, allow_null=True, default=None)
    batch_id = serializers.CharField(required=False, allow_blank=True, max_length=64, default="")


class PayoutFilterSerializer(serializers.Serializer):
    seller_id = serializers.UUIDField(required=False)
    status = serializers.ChoiceField(choices=Payout.PAYOUT_STATUS_CHOICES, required=False)
    from_date = serializers.DateField(required=False)
    to_date = serializers.DateField(required=False)


class SellerPeriodRequestSerializer(serializers.Serializer):
    seller_id = serializers.UUIDField()
    year = serializers.IntegerField()
    month = serializers.IntegerField()


class RegenerateSettlementRequestSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class SettlementFilterSerializer(serializers.Serializer):
    seller_id = serializers.UUIDField(required=False)
    year = serializers.IntegerField(required=False)
    month = serializers.IntegerField(required=False)
    status = serializers.ChoiceField(choices=Settlement.STATUS_CHOICES, required=False)


class CreditNoteRequestSerializer(serializers.Serializer):
    credit_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    reason = serializers.CharField(max_length=1000)


class CommissionRuleRequestSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    seller_id = serializers.UUIDField(required=False, allow_null=True)
    category = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=100)
    commission_rate = serializers.DecimalField(max_digits=7, decimal_places=4)
    fixed_fee = serializers.DecimalField(max_digits=10, decimal_places=2, required=False)
    min_commission = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    max_commission = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    priority = serializers.IntegerField(required=False)
    is_active = serializers.BooleanField(required=False)
    effective_date = serializers.DateTimeField(required=False)
