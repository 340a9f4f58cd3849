from .request_serializers import (
    BlikCodeRequestSerializer,
    CommissionRuleRequestSerializer,
    CreditNoteRequestSerializer,
    EscrowFilterSerializer,
    InitiatePaymentRequestSerializer,
    OrderQuerySerializer,
    PaymentCallbackRequestSerializer,
    PayoutFilterSerializer,
    ProcessPayoutsRequestSerializer,
    RefundRequestSerializer,
    RegenerateSettlementRequestSerializer,
    SchedulePayoutsRequestSerializer,
    SellerPeriodRequestSerializer,
    SellerRefundRequestSerializer,
    SettlementFilterSerializer,
)
from .response_serializers import (
    CommissionInvoiceSerializer,
    CommissionRecordSerializer,
    CommissionRuleSerializer,
    EscrowEntrySerializer,
    OrderRefundsSerializer,
    PaymentInitiationSerializer,
    PaymentMethodSerializer,
    PaymentStatusSerializer,
    PaymentTransactionSerializer,
    PayoutBatchResultSerializer,
    PayoutScheduleResultSerializer,
    PayoutSerializer,
    RefundEligibilitySerializer,
    RefundSerializer,
    SettlementDetailSerializer,
    SettlementSerializer,
)


__all__ = [
    "BlikCodeRequestSerializer",
    "CommissionInvoiceSerializer",
    "CommissionRecordSerializer",
    "CommissionRuleRequestSerializer",
    "CommissionRuleSerializer",
    "CreditNoteRequestSerializer",
    "EscrowEntrySerializer",
    "EscrowFilterSerializer",
    "InitiatePaymentRequestSerializer",
    "OrderQuerySerializer",
    "OrderRefundsSerializer",
    "PaymentCallbackRequestSerializer",
    "PaymentInitiationSerializer",
    "PaymentMethodSerializer",
    "PaymentStatusSerializer",
    "PaymentTransactionSerializer",
    "PayoutBatchResultSerializer",
    "PayoutFilterSerializer",
    "PayoutScheduleResultSerializer",
    "PayoutSerializer",
    "ProcessPayoutsRequestSerializer",
    "RefundEligibilitySerializer",
    "RefundRequestSerializer",
    "RefundSerializer",
    "RegenerateSettlementRequestSerializer",
    "SchedulePayoutsRequestSerializer",
    "SellerPeriodRequestSerializer",
    "SellerRefundRequestSerializer",
    "SettlementDetailSerializer",
    "SettlementFilterSerializer",
    "SettlementSerializer",
]
