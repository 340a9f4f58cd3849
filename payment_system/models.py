from .domain.models import (
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


__all__ = [
    "PaymentTransaction",
    "EscrowEntry",
    "CommissionRule",
    "CommissionRecord",
    "Refund",
    "Payout",
    "Settlement",
    "SettlementLineItem",
    "CommissionInvoice",
    "CommissionInvoiceLineItem",
]
