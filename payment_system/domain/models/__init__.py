from .commission import CommissionRecord, CommissionRule
from .escrow import EscrowEntry
from .invoice import CommissionInvoice, CommissionInvoiceLineItem
from .payment_transaction import PaymentTransaction
from .payout import Payout
from .refund import Refund
from .settlement import Settlement, SettlementLineItem


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
