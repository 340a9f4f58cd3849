"""
Payment status mapping and buyer-facing presentation.

Provider status codes vary between gateways; ``map_provider_status`` folds
them onto the six ``PaymentTransaction`` statuses. The display helpers
never expose technical provider errors to buyers.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from payment_system.domain.models import PaymentTransaction


PAID = PaymentTransaction.STATUS_PAID
PENDING = PaymentTransaction.STATUS_PENDING
PROCESSING = PaymentTransaction.STATUS_PROCESSING
FAILED = PaymentTransaction.STATUS_FAILED
CANCELLED = PaymentTransaction.STATUS_CANCELLED
REFUNDED = PaymentTransaction.STATUS_REFUNDED

PROVIDER_STATUS_MAPPINGS = {
    # Success
    "succeeded": PAID,
    "success": PAID,
    "paid": PAID,
    "completed": PAID,
    "approved": PAID,
    "captured": PAID,
    "settled": PAID,
    # Pending
    "pending": PENDING,
    "pending_capture": PENDING,
    "pending_authorization": PENDING,
    "awaiting_payment": PENDING,
    "created": PENDING,
    "initiated": PENDING,
    "authorized": PENDING,
    # Processing
    "processing": PROCESSING,
    "in_progress": PROCESSING,
    "requires_action": PROCESSING,
    "requires_confirmation": PROCESSING,
    # Failed
    "failed": FAILED,
    "failure": FAILED,
    "declined": FAILED,
    "rejected": FAILED,
    "expired": FAILED,
    "error": FAILED,
    "payment_failed": FAILED,
    "insufficient_funds": FAILED,
    "card_declined": FAILED,
    # Cancelled
    "cancelled": CANCELLED,
    "canceled": CANCELLED,
    "voided": CANCELLED,
    "void": CANCELLED,
    "abandoned": CANCELLED,
    # Refunded
    "refunded": REFUNDED,
    "refund": REFUNDED,
    "partially_refunded": REFUNDED,
    "chargeback": REFUNDED,
}

ERROR_STATUSES = (FAILED, CANCELLED)


@dataclass
class StatusMapping:
    is_known: bool
    status: Optional[str]
    is_error: bool
    provider_code: str

    @classmethod
    def unknown(cls, provider_code: str) -> "StatusMapping":
        return cls(is_known=False, status=None, is_error=False, provider_code=provider_code)


def map_provider_status(provider_code: Optional[str]) -> StatusMapping:
    """Case-insensitive lookup of a provider status code."""
    if not provider_code or not provider_code.strip():
        return StatusMapping.unknown("(empty)")

    status = PROVIDER_STATUS_MAPPINGS.get(provider_code.strip().lower())
    if status is None:
        return StatusMapping.unknown(provider_code)
    return StatusMapping(is_known=True, status=status, is_error=status in ERROR_STATUSES, provider_code=provider_code)


BUYER_MESSAGES = {
    PENDING: "Your payment is being processed. Please wait for confirmation.",
    PROCESSING: "Your payment is currently being processed. This may take a few moments.",
    PAID: "Your payment was successful! Thank you for your purchase.",
    FAILED: "Unfortunately, your payment could not be processed. "
    "Please try again or use a different payment method.",
    CANCELLED: "Your payment was cancelled.",
    REFUNDED: "Your payment has been refunded. "
    "The refunded amount should appear in your account within 5-10 business days.",
}

BUYER_ERROR_MESSAGES = {
    FAILED: "We were unable to process your payment. Please check your payment details and try again. "
    "If the problem persists, please contact your bank or try a different payment method.",
    CANCELLED: "Your payment was cancelled. If you did not cancel this payment, please try again.",
}


def buyer_friendly_message(status: str) -> str:
    return BUYER_MESSAGES.get(status, "Payment status is being updated.")


def buyer_friendly_error_message(status: str, internal_error: Optional[str] = None) -> str:
    # internal_error is never shown to buyers
    return BUYER_ERROR_MESSAGES.get(
        status, "An issue occurred with your payment. Please try again or contact customer support for assistance."
    )


# Display

DISPLAY_TEXT = dict(PaymentTransaction.PAYMENT_STATUS_CHOICES)

BADGE_CLASSES = {
    PENDING: "bg-warning text-dark",
    PROCESSING: "bg-info text-white",
    PAID: "bg-success",
    FAILED: "bg-danger",
    CANCELLED: "bg-secondary",
    REFUNDED: "bg-dark",
}

ICON_CLASSES = {
    PENDING: "bi-hourglass-split",
    PROCESSING: "bi-arrow-repeat",
    PAID: "bi-check-circle-fill",
    FAILED: "bi-x-circle-fill",
    CANCELLED: "bi-slash-circle",
    REFUNDED: "bi-arrow-counterclockwise",
}


def format_money(amount: Decimal, symbol: str = "$") -> str:
    return f"{symbol}{amount:,.2f}"


def status_display(status: str, refunded_amount: Decimal = Decimal("0.00"), currency_symbol: str = "$") -> dict:
    """Everything a client needs to render a payment status badge."""
    if status == REFUNDED and refunded_amount > 0:
        message = (
            f"Your payment has been refunded. Refund amount: {format_money(refunded_amount, currency_symbol)}. "
            "The refunded amount should appear in your account within 5-10 business days."
        )
    elif status == PROCESSING:
        message = "Your payment is currently being verified."
    elif status == FAILED:
        message = "We were unable to process your payment. Please try again or use a different payment method."
    else:
        message = buyer_friendly_message(status)

    return {
        "status": status,
        "display_text": DISPLAY_TEXT.get(status, status),
        "badge_class": BADGE_CLASSES.get(status, "bg-secondary"),
        "icon_class": ICON_CLASSES.get(status, "bi-question-circle"),
        "buyer_message": message,
    }


def format_refund_display(refunded_amount: Decimal, total_amount: Decimal) -> str:
    if refunded_amount <= 0:
        return ""
    if refunded_amount >= total_amount:
        return f"Full refund: {format_money(refunded_amount)}"
    return f"Partial refund: {format_money(refunded_amount)} of {format_money(total_amount)}"
