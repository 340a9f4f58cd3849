class PaymentError(Exception):
    """Base class for payment system exceptions."""

    pass


class PaymentValidationError(PaymentError):
    """Raised when payment data validation fails."""

    pass


class PaymentProviderError(PaymentError):
    """Raised when the payment provider returns an error."""

    pass


class EscrowStateError(PaymentError):
    """Raised when escrow entries are not in a state that allows the operation."""

    pass


class SettlementError(PaymentError):
    """Raised when a settlement cannot be generated or changed."""

    pass
