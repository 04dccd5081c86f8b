"""Payment domain exceptions."""


class PaymentError(Exception):
    """Base class for payment flow errors."""


class SetupFailure(PaymentError):
    """Raised when a checkout cannot be initialised (price, amount, address or storage)."""
