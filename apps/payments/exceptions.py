"""
Payment error taxonomy.
Every outbound failure and every ledger guard is converted to one of these,
so views can map them to HTTP without catching bare exceptions.
"""


class PaymentError(Exception):
    """Base for all payment-core errors."""

    def __init__(self, message="", **context):
        super().__init__(message)
        self.message = message
        self.context = context


class AuthenticationError(PaymentError):
    """Could not obtain an access token from the provider."""


class GatewayError(PaymentError):
    """Provider rejected the request or the transport failed."""


class GatewayTimeoutError(GatewayError):
    """Provider did not answer within the configured timeout."""


class CallbackParseError(PaymentError):
    """Inbound callback could not be turned into a CallbackResult."""

    def __init__(self, message, raw_payload=None):
        super().__init__(message)
        self.raw_payload = raw_payload


class DuplicateCheckoutIdError(PaymentError):
    """A transaction with this checkout request id already exists."""


class NotFoundError(PaymentError):
    """Unknown transaction or order."""
