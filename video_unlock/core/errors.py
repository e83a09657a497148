"""
Error taxonomy for the unlock payment flow.

Every error is raised at the core boundary and mapped to an HTTP status and
JSON body by the API layer; none of them is retried.
"""
from typing import Any, Optional


class VideoUnlockError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(VideoUnlockError):
    """Raised when caller input is missing or malformed."""

    pass


class NotFoundError(VideoUnlockError):
    """Raised when a requested ledger record does not exist."""

    pass


class GatewayError(VideoUnlockError):
    """
    Raised when a payment provider call fails or times out.

    Args:
        message: Provider's error message
        error_type: Provider's error type tag (e.g. 'card_error', 'timeout_error')
        original_error: Underlying exception, if any
    """

    def __init__(
        self,
        message: str,
        error_type: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.error_type = error_type
        self.original_error = original_error


class PaymentNotCompletedError(VideoUnlockError):
    """Raised when the provider reports a payment that has not succeeded."""

    def __init__(self, status: str, amount: Optional[int] = None):
        super().__init__("Payment not completed")
        self.status = status
        self.amount = amount


class MediaGatewayError(VideoUnlockError):
    """Raised when the media host cannot list assets."""

    def __init__(self, message: str, status_code: int = 500, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details



class InternalError(VideoUnlockError):
    """
    Unexpected fault; callers only ever see a generic message.

    Args:
        message: Description of the fault, only exposed in development
        original_error: Underlying exception, if any
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.original_error = original_error

    @classmethod
    def wrap(cls, error: Exception) -> "InternalError":
        if isinstance(error, cls):
            return error
        return cls(str(error) or type(error).__name__, original_error=error)
