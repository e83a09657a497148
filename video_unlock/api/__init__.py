"""FastAPI application and routes.

The application object lives in ``video_unlock.api.main``; importing it
loads settings and configures logging.
"""
from .schemas import (
    ConfirmPaymentRequest,
    ConfirmPaymentResponse,
    CreatePaymentRequest,
    CreatePaymentResponse,
)

__all__ = [
    "ConfirmPaymentRequest",
    "ConfirmPaymentResponse",
    "CreatePaymentRequest",
    "CreatePaymentResponse",
]
