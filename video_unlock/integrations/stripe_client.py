"""
Stripe payment gateway.

Implements:
- PaymentIntent creation and retrieval
- A bounded timeout on every call
- Error classification for logs and metrics

Calls are never retried: a failure surfaces to the caller as GatewayError.
"""
import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, TypeVar

import stripe
import structlog

from video_unlock.core.errors import GatewayError
from video_unlock.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class StripeErrorType(Enum):
    """Classification of Stripe errors."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"
    RATE_LIMIT = "rate_limit"


@dataclass(frozen=True)
class IntentHandle:
    """What the client needs to complete a freshly created PaymentIntent."""

    id: str
    client_secret: str
    description: Optional[str]


@dataclass(frozen=True)
class IntentStatus:
    """Authoritative state of a PaymentIntent as reported by Stripe."""

    id: str
    status: str
    amount: int


class StripeGateway:
    """
    Wrapper for the Stripe PaymentIntent API.

    The Stripe SDK is synchronous, so calls run in a worker thread and are
    abandoned once ``timeout_seconds`` elapses.
    """

    def __init__(
        self,
        api_key: str,
        api_version: Optional[str] = None,
        timeout_seconds: float = 15.0,
    ) -> None:
        """
        Initialize Stripe gateway.

        Args:
            api_key: Stripe secret key
            api_version: Pinned Stripe API version
            timeout_seconds: Upper bound on each API call
        """
        stripe.api_key = api_key
        if api_version:
            stripe.api_version = api_version
        self.timeout_seconds = timeout_seconds

        logger.info(
            "stripe_gateway_initialized",
            api_version=api_version,
            test_mode=api_key.startswith("sk_test_"),
        )

    @staticmethod
    def _classify_error(error: stripe.StripeError) -> StripeErrorType:
        """
        Classify a Stripe error.

        Args:
            error: Stripe error

        Returns:
            StripeErrorType: Error classification
        """
        if isinstance(error, stripe.RateLimitError):
            return StripeErrorType.RATE_LIMIT
        elif isinstance(error, (stripe.APIConnectionError, stripe.APIError)):
            return StripeErrorType.TRANSIENT
        elif isinstance(
            error,
            (stripe.CardError, stripe.InvalidRequestError, stripe.AuthenticationError),
        ):
            return StripeErrorType.PERMANENT
        else:
            # Unknown errors are treated as transient
            return StripeErrorType.TRANSIENT

    @staticmethod
    def _error_type_tag(error: stripe.StripeError) -> str:
        """The type tag Stripe put on the error body, e.g. 'card_error'."""
        error_object = getattr(error, "error", None)
        tag = getattr(error_object, "type", None)
        if tag:
            return str(tag)
        if isinstance(error, stripe.CardError):
            return "card_error"
        if isinstance(error, stripe.InvalidRequestError):
            return "invalid_request_error"
        if isinstance(error, stripe.AuthenticationError):
            return "authentication_error"
        if isinstance(error, stripe.RateLimitError):
            return "rate_limit_error"
        if isinstance(error, stripe.APIConnectionError):
            return "api_connection_error"
        return "api_error"

    def _to_gateway_error(self, operation: str, error: stripe.StripeError) -> GatewayError:
        error_type = self._classify_error(error)
        message = getattr(error, "user_message", None) or str(error)

        logger.error(
            "stripe_api_error",
            operation=operation,
            error_type=error_type.value,
            error_code=getattr(error, "code", None),
            error_message=message,
        )

        return GatewayError(
            message=message,
            error_type=self._error_type_tag(error),
            original_error=error,
        )

    async def _call(self, operation: str, func: Callable[[], T]) -> T:
        start_time = time.monotonic()
        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(func), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            metrics.record_gateway_call(
                "stripe", operation, "timeout", time.monotonic() - start_time
            )
            logger.error(
                "stripe_api_timeout",
                operation=operation,
                timeout_seconds=self.timeout_seconds,
            )
            raise GatewayError(
                f"Stripe {operation} timed out after {self.timeout_seconds}s",
                error_type="timeout_error",
            )
        except stripe.StripeError as e:
            metrics.record_gateway_call(
                "stripe", operation, "error", time.monotonic() - start_time
            )
            raise self._to_gateway_error(operation, e) from e

        metrics.record_gateway_call("stripe", operation, "success", time.monotonic() - start_time)
        return result

    async def create_intent(
        self,
        amount: int,
        currency: str,
        metadata: Dict[str, str],
        description: Optional[str] = None,
        receipt_email: Optional[str] = None,
    ) -> IntentHandle:
        """
        Create a Stripe PaymentIntent.

        Args:
            amount: Amount in minor units
            currency: Currency code (e.g., 'usd')
            metadata: Metadata stored on the intent (string values)
            description: Description shown on the receipt
            receipt_email: Where Stripe sends the receipt

        Returns:
            IntentHandle: Intent id, client secret and description

        Raises:
            GatewayError: If Stripe rejects the request or the call times out
        """
        logger.info("creating_payment_intent", amount=amount, currency=currency)

        def _create() -> Any:
            kwargs: Dict[str, Any] = {
                "amount": amount,
                "currency": currency.lower(),
                "automatic_payment_methods": {"enabled": True},
                "metadata": metadata,
            }
            if description:
                kwargs["description"] = description
            if receipt_email:
                kwargs["receipt_email"] = receipt_email
            return stripe.PaymentIntent.create(**kwargs)

        payment_intent = await self._call("create_intent", _create)

        logger.info(
            "payment_intent_created",
            payment_intent_id=payment_intent.id,
            status=payment_intent.status,
        )

        return IntentHandle(
            id=payment_intent.id,
            client_secret=payment_intent.client_secret,
            description=payment_intent.description,
        )

    async def retrieve_intent(self, payment_intent_id: str) -> IntentStatus:
        """
        Retrieve a PaymentIntent by ID.

        Args:
            payment_intent_id: Stripe PaymentIntent ID

        Returns:
            IntentStatus: Current status and amount

        Raises:
            GatewayError: If retrieval fails or times out
        """
        logger.info("retrieving_payment_intent", payment_intent_id=payment_intent_id)

        payment_intent = await self._call(
            "retrieve_intent", lambda: stripe.PaymentIntent.retrieve(payment_intent_id)
        )

        return IntentStatus(
            id=payment_intent.id,
            status=payment_intent.status,
            amount=payment_intent.amount,
        )

