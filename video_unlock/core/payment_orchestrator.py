"""
Payment orchestrator for one-time video unlocks.

Drives the provider's PaymentIntent flow and folds the outcome into the ledger:

1. create_payment: validate caller → price server-side → create intent →
   record a pending transaction and upsert the user
2. confirm_payment: re-fetch the intent from the provider → on "succeeded",
   complete the transaction and credit the user exactly once

Provider calls are the only suspension points. Ledger read-modify-write
sequences run under the per-key locks of the store (user, then payment).
"""
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Literal, Optional, Protocol

import structlog

from video_unlock.core.errors import (
    GatewayError,
    NotFoundError,
    PaymentNotCompletedError,
    ValidationError,
)
from video_unlock.core.ledger import LedgerStore, Transaction, UserRecord
from video_unlock.core.pricing import FixedPricePolicy, PricingPolicy
from video_unlock.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
DEFAULT_PURCHASE_TYPE = "unlimited_video_selection"
SUCCEEDED = "succeeded"

MissingRecordPolicy = Literal["skip", "error"]


class PaymentGateway(Protocol):
    """What the orchestrator needs from a payment provider."""

    async def create_intent(
        self,
        amount: int,
        currency: str,
        metadata: Dict[str, str],
        description: Optional[str] = None,
        receipt_email: Optional[str] = None,
    ) -> Any:
        """Returns an object with ``id``, ``client_secret`` and ``description``."""
        ...

    async def retrieve_intent(self, payment_intent_id: str) -> Any:
        """Returns an object with ``status`` and ``amount``."""
        ...


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentOrchestrator:
    """
    Creates and confirms unlock payments.

    Client-reported success is never trusted: confirmation always asks the
    provider for the intent's status.
    """

    def __init__(
        self,
        ledger: LedgerStore,
        gateway: PaymentGateway,
        pricing: Optional[PricingPolicy] = None,
        product_name: str = "Kid Tok Premium",
        missing_record_policy: MissingRecordPolicy = "skip",
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize payment orchestrator.

        Args:
            ledger: Store for transactions and users
            gateway: Payment provider
            pricing: Server-side price lookup (defaults to the fixed $9.99 unlock)
            product_name: Sent to the provider as ``app_name`` and in the description
            missing_record_policy: On a succeeded confirmation with no matching
                transaction or user, "skip" reports success without touching the
                ledger, "error" raises NotFoundError
            clock: Source of timestamps
        """
        if missing_record_policy not in ("skip", "error"):
            raise ValueError(f"Unknown missing record policy: {missing_record_policy}")
        self.ledger = ledger
        self.gateway = gateway
        self.pricing = pricing or FixedPricePolicy()
        self.product_name = product_name
        self.missing_record_policy = missing_record_policy
        self._clock = clock

    @staticmethod
    def _validate_create_request(
        user_email: Optional[str], user_name: Optional[str], user_id: Optional[str]
    ) -> None:
        """
        Validate create-payment parameters.

        Raises:
            ValidationError: If a field is missing or the email is malformed
        """
        if not user_email or not user_name or not user_id:
            raise ValidationError(
                "Missing required user information: userEmail, userName, and userId are required"
            )

        if not EMAIL_PATTERN.match(user_email):
            raise ValidationError("Invalid email format")

    async def create_payment(
        self,
        user_email: Optional[str],
        user_name: Optional[str],
        user_id: Optional[str],
        device_info: Optional[str] = None,
        app_version: Optional[str] = None,
        purchase_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Create a PaymentIntent for an unlock and record it as pending.

        Args:
            user_email: Buyer's email, also used for the receipt
            user_name: Buyer's display name
            user_id: Caller's user identifier
            device_info: Optional device description
            app_version: Optional client app version
            purchase_type: Defaults to "unlimited_video_selection"

        Returns:
            Dict[str, Any]: Client secret, intent id, price and echoed details

        Raises:
            ValidationError: If input validation fails (the ledger is untouched)
            GatewayError: If the provider call fails (the ledger is untouched)
        """
        purchase_type = purchase_type or DEFAULT_PURCHASE_TYPE

        try:
            self._validate_create_request(user_email, user_name, user_id)
        except ValidationError as e:
            metrics.record_creation("invalid")
            logger.warning("payment_creation_rejected", user_id=user_id, error=e.message)
            raise

        price = self.pricing.price_for(purchase_type)

        logger.info(
            "payment_creation_started",
            user_id=user_id,
            amount=price.amount,
            currency=price.currency,
            purchase_type=purchase_type,
        )

        now = self._clock()

        metadata = {
            "user_id": user_id,
            "user_name": user_name,
            "user_email": user_email,
            "purchase_type": purchase_type,
            "app_name": self.product_name,
            "app_version": app_version or "unknown",
            "device_info": device_info or "unknown",
            "purchase_timestamp": now.isoformat(),
            "amount_usd": price.major_units,
        }

        try:
            intent = await self.gateway.create_intent(
                amount=price.amount,
                currency=price.currency,
                metadata=metadata,
                description=f"{self.product_name} - Unlimited Video Access for {user_name}",
                receipt_email=user_email,
            )
        except GatewayError as e:
            metrics.record_creation("gateway_error")
            logger.error(
                "payment_intent_creation_failed",
                user_id=user_id,
                error=e.message,
                error_type=e.error_type,
            )
            raise GatewayError(
                e.message, e.error_type or "payment_creation_error", e.original_error
            ) from e

        async with self.ledger.user_locks.hold(user_id):
            async with self.ledger.payment_locks.hold(intent.id):
                self.ledger.put_transaction(
                    Transaction(
                        payment_ref=intent.id,
                        user_id=user_id,
                        user_name=user_name,
                        user_email=user_email,
                        amount=price.amount,
                        currency=price.currency,
                        created_at=now,
                        device_info=device_info,
                        app_version=app_version,
                        purchase_type=purchase_type,
                    )
                )
                user = self.ledger.get_user(user_id)
                if user is None:
                    user = UserRecord.first_attempt(user_id, user_name, user_email, now)
                else:
                    user = user.record_attempt(user_name, user_email, now)
                self.ledger.put_user(user)

        metrics.record_creation("created")
        metrics.set_ledger_size(self.ledger.transaction_count(), self.ledger.user_count())
        logger.info(
            "payment_transaction_recorded",
            user_id=user_id,
            payment_intent_id=intent.id,
            total_attempts=user.total_attempts,
        )

        return {
            "client_secret": intent.client_secret,
            "payment_intent_id": intent.id,
            "amount": price.amount,
            "currency": price.currency,
            "user_details": {
                "user_id": user_id,
                "user_name": user_name,
                "user_email": user_email,
            },
            "transaction_details": {
                "description": intent.description,
                "receipt_email": user_email,
                "timestamp": now,
            },
        }

    async def confirm_payment(
        self, payment_ref: Optional[str], user_id: Optional[str]
    ) -> Dict[str, Any]:
        """
        Confirm a payment against the provider's authoritative status.

        Safe to call repeatedly: the user is credited only when the
        transaction moves from pending to completed.

        Args:
            payment_ref: PaymentIntent id returned by create_payment
            user_id: Owner of the payment

        Returns:
            Dict[str, Any]: Success flag, message and the provider's amount/status

        Raises:
            ValidationError: If a parameter is missing or the payment belongs
                to another user
            GatewayError: If the provider call fails
            PaymentNotCompletedError: If the provider status is not "succeeded"
            NotFoundError: If records are missing and the policy is "error"
        """
        if not payment_ref or not user_id:
            metrics.record_confirmation("invalid")
            raise ValidationError("Missing paymentIntentId or userId")

        logger.info("payment_confirmation_started", payment_intent_id=payment_ref, user_id=user_id)

        try:
            intent = await self.gateway.retrieve_intent(payment_ref)
        except GatewayError as e:
            metrics.record_confirmation("gateway_error")
            logger.error(
                "payment_intent_retrieval_failed",
                payment_intent_id=payment_ref,
                error=e.message,
                error_type=e.error_type,
            )
            raise GatewayError(
                e.message, e.error_type or "payment_confirmation_error", e.original_error
            ) from e

        if intent.status != SUCCEEDED:
            metrics.record_confirmation("not_succeeded")
            logger.info(
                "payment_not_succeeded",
                payment_intent_id=payment_ref,
                status=intent.status,
            )
            raise PaymentNotCompletedError(intent.status, intent.amount)

        async with self.ledger.user_locks.hold(user_id):
            async with self.ledger.payment_locks.hold(payment_ref):
                outcome = self._apply_confirmation(payment_ref, user_id, intent.amount)

        metrics.record_confirmation(outcome)
        logger.info(
            "payment_confirmed",
            payment_intent_id=payment_ref,
            user_id=user_id,
            outcome=outcome,
        )

        return {
            "success": True,
            "message": "Payment confirmed successfully",
            "payment_details": {
                "payment_intent_id": payment_ref,
                "amount": intent.amount,
                "status": intent.status,
            },
        }

    def _apply_confirmation(self, payment_ref: str, user_id: str, amount: int) -> str:
        """
        Complete the transaction and credit the user. Caller holds both locks.

        Returns:
            str: "completed", "already_completed" or "untracked"
        """
        transaction = self.ledger.get_transaction(payment_ref)
        user = self.ledger.get_user(user_id)

        if transaction is not None and transaction.user_id != user_id:
            logger.warning(
                "payment_owner_mismatch",
                payment_intent_id=payment_ref,
                user_id=user_id,
                owner_id=transaction.user_id,
            )
            raise ValidationError("Payment does not belong to this user")

        if self.missing_record_policy == "error":
            if transaction is None:
                raise NotFoundError("Transaction not found")
            if user is None:
                raise NotFoundError("User not found")

        if transaction is None:
            # Without a ledger entry there is no pending → completed transition
            # to key the credit off, so the user is not credited either.
            logger.warning("confirmation_without_transaction", payment_intent_id=payment_ref)
            return "untracked"

        if transaction.is_completed:
            logger.info("payment_already_confirmed", payment_intent_id=payment_ref)
            return "already_completed"

        now = self._clock()
        self.ledger.put_transaction(transaction.complete(now))
        if user is not None:
            self.ledger.put_user(user.record_purchase(amount, now))
        else:
            logger.warning("confirmation_without_user", user_id=user_id)
        return "completed"
