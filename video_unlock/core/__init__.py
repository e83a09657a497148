"""Ledger, payment orchestration and reporting."""
from .catalog import CatalogService
from .errors import (
    GatewayError,
    InternalError,
    MediaGatewayError,
    NotFoundError,
    PaymentNotCompletedError,
    ValidationError,
    VideoUnlockError,
)
from .ledger import KeyedLocks, LedgerStore, Transaction, TransactionStatus, UserRecord
from .payment_orchestrator import PaymentOrchestrator
from .pricing import FixedPricePolicy, Price
from .queries import QueryService

__all__ = [
    "CatalogService",
    "FixedPricePolicy",
    "GatewayError",
    "InternalError",
    "KeyedLocks",
    "LedgerStore",
    "MediaGatewayError",
    "NotFoundError",
    "PaymentNotCompletedError",
    "PaymentOrchestrator",
    "Price",
    "QueryService",
    "Transaction",
    "TransactionStatus",
    "UserRecord",
    "ValidationError",
    "VideoUnlockError",
]
