"""
In-memory ledger of unlock transactions and per-user purchase state.

The ledger is volatile: it lives for the lifetime of the process and has no
delete path. Records are immutable dataclasses; every mutation is a
read / ``dataclasses.replace`` / put sequence, which callers run under the
per-key locks exposed by the store.
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional


class TransactionStatus(str, Enum):
    """
    Transaction lifecycle.

    PENDING → COMPLETED, never the other way round.
    """

    PENDING = "pending"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Transaction:
    """One payment intent tracked by the ledger, keyed by ``payment_ref``."""

    payment_ref: str
    user_id: str
    user_name: str
    user_email: str
    amount: int
    currency: str
    created_at: datetime
    status: TransactionStatus = TransactionStatus.PENDING
    completed_at: Optional[datetime] = None
    device_info: Optional[str] = None
    app_version: Optional[str] = None
    purchase_type: str = "unlimited_video_selection"

    @property
    def is_completed(self) -> bool:
        return self.status is TransactionStatus.COMPLETED

    def complete(self, now: datetime) -> Transaction:
        """
        Move the transaction to COMPLETED.

        Completing an already completed transaction returns it unchanged, so
        ``completed_at`` is only ever set once.
        """
        if self.is_completed:
            return self
        return replace(self, status=TransactionStatus.COMPLETED, completed_at=now)


@dataclass(frozen=True)
class UserRecord:
    """Per-user purchase aggregates, keyed by ``user_id``."""

    user_id: str
    user_name: str
    user_email: str
    first_seen: datetime
    last_purchase_attempt: datetime
    total_attempts: int = 1
    successful_purchases: int = 0
    total_spent: int = 0
    last_successful_purchase: Optional[datetime] = None
    is_premium: bool = False

    @classmethod
    def first_attempt(
        cls, user_id: str, user_name: str, user_email: str, now: datetime
    ) -> UserRecord:
        return cls(
            user_id=user_id,
            user_name=user_name,
            user_email=user_email,
            first_seen=now,
            last_purchase_attempt=now,
        )

    def record_attempt(self, user_name: str, user_email: str, now: datetime) -> UserRecord:
        """Count another create-payment call; purchase aggregates are untouched."""
        return replace(
            self,
            user_name=user_name,
            user_email=user_email,
            last_purchase_attempt=now,
            total_attempts=self.total_attempts + 1,
        )

    def record_purchase(self, amount: int, now: datetime) -> UserRecord:
        """Fold one completed payment into the aggregates."""
        return replace(
            self,
            successful_purchases=self.successful_purchases + 1,
            total_spent=self.total_spent + amount,
            last_successful_purchase=now,
            is_premium=True,
        )


class KeyedLocks:
    """
    Per-key asyncio locks.

    Only callers sharing a key wait on each other. A key's lock is dropped
    once nobody holds or waits for it.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)


class LedgerStore:
    """
    Owns the transaction and user collections.

    The store does no I/O and never suspends. Lock ordering for callers that
    need both: ``user_locks`` first, then ``payment_locks``.
    """

    def __init__(self) -> None:
        self._transactions: Dict[str, Transaction] = {}
        self._users: Dict[str, UserRecord] = {}
        self.user_locks = KeyedLocks()
        self.payment_locks = KeyedLocks()

    def get_transaction(self, payment_ref: str) -> Optional[Transaction]:
        return self._transactions.get(payment_ref)

    def put_transaction(self, transaction: Transaction) -> None:
        self._transactions[transaction.payment_ref] = transaction

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self._users.get(user_id)

    def put_user(self, user: UserRecord) -> None:
        self._users[user.user_id] = user

    def list_transactions(self) -> List[Transaction]:
        """All transactions, in insertion order."""
        return list(self._transactions.values())

    def list_user_transactions(self, user_id: str) -> List[Transaction]:
        return [t for t in self._transactions.values() if t.user_id == user_id]

    def transaction_count(self) -> int:
        return len(self._transactions)

    def user_count(self) -> int:
        return len(self._users)

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """Detached copy of both collections (records are immutable)."""
        return {
            "transactions": dict(self._transactions),
            "users": dict(self._users),
        }
