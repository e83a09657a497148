"""
Unit tests for the in-memory ledger.
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from video_unlock.core.ledger import (
    KeyedLocks,
    LedgerStore,
    Transaction,
    TransactionStatus,
    UserRecord,
)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_transaction(payment_ref: str = "pi_1", user_id: str = "u1", **overrides) -> Transaction:
    values = {
        "payment_ref": payment_ref,
        "user_id": user_id,
        "user_name": "A",
        "user_email": "a@b.com",
        "amount": 999,
        "currency": "usd",
        "created_at": NOW,
    }
    values.update(overrides)
    return Transaction(**values)


class TestTransaction:
    """Test suite for transaction records."""

    @pytest.mark.unit
    def test_new_transaction_is_pending(self) -> None:
        transaction = make_transaction()

        assert transaction.status is TransactionStatus.PENDING
        assert transaction.completed_at is None
        assert transaction.purchase_type == "unlimited_video_selection"
        assert not transaction.is_completed

    @pytest.mark.unit
    def test_complete_sets_completed_at_once(self) -> None:
        """Completing twice keeps the first completion time."""
        transaction = make_transaction()
        first = transaction.complete(NOW + timedelta(minutes=1))
        second = first.complete(NOW + timedelta(minutes=5))

        assert first.status is TransactionStatus.COMPLETED
        assert first.completed_at == NOW + timedelta(minutes=1)
        assert second is first
        # The original record is immutable
        assert transaction.status is TransactionStatus.PENDING

    @pytest.mark.unit
    def test_status_serializes_as_lowercase_string(self) -> None:
        assert TransactionStatus.COMPLETED == "completed"
        assert TransactionStatus.PENDING.value == "pending"


class TestUserRecord:
    """Test suite for user aggregates."""

    @pytest.mark.unit
    def test_first_attempt_defaults(self) -> None:
        user = UserRecord.first_attempt("u1", "A", "a@b.com", NOW)

        assert user.total_attempts == 1
        assert user.successful_purchases == 0
        assert user.total_spent == 0
        assert user.is_premium is False
        assert user.first_seen == user.last_purchase_attempt == NOW
        assert user.last_successful_purchase is None

    @pytest.mark.unit
    def test_record_attempt_overwrites_contact_details(self) -> None:
        user = UserRecord.first_attempt("u1", "A", "a@b.com", NOW)
        later = NOW + timedelta(hours=1)

        updated = user.record_attempt("Alex", "alex@b.com", later)

        assert updated.total_attempts == 2
        assert updated.user_name == "Alex"
        assert updated.user_email == "alex@b.com"
        assert updated.first_seen == NOW
        assert updated.last_purchase_attempt == later
        assert updated.total_spent == 0

    @pytest.mark.unit
    def test_record_purchase_marks_premium(self) -> None:
        user = UserRecord.first_attempt("u1", "A", "a@b.com", NOW)

        updated = user.record_purchase(999, NOW).record_purchase(999, NOW)

        assert updated.successful_purchases == 2
        assert updated.total_spent == 1998
        assert updated.is_premium is True
        assert updated.last_successful_purchase == NOW


class TestLedgerStore:
    """Test suite for the ledger store."""

    @pytest.mark.unit
    def test_get_missing_records_returns_none(self, ledger: LedgerStore) -> None:
        assert ledger.get_transaction("pi_missing") is None
        assert ledger.get_user("nobody") is None

    @pytest.mark.unit
    def test_put_replaces_whole_record(self, ledger: LedgerStore) -> None:
        transaction = make_transaction()
        ledger.put_transaction(transaction)
        ledger.put_transaction(transaction.complete(NOW))

        assert ledger.transaction_count() == 1
        assert ledger.get_transaction("pi_1").is_completed

    @pytest.mark.unit
    def test_list_transactions_in_insertion_order(self, ledger: LedgerStore) -> None:
        ledger.put_transaction(make_transaction("pi_b", created_at=NOW + timedelta(seconds=5)))
        ledger.put_transaction(make_transaction("pi_a", user_id="u2"))

        assert [t.payment_ref for t in ledger.list_transactions()] == ["pi_b", "pi_a"]
        assert [t.payment_ref for t in ledger.list_user_transactions("u2")] == ["pi_a"]

    @pytest.mark.unit
    def test_snapshot_is_detached(self, ledger: LedgerStore) -> None:
        ledger.put_user(UserRecord.first_attempt("u1", "A", "a@b.com", NOW))
        snapshot = ledger.snapshot()

        ledger.put_user(UserRecord.first_attempt("u2", "B", "b@b.com", NOW))

        assert set(snapshot["users"]) == {"u1"}
        assert snapshot["transactions"] == {}
        assert ledger.user_count() == 2


class TestKeyedLocks:
    """Test suite for per-key locking."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_same_key_is_exclusive(self) -> None:
        locks = KeyedLocks()
        events = []

        async def worker(name: str) -> None:
            async with locks.hold("u1"):
                events.append(f"{name}-in")
                await asyncio.sleep(0)
                await asyncio.sleep(0)
                events.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert events == ["a-in", "a-out", "b-in", "b-out"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_different_keys_do_not_block(self) -> None:
        locks = KeyedLocks()

        async with locks.hold("u1"):
            assert locks.locked("u1")
            # Would deadlock if keys shared a lock
            async with locks.hold("u2"):
                assert locks.locked("u2")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_locks_are_dropped_when_released(self) -> None:
        locks = KeyedLocks()

        async with locks.hold("u1"):
            assert len(locks) == 1

        assert len(locks) == 0
        assert not locks.locked("u1")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_lock_released_on_exception(self) -> None:
        locks = KeyedLocks()

        with pytest.raises(RuntimeError):
            async with locks.hold("u1"):
                raise RuntimeError("boom")

        assert len(locks) == 0
