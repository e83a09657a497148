"""Read-only reporting views over the ledger."""
from typing import Any, Dict, List

from video_unlock.core.errors import NotFoundError
from video_unlock.core.ledger import LedgerStore, Transaction, TransactionStatus


def newest_first(transactions: List[Transaction]) -> List[Transaction]:
    """Sort by creation time, newest first; later insertions win ties."""
    return sorted(reversed(transactions), key=lambda t: t.created_at, reverse=True)


def _count(transactions: List[Transaction], status: TransactionStatus) -> int:
    return sum(1 for t in transactions if t.status is status)


def revenue(transactions: List[Transaction]) -> int:
    """Sum of amounts over completed transactions only."""
    return sum(t.amount for t in transactions if t.status is TransactionStatus.COMPLETED)


class QueryService:
    def __init__(self, ledger: LedgerStore):
        self.ledger = ledger

    def get_user(self, user_id: str) -> Dict[str, Any]:
        """
        A user's record, their transactions (newest first) and a summary.

        Raises:
            NotFoundError: If the ledger has never seen this user
        """
        user = self.ledger.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")

        transactions = newest_first(self.ledger.list_user_transactions(user_id))
        return {
            "user": user,
            "transactions": transactions,
            "summary": {
                "total_transactions": len(transactions),
                "successful_transactions": _count(transactions, TransactionStatus.COMPLETED),
                "total_spent": user.total_spent,
                "is_premium": bool(user.is_premium),
            },
        }

    def list_all_transactions(self) -> Dict[str, Any]:
        """Every transaction (newest first) with revenue and status counts."""
        transactions = newest_first(self.ledger.list_transactions())
        return {
            "transactions": transactions,
            "summary": {
                "total_transactions": len(transactions),
                "completed_transactions": _count(transactions, TransactionStatus.COMPLETED),
                "pending_transactions": _count(transactions, TransactionStatus.PENDING),
                "total_revenue": revenue(transactions),
                "unique_users": len({t.user_id for t in transactions}),
            },
        }

    def stats(self) -> Dict[str, Any]:
        total_revenue = revenue(self.ledger.list_transactions())
        return {
            "total_transactions": self.ledger.transaction_count(),
            "total_users": self.ledger.user_count(),
            "total_revenue": total_revenue,
            "total_revenue_formatted": f"${total_revenue / 100:.2f}",
        }
