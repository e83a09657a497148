"""
Prometheus metrics for the unlock payment flow.

Tracks:
- Payment intent creations by outcome
- Payment confirmations by outcome
- Provider (Stripe, Cloudinary) calls and latency
- Ledger size
"""
from prometheus_client import Counter, Gauge, Histogram

payment_creations_total = Counter(
    "unlock_payment_creations_total",
    "Total create-payment calls",
    ["outcome"],  # created, invalid, gateway_error
)

payment_confirmations_total = Counter(
    "unlock_payment_confirmations_total",
    "Total confirm-payment calls",
    ["outcome"],  # completed, already_completed, untracked, not_succeeded, invalid, gateway_error
)

gateway_requests_total = Counter(
    "gateway_requests_total",
    "Total provider API requests",
    ["gateway", "operation", "status"],  # status: success, error, timeout
)

gateway_duration_seconds = Histogram(
    "gateway_duration_seconds",
    "Provider API call duration in seconds",
    ["gateway", "operation"],
    buckets=(0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 7.5, 10.0, 15.0),
)

ledger_transactions = Gauge(
    "ledger_transactions",
    "Transactions currently held in the ledger",
)

ledger_users = Gauge(
    "ledger_users",
    "Users currently held in the ledger",
)


class MetricsCollector:
    """Helper class for collecting metrics."""

    @staticmethod
    def record_creation(outcome: str) -> None:
        payment_creations_total.labels(outcome=outcome).inc()

    @staticmethod
    def record_confirmation(outcome: str) -> None:
        payment_confirmations_total.labels(outcome=outcome).inc()

    @staticmethod
    def record_gateway_call(gateway: str, operation: str, status: str, duration: float) -> None:
        """
        Record one provider call.

        Args:
            gateway: Provider name (stripe, cloudinary)
            operation: Operation name (create_intent, retrieve_intent, search)
            status: success, error or timeout
            duration: Call duration in seconds
        """
        gateway_requests_total.labels(gateway=gateway, operation=operation, status=status).inc()
        gateway_duration_seconds.labels(gateway=gateway, operation=operation).observe(duration)

    @staticmethod
    def set_ledger_size(transactions: int, users: int) -> None:
        ledger_transactions.set(transactions)
        ledger_users.set(users)


metrics = MetricsCollector()
