"""
Health and status checks.

Checks:
- Liveness of the process
- Provider configuration (Stripe key present, test mode)
- Ledger size
"""
from datetime import datetime, timezone
from typing import Any, Dict

import structlog

from video_unlock.config import Settings

logger = structlog.get_logger(__name__)


class HealthCheck:
    """
    Health check service.

    ``queries`` is anything with a ``stats()`` method returning ledger counts
    (the QueryService in practice).
    """

    def __init__(self, settings: Settings, queries: Any) -> None:
        self.settings = settings
        self.queries = queries

    async def liveness(self) -> Dict[str, Any]:
        """Liveness check - is the application running?"""
        return {"status": "healthy", "message": "Application is alive"}

    def stripe_status(self) -> Dict[str, Any]:
        """
        Stripe configuration and ledger counts, without calling Stripe.

        Returns:
            Dict[str, Any]: Status fields for the status endpoint
        """
        stats = self.queries.stats()
        has_key = bool(self.settings.stripe_secret_key)

        logger.info("stripe_status_checked", has_stripe_key=has_key)

        return {
            "message": "Stripe endpoint is working!",
            "has_stripe_key": has_key,
            "stripe_key_exists": "Yes" if has_key else "No",
            "test_mode": self.settings.is_test_mode,
            "server_time": datetime.now(timezone.utc),
            "port": self.settings.api_port,
            "total_transactions": stats["total_transactions"],
            "total_users": stats["total_users"],
        }
