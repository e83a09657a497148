"""
Pytest configuration and fixtures.
"""
import asyncio
import os
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Dict, List, Optional

# Credentials must exist before video_unlock.api.main is imported.
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_fake_key_for_testing")
os.environ.setdefault("CLOUDINARY_CLOUD_NAME", "demo-cloud")
os.environ.setdefault("CLOUDINARY_API_KEY", "fake_api_key")
os.environ.setdefault("CLOUDINARY_API_SECRET", "fake_api_secret")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from video_unlock.api.dependencies import Services, build_services
from video_unlock.config import Settings
from video_unlock.core import LedgerStore, PaymentOrchestrator, QueryService
from video_unlock.core.errors import GatewayError
from video_unlock.integrations import IntentHandle, IntentStatus, VideoAsset


class FakeClock:
    """Strictly increasing UTC clock; every call advances one second."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


class FakePaymentGateway:
    """
    In-memory stand-in for Stripe.

    Both calls yield to the event loop, like a real network call would.
    """

    def __init__(self) -> None:
        self.intents: Dict[str, Dict[str, Any]] = {}
        self.create_calls: List[Dict[str, Any]] = []
        self.retrieve_calls: List[str] = []
        self._counter = 0

    async def create_intent(
        self,
        amount: int,
        currency: str,
        metadata: Dict[str, str],
        description: Optional[str] = None,
        receipt_email: Optional[str] = None,
    ) -> IntentHandle:
        self.create_calls.append(
            {
                "amount": amount,
                "currency": currency,
                "metadata": metadata,
                "description": description,
                "receipt_email": receipt_email,
            }
        )
        await asyncio.sleep(0)
        self._counter += 1
        intent_id = f"pi_test_{self._counter}"
        self.intents[intent_id] = {
            "amount": amount,
            "status": "requires_payment_method",
        }
        return IntentHandle(
            id=intent_id,
            client_secret=f"{intent_id}_secret_abc",
            description=description,
        )

    async def retrieve_intent(self, payment_intent_id: str) -> IntentStatus:
        self.retrieve_calls.append(payment_intent_id)
        await asyncio.sleep(0)
        intent = self.intents.get(payment_intent_id)
        if intent is None:
            raise GatewayError(
                f"No such payment_intent: '{payment_intent_id}'",
                error_type="invalid_request_error",
            )
        return IntentStatus(
            id=payment_intent_id, status=intent["status"], amount=intent["amount"]
        )

    def set_status(self, payment_intent_id: str, status: str, amount: Optional[int] = None) -> None:
        """Simulate the client finishing (or failing) the payment with Stripe."""
        self.intents.setdefault(payment_intent_id, {"amount": amount or 999})
        self.intents[payment_intent_id]["status"] = status
        if amount is not None:
            self.intents[payment_intent_id]["amount"] = amount


class FakeMediaGateway:
    def __init__(self, assets: Optional[List[VideoAsset]] = None, error: Optional[Exception] = None):
        self.assets = assets or []
        self.error = error

    async def list_video_assets(self) -> List[VideoAsset]:
        if self.error is not None:
            raise self.error
        return list(self.assets)


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "stripe_secret_key": "sk_test_fake_key_for_testing",
        "cloudinary_cloud_name": "demo-cloud",
        "cloudinary_api_key": "fake_api_key",
        "cloudinary_api_secret": "fake_api_secret",
        "app_name": "video-unlock-test",
        "app_env": "test",
        "log_level": "DEBUG",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return make_settings()


@pytest.fixture
def ledger() -> LedgerStore:
    """A fresh, isolated ledger per test."""
    return LedgerStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def payment_gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def orchestrator(
    ledger: LedgerStore, payment_gateway: FakePaymentGateway, clock: FakeClock
) -> PaymentOrchestrator:
    return PaymentOrchestrator(ledger=ledger, gateway=payment_gateway, clock=clock)


@pytest.fixture
def queries(ledger: LedgerStore) -> QueryService:
    return QueryService(ledger)


@pytest.fixture
def sample_user() -> Dict[str, str]:
    """Sample create-payment input."""
    return {"user_email": "a@b.com", "user_name": "A", "user_id": "u1"}


@pytest.fixture
def sample_video() -> VideoAsset:
    return VideoAsset(
        public_id="kids/dancing_cat",
        url="https://res.cloudinary.com/demo-cloud/video/upload/v1/kids/dancing_cat.mp4",
        thumbnail_url="https://res.cloudinary.com/demo-cloud/video/upload/c_fill,g_auto,h_169,w_300/f_jpg,q_auto:good/kids/dancing_cat",
        filename="dancing_cat",
        duration=125.4,
        width=1920,
        height=1080,
        format="mp4",
        created_at="2026-01-01T10:00:00Z",
    )


@pytest.fixture
def media_gateway(sample_video: VideoAsset) -> FakeMediaGateway:
    return FakeMediaGateway([sample_video])


@pytest.fixture
def services(
    test_settings: Settings,
    ledger: LedgerStore,
    payment_gateway: FakePaymentGateway,
    media_gateway: FakeMediaGateway,
) -> Services:
    return build_services(
        test_settings,
        payment_gateway=payment_gateway,
        media_gateway=media_gateway,
        ledger=ledger,
    )


@pytest_asyncio.fixture
async def client(services: Services) -> AsyncGenerator[AsyncClient, Any]:
    """Create test HTTP client bound to an app with fake providers."""
    from video_unlock.api.main import create_app

    app = create_app(services)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
