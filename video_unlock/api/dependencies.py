"""Service wiring shared by the FastAPI app and its routes."""
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Request

from video_unlock.config import Settings
from video_unlock.core import (
    CatalogService,
    FixedPricePolicy,
    LedgerStore,
    PaymentOrchestrator,
    QueryService,
)
from video_unlock.integrations import CloudinaryGateway, StripeGateway
from video_unlock.monitoring.health import HealthCheck


@dataclass
class Services:
    settings: Settings
    ledger: LedgerStore
    orchestrator: PaymentOrchestrator
    queries: QueryService
    catalog: CatalogService
    health: HealthCheck
    media_gateway: Any = None

    async def aclose(self) -> None:
        if self.media_gateway is not None and hasattr(self.media_gateway, "aclose"):
            await self.media_gateway.aclose()


def build_services(
    settings: Settings,
    payment_gateway: Any = None,
    media_gateway: Any = None,
    ledger: Optional[LedgerStore] = None,
) -> Services:
    """
    Assemble the ledger, the provider gateways and the services on top.

    Gateways default to the real Stripe and Cloudinary clients; tests pass
    fakes instead.
    """
    ledger = ledger or LedgerStore()

    if payment_gateway is None:
        payment_gateway = StripeGateway(
            api_key=settings.stripe_secret_key,
            api_version=settings.stripe_api_version,
            timeout_seconds=settings.gateway_timeout_seconds,
        )
    if media_gateway is None:
        media_gateway = CloudinaryGateway(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            api_base_url=settings.cloudinary_api_base_url,
            delivery_base_url=settings.cloudinary_delivery_base_url,
            max_results=settings.video_search_max_results,
            timeout_seconds=settings.gateway_timeout_seconds,
        )

    queries = QueryService(ledger)
    orchestrator = PaymentOrchestrator(
        ledger=ledger,
        gateway=payment_gateway,
        pricing=FixedPricePolicy(settings.unlock_price_cents, settings.unlock_currency),
        product_name=settings.product_name,
        missing_record_policy=settings.missing_record_policy,
    )

    return Services(
        settings=settings,
        ledger=ledger,
        orchestrator=orchestrator,
        queries=queries,
        catalog=CatalogService(media_gateway),
        health=HealthCheck(settings, queries),
        media_gateway=media_gateway,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
