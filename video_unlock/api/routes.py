"""
API routes for unlock payments, reporting and the video catalog.
"""
import time
from dataclasses import asdict
from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from video_unlock.core.errors import GatewayError

from .dependencies import Services, get_services
from .schemas import (
    AdminTransactionsResponse,
    ConfirmPaymentRequest,
    ConfirmPaymentResponse,
    CreatePaymentRequest,
    CreatePaymentResponse,
    HealthCheckResponse,
    StripeStatusResponse,
    UserDetailResponse,
    VideosResponse,
)

logger = structlog.get_logger(__name__)

payment_router = APIRouter(prefix="/api", tags=["payments"])
admin_router = APIRouter(prefix="/api/admin", tags=["admin"])
catalog_router = APIRouter(prefix="/api", tags=["videos"])
monitoring_router = APIRouter(tags=["monitoring"])


def _gateway_error_response(exc: GatewayError, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.message, "type": exc.error_type},
    )


def _ledger_view(view: Dict[str, Any]) -> Dict[str, Any]:
    """Turn ledger records in a query result into plain dicts."""
    converted = dict(view)
    converted["transactions"] = [asdict(t) for t in view["transactions"]]
    if "user" in view:
        converted["user"] = asdict(view["user"])
    return converted


@payment_router.post(
    "/create-payment",
    response_model=CreatePaymentResponse,
    summary="Create an unlock payment",
    description="Create a Stripe PaymentIntent for the unlock and record it as pending",
)
async def create_payment(
    request: Optional[CreatePaymentRequest] = None,
    services: Services = Depends(get_services),
) -> Any:
    """
    Create a payment intent.

    The price is fixed server-side; the request never carries an amount.
    """
    request = request or CreatePaymentRequest()
    start_time = time.time()

    logger.info("api_create_payment_request", user_id=request.user_id)

    try:
        payment = await services.orchestrator.create_payment(
            user_email=request.user_email,
            user_name=request.user_name,
            user_id=request.user_id,
            device_info=request.device_info,
            app_version=request.app_version,
            purchase_type=request.purchase_type,
        )
    except GatewayError as e:
        logger.error("api_create_payment_gateway_error", error=e.message, error_type=e.error_type)
        return _gateway_error_response(e, status.HTTP_400_BAD_REQUEST)

    logger.info(
        "api_create_payment_success",
        payment_intent_id=payment["payment_intent_id"],
        duration_seconds=time.time() - start_time,
    )

    return CreatePaymentResponse.model_validate(payment)


@payment_router.post(
    "/confirm-payment",
    response_model=ConfirmPaymentResponse,
    summary="Confirm an unlock payment",
    description="Check the PaymentIntent with Stripe and complete the transaction",
)
async def confirm_payment(
    request: Optional[ConfirmPaymentRequest] = None,
    services: Services = Depends(get_services),
) -> Any:
    """Confirm a payment; repeated calls for the same intent are harmless."""
    request = request or ConfirmPaymentRequest()
    logger.info(
        "api_confirm_payment_request",
        payment_intent_id=request.payment_intent_id,
        user_id=request.user_id,
    )

    try:
        result = await services.orchestrator.confirm_payment(
            payment_ref=request.payment_intent_id,
            user_id=request.user_id,
        )
    except GatewayError as e:
        logger.error("api_confirm_payment_gateway_error", error=e.message, error_type=e.error_type)
        return _gateway_error_response(e, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return ConfirmPaymentResponse.model_validate(result)


@payment_router.get(
    "/user/{user_id}",
    response_model=UserDetailResponse,
    summary="Get user details",
    description="User record with transaction history, newest first",
)
async def get_user(user_id: str, services: Services = Depends(get_services)) -> Any:
    return UserDetailResponse.model_validate(_ledger_view(services.queries.get_user(user_id)))


@admin_router.get(
    "/transactions",
    response_model=AdminTransactionsResponse,
    summary="List all transactions",
    description="Every transaction, newest first, with revenue summary",
)
async def list_transactions(services: Services = Depends(get_services)) -> Any:
    return AdminTransactionsResponse.model_validate(
        _ledger_view(services.queries.list_all_transactions())
    )


@catalog_router.get(
    "/videos",
    response_model=VideosResponse,
    summary="List videos",
    description="Uploaded videos from Cloudinary, newest first",
)
async def list_videos(services: Services = Depends(get_services)) -> Any:
    start_time = time.time()
    videos = await services.catalog.list_videos()
    logger.info(
        "api_list_videos_success",
        count=len(videos),
        duration_seconds=time.time() - start_time,
    )
    return VideosResponse.model_validate({"videos": videos})


@monitoring_router.get(
    "/api/test-stripe",
    response_model=StripeStatusResponse,
    summary="Stripe configuration check",
)
async def stripe_status(services: Services = Depends(get_services)) -> Any:
    return StripeStatusResponse.model_validate(services.health.stripe_status())


@monitoring_router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Liveness probe",
)
async def liveness(services: Services = Depends(get_services)) -> Dict[str, Any]:
    return await services.health.liveness()


@monitoring_router.get(
    "/metrics",
    summary="Prometheus metrics",
    include_in_schema=False,
)
async def prometheus_metrics() -> Response:
    """Expose Prometheus metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
