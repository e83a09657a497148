"""
Pydantic schemas for API request/response models.

Field names are snake_case in Python and camelCase on the wire.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from video_unlock.core.ledger import TransactionStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreatePaymentRequest(CamelModel):
    """
    Request schema for creating an unlock payment.

    Every field is optional here; presence and email format are checked by
    the orchestrator so that failures use its error messages.
    """

    user_email: Optional[str] = Field(default=None, description="Buyer's email address")
    user_name: Optional[str] = Field(default=None, description="Buyer's display name")
    user_id: Optional[str] = Field(default=None, description="User identifier")
    device_info: Optional[str] = Field(default=None, description="Device information")
    app_version: Optional[str] = Field(default=None, description="Client app version")
    purchase_type: Optional[str] = Field(default=None, description="Defaults to unlimited_video_selection")

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "userEmail": "parent@example.com",
                    "userName": "Alex",
                    "userId": "user_123",
                    "deviceInfo": "iPhone 15",
                    "appVersion": "2.1.0",
                }
            ]
        },
    )


class UserDetails(CamelModel):
    user_id: str
    user_name: str
    user_email: str


class TransactionDetails(CamelModel):
    description: Optional[str] = None
    receipt_email: str
    timestamp: datetime


class CreatePaymentResponse(CamelModel):
    """Response schema for payment creation."""

    client_secret: str = Field(..., description="Client secret for completing the payment")
    payment_intent_id: str = Field(..., description="Stripe PaymentIntent ID")
    amount: int = Field(..., description="Amount in minor units")
    currency: str = Field(..., description="Currency code")
    user_details: UserDetails
    transaction_details: TransactionDetails


class ConfirmPaymentRequest(CamelModel):
    payment_intent_id: Optional[str] = Field(default=None, description="Stripe PaymentIntent ID")
    user_id: Optional[str] = Field(default=None, description="User identifier")


class PaymentDetails(CamelModel):
    payment_intent_id: str
    amount: int
    status: str


class ConfirmPaymentResponse(CamelModel):
    """Response schema for payment confirmation."""

    success: bool
    message: str
    payment_details: PaymentDetails


class TransactionOut(CamelModel):
    payment_ref: str = Field(..., alias="paymentIntentId")
    user_id: str
    user_name: str
    user_email: str
    amount: int
    currency: str
    status: TransactionStatus
    created_at: datetime
    completed_at: Optional[datetime] = None
    device_info: Optional[str] = None
    app_version: Optional[str] = None
    purchase_type: str


class UserOut(CamelModel):
    user_id: str
    user_name: str
    user_email: str
    first_seen: datetime
    last_purchase_attempt: datetime
    total_attempts: int
    successful_purchases: int
    total_spent: int
    last_successful_purchase: Optional[datetime] = None
    is_premium: bool


class UserSummary(CamelModel):
    total_transactions: int
    successful_transactions: int
    total_spent: int
    is_premium: bool


class UserDetailResponse(CamelModel):
    """A user's record, transaction history and summary."""

    user: UserOut
    transactions: List[TransactionOut]
    summary: UserSummary


class AdminSummary(CamelModel):
    total_transactions: int
    completed_transactions: int
    pending_transactions: int
    total_revenue: int = Field(..., description="Sum of completed amounts, minor units")
    unique_users: int


class AdminTransactionsResponse(CamelModel):
    transactions: List[TransactionOut]
    summary: AdminSummary


class VideoOut(CamelModel):
    id: str
    url: str
    thumbnail_url: str
    filename: str
    duration: Optional[float] = None
    formatted_duration: str
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None
    created_at: Optional[str] = None


class VideosResponse(CamelModel):
    videos: List[VideoOut]


class StripeStatusResponse(CamelModel):
    """Response schema for the Stripe configuration check."""

    message: str
    has_stripe_key: bool
    stripe_key_exists: str
    test_mode: bool
    server_time: datetime
    port: int
    total_transactions: int
    total_users: int


class HealthCheckResponse(BaseModel):
    """Response schema for health checks."""

    status: str = Field(..., description="Overall health status (healthy/unhealthy)")
    message: Optional[str] = Field(default=None, description="Status message")
