"""Third-party provider integrations."""
from .cloudinary_client import CloudinaryGateway, VideoAsset
from .stripe_client import IntentHandle, IntentStatus, StripeErrorType, StripeGateway

__all__ = [
    "CloudinaryGateway",
    "IntentHandle",
    "IntentStatus",
    "StripeErrorType",
    "StripeGateway",
    "VideoAsset",
]
