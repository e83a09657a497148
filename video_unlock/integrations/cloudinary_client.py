"""
Cloudinary media gateway.

Lists uploaded video assets through the Cloudinary Search API and builds
thumbnail delivery URLs for them.
"""
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
import structlog

from video_unlock.core.errors import MediaGatewayError
from video_unlock.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)

THUMBNAIL_TRANSFORMATION = "c_fill,g_auto,h_169,w_300/f_jpg,q_auto:good"


@dataclass(frozen=True)
class VideoAsset:
    public_id: str
    url: str
    thumbnail_url: str
    filename: Optional[str]
    duration: Optional[float]
    width: Optional[int]
    height: Optional[int]
    format: Optional[str]
    created_at: Optional[str]


class CloudinaryGateway:
    """Read-only client for the video assets of one Cloudinary cloud."""

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        api_base_url: str = "https://api.cloudinary.com/v1_1",
        delivery_base_url: str = "https://res.cloudinary.com",
        max_results: int = 50,
        timeout_seconds: float = 15.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.cloud_name = cloud_name
        self.max_results = max_results
        self._search_url = f"{api_base_url.rstrip('/')}/{cloud_name}/resources/search"
        self._delivery_base = f"{delivery_base_url.rstrip('/')}/{cloud_name}"
        self._auth = (api_key, api_secret)
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

        logger.info("cloudinary_gateway_initialized", cloud_name=cloud_name)

    def thumbnail_url(self, public_id: str) -> str:
        """300x169 JPEG poster frame for a video."""
        return f"{self._delivery_base}/video/upload/{THUMBNAIL_TRANSFORMATION}/{public_id}"

    async def list_video_assets(self) -> List[VideoAsset]:
        """
        Search the cloud for video resources, newest first.

        Raises:
            MediaGatewayError: With Cloudinary's HTTP status, 504 on timeout or
                502 when Cloudinary cannot be reached
        """
        start_time = time.monotonic()
        payload = {
            "expression": "resource_type:video",
            "sort_by": [{"created_at": "desc"}],
            "max_results": self.max_results,
        }

        try:
            response = await self._client.post(self._search_url, json=payload, auth=self._auth)
        except httpx.TimeoutException as e:
            metrics.record_gateway_call("cloudinary", "search", "timeout", time.monotonic() - start_time)
            logger.error("cloudinary_search_timeout", error=str(e))
            raise MediaGatewayError("Cloudinary search timed out", status_code=504, details=str(e))
        except httpx.RequestError as e:
            metrics.record_gateway_call("cloudinary", "search", "error", time.monotonic() - start_time)
            logger.error("cloudinary_search_unreachable", error=str(e))
            raise MediaGatewayError("Cloudinary is unavailable", status_code=502, details=str(e))

        duration = time.monotonic() - start_time

        if response.status_code >= 400:
            metrics.record_gateway_call("cloudinary", "search", "error", duration)
            body = self._json_or_none(response)
            message = (body or {}).get("error", {}).get("message") or response.reason_phrase
            logger.error(
                "cloudinary_search_failed",
                status_code=response.status_code,
                error_message=message,
            )
            raise MediaGatewayError(message, status_code=response.status_code, details=body)

        metrics.record_gateway_call("cloudinary", "search", "success", duration)
        resources = (self._json_or_none(response) or {}).get("resources") or []

        logger.info(
            "cloudinary_search_completed",
            resource_count=len(resources),
            duration_seconds=duration,
        )

        return [self._to_asset(resource) for resource in resources]

    def _to_asset(self, resource: Dict[str, Any]) -> VideoAsset:
        public_id = resource["public_id"]
        return VideoAsset(
            public_id=public_id,
            url=resource.get("secure_url") or resource.get("url", ""),
            thumbnail_url=self.thumbnail_url(public_id),
            filename=resource.get("filename"),
            duration=resource.get("duration"),
            width=resource.get("width"),
            height=resource.get("height"),
            format=resource.get("format"),
            created_at=resource.get("created_at"),
        )

    @staticmethod
    def _json_or_none(response: httpx.Response) -> Optional[Dict[str, Any]]:
        try:
            data = response.json()
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    async def aclose(self) -> None:
        await self._client.aclose()
