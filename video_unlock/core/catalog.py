"""Video catalog served to the client app."""
from typing import Any, Dict, List, Optional, Protocol

import structlog

logger = structlog.get_logger(__name__)


class MediaGateway(Protocol):
    async def list_video_assets(self) -> List[Any]:
        ...


def format_duration(seconds: Optional[float]) -> str:
    """M:SS for a duration in seconds, "N/A" when unknown."""
    if not seconds:
        return "N/A"
    minutes = int(seconds // 60)
    remainder = int(seconds % 60)
    return f"{minutes}:{remainder:02d}"


class CatalogService:
    """Lists the uploaded videos; independent of the payment ledger."""

    def __init__(self, gateway: MediaGateway):
        self.gateway = gateway

    async def list_videos(self) -> List[Dict[str, Any]]:
        """
        Raises:
            MediaGatewayError: If the media host call fails
        """
        assets = await self.gateway.list_video_assets()
        videos = [self._format(asset) for asset in assets]
        logger.info("videos_listed", count=len(videos))
        return videos

    @staticmethod
    def _format(asset: Any) -> Dict[str, Any]:
        filename = asset.filename or asset.public_id.split("/")[-1] or "Video"
        return {
            "id": asset.public_id,
            "url": asset.url,
            "thumbnail_url": asset.thumbnail_url,
            "filename": filename,
            "duration": asset.duration or None,
            "formatted_duration": format_duration(asset.duration),
            "width": asset.width or None,
            "height": asset.height or None,
            "format": asset.format,
            "created_at": asset.created_at,
        }
