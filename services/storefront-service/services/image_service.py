"""Product image hosting."""
import base64
import logging
from typing import Optional

import httpx

from errors import ImageUploadError

logger = logging.getLogger(__name__)


class ImageUploadClient:
    """Client for the imgbb image hosting API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: Optional[str],
        upload_url: str
    ):
        """
        Initialize image upload client.

        Args:
            http_client: Async HTTP client
            api_key: imgbb API key; without one images are returned as data URLs
            upload_url: imgbb upload endpoint
        """
        self.http_client = http_client
        self.api_key = api_key
        self.upload_url = upload_url

    async def upload(self, content: bytes, filename: str, content_type: Optional[str] = None) -> str:
        """
        Upload an image and return its public URL.

        Raises:
            ImageUploadError: If the image host rejects the upload or is unreachable
        """
        if not content:
            raise ImageUploadError("No image data provided")

        if not self.api_key:
            logger.warning("IMGBB_API_KEY not configured, returning data URL")
            encoded = base64.b64encode(content).decode("ascii")
            return f"data:{content_type or 'image/jpeg'};base64,{encoded}"

        # HTTPXClientInstrumentor already creates spans for HTTP calls
        try:
            response = await self.http_client.post(
                self.upload_url,
                data={"key": self.api_key},
                files={"image": (filename, content, content_type or "application/octet-stream")}
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            logger.error("Image host request failed", extra={
                "image_filename": filename,
                "error": str(e)
            })
            raise ImageUploadError("Failed to upload image") from e

        if not payload.get("success"):
            message = (payload.get("error") or {}).get("message", "Image upload failed")
            logger.error("Image host rejected upload", extra={
                "image_filename": filename,
                "error": message
            })
            raise ImageUploadError(message)

        url = payload["data"]["url"]
        logger.info("Uploaded product image", extra={"image_filename": filename, "url": url})
        return url
