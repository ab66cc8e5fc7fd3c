import asyncio
import base64

import httpx
import pytest
import respx

from errors import ImageUploadError
from services.image_service import ImageUploadClient

UPLOAD_URL = "https://api.imgbb.com/1/upload"


async def _upload(api_key, content=b"\x89PNG", content_type="image/png"):
    async with httpx.AsyncClient() as client:
        uploader = ImageUploadClient(client, api_key, UPLOAD_URL)
        return await uploader.upload(content, "product-1-photo.png", content_type)


def test_without_api_key_returns_data_url():
    url = asyncio.run(_upload(None))

    assert url == "data:image/png;base64," + base64.b64encode(b"\x89PNG").decode("ascii")


@respx.mock
def test_uploads_to_image_host():
    route = respx.post(UPLOAD_URL).mock(return_value=httpx.Response(
        200, json={"success": True, "data": {"url": "https://i.ibb.co/abc/photo.png"}}
    ))

    url = asyncio.run(_upload("secret"))

    assert url == "https://i.ibb.co/abc/photo.png"
    assert route.called
    assert route.calls.last.request.headers["content-type"].startswith("multipart/form-data")


@respx.mock
def test_host_rejection_raises():
    respx.post(UPLOAD_URL).mock(return_value=httpx.Response(
        200, json={"success": False, "error": {"message": "Invalid API key"}}
    ))

    with pytest.raises(ImageUploadError, match="Invalid API key"):
        asyncio.run(_upload("secret"))


@respx.mock
def test_http_error_raises():
    respx.post(UPLOAD_URL).mock(return_value=httpx.Response(500))

    with pytest.raises(ImageUploadError):
        asyncio.run(_upload("secret"))


def test_empty_content_raises():
    with pytest.raises(ImageUploadError):
        asyncio.run(_upload(None, content=b""))
