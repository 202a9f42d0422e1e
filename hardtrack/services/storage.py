import logging
import time
from typing import Optional

import httpx
from fastapi import HTTPException

from hardtrack.config import settings

logger = logging.getLogger(__name__)


def object_path(user_id: str, filename: Optional[str]) -> str:
    ext = "jpg"
    if filename and "." in filename:
        ext = filename.rsplit(".", 1)[1].lower()
    return f"{user_id}/{int(time.time() * 1000)}.{ext}"


def public_url(path: str) -> str:
    return f"{settings.STORAGE_URL.rstrip('/')}/object/public/{settings.STORAGE_BUCKET}/{path}"


async def upload_progress_image(
    user_id: str,
    filename: Optional[str],
    content: bytes,
    content_type: Optional[str],
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    """Upload under <user id>/<timestamp>.<ext> and return the public URL."""
    if not settings.storage_configured:
        raise HTTPException(503, "Object storage not configured")

    path = object_path(user_id, filename)
    url = f"{settings.STORAGE_URL.rstrip('/')}/object/{settings.STORAGE_BUCKET}/{path}"
    headers = {"Content-Type": content_type or "application/octet-stream"}
    if settings.STORAGE_API_KEY:
        headers["Authorization"] = f"Bearer {settings.STORAGE_API_KEY}"

    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)
    try:
        resp = await client.post(url, content=content, headers=headers)
    except httpx.HTTPError as e:
        logger.error("Image upload for %s failed: %s", user_id, e)
        raise HTTPException(502, f"Image upload failed: {e}")
    finally:
        if owns_client:
            await client.aclose()

    if resp.status_code >= 300:
        logger.error("Image upload for %s rejected: %s", user_id, resp.text)
        raise HTTPException(502, f"Image upload failed: {resp.text}")
    return public_url(path)
