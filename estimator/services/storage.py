"""
Signed URLs for uploaded food images.

The client uploads the photo itself; the estimator only needs a short-lived
URL the model provider can fetch.
"""

import logging

import httpx
import orjson

from estimator.config import settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Signing an object URL failed."""


def absolute_signed_url(supabase_url: str, signed_url: str) -> str:
    """Resolve the various relative forms the storage API returns."""
    if signed_url.startswith("http"):
        return signed_url
    if signed_url.startswith("/object/"):
        return f"{supabase_url}/storage/v1{signed_url}"
    if signed_url.startswith("/storage/v1"):
        return f"{supabase_url}{signed_url}"
    separator = "" if signed_url.startswith("/") else "/"
    return f"{supabase_url}/storage/v1{separator}{signed_url}"


async def create_signed_image_url(
    image_path: str,
    access_token: str,
    client: httpx.AsyncClient | None = None,
) -> str:
    """Ask the storage API for a signed URL to `image_path` in the food images bucket."""
    supabase_url = (settings.supabase_url or "").rstrip("/")
    url = f"{supabase_url}/storage/v1/object/sign/{settings.food_images_bucket}/{image_path}"
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {access_token}",
        "apikey": settings.supabase_anon_key or "",
    }
    body = orjson.dumps({"expiresIn": settings.signed_url_expiry})

    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=float(settings.provider_timeout))
    try:
        response = await client.post(url, content=body, headers=headers)
    except httpx.HTTPError as e:
        raise StorageError("Unable to create signed URL for image.") from e
    finally:
        if owns_client:
            await client.aclose()

    if not response.is_success:
        logger.warning(f"Signed URL request failed for {image_path}: {response.status_code}")
        raise StorageError("Unable to create signed URL for image.")

    data = orjson.loads(response.content)
    signed_url = data.get("signedURL") or data.get("signedUrl")
    if not signed_url:
        raise StorageError("Signed URL response missing.")

    return absolute_signed_url(supabase_url, signed_url)
