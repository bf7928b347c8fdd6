"""
Bearer token verification against the project's auth server.

Sign-in and session refresh happen on the client; the estimator only checks
that the presented access token is still accepted.
"""

import logging
from typing import Optional

import httpx
from fastapi import Request

from estimator.config import settings
from estimator.utils.exceptions import raise_internal_error, raise_unauthorized

logger = logging.getLogger(__name__)


def get_token_from_request(request: Request) -> Optional[str]:
    """Extract the bearer token from the Authorization header."""
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return None


async def verify_access_token(token: str) -> bool:
    """Return True if the auth server accepts `token`."""
    url = f"{(settings.supabase_url or '').rstrip('/')}/auth/v1/user"
    headers = {"Authorization": f"Bearer {token}", "apikey": settings.supabase_anon_key or ""}
    try:
        async with httpx.AsyncClient(timeout=float(settings.provider_timeout)) as client:
            response = await client.get(url, headers=headers)
    except httpx.HTTPError as e:
        logger.warning(f"Auth server unreachable: {e}")
        return False
    return response.is_success


async def require_access_token(request: Request) -> str:
    """FastAPI dependency: the caller's verified access token."""
    if not settings.supabase_url or not settings.supabase_anon_key:
        raise_internal_error("Missing required field: SUPABASE_URL or SUPABASE_ANON_KEY")

    token = get_token_from_request(request)
    if not token:
        raise_unauthorized("Missing required field: Authorization")
    if not await verify_access_token(token):
        raise_unauthorized("Invalid JWT")
    return token
