from __future__ import annotations

import asyncio
import logging
import os
from typing import Mapping, Optional

import httpx

from services.calendar.core.permissions import Identity

logger = logging.getLogger(__name__)


ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()
CONTROL_PLANE_URL = os.getenv("CONTROL_PLANE_URL")
CONTROL_PLANE_TIMEOUT = float(os.getenv("CONTROL_PLANE_TIMEOUT", "20.0"))

USER_HEADER = "X-User-Id"
ADMIN_HEADER = "X-User-Admin"

_TRUTHY = {"1", "true", "yes"}
_REJECTIONS = {
    401: "invalid api key",
    429: "rate limit exceeded",
}

_http_client: httpx.AsyncClient | None = None
_http_client_lock = asyncio.Lock()


def is_dev_mode() -> bool:
    """Check if running in development mode."""
    return ENVIRONMENT == "development"


async def _get_http_client() -> httpx.AsyncClient:
    """Get or create shared HTTP client with connection pooling."""
    global _http_client
    async with _http_client_lock:
        if _http_client is None or _http_client.is_closed:
            _http_client = httpx.AsyncClient(
                timeout=CONTROL_PLANE_TIMEOUT,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            )
    return _http_client


async def close_http_client() -> None:
    global _http_client
    if _http_client is not None and not _http_client.is_closed:
        await _http_client.aclose()
    _http_client = None


async def validate_with_control_plane(api_key: str) -> Identity:
    """
    Ask the control plane who owns ``api_key``.

    A valid key answers ``{"valid": true, "user_id": ..., "is_admin": ...}``.

    Raises:
        PermissionError: The key was rejected or the check timed out
        RuntimeError: The control plane is not configured or unreachable
    """
    if not CONTROL_PLANE_URL:
        raise RuntimeError("CONTROL_PLANE_URL not configured for production mode")

    client = await _get_http_client()
    try:
        response = await client.post(
            f"{CONTROL_PLANE_URL}/validate", json={"api_key": api_key}
        )
    except httpx.TimeoutException as exc:
        raise PermissionError("control plane timeout - try again") from exc
    except httpx.RequestError as exc:
        raise RuntimeError(f"control plane unavailable: {exc}") from exc

    if response.status_code != 200:
        raise PermissionError(
            _REJECTIONS.get(
                response.status_code, f"authorization failed: {response.status_code}"
            )
        )

    data = response.json()
    if not data.get("valid"):
        raise PermissionError(data.get("reason", "access denied"))

    identity = Identity(user_id=str(data["user_id"]), is_admin=bool(data.get("is_admin")))
    logger.debug("Control plane resolved caller %s", identity.user_id)
    return identity


def _identity_from_headers(headers: Mapping[str, str]) -> Identity:
    user_id = (headers.get(USER_HEADER) or "").strip()
    if not user_id:
        raise PermissionError(f"missing {USER_HEADER} header")
    is_admin = (headers.get(ADMIN_HEADER) or "").strip().lower() in _TRUTHY
    return Identity(user_id=user_id, is_admin=is_admin)


def _api_key_from_headers(headers: Mapping[str, str]) -> Optional[str]:
    api_key = headers.get("X-API-Key") or headers.get("Authorization")
    if api_key and api_key.lower().startswith("bearer "):
        api_key = api_key[len("bearer "):]
    return api_key or None


async def get_identity(headers: Mapping[str, str]) -> Identity:
    """
    Resolve the caller of a request.

    In development mode the identity is taken from the X-User-Id and
    X-User-Admin headers; otherwise the API key is checked with the control
    plane and the identity headers are ignored.
    """
    if is_dev_mode():
        return _identity_from_headers(headers)

    api_key = _api_key_from_headers(headers)
    if not api_key:
        raise PermissionError("api key required in production mode")
    return await validate_with_control_plane(api_key)
