"""Fox ESS request signing.

signature = MD5(path + "\\r\\n" + token + "\\r\\n" + timestamp_ms)

The timestamp is the only varying input; staleness is enforced upstream.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
from typing import Any

import aiohttp

from .constants import (
    FOXESS_BASE_URL,
    FOXESS_LANG,
    FOXESS_USER_AGENT,
    VENDOR_FOXESS,
)
from .exceptions import AuthRejectedError, TransportError, UpstreamApplicationError
from .models import SignedRequest
from .utils import current_timestamp_ms

_LOGGER = logging.getLogger(__name__)


def calculate_signature(path: str, token: str, timestamp: int) -> str:
    """Calculate the Fox ESS request signature.

    Args:
        path: API path the request is sent to
        token: API token
        timestamp: Milliseconds since the epoch

    Returns:
        Lowercase hex MD5 signature

    """
    return hashlib.md5(f"{path}\r\n{token}\r\n{timestamp}".encode()).hexdigest()


def build_signed_request(
    secret: str,
    path: str,
    device_id: str,
    timestamp: int | None = None,
    base_url: str = FOXESS_BASE_URL,
) -> SignedRequest:
    """Build a signed Fox ESS request.

    Args:
        secret: API token (sent as the token header and signing key)
        path: API path, signed exactly as sent
        device_id: Inverter serial number
        timestamp: Milliseconds since the epoch (default: now)
        base_url: API base URL

    Returns:
        SignedRequest with url, headers and JSON payload

    """
    if timestamp is None:
        timestamp = current_timestamp_ms()

    headers = {
        "token": secret,
        "timestamp": str(timestamp),
        "signature": calculate_signature(path, secret, timestamp),
        "lang": FOXESS_LANG,
        "Content-Type": "application/json",
        "Accept": "application/json",
        "User-Agent": FOXESS_USER_AGENT,
    }
    return SignedRequest(
        url=f"{base_url.rstrip('/')}{path}",
        headers=headers,
        payload={"sn": device_id},
    )


async def post_signed_request(
    session: aiohttp.ClientSession,
    request: SignedRequest,
) -> dict[str, Any]:
    """Send a signed request and unwrap the Fox ESS envelope.

    Args:
        session: aiohttp client session
        request: Request from build_signed_request

    Returns:
        Parsed response envelope ({"errno": 0, "result": ...})

    Raises:
        AuthRejectedError: If the HTTP status is not 2xx
        UpstreamApplicationError: If the body is not JSON or errno is non-zero
        TransportError: If the connection fails

    """
    _LOGGER.debug("[Fox ESS] POST %s", request.url)

    try:
        async with session.post(
            request.url,
            json=request.payload,
            headers=request.headers,
        ) as response:
            body = await response.text()
            status = response.status
    except (aiohttp.ClientError, asyncio.TimeoutError) as err:
        _LOGGER.debug(
            "[Fox ESS] Connection error: %s (type=%s)", err, type(err).__name__
        )
        raise TransportError(
            f"Fox ESS request failed: {err}",
            vendor=VENDOR_FOXESS,
            stage="request",
        ) from err

    if not 200 <= status < 300:
        _LOGGER.error("[Fox ESS] Request rejected with status %d", status)
        raise AuthRejectedError(
            f"Fox ESS request failed: HTTP {status}",
            status=status,
            vendor=VENDOR_FOXESS,
            stage="request",
        )

    try:
        envelope = json.loads(body)
    except ValueError as err:
        _LOGGER.error("[Fox ESS] Response is not JSON (%d bytes)", len(body))
        raise UpstreamApplicationError(
            "Fox ESS response is not valid JSON",
            vendor=VENDOR_FOXESS,
            stage="request",
        ) from err

    if not isinstance(envelope, dict):
        raise UpstreamApplicationError(
            "Fox ESS response is not a JSON object",
            vendor=VENDOR_FOXESS,
            stage="request",
        )

    errno = envelope.get("errno", 0)
    if errno != 0:
        _LOGGER.error(
            "[Fox ESS] API returned errno=%s msg=%s", errno, envelope.get("msg")
        )
        raise UpstreamApplicationError(
            f"Fox ESS API Error: {envelope.get('msg') or 'Unknown error'}",
            errno=errno,
            vendor=VENDOR_FOXESS,
            stage="request",
        )

    return envelope
