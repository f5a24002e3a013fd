"""Server discovery through the myenergi director.

The director names the server that holds a hub's live data in a response
header. It identifies the hub from Digest credentials, and it is known to
answer with a 4xx status while still carrying that header, so the lookup
is done on whatever response comes back, without branching on the status
code.
"""

from __future__ import annotations

import asyncio
import logging
from urllib.parse import urlparse

import aiohttp

from .auth import build_digest_header, is_digest_challenge, parse_digest_challenge
from .constants import (
    AUTHORIZATION_HEADER,
    MYENERGI_ASN_HEADER,
    MYENERGI_DIRECTOR_URL,
    VENDOR_MYENERGI,
    WWW_AUTHENTICATE_HEADER,
)
from .exceptions import ChallengeMalformedError, DiscoveryFailedError

_LOGGER = logging.getLogger(__name__)


def extract_server(headers) -> str | None:
    """Return the server named in the director's response headers, if any."""
    value = headers.get(MYENERGI_ASN_HEADER)
    if value is None:
        return None
    value = value.strip()
    return value or None


async def _director_get(
    session: aiohttp.ClientSession,
    director_url: str,
    headers: dict[str, str] | None = None,
) -> tuple[int, str | None, str]:
    """GET the director; return (status, server header, WWW-Authenticate)."""
    try:
        if headers:
            request = session.get(director_url, headers=headers)
        else:
            request = session.get(director_url)
        async with request as response:
            return (
                response.status,
                extract_server(response.headers),
                response.headers.get(WWW_AUTHENTICATE_HEADER, ""),
            )
    except (aiohttp.ClientError, asyncio.TimeoutError) as err:
        _LOGGER.error(
            "[Eddi Discovery] Director request failed: %s (type=%s)",
            err,
            type(err).__name__,
        )
        raise DiscoveryFailedError(
            f"Director request failed: {err}",
            vendor=VENDOR_MYENERGI,
            stage="discovery",
        ) from err


async def resolve_server(
    session: aiohttp.ClientSession,
    identity: str,
    secret: str,
    director_url: str = MYENERGI_DIRECTOR_URL,
) -> str:
    """Resolve the server holding live data for a hub.

    The director is asked first without credentials; when it answers with a Digest challenge the
    request is repeated with the hub's credentials and the server is read
    from that response. Every call goes to the director; the result is
    never cached.

    Args:
        session: aiohttp client session
        identity: Hub serial (Digest username)
        secret: API key (Digest password)
        director_url: Bootstrap URL (default: MYENERGI_DIRECTOR_URL)

    Returns:
        Server address from the X_MYENERGI-asn header

    Raises:
        DiscoveryFailedError: If the header is absent/empty or the call fails

    """
    _LOGGER.debug(
        "[Eddi Discovery] Resolving server for hub %s via %s", identity, director_url
    )

    status, server, www_authenticate = await _director_get(session, director_url)
    _LOGGER.debug(
        "[Eddi Discovery] Director first response: status=%d, challenge=%s, server=%s",
        status,
        "present" if www_authenticate else "NOT PRESENT",
        server or "NOT PRESENT",
    )

    if is_digest_challenge(www_authenticate):
        try:
            challenge = parse_digest_challenge(www_authenticate)
            digest_value = build_digest_header(
                identity,
                secret,
                challenge,
                "GET",
                urlparse(director_url).path or "/",
            )
        except ChallengeMalformedError as err:
            raise DiscoveryFailedError(
                f"Director challenge unusable: {err}",
                vendor=VENDOR_MYENERGI,
                stage="discovery",
            ) from err

        status, server, _ = await _director_get(
            session,
            director_url,
            headers={AUTHORIZATION_HEADER: f"Digest {digest_value}"},
        )
        _LOGGER.debug(
            "[Eddi Discovery] Director authenticated response: status=%d, server=%s",
            status,
            server or "NOT PRESENT",
        )

    if not server:
        _LOGGER.error(
            "[Eddi Discovery] Director response carried no %s header",
            MYENERGI_ASN_HEADER,
        )
        raise DiscoveryFailedError(
            f"Director response missing {MYENERGI_ASN_HEADER} header",
            vendor=VENDOR_MYENERGI,
            stage="discovery",
        )

    _LOGGER.info("[Eddi Discovery] Hub %s is served by %s", identity, server)
    return server
