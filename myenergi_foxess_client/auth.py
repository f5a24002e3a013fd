"""HTTP Digest authentication for the myenergi hub servers.

Handshake (stateless, two round trips per call):
1. Unauthenticated request; the server answers 401 with a Digest challenge
2. Authenticated request with the computed Authorization header

Nothing from a handshake survives the call: challenge, cnonce and
response are rebuilt from scratch every time.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import os
import re
from collections.abc import Callable
from typing import Any

import aiohttp

from .constants import (
    AUTHORIZATION_HEADER,
    DIGEST_DEFAULT_ALGORITHM,
    DIGEST_NONCE_COUNT,
    MYENERGI_STATUS_PATH,
    VENDOR_MYENERGI,
    WWW_AUTHENTICATE_HEADER,
)
from .exceptions import (
    AuthRejectedError,
    ChallengeMalformedError,
    ChallengeMissingError,
    TransportError,
)
from .models import DigestChallenge
from .utils import build_server_url, redact

_LOGGER = logging.getLogger(__name__)

_HASHES: dict[str, Callable[..., Any]] = {
    "MD5": hashlib.md5,
    "SHA-256": hashlib.sha256,
}


def _hash_function(algorithm: str | None) -> tuple[Callable[[str], str], bool]:
    """Return (hex digest function, is session variant) for an algorithm name.

    Raises:
        ChallengeMalformedError: If the algorithm is not supported

    """
    name = (algorithm or DIGEST_DEFAULT_ALGORITHM).upper()
    session_variant = name.endswith("-SESS")
    if session_variant:
        name = name[: -len("-SESS")]

    hash_factory = _HASHES.get(name)
    if hash_factory is None:
        raise ChallengeMalformedError(
            f"Unsupported digest algorithm: {algorithm}",
            vendor=VENDOR_MYENERGI,
            stage="challenge",
        )

    def hexdigest(value: str) -> str:
        return hash_factory(value.encode()).hexdigest()

    return hexdigest, session_variant


def calculate_digest_response(
    username: str,
    password: str,
    realm: str,
    nonce: str,
    method: str,
    uri: str,
    qop: str | None = None,
    nc: str | None = None,
    cnonce: str | None = None,
    algorithm: str | None = None,
) -> str:
    """Calculate HTTP Digest authentication response.

    Pure function: identical inputs always give the identical response.

    Args:
        username: Username
        password: Password
        realm: Authentication realm from challenge
        nonce: Nonce from challenge
        method: HTTP method (GET, POST, etc.)
        uri: Request URI
        qop: Quality of protection from challenge
        nc: Nonce count (hex string)
        cnonce: Client nonce
        algorithm: Algorithm from challenge (default: MD5)

    Returns:
        Calculated digest response value (lowercase hex)

    """
    hexdigest, session_variant = _hash_function(algorithm)

    # HA1 = H(username:realm:password)
    ha1 = hexdigest(f"{username}:{realm}:{password}")
    if session_variant:
        ha1 = hexdigest(f"{ha1}:{nonce}:{cnonce}")

    # HA2 = H(method:uri)
    ha2 = hexdigest(f"{method}:{uri}")

    if qop and nc and cnonce:
        response_str = f"{ha1}:{nonce}:{nc}:{cnonce}:{qop}:{ha2}"
    else:
        # RFC 2069 compatibility (no qop offered)
        response_str = f"{ha1}:{nonce}:{ha2}"

    return hexdigest(response_str)


def is_digest_challenge(www_authenticate: str | None) -> bool:
    """Return True if the header's auth scheme is Digest."""
    return bool(www_authenticate) and bool(
        re.match(r"\s*Digest\s", www_authenticate, flags=re.IGNORECASE)
    )


def parse_digest_params(www_authenticate: str) -> dict[str, str]:
    """Parse the key=value pairs of a Digest challenge header.

    Args:
        www_authenticate: WWW-Authenticate header value

    Returns:
        Dictionary of challenge parameters with quotes stripped

    """
    challenge = re.sub(r"^\s*Digest\s+", "", www_authenticate, flags=re.IGNORECASE)

    params = {}
    for match in re.finditer(r'(\w+)\s*=\s*(?:"([^"]*)"|([^,\s]+))', challenge):
        key = match.group(1).lower()
        value = match.group(2) if match.group(2) is not None else match.group(3)
        params[key] = value

    return params


def parse_digest_challenge(www_authenticate: str) -> DigestChallenge:
    """Parse a WWW-Authenticate Digest header into a challenge.

    Args:
        www_authenticate: WWW-Authenticate header value

    Returns:
        DigestChallenge for this handshake only

    Raises:
        ChallengeMalformedError: If realm or nonce is missing

    """
    params = parse_digest_params(www_authenticate)

    missing = [key for key in ("realm", "nonce") if not params.get(key)]
    if missing:
        raise ChallengeMalformedError(
            f"Digest challenge missing {', '.join(missing)}",
            vendor=VENDOR_MYENERGI,
            stage="challenge",
        )

    return DigestChallenge(
        realm=params["realm"],
        nonce=params["nonce"],
        opaque=params.get("opaque"),
        qop=params.get("qop"),
        algorithm=params.get("algorithm"),
    )


def select_qop(offered: str | None) -> str | None:
    """Pick the qop to answer with from the server's offered list.

    Raises:
        ChallengeMalformedError: If qop is offered but "auth" is not among it

    """
    if not offered:
        return None
    options = [option.strip().lower() for option in offered.split(",")]
    if "auth" in options:
        return "auth"
    raise ChallengeMalformedError(
        f"Unsupported digest qop: {offered}",
        vendor=VENDOR_MYENERGI,
        stage="challenge",
    )


def generate_cnonce() -> str:
    """Generate a fresh random client nonce (16 hex characters)."""
    return os.urandom(8).hex()


def build_digest_header(
    username: str,
    password: str,
    challenge: DigestChallenge,
    method: str,
    uri: str,
    cnonce: str | None = None,
) -> str:
    """Build the Digest Authorization header value (without the scheme).

    Args:
        username: Username
        password: Password
        challenge: Challenge parsed from this handshake's first response
        method: HTTP method
        uri: Request URI
        cnonce: Client nonce (default: freshly generated)

    Returns:
        Comma separated Digest parameters

    """
    qop = select_qop(challenge.qop)

    auth_parts = [
        f'username="{username}"',
        f'realm="{challenge.realm}"',
        f'nonce="{challenge.nonce}"',
        f'uri="{uri}"',
    ]

    if qop:
        nc = DIGEST_NONCE_COUNT
        cnonce = cnonce or generate_cnonce()
        response = calculate_digest_response(
            username,
            password,
            challenge.realm,
            challenge.nonce,
            method,
            uri,
            qop,
            nc,
            cnonce,
            challenge.algorithm,
        )
        auth_parts.append(f'response="{response}"')
        if challenge.algorithm:
            auth_parts.append(f"algorithm={challenge.algorithm}")
        auth_parts.extend([f"qop={qop}", f"nc={nc}", f'cnonce="{cnonce}"'])
    else:
        response = calculate_digest_response(
            username,
            password,
            challenge.realm,
            challenge.nonce,
            method,
            uri,
            algorithm=challenge.algorithm,
        )
        auth_parts.append(f'response="{response}"')
        if challenge.algorithm:
            auth_parts.append(f"algorithm={challenge.algorithm}")

    if challenge.opaque:
        auth_parts.append(f'opaque="{challenge.opaque}"')

    return ", ".join(auth_parts)


async def fetch_digest_authenticated(
    session: aiohttp.ClientSession,
    server: str,
    username: str,
    password: str,
    method: str = "GET",
    path: str = MYENERGI_STATUS_PATH,
) -> str:
    """Fetch a resource from a Digest protected server.

    Args:
        session: aiohttp client session
        server: Server address (as returned by discovery)
        username: Username (hub serial)
        password: Password (API key)
        method: HTTP method (default: GET)
        path: Request path (default: MYENERGI_STATUS_PATH)

    Returns:
        Response body, passed through unvalidated

    Raises:
        ChallengeMissingError: If the first request is rejected without a Digest challenge
        ChallengeMalformedError: If the challenge cannot be used
        AuthRejectedError: If the first or the authenticated request is refused
        TransportError: If the connection fails

    """
    url = build_server_url(server, path)

    _LOGGER.debug("[Eddi Auth] Probing %s %s for digest challenge", method, url)

    try:
        async with session.request(method, url) as response:
            _LOGGER.debug(
                "[Eddi Auth] Unauthenticated response: status=%d, challenge=%s",
                response.status,
                "present"
                if response.headers.get(WWW_AUTHENTICATE_HEADER)
                else "NOT PRESENT",
            )

            if 200 <= response.status < 300:
                _LOGGER.debug("[Eddi Auth] Request succeeded without authentication")
                return await response.text()

            if response.status != 401:
                _LOGGER.error(
                    "[Eddi Auth] Expected 401 challenge response, got %d",
                    response.status,
                )
                raise AuthRejectedError(
                    f"Expected 401 challenge, got {response.status}",
                    status=response.status,
                    vendor=VENDOR_MYENERGI,
                    stage="challenge",
                )

            www_authenticate = response.headers.get(WWW_AUTHENTICATE_HEADER, "")
    except (aiohttp.ClientError, asyncio.TimeoutError) as err:
        _LOGGER.debug(
            "[Eddi Auth] Connection error during challenge: %s (type=%s)",
            err,
            type(err).__name__,
        )
        raise TransportError(
            f"Digest challenge request failed: {err}",
            vendor=VENDOR_MYENERGI,
            stage="challenge",
        ) from err

    if not is_digest_challenge(www_authenticate):
        _LOGGER.error(
            "[Eddi Auth] Invalid or missing digest challenge: %s",
            repr(www_authenticate),
        )
        raise ChallengeMissingError(
            "Challenge missing or not digest-based",
            vendor=VENDOR_MYENERGI,
            stage="challenge",
        )

    challenge = parse_digest_challenge(www_authenticate)
    _LOGGER.debug(
        "[Eddi Auth] Parsed challenge: realm=%s, nonce=%s..., qop=%s, algorithm=%s",
        challenge.realm,
        challenge.nonce[:8],
        challenge.qop,
        challenge.algorithm,
    )

    digest_value = build_digest_header(username, password, challenge, method, path)
    _LOGGER.debug(
        "[Eddi Auth] Generated Digest header for username=%s (length=%d chars)",
        redact(username),
        len(digest_value),
    )

    try:
        async with session.request(
            method,
            url,
            headers={AUTHORIZATION_HEADER: f"Digest {digest_value}"},
        ) as response:
            if 200 <= response.status < 300:
                body = await response.text()
                _LOGGER.debug(
                    "[Eddi Auth] Authenticated request succeeded: status=%d, %d bytes",
                    response.status,
                    len(body),
                )
                return body

            _LOGGER.error(
                "[Eddi Auth] Authenticated request rejected with status %d",
                response.status,
            )
            raise AuthRejectedError(
                f"Authentication failed: HTTP {response.status}. "
                "Check hub serial and API key.",
                status=response.status,
                vendor=VENDOR_MYENERGI,
                stage="authenticate",
            )
    except (aiohttp.ClientError, asyncio.TimeoutError) as err:
        _LOGGER.debug(
            "[Eddi Auth] Connection error during authenticated request: %s (type=%s)",
            err,
            type(err).__name__,
        )
        raise TransportError(
            f"Authenticated request failed: {err}",
            vendor=VENDOR_MYENERGI,
            stage="authenticate",
        ) from err
