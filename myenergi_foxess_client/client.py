"""Telemetry client for the dashboard gateway."""

from __future__ import annotations

import logging

import aiohttp

from .auth import fetch_digest_authenticated
from .config import GatewayConfig, require_credentials
from .constants import FOXESS_REALTIME_PATH, MYENERGI_STATUS_PATH, VENDOR_FOXESS, VENDOR_MYENERGI
from .discovery import resolve_server
from .exceptions import TelemetryClientError
from .models import EddiSnapshot, InverterSnapshot
from .normalizer import normalize_eddi, normalize_foxess
from .signing import build_signed_request, post_signed_request

_LOGGER = logging.getLogger(__name__)


async def fetch_eddi_snapshot(
    session: aiohttp.ClientSession,
    identity: str,
    secret: str,
) -> EddiSnapshot:
    """Fetch the live Eddi snapshot.

    Director discovery, then the Digest handshake against the discovered
    server, then normalization. Nothing is cached between calls.

    Args:
        session: aiohttp client session
        identity: Hub serial (Digest username)
        secret: API key (Digest password)

    Returns:
        EddiSnapshot

    Raises:
        TelemetryClientError: Classified failure (see exceptions)

    """
    require_credentials(VENDOR_MYENERGI, [("identity", identity), ("secret", secret)])

    try:
        server = await resolve_server(session, identity, secret)
        body = await fetch_digest_authenticated(
            session, server, identity, secret, "GET", MYENERGI_STATUS_PATH
        )
        return normalize_eddi(body)
    except TelemetryClientError as err:
        _LOGGER.warning("Eddi snapshot failed: %s %s", type(err).__name__, err.context)
        raise


async def fetch_foxess_snapshot(
    session: aiohttp.ClientSession,
    secret: str,
    device_id: str,
    power_in_watts: bool = True,
) -> InverterSnapshot:
    """Fetch the live Fox ESS inverter snapshot with one signed call.

    Args:
        session: aiohttp client session
        secret: API token
        device_id: Inverter serial number
        power_in_watts: Whether this upstream variant reports watts

    Returns:
        InverterSnapshot

    Raises:
        TelemetryClientError: Classified failure (see exceptions)

    """
    require_credentials(VENDOR_FOXESS, [("secret", secret), ("device_id", device_id)])

    try:
        request = build_signed_request(secret, FOXESS_REALTIME_PATH, device_id)
        envelope = await post_signed_request(session, request)
        return normalize_foxess(envelope, power_in_watts=power_in_watts)
    except TelemetryClientError as err:
        _LOGGER.warning("Fox ESS snapshot failed: %s %s", type(err).__name__, err.context)
        raise


class EnergyDashboardClient:
    """Config-driven client for both upstreams."""

    def __init__(self, session: aiohttp.ClientSession, config: GatewayConfig):
        """Initialize the client.

        Args:
            session: aiohttp client session (managed by the caller)
            config: Gateway configuration

        """
        self.session = session
        self.config = config

    async def async_get_eddi_snapshot(self) -> EddiSnapshot:
        """Fetch the Eddi snapshot using configured myenergi credentials."""
        credentials = self.config.myenergi_credentials()
        return await fetch_eddi_snapshot(
            self.session, credentials.identity, credentials.secret
        )

    async def async_get_foxess_snapshot(self) -> InverterSnapshot:
        """Fetch the inverter snapshot using configured Fox ESS credentials."""
        credentials = self.config.foxess_credentials()
        return await fetch_foxess_snapshot(
            self.session,
            credentials.secret,
            credentials.identity,
            power_in_watts=self.config.foxess_power_in_watts,
        )
