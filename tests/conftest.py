"""Common fixtures for myenergi-foxess-client tests."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

TEST_HUB_SERIAL = "user"
TEST_API_KEY = "pass"
TEST_SERVER = "s18.myenergi.net"
TEST_FOX_TOKEN = "tok"
TEST_INVERTER_SN = "60BH1234567890"

DIGEST_CHALLENGE = (
    'Digest realm="test@host", nonce="abc123", qop="auth", opaque="5ccc069c403ebaf9"'
)


def mock_response(
    status: int = 200,
    headers: dict[str, str] | None = None,
    text: str = "",
) -> MagicMock:
    """Return a mock aiohttp response usable as an async context manager."""
    response = MagicMock()
    response.status = status
    response.headers = headers or {}
    response.text = AsyncMock(return_value=text)
    response.__aenter__ = AsyncMock(return_value=response)
    response.__aexit__ = AsyncMock(return_value=None)
    return response


@pytest.fixture
def eddi_body() -> dict[str, Any]:
    """Return a myenergi status payload with one Eddi."""
    return {"eddi": [{"sno": 10088888, "div": 1230, "stat": 3}]}


@pytest.fixture
def foxess_envelope() -> dict[str, Any]:
    """Return a Fox ESS realtime envelope."""
    return {
        "errno": 0,
        "msg": "success",
        "result": {
            "datas": [
                {"key": "pvPower", "value": 2345, "unit": "W"},
                {"key": "SoC", "value": 76, "unit": "%"},
                {"key": "gridPower", "value": -512, "unit": "W"},
            ]
        },
    }
