"""Data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class Credentials:
    """Per-call credentials, never persisted."""

    identity: str
    secret: str = field(repr=False)


@dataclass(frozen=True)
class DigestChallenge:
    """Digest challenge parsed from one WWW-Authenticate header.

    Valid for a single handshake only.
    """

    realm: str
    nonce: str
    opaque: str | None = None
    qop: str | None = None
    algorithm: str | None = None


@dataclass(frozen=True)
class SignedRequest:
    """One-shot signed Fox ESS request."""

    url: str
    headers: dict[str, str]
    payload: dict[str, Any]


@dataclass(frozen=True)
class EddiSnapshot:
    """myenergi Eddi diversion snapshot."""

    diversion_kw: Decimal
    status: int

    def as_dict(self) -> dict[str, Any]:
        """Return the dashboard JSON shape."""
        return {"diversion_kw": str(self.diversion_kw), "status": self.status}


@dataclass(frozen=True)
class InverterSnapshot:
    """Fox ESS inverter snapshot."""

    solar_kw: Decimal
    battery_percent: Decimal
    grid_kw: Decimal

    def as_dict(self) -> dict[str, Any]:
        """Return the dashboard JSON shape."""
        return {
            "solar_kw": str(self.solar_kw),
            "battery_percent": float(self.battery_percent),
            "grid_kw": str(self.grid_kw),
        }
