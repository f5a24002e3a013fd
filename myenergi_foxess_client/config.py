"""Gateway configuration.

Settings are read from the environment the way the hosting gateway is
deployed. Credentials are validated lazily: each integration only fails
when it is actually used without its credentials.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from .constants import VENDOR_FOXESS, VENDOR_MYENERGI
from .exceptions import ConfigurationMissingError
from .models import Credentials

_LOGGER = logging.getLogger(__name__)

ENV_MYENERGI_USERNAME = "MYENERGI_USERNAME"
ENV_MYENERGI_API_KEY = "MYENERGI_API_KEY"
ENV_FOXESS_API_KEY = "FOX_ESS_API_KEY"
ENV_FOXESS_INVERTER_SN = "FOX_ESS_INVERTER_SN"
ENV_FOXESS_POWER_IN_WATTS = "FOX_ESS_POWER_IN_WATTS"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _parse_bool(name: str, raw: str | None, default: bool) -> bool:
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


_VENDOR_LABELS = {VENDOR_MYENERGI: "myenergi", VENDOR_FOXESS: "Fox ESS"}


def require_credentials(
    vendor: str, values: list[tuple[str, str | None]]
) -> None:
    """Raise if any named credential value is empty.

    Args:
        vendor: Vendor tag the credentials belong to
        values: (name, value) pairs; only the names end up in the message

    Raises:
        ConfigurationMissingError: Naming every missing value

    """
    missing = [name for name, value in values if not value]
    if missing:
        raise ConfigurationMissingError(
            f"{_VENDOR_LABELS.get(vendor, vendor)} credentials are not configured: "
            f"{', '.join(missing)}",
            vendor=vendor,
            stage="config",
        )


@dataclass(frozen=True)
class GatewayConfig:
    """Credentials and per-integration flags for both upstreams."""

    myenergi_username: str | None = None
    myenergi_api_key: str | None = field(default=None, repr=False)
    foxess_token: str | None = field(default=None, repr=False)
    foxess_serial: str | None = None
    # The /c/v0/device/real variant reports power in watts.
    foxess_power_in_watts: bool = True

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> GatewayConfig:
        """Build a config from environment variables.

        Args:
            environ: Mapping to read from (default: os.environ)

        Returns:
            GatewayConfig with unset values left as None

        Raises:
            ValueError: If the power flag cannot be parsed

        """
        env = os.environ if environ is None else environ

        config = cls(
            myenergi_username=env.get(ENV_MYENERGI_USERNAME) or None,
            myenergi_api_key=env.get(ENV_MYENERGI_API_KEY) or None,
            foxess_token=env.get(ENV_FOXESS_API_KEY) or None,
            foxess_serial=env.get(ENV_FOXESS_INVERTER_SN) or None,
            foxess_power_in_watts=_parse_bool(
                ENV_FOXESS_POWER_IN_WATTS, env.get(ENV_FOXESS_POWER_IN_WATTS), True
            ),
        )
        _LOGGER.debug(
            "Loaded gateway config: myenergi=%s, foxess=%s, foxess_power_in_watts=%s",
            "configured" if config.myenergi_username else "missing",
            "configured" if config.foxess_token else "missing",
            config.foxess_power_in_watts,
        )
        return config

    def myenergi_credentials(self) -> Credentials:
        """Return myenergi credentials (hub serial + API key).

        Raises:
            ConfigurationMissingError: If either value is not configured

        """
        require_credentials(
            VENDOR_MYENERGI,
            [
                (ENV_MYENERGI_USERNAME, self.myenergi_username),
                (ENV_MYENERGI_API_KEY, self.myenergi_api_key),
            ],
        )
        return Credentials(self.myenergi_username, self.myenergi_api_key)

    def foxess_credentials(self) -> Credentials:
        """Return Fox ESS credentials (inverter serial + API token).

        Raises:
            ConfigurationMissingError: If either value is not configured

        """
        require_credentials(
            VENDOR_FOXESS,
            [
                (ENV_FOXESS_API_KEY, self.foxess_token),
                (ENV_FOXESS_INVERTER_SN, self.foxess_serial),
            ],
        )
        return Credentials(self.foxess_serial, self.foxess_token)
