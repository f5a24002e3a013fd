"""myenergi / Fox ESS telemetry client library."""

from .client import EnergyDashboardClient, fetch_eddi_snapshot, fetch_foxess_snapshot
from .config import GatewayConfig
from .constants import (
    FOXESS_REALTIME_PATH,
    MYENERGI_ASN_HEADER,
    MYENERGI_DIRECTOR_URL,
    MYENERGI_STATUS_PATH,
    VENDOR_FOXESS,
    VENDOR_MYENERGI,
)
from .exceptions import (
    AuthRejectedError,
    ChallengeMalformedError,
    ChallengeMissingError,
    ConfigurationMissingError,
    DataNotFoundError,
    DigestAuthError,
    DiscoveryFailedError,
    TelemetryClientError,
    TransportError,
    UpstreamApplicationError,
)
from .models import Credentials, EddiSnapshot, InverterSnapshot

__all__ = [
    # Client
    "EnergyDashboardClient",
    "GatewayConfig",
    "fetch_eddi_snapshot",
    "fetch_foxess_snapshot",
    # Constants
    "FOXESS_REALTIME_PATH",
    "MYENERGI_ASN_HEADER",
    "MYENERGI_DIRECTOR_URL",
    "MYENERGI_STATUS_PATH",
    "VENDOR_FOXESS",
    "VENDOR_MYENERGI",
    # Models
    "Credentials",
    "EddiSnapshot",
    "InverterSnapshot",
    # Exceptions
    "AuthRejectedError",
    "ChallengeMalformedError",
    "ChallengeMissingError",
    "ConfigurationMissingError",
    "DataNotFoundError",
    "DigestAuthError",
    "DiscoveryFailedError",
    "TelemetryClientError",
    "TransportError",
    "UpstreamApplicationError",
]
