"""Exceptions for myenergi-foxess-client."""

from __future__ import annotations

_VENDOR_LABELS = {"myenergi": "myenergi", "foxess": "Fox ESS"}


class TelemetryClientError(Exception):
    """Base exception for the telemetry client."""

    http_status = 500

    def __init__(
        self,
        message: str,
        *,
        vendor: str | None = None,
        stage: str | None = None,
    ) -> None:
        """Initialize with the vendor and stage the failure belongs to."""
        super().__init__(message)
        self.vendor = vendor
        self.stage = stage

    @property
    def context(self) -> dict[str, str | None]:
        """Return vendor/stage for structured logging."""
        return {"vendor": self.vendor, "stage": self.stage}

    @property
    def public_message(self) -> str:
        """Return a generic message that is safe to show to dashboard users."""
        return f"{_VENDOR_LABELS.get(self.vendor, 'Upstream')} API request failed."


class ConfigurationMissingError(TelemetryClientError):
    """Credentials were not supplied."""

    @property
    def public_message(self) -> str:
        """Return a generic message that is safe to show to dashboard users."""
        label = _VENDOR_LABELS.get(self.vendor, "Upstream")
        return f"{label} credentials are not configured on the server."


class DiscoveryFailedError(TelemetryClientError):
    """Server discovery did not yield a server address."""


class DigestAuthError(TelemetryClientError):
    """Digest authentication handshake error."""


class ChallengeMissingError(DigestAuthError):
    """Unauthenticated request was rejected without a digest challenge."""


class ChallengeMalformedError(DigestAuthError):
    """Digest challenge lacks realm/nonce or names an unsupported algorithm."""


class AuthRejectedError(DigestAuthError):
    """Upstream rejected the request."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        vendor: str | None = None,
        stage: str | None = None,
    ) -> None:
        """Initialize with the upstream HTTP status."""
        super().__init__(message, vendor=vendor, stage=stage)
        self.status = status


class TransportError(TelemetryClientError):
    """Network, DNS or timeout failure."""


class DataNotFoundError(TelemetryClientError):
    """Upstream succeeded but the expected record is absent."""

    http_status = 404

    @property
    def public_message(self) -> str:
        """Return a generic message that is safe to show to dashboard users."""
        label = _VENDOR_LABELS.get(self.vendor, "Upstream")
        return f"{label} data not found in API response."


class UpstreamApplicationError(TelemetryClientError):
    """Upstream returned 2xx with an embedded error code."""

    def __init__(
        self,
        message: str,
        *,
        errno: int | None = None,
        vendor: str | None = None,
        stage: str | None = None,
    ) -> None:
        """Initialize with the upstream error number."""
        super().__init__(message, vendor=vendor, stage=stage)
        self.errno = errno
