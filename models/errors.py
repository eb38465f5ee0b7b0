"""Exception hierarchy for the fleet dashboard."""

from typing import Optional


class FleetError(Exception):
    """Base exception for all fleet dashboard errors."""


class ConfigError(FleetError):
    """Invalid or missing configuration."""


class ValidationError(FleetError):
    """User input rejected before any backend call."""


class BackendError(FleetError):
    """Backend call failed (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class AuthError(BackendError):
    """Sign-in failed or the access token was rejected."""


class WebhookError(FleetError):
    """Webhook POST failed at the network level."""
