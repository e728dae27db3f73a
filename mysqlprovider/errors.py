"""Classified exceptions raised by the connection and credential layer."""

from typing import Any, Dict, Optional

from mysqlprovider.utils.security import mask_secrets


class ProviderError(Exception):
    """
    Base exception for provider errors.

    Attributes:
        message: Error message (secrets already masked)
        classification: Error class tag (config, auth, connection, cancelled)
        details: Optional structured context for the host
        original_error: Original exception if wrapped
    """

    classification = "provider"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = mask_secrets(message)
        self.details = details or {}
        self.original_error = original_error
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        return False

    def __str__(self) -> str:
        parts = [f"[{self.classification}] {self.message}"]
        if self.original_error:
            parts.append(f"Original error: {mask_secrets(str(self.original_error))}")
        return " | ".join(parts)


class ConfigError(ProviderError):
    """Raised when configuration is malformed or contradictory."""

    classification = "config"


class AuthError(ProviderError):
    """Raised when a credential cannot be issued or is rejected by the server."""

    classification = "auth"


class ProviderConnectionError(ProviderError):
    """Raised on transient network or dial failures; retried by the factory."""

    classification = "connection"

    @property
    def retryable(self) -> bool:
        return True


class CancellationError(ProviderError):
    """Raised when a connect sequence observes cancellation."""

    classification = "cancelled"


# Public name; the internal one avoids shadowing the builtin inside this package.
ConnectionError = ProviderConnectionError

__all__ = [
    "ProviderError",
    "ConfigError",
    "AuthError",
    "ProviderConnectionError",
    "ConnectionError",
    "CancellationError",
]
