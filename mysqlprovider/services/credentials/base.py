"""Credential provider interface."""

from typing import Protocol, runtime_checkable

from mysqlprovider.models.connection import ResolvedCredential
from mysqlprovider.models.enums import CredentialSource
from mysqlprovider.utils.context import ConnectContext


@runtime_checkable
class CredentialProvider(Protocol):
    """Produces the secret for one connection attempt."""

    source: CredentialSource

    def acquire(self, context: ConnectContext) -> ResolvedCredential:
        """Return a current secret; token strategies mint a new one on every call."""
