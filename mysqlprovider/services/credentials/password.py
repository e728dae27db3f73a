"""
Password credential providers.

Static passwords are immutable and shared by every connection attempt.
Cloud SQL IAM database authentication passes a caller-supplied OAuth2 token
through unchanged.
"""

import logging
from typing import Optional

from mysqlprovider.models.connection import ResolvedCredential
from mysqlprovider.models.enums import CredentialSource
from mysqlprovider.utils.context import ConnectContext

logger = logging.getLogger(__name__)

# Google OAuth2 access tokens carry this prefix
OAUTH2_ACCESS_TOKEN_PREFIX = "ya29."


class StaticPasswordProvider:
    """
    Provider for a statically configured password.

    An empty password is valid and means passwordless authentication.
    """

    source = CredentialSource.STATIC

    def __init__(self, password: Optional[str]):
        """Initialize the static password provider."""
        self._credential = ResolvedCredential(value=password or "", source=self.source)

    def acquire(self, context: ConnectContext) -> ResolvedCredential:
        context.check("password lookup")
        return self._credential


class CloudSqlIamPasswordProvider:
    """
    Provider for Cloud SQL IAM database authentication.

    The caller supplies a short-lived OAuth2 token in the password field, or
    leaves it empty and lets the connector mint one. No token is minted here.
    """

    source = CredentialSource.CLOUDSQL_IAM

    def __init__(self, password: Optional[str]):
        """Initialize the Cloud SQL IAM provider and flag static-looking passwords."""
        self._credential = ResolvedCredential(value=password or "", source=self.source)
        if password and not looks_like_oauth2_token(password):
            logger.warning(
                "iam_database_authentication is enabled but the password does not look like "
                "an OAuth2 access token; Cloud SQL will reject a static password"
            )

    def acquire(self, context: ConnectContext) -> ResolvedCredential:
        context.check("Cloud SQL IAM credential lookup")
        return self._credential


def looks_like_oauth2_token(value: str) -> bool:
    return value.startswith(OAUTH2_ACCESS_TOKEN_PREFIX)
