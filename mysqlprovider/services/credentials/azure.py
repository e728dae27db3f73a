"""
Azure AD access token provider for Azure Database for MySQL.

The token is used as the password of a single connection attempt; the
server expects it over the cleartext authentication plugin inside TLS.
"""

import logging
from datetime import datetime, timezone

from azure.core.exceptions import AzureError, ClientAuthenticationError, ServiceRequestError
from azure.identity import CredentialUnavailableError

from mysqlprovider.config import Config
from mysqlprovider.errors import AuthError, ProviderConnectionError
from mysqlprovider.models.connection import ResolvedCredential
from mysqlprovider.models.enums import CredentialSource
from mysqlprovider.services.cloud.azure import ResolvedAzureConfig
from mysqlprovider.utils.context import ConnectContext

logger = logging.getLogger(__name__)


class AzureAdTokenProvider:
    """Service for requesting Azure AD tokens scoped to the MySQL audience."""

    source = CredentialSource.AZURE_AD_TOKEN

    def __init__(self, azure: ResolvedAzureConfig, timeout: float = Config.AZURE_TOKEN_TIMEOUT):
        self._azure = azure
        self._timeout = timeout

    def acquire(self, context: ConnectContext) -> ResolvedCredential:
        """
        Request a new access token.

        Raises:
            AuthError: If the credential chain cannot issue a token
            ProviderConnectionError: If the token endpoint is unreachable or slow
        """
        scope = self._azure.token_scope
        try:
            access_token = context.run(
                lambda: self._azure.credential.get_token(scope),
                self._timeout,
                operation="Azure AD token request",
            )
        except (ClientAuthenticationError, CredentialUnavailableError) as e:
            logger.error(f"Azure AD token request for {scope} failed: {e}")
            raise AuthError(f"Azure AD token request for {scope} failed", original_error=e) from e
        except ServiceRequestError as e:
            logger.warning(f"Azure AD token endpoint unreachable: {e}")
            raise ProviderConnectionError("Azure AD token endpoint unreachable", original_error=e) from e
        except AzureError as e:
            logger.error(f"Azure AD token request for {scope} failed: {e}")
            raise AuthError(f"Azure AD token request for {scope} failed", original_error=e) from e

        logger.debug(f"Acquired Azure AD token for {scope}")
        return ResolvedCredential(
            value=access_token.token,
            source=self.source,
            expires_at=datetime.fromtimestamp(access_token.expires_on, tz=timezone.utc),
        )
