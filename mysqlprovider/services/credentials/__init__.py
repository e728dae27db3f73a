"""
Credentials service package for the MySQL provider.

Provides one credential provider per authentication strategy and the
selection logic that picks exactly one of them for a connection spec.
"""

import logging
from typing import Optional

from mysqlprovider.config import Config
from mysqlprovider.errors import ConfigError
from mysqlprovider.models.connection import CloudSQLTransport, ConnectionSpec, DirectTCPTransport
from mysqlprovider.models.enums import EndpointScheme
from mysqlprovider.services.cloud import ResolvedAwsConfig, ResolvedAzureConfig, ResolvedCloudConfig
from mysqlprovider.services.credentials.azure import AzureAdTokenProvider
from mysqlprovider.services.credentials.base import CredentialProvider
from mysqlprovider.services.credentials.iam import AwsIamTokenProvider
from mysqlprovider.services.credentials.password import CloudSqlIamPasswordProvider, StaticPasswordProvider
from mysqlprovider.services.credentials.secrets_manager import (
    DataApiCredentialProvider,
    SecretsManagerPasswordProvider,
)

logger = logging.getLogger(__name__)


def _warn_ignored_password(spec: ConnectionSpec, strategy: str) -> None:
    if spec.password:
        logger.warning(f"password is ignored; {strategy} supplies the credential")


def select_credential_provider(
    spec: ConnectionSpec,
    cloud: Optional[ResolvedCloudConfig],
    settings=Config,
) -> CredentialProvider:
    """
    Select the single credential strategy for a connection spec.

    Order: Data API, AWS IAM token, Azure AD token, Secrets Manager,
    Cloud SQL IAM pass-through, static password.

    Args:
        spec: Resolved connection spec
        cloud: Resolved cloud configuration, if any
        settings: Settings profile (token request timeout)

    Returns:
        A CredentialProvider

    Raises:
        ConfigError: If the selected strategy lacks a required setting
    """
    aws_block = spec.aws_config

    if spec.uses_data_api:
        return DataApiCredentialProvider(spec.transport.secret_arn, spec.password)

    if (aws_block is not None and aws_block.aws_rds_iam_auth) or spec.endpoint_scheme is EndpointScheme.AWS:
        if not isinstance(cloud, ResolvedAwsConfig):
            raise ConfigError("AWS IAM authentication requires an AWS configuration")
        if not isinstance(spec.transport, DirectTCPTransport):
            raise ConfigError("AWS IAM authentication requires a host:port endpoint")
        _warn_ignored_password(spec, "AWS IAM authentication")
        return AwsIamTokenProvider(spec.transport.host, spec.transport.port, spec.username, cloud)

    if spec.endpoint_scheme is EndpointScheme.AZURE:
        if not isinstance(cloud, ResolvedAzureConfig):
            raise ConfigError("azure:// endpoints require an Azure configuration")
        _warn_ignored_password(spec, "Azure AD authentication")
        return AzureAdTokenProvider(cloud, timeout=settings.AZURE_TOKEN_TIMEOUT)

    if aws_block is not None and aws_block.secret_arn:
        if not isinstance(cloud, ResolvedAwsConfig):
            raise ConfigError("Secrets Manager lookups require an AWS configuration")
        _warn_ignored_password(spec, "the Secrets Manager secret")
        return SecretsManagerPasswordProvider(aws_block.secret_arn, cloud)

    if spec.iam_database_auth:
        if isinstance(spec.transport, CloudSQLTransport):
            return CloudSqlIamPasswordProvider(spec.password)
        logger.warning("iam_database_authentication only applies to cloudsql:// endpoints and is ignored")

    return StaticPasswordProvider(spec.password)


__all__ = [
    "AwsIamTokenProvider",
    "AzureAdTokenProvider",
    "CloudSqlIamPasswordProvider",
    "CredentialProvider",
    "DataApiCredentialProvider",
    "SecretsManagerPasswordProvider",
    "StaticPasswordProvider",
    "select_credential_provider",
]
