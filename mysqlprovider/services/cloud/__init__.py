"""
Cloud configuration resolvers.

Selects the AWS or Azure resolver for a provider configuration; at most one
cloud block is active per provider instance.
"""

from typing import Optional, Union

from mysqlprovider.config import Config
from mysqlprovider.models.enums import EndpointScheme
from mysqlprovider.schemas.provider import ProviderConfig
from mysqlprovider.services.cloud.aws import ResolvedAwsConfig, resolve_aws_config, validate_aws_block
from mysqlprovider.services.cloud.azure import ResolvedAzureConfig, resolve_azure_config


ResolvedCloudConfig = Union[ResolvedAwsConfig, ResolvedAzureConfig]


def resolve_cloud_config(
    config: ProviderConfig,
    scheme: EndpointScheme,
    strict_role_check: Optional[bool] = None,
    settings=Config,
) -> Optional[ResolvedCloudConfig]:
    """
    Resolve the cloud sub-block relevant to this configuration.

    An AWS session is built when aws_config is present or the endpoint uses
    aws://; an Azure credential when azure_config is present or the endpoint
    uses azure://.

    Args:
        config: Provider configuration
        scheme: Endpoint scheme already parsed from the endpoint
        strict_role_check: See resolve_aws_config
        settings: Settings profile handed to the AWS resolver

    Returns:
        The resolved cloud configuration, or None when no cloud is involved
    """
    if config.aws_config is not None or scheme is EndpointScheme.AWS:
        return resolve_aws_config(config.aws_config, strict_role_check, settings)
    if config.azure_config is not None or scheme is EndpointScheme.AZURE:
        return resolve_azure_config(config.azure_config)
    return None


__all__ = [
    "ResolvedAwsConfig",
    "ResolvedAzureConfig",
    "ResolvedCloudConfig",
    "resolve_aws_config",
    "resolve_azure_config",
    "resolve_cloud_config",
    "validate_aws_block",
]
