"""Pydantic schemas for provider configuration."""

from mysqlprovider.schemas.provider import (
    AwsConfigBlock,
    AzureConfigBlock,
    CustomTLSBlock,
    ProviderConfig,
)

__all__ = [
    "AwsConfigBlock",
    "AzureConfigBlock",
    "CustomTLSBlock",
    "ProviderConfig",
]
