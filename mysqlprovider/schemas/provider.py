"""
Pydantic schemas for the provider configuration block.

Provides the declarative input accepted by the provider:
- Top-level connection settings with environment fallbacks
- custom_tls, aws_config and azure_config sub-blocks
"""

import os
from typing import Any, Dict, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from mysqlprovider.errors import ConfigError
from mysqlprovider.models.enums import AuthPlugin, AzureEnvironment


def _env_fallback(names: Sequence[str]) -> Optional[str]:
    """Return the first non-empty environment variable among names."""
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


# Field name -> environment variables consulted when the field is unset
PROVIDER_ENV_FALLBACKS: Dict[str, Sequence[str]] = {
    "endpoint": ("MYSQL_ENDPOINT",),
    "username": ("MYSQL_USERNAME",),
    "password": ("MYSQL_PASSWORD",),
    "tls": ("MYSQL_TLS_CONFIG",),
    "proxy": ("ALL_PROXY", "all_proxy"),
}

AZURE_ENV_FALLBACKS: Dict[str, Sequence[str]] = {
    "client_id": ("AZURE_CLIENT_ID", "ARM_CLIENT_ID"),
    "client_secret": ("AZURE_CLIENT_SECRET", "ARM_CLIENT_SECRET"),
    "tenant_id": ("AZURE_TENANT_ID", "ARM_TENANT_ID"),
    "environment": ("AZURE_ENVIRONMENT", "ARM_ENVIRONMENT"),
}


def _apply_fallbacks(data: Any, fallbacks: Mapping[str, Sequence[str]]) -> Any:
    if not isinstance(data, dict):
        return data
    data = dict(data)
    for field_name, env_names in fallbacks.items():
        if data.get(field_name) is None:
            value = _env_fallback(env_names)
            if value is not None:
                data[field_name] = value
    return data


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


class CustomTLSBlock(BaseModel):
    """Custom TLS material: each value is inline PEM or a filesystem path.

    Attributes:
        config_key: Registry name for the composed TLS configuration
        ca_cert: CA bundle used to verify the server
        client_cert: Client certificate for mutual TLS
        client_key: Private key matching client_cert
    """

    config_key: Optional[str] = Field(None, description="TLS registry key")
    ca_cert: Optional[str] = Field(None, description="CA certificate (PEM or path)")
    client_cert: Optional[str] = Field(None, description="Client certificate (PEM or path)")
    client_key: Optional[str] = Field(None, repr=False, description="Client key (PEM or path)")

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)


class AwsConfigBlock(BaseModel):
    """AWS settings used for IAM auth, Data API and Secrets Manager lookups."""

    region: Optional[str] = Field(None, description="AWS region")
    profile: Optional[str] = Field(None, description="Shared config profile")
    access_key: Optional[str] = Field(None, description="Static access key ID")
    secret_key: Optional[str] = Field(None, repr=False, description="Static secret access key")
    role_arn: Optional[str] = Field(None, description="Role to assume")
    aws_rds_iam_auth: bool = Field(False, description="Use RDS IAM authentication tokens")
    use_rds_data_api: bool = Field(False, description="Use the RDS Data API instead of a socket")
    cluster_arn: Optional[str] = Field(None, description="Aurora cluster ARN (Data API)")
    secret_arn: Optional[str] = Field(None, description="Secrets Manager secret ARN")

    model_config = ConfigDict(frozen=True)

    _strip_identifiers = field_validator(
        "region", "profile", "access_key", "role_arn", "cluster_arn", "secret_arn", mode="before"
    )(_strip)


class AzureConfigBlock(BaseModel):
    """Azure AD settings; empty fields fall back to the default credential chain."""

    client_id: Optional[str] = Field(None, description="Application (client) ID")
    client_secret: Optional[str] = Field(None, repr=False, description="Client secret")
    tenant_id: Optional[str] = Field(None, description="Directory (tenant) ID")
    environment: AzureEnvironment = Field(
        AzureEnvironment.PUBLIC, description="Azure cloud environment"
    )

    model_config = ConfigDict(frozen=True)

    _strip_identifiers = field_validator("client_id", "tenant_id", mode="before")(_strip)

    @model_validator(mode="before")
    @classmethod
    def _fill_from_environment(cls, data: Any) -> Any:
        data = _apply_fallbacks(data, AZURE_ENV_FALLBACKS)
        if isinstance(data, dict) and isinstance(data.get("environment"), str):
            data["environment"] = data["environment"].strip().lower() or "public"
        return data


class ProviderConfig(BaseModel):
    """Schema for the provider configuration block."""

    endpoint: Optional[str] = Field(None, description="host:port, socket path or scheme://target")
    username: Optional[str] = Field(None, description="Database user")
    password: Optional[str] = Field(None, repr=False, description="Static password")
    proxy: Optional[str] = Field(None, description="SOCKS proxy URL")
    tls: str = Field("false", description="false, true, skip-verify or a custom TLS key")
    custom_tls: Optional[CustomTLSBlock] = None
    max_conn_lifetime_sec: int = Field(0, ge=0, description="Recycle connections after N seconds")
    max_open_conns: int = Field(0, ge=0, description="Maximum open connections (0 = unlimited)")
    conn_params: Dict[str, str] = Field(default_factory=dict, description="Driver parameters")
    authentication_plugin: AuthPlugin = Field(AuthPlugin.NATIVE, description="native or cleartext")
    iam_database_authentication: bool = Field(False, description="Cloud SQL IAM authentication")
    private_ip: bool = Field(False, description="Dial Cloud SQL over its private IP")
    connect_retry_timeout_sec: Optional[int] = Field(
        None, gt=0, description="Total dial retry budget (default: CONNECT_RETRY_TIMEOUT)"
    )
    azure_config: Optional[AzureConfigBlock] = None
    aws_config: Optional[AwsConfigBlock] = None

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "endpoint": "my-db.example.com:3306",
                "username": "app",
                "password": "secret",
                "tls": "true",
            }
        },
    )

    # Passwords and conn_params values are kept verbatim
    _strip_identifiers = field_validator("endpoint", "username", "proxy", "tls", mode="before")(_strip)

    @model_validator(mode="before")
    @classmethod
    def _fill_from_environment(cls, data: Any) -> Any:
        data = _apply_fallbacks(data, PROVIDER_ENV_FALLBACKS)
        if isinstance(data, dict) and isinstance(data.get("authentication_plugin"), str):
            data["authentication_plugin"] = data["authentication_plugin"].strip().lower() or "native"
        return data

    @model_validator(mode="after")
    def _single_cloud_block(self) -> "ProviderConfig":
        if self.aws_config is not None and self.azure_config is not None:
            raise ValueError("aws_config and azure_config cannot both be set")
        return self

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ProviderConfig":
        """
        Build a configuration from a plain mapping.

        Args:
            data: Configuration values keyed by field name

        Returns:
            Validated ProviderConfig

        Raises:
            ConfigError: If a field is malformed
        """
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            problems = {
                ".".join(str(loc) for loc in err["loc"]) or "config": err["msg"]
                for err in e.errors()
            }
            raise ConfigError(
                f"Invalid provider configuration: {', '.join(sorted(problems))}",
                details=problems,
            ) from e
