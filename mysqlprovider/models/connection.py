"""
Connection data model.

Immutable records produced once per provider instance (ConnectionSpec and the
transport variants) and per connection attempt (ResolvedCredential).
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional, Union

from mysqlprovider.config import Config
from mysqlprovider.models.enums import (
    AuthPlugin,
    CloudSQLAttachment,
    CredentialSource,
    EndpointScheme,
    TLSMode,
    TransportKind,
)
from mysqlprovider.schemas.provider import AwsConfigBlock, AzureConfigBlock, CustomTLSBlock


@dataclass(frozen=True)
class DirectTCPTransport:
    """Plain TCP dial to host:port."""
    host: str
    port: int

    @property
    def kind(self) -> TransportKind:
        return TransportKind.DIRECT_TCP

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class UnixSocketTransport:
    """Unix-domain socket dial."""
    path: str

    @property
    def kind(self) -> TransportKind:
        return TransportKind.DIRECT_UNIX_SOCKET

    @property
    def address(self) -> str:
        return self.path


@dataclass(frozen=True)
class CloudSQLTransport:
    """Dial through the Cloud SQL connector tunnel."""
    instance_connection_name: str
    attachment: CloudSQLAttachment = CloudSQLAttachment.PUBLIC

    @property
    def kind(self) -> TransportKind:
        return TransportKind.CLOUDSQL

    @property
    def address(self) -> str:
        return self.instance_connection_name


@dataclass(frozen=True)
class DataApiTransport:
    """Stateless signed HTTP calls to the RDS Data API."""
    cluster_arn: str
    secret_arn: str

    @property
    def kind(self) -> TransportKind:
        return TransportKind.AWS_DATA_API

    @property
    def address(self) -> str:
        return self.cluster_arn


Transport = Union[DirectTCPTransport, UnixSocketTransport, CloudSQLTransport, DataApiTransport]


@dataclass(frozen=True)
class PoolPolicy:
    """
    Pool sizing and lifetime limits.

    Attributes:
        max_lifetime_seconds: Recycle connections older than this (0 disables)
        max_open_conns: Upper bound on open connections (0 means unlimited)
    """
    max_lifetime_seconds: int = 0
    max_open_conns: int = 0


@dataclass(frozen=True)
class ConnectionSpec:
    """
    Fully resolved connection settings, built once per provider instance.

    The password is kept out of repr; ResolvedCredential carries the
    effective secret of each attempt.
    """
    endpoint: str
    username: str
    transport: Transport
    endpoint_scheme: EndpointScheme = EndpointScheme.NONE
    password: Optional[str] = field(default=None, repr=False)
    tls_mode: TLSMode = TLSMode.OFF
    tls_config_key: Optional[str] = None
    custom_tls: Optional[CustomTLSBlock] = None
    auth_plugin: AuthPlugin = AuthPlugin.NATIVE
    conn_params: Dict[str, str] = field(default_factory=dict)
    pool_policy: PoolPolicy = field(default_factory=PoolPolicy)
    cloud_config: Optional[Union[AwsConfigBlock, AzureConfigBlock]] = None
    private_ip: bool = False
    iam_database_auth: bool = False
    proxy_url: Optional[str] = field(default=None, repr=False)
    connect_retry_timeout_sec: int = Config.CONNECT_RETRY_TIMEOUT

    @property
    def aws_config(self) -> Optional[AwsConfigBlock]:
        if isinstance(self.cloud_config, AwsConfigBlock):
            return self.cloud_config
        return None

    @property
    def azure_config(self) -> Optional[AzureConfigBlock]:
        if isinstance(self.cloud_config, AzureConfigBlock):
            return self.cloud_config
        return None

    @property
    def uses_data_api(self) -> bool:
        return self.transport.kind is TransportKind.AWS_DATA_API


@dataclass(frozen=True)
class ResolvedCredential:
    """
    Secret for a single connection attempt.

    Attributes:
        value: Password or token; never logged
        source: Strategy that produced the value
        expires_at: Expiry instant for tokens, None for static secrets
        username: Overrides the configured user when the secret supplies one
    """
    value: str = field(repr=False)
    source: CredentialSource
    expires_at: Optional[datetime] = None
    username: Optional[str] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at
