"""
MySQL provider lifecycle.

Resolves a provider configuration block once into a ConnectionSpec, a TLS
configuration, a cloud configuration and a credential provider, then hands
out a single pooled query executor to resource reconcilers. Everything the
instance owns (TLS registry, pool, cloud credentials) is released on close().
"""

import logging
import threading
from typing import Any, Iterable, Mapping, Optional, Tuple, Union

from mysqlprovider.config import Config, get_config
from mysqlprovider.errors import ConfigError
from mysqlprovider.models.connection import ConnectionSpec, PoolPolicy
from mysqlprovider.models.enums import EndpointScheme
from mysqlprovider.schemas.provider import AwsConfigBlock, AzureConfigBlock, ProviderConfig
from mysqlprovider.services.cloud import (
    ResolvedAzureConfig,
    ResolvedCloudConfig,
    resolve_cloud_config,
    validate_aws_block,
)
from mysqlprovider.services.connection import QueryExecutor, connect, parse_proxy_url
from mysqlprovider.services.credentials import CredentialProvider, select_credential_provider
from mysqlprovider.services.tls import TLSConfig, TLSRegistry, resolve_tls
from mysqlprovider.services.transport import select_transport
from mysqlprovider.utils.context import ConnectContext
from mysqlprovider.utils.retry import BackoffPolicy
from mysqlprovider.utils.security import SecretScope

logger = logging.getLogger(__name__)


def build_connection_spec(
    config: ProviderConfig,
    registry: TLSRegistry,
    strict_role_check: Optional[bool] = None,
    settings=Config,
    secrets: Optional[SecretScope] = None,
) -> Tuple[ConnectionSpec, TLSConfig, Optional[ResolvedCloudConfig]]:
    """
    Resolve a configuration block into a ConnectionSpec.

    Local validation (cloud block flags, endpoint, TLS material) runs before
    the cloud resolver, which may contact STS for a role pre-check.

    Args:
        config: Validated provider configuration
        registry: TLS registry of the owning provider instance
        strict_role_check: See resolve_aws_config
        settings: Settings profile (timeouts, retry budget, role check)
        secrets: Scope that owns the registered passwords; without one they
            stay masked for the life of the process

    Returns:
        Tuple of (spec, TLS configuration, resolved cloud configuration)

    Raises:
        ConfigError: On any malformed or contradictory setting
        AuthError: If strict_role_check is set and the role cannot be assumed
    """
    if config.aws_config is not None:
        validate_aws_block(config.aws_config)

    scheme, transport = select_transport(config.endpoint, config.private_ip, config.aws_config)
    tls = resolve_tls(config.tls, config.custom_tls, registry)

    aws_block = config.aws_config
    has_secret = aws_block is not None and bool(aws_block.secret_arn)
    if not config.username and not has_secret:
        raise ConfigError("username is required (set it or MYSQL_USERNAME)")

    secrets = secrets if secrets is not None else SecretScope()
    if config.password:
        secrets.register(config.password)
    if config.proxy:
        proxy = parse_proxy_url(config.proxy)
        if proxy.password:
            secrets.register(proxy.password)

    cloud_block: Optional[Union[AwsConfigBlock, AzureConfigBlock]] = config.aws_config or config.azure_config
    if cloud_block is None and scheme is EndpointScheme.AWS:
        cloud_block = AwsConfigBlock()
    elif cloud_block is None and scheme is EndpointScheme.AZURE:
        cloud_block = AzureConfigBlock()

    cloud = resolve_cloud_config(config, scheme, strict_role_check, settings)

    spec = ConnectionSpec(
        endpoint=config.endpoint or "",
        username=config.username or "",
        transport=transport,
        endpoint_scheme=scheme,
        password=config.password,
        tls_mode=tls.mode,
        tls_config_key=tls.key,
        custom_tls=config.custom_tls,
        auth_plugin=config.authentication_plugin,
        conn_params=dict(config.conn_params),
        pool_policy=PoolPolicy(
            max_lifetime_seconds=config.max_conn_lifetime_sec,
            max_open_conns=config.max_open_conns,
        ),
        cloud_config=cloud_block,
        private_ip=config.private_ip,
        iam_database_auth=config.iam_database_authentication,
        proxy_url=config.proxy,
        connect_retry_timeout_sec=config.connect_retry_timeout_sec or settings.CONNECT_RETRY_TIMEOUT,
    )
    logger.info(f"Resolved {transport.kind.value} connection to {transport.address} (tls={tls.key})")
    return spec, tls, cloud


class MySQLProvider:
    """
    One configured MySQL provider instance.

    Example:
        with MySQLProvider({"endpoint": "db:3306", "username": "app", "password": "..."}) as provider:
            executor = provider.connect()
            executor.query("SELECT 1")
    """

    def __init__(
        self,
        config: Union[ProviderConfig, Mapping[str, Any]],
        strict_role_check: Optional[bool] = None,
        config_name: Optional[str] = None,
        tls_configs: Iterable[TLSConfig] = (),
    ):
        """
        Resolve the configuration. No database connection is made here.

        Args:
            config: ProviderConfig or a plain mapping of configuration values
            strict_role_check: Fail construction if an assumed role cannot be used
            config_name: Settings profile ('development', 'testing', 'production')
            tls_configs: Named TLS configurations the tls setting may refer to

        Raises:
            ConfigError: On invalid configuration
            AuthError: If strict_role_check is set and the role cannot be assumed
        """
        self.settings = get_config(config_name)
        if not isinstance(config, ProviderConfig):
            config = ProviderConfig.from_mapping(config)
        self.config = config
        self.tls_registry = TLSRegistry()
        for tls_config in tls_configs:
            self.tls_registry.register(tls_config)
        self.secrets = SecretScope()

        self.cloud: Optional[ResolvedCloudConfig] = None
        try:
            self.spec, self.tls, self.cloud = build_connection_spec(
                config, self.tls_registry, strict_role_check, self.settings, self.secrets
            )
            self.credentials: CredentialProvider = select_credential_provider(self.spec, self.cloud, self.settings)
        except Exception:
            if isinstance(self.cloud, ResolvedAzureConfig):
                self.cloud.close()
            self.tls_registry.close()
            self.secrets.release()
            raise

        self._executor: Optional[QueryExecutor] = None
        self._lock = threading.Lock()
        self._closed = False

    def backoff(self) -> BackoffPolicy:
        return BackoffPolicy(
            self.settings.RETRY_INITIAL_DELAY,
            self.settings.RETRY_BACKOFF,
            self.settings.RETRY_MAX_DELAY,
        )

    def connect(self, timeout: Optional[float] = None, cancel_event: Optional[threading.Event] = None) -> QueryExecutor:
        """
        Return the shared query executor, connecting on first use.

        Args:
            timeout: Retry budget in seconds (default: connect_retry_timeout_sec)
            cancel_event: Event that cancels the connect sequence when set

        Returns:
            QueryExecutor

        Raises:
            ConfigError, AuthError, ProviderConnectionError, CancellationError
        """
        with self._lock:
            if self._closed:
                raise ConfigError("Provider is closed")
            if self._executor is None:
                context = ConnectContext(
                    timeout=timeout if timeout is not None else self.spec.connect_retry_timeout_sec,
                    cancel_event=cancel_event,
                )
                self._executor = connect(
                    self.spec,
                    self.credentials,
                    self.tls,
                    cloud=self.cloud,
                    context=context,
                    backoff=self.backoff(),
                    settings=self.settings,
                )
            return self._executor

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the pool, cloud credentials and TLS registry."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._executor is not None:
                self._executor.close()
                self._executor = None
            if isinstance(self.cloud, ResolvedAzureConfig):
                self.cloud.close()
            self.tls_registry.close()
            self.secrets.release()
            logger.info("MySQL provider closed")

    def __enter__(self) -> "MySQLProvider":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
