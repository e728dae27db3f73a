"""
MySQL provider connection layer.

Resolves a declarative configuration block into an authenticated, pooled
MySQL connection across direct TCP, Unix sockets, SOCKS proxies, AWS (IAM
tokens, Secrets Manager, RDS Data API), Azure AD and Google Cloud SQL.
"""

import logging
from typing import Optional

from mysqlprovider.config import get_config
from mysqlprovider.errors import (
    AuthError,
    CancellationError,
    ConfigError,
    ConnectionError,
    ProviderConnectionError,
    ProviderError,
)
from mysqlprovider.provider import MySQLProvider, build_connection_spec
from mysqlprovider.schemas.provider import ProviderConfig
from mysqlprovider.services.capabilities import ServerInfo, ServerVersion
from mysqlprovider.services.connection import QueryExecutor
from mysqlprovider.utils.context import ConnectContext

__version__ = "1.0.0"


def configure_logging(
    level: Optional[str] = None, fmt: Optional[str] = None, config_name: Optional[str] = None
) -> None:
    """Set up root logging for command-line hosts that have not configured it.

    Level and format default to the LOG_LEVEL and LOG_FORMAT of the named settings profile.
    """
    settings = get_config(config_name)
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format=fmt or settings.LOG_FORMAT,
    )


__all__ = [
    "AuthError",
    "CancellationError",
    "ConfigError",
    "ConnectContext",
    "ConnectionError",
    "MySQLProvider",
    "ProviderConfig",
    "ProviderConnectionError",
    "ProviderError",
    "QueryExecutor",
    "ServerInfo",
    "ServerVersion",
    "build_connection_spec",
    "configure_logging",
]
