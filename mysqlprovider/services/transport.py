"""
Transport selection.

Parses the endpoint string once and maps it onto one of the closed transport
variants: direct TCP, Unix socket, Cloud SQL connector, or the RDS Data API.
"""

import logging
from typing import Optional, Tuple

from mysqlprovider.config import Config
from mysqlprovider.errors import ConfigError
from mysqlprovider.models.connection import (
    CloudSQLTransport,
    DataApiTransport,
    DirectTCPTransport,
    Transport,
    UnixSocketTransport,
)
from mysqlprovider.models.enums import CloudSQLAttachment, EndpointScheme
from mysqlprovider.schemas.provider import AwsConfigBlock

logger = logging.getLogger(__name__)

SCHEME_SEPARATOR = "://"


def parse_endpoint_scheme(endpoint: str) -> Tuple[EndpointScheme, str]:
    """
    Split an endpoint into its scheme and target.

    Args:
        endpoint: Endpoint string, e.g. "aws://db.example.com:3306"

    Returns:
        Tuple of (scheme, target without the scheme prefix)

    Raises:
        ConfigError: If the endpoint carries an unknown scheme
    """
    if SCHEME_SEPARATOR not in endpoint:
        return EndpointScheme.NONE, endpoint

    prefix, target = endpoint.split(SCHEME_SEPARATOR, 1)
    try:
        scheme = EndpointScheme(prefix.lower())
    except ValueError:
        raise ConfigError(f"Unsupported endpoint scheme '{prefix}://'")
    if scheme is EndpointScheme.NONE:
        raise ConfigError(f"Malformed endpoint '{endpoint}'")
    return scheme, target


def split_host_port(target: str, default_port: int = Config.DEFAULT_PORT) -> Tuple[str, int]:
    """
    Split host[:port], accepting bracketed IPv6 literals.

    Raises:
        ConfigError: If the host is empty or the port is not a valid number
    """
    port_text = None
    if target.startswith("["):
        end = target.find("]")
        if end == -1:
            raise ConfigError(f"Malformed IPv6 endpoint '{target}'")
        host = target[1:end]
        rest = target[end + 1:]
        if rest:
            if not rest.startswith(":"):
                raise ConfigError(f"Malformed endpoint '{target}'")
            port_text = rest[1:]
    elif target.count(":") == 1:
        host, port_text = target.split(":")
    else:
        # bare hostname or unbracketed IPv6 literal
        host = target

    if not host:
        raise ConfigError(f"Endpoint '{target}' has no host")

    if port_text is None:
        return host, default_port
    try:
        port = int(port_text)
    except ValueError:
        raise ConfigError(f"Endpoint '{target}' has an invalid port")
    if not 0 < port < 65536:
        raise ConfigError(f"Endpoint '{target}' port out of range")
    return host, port


def is_socket_path(target: str) -> bool:
    return target.startswith(("/", "./", "../")) or target.endswith(".sock")


def parse_cloudsql_instance(target: str) -> str:
    """
    Normalise a Cloud SQL instance name to project:region:instance.

    Both "p:r:i" and "p/r/i" are accepted; mixing separators is not.

    Raises:
        ConfigError: If the name does not have exactly three parts
    """
    colons = target.count(":")
    slashes = target.count("/")
    if colons == 2 and slashes == 0:
        parts = target.split(":")
    elif slashes == 2 and colons == 0:
        parts = target.split("/")
    else:
        raise ConfigError(
            f"Cloud SQL instance '{target}' must be project:region:instance or project/region/instance"
        )
    if not all(parts):
        raise ConfigError(f"Cloud SQL instance '{target}' has an empty component")
    return ":".join(parts)


def select_transport(
    endpoint: Optional[str],
    private_ip: bool = False,
    aws_block: Optional[AwsConfigBlock] = None,
) -> Tuple[EndpointScheme, Transport]:
    """
    Choose the dial path for a configuration.

    Args:
        endpoint: Endpoint string (may be empty in Data API mode)
        private_ip: Prefer the private Cloud SQL attachment
        aws_block: aws_config block, consulted for Data API mode

    Returns:
        Tuple of (endpoint scheme, transport)

    Raises:
        ConfigError: On a missing endpoint, unknown scheme, or malformed target
    """
    scheme = EndpointScheme.NONE
    if endpoint:
        scheme, target = parse_endpoint_scheme(endpoint.strip())
    else:
        target = ""

    if aws_block is not None and aws_block.use_rds_data_api:
        if not (aws_block.cluster_arn and aws_block.secret_arn):
            raise ConfigError("aws_config: use_rds_data_api requires both cluster_arn and secret_arn")
        if endpoint:
            logger.info("Endpoint is ignored in RDS Data API mode")
        return scheme, DataApiTransport(cluster_arn=aws_block.cluster_arn, secret_arn=aws_block.secret_arn)

    if not target:
        raise ConfigError("endpoint is required (set it or MYSQL_ENDPOINT)")

    if scheme is EndpointScheme.CLOUDSQL:
        attachment = CloudSQLAttachment.PRIVATE if private_ip else CloudSQLAttachment.PUBLIC
        return scheme, CloudSQLTransport(
            instance_connection_name=parse_cloudsql_instance(target),
            attachment=attachment,
        )

    if private_ip:
        logger.warning("private_ip only applies to cloudsql:// endpoints and is ignored")

    if scheme is EndpointScheme.NONE and is_socket_path(target):
        return scheme, UnixSocketTransport(path=target)

    host, port = split_host_port(target)
    return scheme, DirectTCPTransport(host=host, port=port)
