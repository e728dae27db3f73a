"""
Server capability probing.

Runs once after the first successful connection and records the server
version, the vendor dialect (MySQL, MariaDB, TiDB) and whether the server
is an Amazon RDS instance, so resource reconcilers can branch on dialect
without issuing their own queries.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, Tuple

from mysqlprovider.errors import ProviderError
from mysqlprovider.models.enums import ServerVendor

logger = logging.getLogger(__name__)

VERSION_QUERY = "SELECT @@GLOBAL.version"
BASEDIR_QUERY = "SHOW VARIABLES WHERE Variable_name = 'basedir'"

# MariaDB prepends this to the handshake version for old clients
MARIADB_REPLICATION_PREFIX = "5.5.5-"
RDS_BASEDIR_MARKER = "rdsdbbin"

_VERSION_RE = re.compile(r"^(\d+)\.(\d+)(?:\.(\d+))?")
_TIDB_RE = re.compile(r"-TiDB-v?(\d+\.\d+(?:\.\d+)?)")

Fetch = Callable[[str], Sequence[Sequence[Any]]]


@dataclass(frozen=True, order=True)
class ServerVersion:
    """Numeric major.minor.patch version."""
    major: int
    minor: int
    patch: int = 0

    @classmethod
    def parse(cls, text: str) -> "ServerVersion":
        """
        Parse the leading numeric version of a version string.

        Raises:
            ValueError: If text does not start with a version number
        """
        match = _VERSION_RE.match(text.strip())
        if not match:
            raise ValueError(f"Unrecognised version string: {text!r}")
        return cls(int(match.group(1)), int(match.group(2)), int(match.group(3) or 0))

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


@dataclass(frozen=True)
class ServerInfo:
    """
    Result of the capability probe.

    Attributes:
        version_string: Raw @@GLOBAL.version
        version: Parsed version (the MySQL compatibility version on TiDB)
        vendor: Detected dialect
        is_rds: True on Amazon RDS, where SUPER is unavailable
        tidb_version: TiDB release for TiDB servers
    """
    version_string: str
    version: ServerVersion
    vendor: ServerVendor = ServerVendor.MYSQL
    is_rds: bool = False
    tidb_version: Optional[str] = None

    @property
    def is_mariadb(self) -> bool:
        return self.vendor is ServerVendor.MARIADB

    @property
    def is_tidb(self) -> bool:
        return self.vendor is ServerVendor.TIDB

    def at_least(self, min_version: str) -> bool:
        """Compare against a minimum MySQL version, e.g. "8.0.0"."""
        return self.version >= ServerVersion.parse(min_version)


def parse_version_string(version_string: str) -> Tuple[ServerVendor, ServerVersion, Optional[str]]:
    """
    Classify a version string.

    Examples:
        "8.0.35-log" -> MySQL 8.0.35
        "5.5.5-10.6.12-MariaDB" -> MariaDB 10.6.12
        "8.0.11-TiDB-v7.5.0" -> TiDB 7.5.0, MySQL compatibility 8.0.11

    Returns:
        Tuple of (vendor, version, tidb_version)
    """
    if "TiDB" in version_string:
        match = _TIDB_RE.search(version_string)
        tidb_version = match.group(1) if match else None
        return ServerVendor.TIDB, ServerVersion.parse(version_string), tidb_version

    if "MariaDB" in version_string:
        text = version_string
        if text.startswith(MARIADB_REPLICATION_PREFIX):
            text = text[len(MARIADB_REPLICATION_PREFIX):]
        return ServerVendor.MARIADB, ServerVersion.parse(text), None

    return ServerVendor.MYSQL, ServerVersion.parse(version_string), None


def _first_value(rows: Sequence[Sequence[Any]], column: int = 0) -> Optional[Any]:
    if not rows:
        return None
    value = rows[0][column]
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", errors="replace")
    return value


def server_version_string(fetch: Fetch) -> str:
    """Return the raw @@GLOBAL.version reported by the server."""
    value = _first_value(fetch(VERSION_QUERY))
    if not value:
        raise ProviderError("Server did not report a version")
    return str(value)


def server_version(fetch: Fetch) -> ServerVersion:
    """Return the MySQL-compatible version of the server."""
    return parse_version_string(server_version_string(fetch))[1]


def server_tidb(fetch: Fetch) -> Tuple[bool, Optional[str], Optional[str]]:
    """
    Detect TiDB.

    Returns:
        Tuple of (is_tidb, tidb_version, mysql_compat_version)
    """
    vendor, version, tidb_version = parse_version_string(server_version_string(fetch))
    if vendor is not ServerVendor.TIDB:
        return False, None, None
    return True, tidb_version, str(version)


def server_is_mariadb(fetch: Fetch) -> bool:
    return parse_version_string(server_version_string(fetch))[0] is ServerVendor.MARIADB


def server_is_rds(fetch: Fetch) -> bool:
    """Detect RDS from its install directory; failures count as not RDS."""
    try:
        basedir = _first_value(fetch(BASEDIR_QUERY), column=1)
    except ProviderError as e:
        logger.warning(f"Could not read basedir for RDS detection: {e.message}")
        return False
    return bool(basedir) and RDS_BASEDIR_MARKER in str(basedir)


def probe_server(fetch: Fetch) -> ServerInfo:
    """
    Run the one-shot capability probe.

    Args:
        fetch: Callable running a query and returning its rows as sequences

    Returns:
        ServerInfo
    """
    version_string = server_version_string(fetch)
    try:
        vendor, version, tidb_version = parse_version_string(version_string)
    except ValueError as e:
        raise ProviderError(f"Cannot parse server version '{version_string}'", original_error=e) from e

    info = ServerInfo(
        version_string=version_string,
        version=version,
        vendor=vendor,
        is_rds=server_is_rds(fetch),
        tidb_version=tidb_version,
    )
    logger.info(
        f"Connected to {vendor.value} {version} (rds={info.is_rds}"
        f"{', tidb=' + tidb_version if tidb_version else ''})"
    )
    return info
