"""
Tests for server version parsing and the capability probe.
"""

import pytest

from mysqlprovider.errors import ProviderError
from mysqlprovider.models.enums import ServerVendor
from mysqlprovider.services.capabilities import (
    BASEDIR_QUERY,
    VERSION_QUERY,
    ServerVersion,
    parse_version_string,
    probe_server,
    server_is_mariadb,
    server_tidb,
    server_version,
)


def fetcher(version, basedir="/usr/"):
    def fetch(sql):
        if sql == VERSION_QUERY:
            return [(version,)]
        if sql == BASEDIR_QUERY:
            if isinstance(basedir, Exception):
                raise basedir
            return [("basedir", basedir)]
        raise AssertionError(f"unexpected query {sql}")

    return fetch


class TestParseVersionString:
    @pytest.mark.parametrize(
        "text, vendor, version, tidb",
        [
            ("8.0.35", ServerVendor.MYSQL, ServerVersion(8, 0, 35), None),
            ("5.7.44-log", ServerVendor.MYSQL, ServerVersion(5, 7, 44), None),
            ("8.0.28-0ubuntu0.20.04.3", ServerVendor.MYSQL, ServerVersion(8, 0, 28), None),
            ("10.6.12-MariaDB-log", ServerVendor.MARIADB, ServerVersion(10, 6, 12), None),
            ("5.5.5-10.11.2-MariaDB", ServerVendor.MARIADB, ServerVersion(10, 11, 2), None),
            ("8.0.11-TiDB-v7.5.0", ServerVendor.TIDB, ServerVersion(8, 0, 11), "7.5.0"),
            ("5.7.25-TiDB-v6.5.0-serverless", ServerVendor.TIDB, ServerVersion(5, 7, 25), "6.5.0"),
        ],
    )
    def test_vendors(self, text, vendor, version, tidb):
        assert parse_version_string(text) == (vendor, version, tidb)

    def test_unparseable(self):
        with pytest.raises(ValueError):
            parse_version_string("unknown")


class TestServerVersion:
    def test_ordering(self):
        assert ServerVersion(8, 0, 11) > ServerVersion(5, 7, 44)
        assert ServerVersion.parse("8.0") == ServerVersion(8, 0, 0)

    def test_str(self):
        assert str(ServerVersion(8, 0, 35)) == "8.0.35"


class TestProbe:
    def test_plain_mysql(self):
        info = probe_server(fetcher("8.0.35"))

        assert info.vendor is ServerVendor.MYSQL
        assert info.version_string == "8.0.35"
        assert not info.is_rds
        assert info.at_least("8.0.0")
        assert not info.at_least("8.1")

    def test_rds_detected_from_basedir(self):
        assert probe_server(fetcher("8.0.35", "/rdsdbbin/mysql-8.0.35.R3/")).is_rds

    def test_basedir_failure_means_not_rds(self):
        info = probe_server(fetcher("8.0.35", ProviderError("denied")))

        assert not info.is_rds

    def test_tidb_uses_mysql_compat_version(self):
        info = probe_server(fetcher("8.0.11-TiDB-v7.5.0"))

        assert info.is_tidb
        assert info.tidb_version == "7.5.0"
        assert info.at_least("8.0.0")

    def test_bytes_version(self):
        assert probe_server(fetcher(b"10.6.12-MariaDB")).is_mariadb

    def test_missing_version(self):
        with pytest.raises(ProviderError):
            probe_server(lambda sql: [])


class TestHelpers:
    def test_server_version(self):
        assert server_version(fetcher("5.7.44-log")) == ServerVersion(5, 7, 44)

    def test_server_tidb(self):
        assert server_tidb(fetcher("8.0.11-TiDB-v7.5.0")) == (True, "7.5.0", "8.0.11")
        assert server_tidb(fetcher("8.0.35")) == (False, None, None)

    def test_server_is_mariadb(self):
        assert server_is_mariadb(fetcher("5.5.5-10.11.2-MariaDB"))
        assert not server_is_mariadb(fetcher("8.0.35"))
