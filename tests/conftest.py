"""
Shared fixtures for the MySQL provider tests.

Provides:
- Environment isolation for the configuration fallbacks
- Self-signed certificate material for TLS tests
- Fake PyMySQL connections and fake AWS clients
"""

from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from mysqlprovider.models.connection import ResolvedCredential
from mysqlprovider.models.enums import CredentialSource
from mysqlprovider.schemas.provider import AwsConfigBlock
from mysqlprovider.services.capabilities import BASEDIR_QUERY, VERSION_QUERY
from mysqlprovider.services.cloud.aws import ResolvedAwsConfig, build_client_config
from mysqlprovider.utils.retry import BackoffPolicy

ISOLATED_ENV_VARS = [
    "MYSQL_ENDPOINT",
    "MYSQL_USERNAME",
    "MYSQL_PASSWORD",
    "MYSQL_TLS_CONFIG",
    "ALL_PROXY",
    "all_proxy",
    "AZURE_CLIENT_ID",
    "ARM_CLIENT_ID",
    "AZURE_CLIENT_SECRET",
    "ARM_CLIENT_SECRET",
    "AZURE_TENANT_ID",
    "ARM_TENANT_ID",
    "AZURE_ENVIRONMENT",
    "ARM_ENVIRONMENT",
    "AWS_PROFILE",
    "AWS_DEFAULT_PROFILE",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Remove provider environment fallbacks so tests see only explicit values."""
    for name in ISOLATED_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def make_cert_and_key(common_name="mysqlprovider-test"):
    """Generate a self-signed EC certificate and its PKCS8 key as PEM bytes."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )
    cert_pem = cert.public_bytes(serialization.Encoding.PEM)
    key_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return cert_pem, key_pem


@pytest.fixture(scope="session")
def cert_pair():
    return make_cert_and_key()


@pytest.fixture(scope="session")
def other_cert_pair():
    return make_cert_and_key("mysqlprovider-other")


@pytest.fixture
def fast_backoff():
    return BackoffPolicy(initial_delay=0.01, backoff=2.0, max_delay=0.02)


# ==================== FAKE PYMYSQL ====================


DEFAULT_RESPONSES = {
    VERSION_QUERY: [("8.0.35",)],
    BASEDIR_QUERY: [("basedir", "/usr/")],
}


class FakeCursor:
    def __init__(self, connection, as_dict=False):
        self.connection = connection
        self.as_dict = as_dict
        self._rows = []

    def execute(self, sql, args=None):
        self.connection.executed.append((sql, args))
        rows = self.connection.responses.get(sql, [])
        if self.as_dict:
            rows = [{"value": row[0]} for row in rows]
        self._rows = list(rows)
        return len(self._rows) or 1

    def fetchall(self):
        return self._rows

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class FakeConnection:
    """Minimal PyMySQL connection double."""

    def __init__(self, responses=None, **kwargs):
        self.responses = dict(DEFAULT_RESPONSES if responses is None else responses)
        self.kwargs = kwargs
        self.executed = []
        self.commits = 0
        self.closed = False
        self.sock = None

    def cursor(self, cursor_class=None):
        return FakeCursor(self, as_dict=cursor_class is not None)

    def connect(self, sock=None):
        self.sock = sock

    def ping(self, reconnect=False):
        if self.closed:
            raise AssertionError("ping on closed connection")

    def commit(self):
        self.commits += 1

    def rollback(self):
        pass

    def close(self):
        self.closed = True


class FakeDriver:
    """Replacement for pymysql.connect that records calls and can fail on demand."""

    def __init__(self, responses=None, failures=None):
        self.responses = responses
        self.failures = list(failures or [])
        self.calls = []
        self.connections = []

    def __call__(self, **kwargs):
        self.calls.append(kwargs)
        if self.failures:
            raise self.failures.pop(0)
        conn = FakeConnection(self.responses, **kwargs)
        self.connections.append(conn)
        return conn


@pytest.fixture
def fake_driver(monkeypatch):
    """Patch pymysql.connect with a FakeDriver."""
    import pymysql

    driver = FakeDriver()
    monkeypatch.setattr(pymysql, "connect", driver)
    return driver


class CountingCredentialProvider:
    """Credential provider that issues a distinct value per call."""

    def __init__(self, source=CredentialSource.AWS_IAM_TOKEN, prefix="token"):
        self.source = source
        self.prefix = prefix
        self.calls = 0

    def acquire(self, context):
        context.check("test credential")
        self.calls += 1
        return ResolvedCredential(value=f"{self.prefix}-{self.calls}", source=self.source)


# ==================== FAKE AWS ====================


class FakeAwsSession:
    def __init__(self, clients):
        self.clients = clients

    def client(self, service_name, region_name=None, config=None):
        return self.clients[service_name]


def make_fake_aws(clients, block=None):
    """ResolvedAwsConfig whose clients are test doubles."""
    return ResolvedAwsConfig(
        session=FakeAwsSession(clients),
        region="us-east-1",
        block=block or AwsConfigBlock(region="us-east-1"),
        client_config=build_client_config(),
    )
