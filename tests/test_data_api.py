"""
Tests for the RDS Data API executor.
"""

import logging

import pytest
from botocore.exceptions import ClientError

from conftest import make_fake_aws
from mysqlprovider.errors import AuthError, ConfigError
from mysqlprovider.models.connection import ConnectionSpec, DataApiTransport, PoolPolicy
from mysqlprovider.schemas.provider import AwsConfigBlock
from mysqlprovider.services.capabilities import BASEDIR_QUERY, VERSION_QUERY
from mysqlprovider.services.connection import QueryExecutor, connect
from mysqlprovider.services.credentials import DataApiCredentialProvider
from mysqlprovider.services.data_api import DataApiClient, decode_field, encode_parameter, to_named_placeholders
from mysqlprovider.services.tls import TLSConfig
from mysqlprovider.models.enums import TLSMode

CLUSTER_ARN = "arn:aws:rds:us-east-1:123456789012:cluster:app"
SECRET_ARN = "arn:aws:secretsmanager:us-east-1:123456789012:secret:app-AbCdEf"
BLOCK = AwsConfigBlock(use_rds_data_api=True, cluster_arn=CLUSTER_ARN, secret_arn=SECRET_ARN)


class FakeRdsDataClient:
    def __init__(self, error=None):
        self.requests = []
        self.error = error

    def execute_statement(self, **request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        sql = request["sql"]
        if sql == VERSION_QUERY:
            return {
                "columnMetadata": [{"label": "@@GLOBAL.version", "name": "@@GLOBAL.version"}],
                "records": [[{"stringValue": "8.0.28"}]],
            }
        if sql == BASEDIR_QUERY:
            return {
                "columnMetadata": [{"label": "Variable_name"}, {"label": "Value"}],
                "records": [[{"stringValue": "basedir"}, {"stringValue": "/rdsdbbin/aurora/"}]],
            }
        return {"numberOfRecordsUpdated": 2, "columnMetadata": [], "records": []}


def make_spec(pool_policy=None, conn_params=None):
    return ConnectionSpec(
        endpoint="",
        username="",
        transport=DataApiTransport(CLUSTER_ARN, SECRET_ARN),
        cloud_config=BLOCK,
        pool_policy=pool_policy or PoolPolicy(),
        conn_params=conn_params or {},
    )


class TestDataApiClient:
    def test_pool_policy_ignored_with_notice(self, caplog):
        rds_data = FakeRdsDataClient()
        spec = make_spec(PoolPolicy(max_lifetime_seconds=60, max_open_conns=5))

        with caplog.at_level(logging.INFO):
            executor = connect(
                spec,
                DataApiCredentialProvider(SECRET_ARN),
                TLSConfig(key="false", mode=TLSMode.OFF),
                cloud=make_fake_aws({"rds-data": rds_data}, BLOCK),
            )

        assert isinstance(executor, DataApiClient)
        assert isinstance(executor, QueryExecutor)
        assert executor.pool_policy_applied is False
        assert "ignored in RDS Data API mode" in caplog.text
        assert rds_data.requests == []

    def test_lazy_probe(self):
        rds_data = FakeRdsDataClient()
        client = DataApiClient(make_spec(), make_fake_aws({"rds-data": rds_data}, BLOCK))

        info = client.server_info

        assert info.version_string == "8.0.28"
        assert info.is_rds
        assert client.server_info is info
        assert len(rds_data.requests) == 2

    def test_execute_with_parameters(self):
        rds_data = FakeRdsDataClient()
        client = DataApiClient(make_spec(conn_params={"database": "app"}), make_fake_aws({"rds-data": rds_data}, BLOCK))

        affected = client.execute("UPDATE t SET a = %(a)s WHERE id = %(id)s", {"a": None, "id": 7})

        request = rds_data.requests[0]
        assert affected == 2
        assert request["resourceArn"] == CLUSTER_ARN
        assert request["secretArn"] == SECRET_ARN
        assert request["database"] == "app"
        assert request["sql"] == "UPDATE t SET a = :a WHERE id = :id"
        assert request["parameters"] == [
            {"name": "a", "value": {"isNull": True}},
            {"name": "id", "value": {"longValue": 7}},
        ]

    def test_query_rows_as_dicts(self):
        client = DataApiClient(make_spec(), make_fake_aws({"rds-data": FakeRdsDataClient()}, BLOCK))

        assert client.query(BASEDIR_QUERY) == [{"Variable_name": "basedir", "Value": "/rdsdbbin/aurora/"}]

    def test_access_denied(self):
        error = ClientError({"Error": {"Code": "AccessDeniedException", "Message": "no"}}, "ExecuteStatement")
        client = DataApiClient(make_spec(), make_fake_aws({"rds-data": FakeRdsDataClient(error)}, BLOCK))

        with pytest.raises(AuthError):
            client.execute("SELECT 1")

    def test_requires_aws_configuration(self):
        with pytest.raises(ConfigError):
            DataApiClient(make_spec(), None)


class TestEncoding:
    def test_placeholders(self):
        assert to_named_placeholders("SELECT %(a)s LIKE 'x%%'") == "SELECT :a LIKE 'x%'"

    @pytest.mark.parametrize(
        "value, field",
        [
            (True, {"booleanValue": True}),
            (3, {"longValue": 3}),
            (1.5, {"doubleValue": 1.5}),
            (b"\x00", {"blobValue": b"\x00"}),
            ("text", {"stringValue": "text"}),
        ],
    )
    def test_encode(self, value, field):
        assert encode_parameter("p", value) == {"name": "p", "value": field}

    def test_decode(self):
        assert decode_field({"isNull": True}) is None
        assert decode_field({"longValue": 4}) == 4
        assert decode_field({"arrayValue": {"stringValues": ["a", "b"]}}) == ["a", "b"]
