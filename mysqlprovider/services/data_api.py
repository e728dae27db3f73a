"""
RDS Data API query executor.

Every statement is a signed HTTPS request to the rds-data service that
references the cluster ARN and the secret ARN, so there is no socket to
pool and no password in this process. Pool settings are therefore
ignored, and the client says so.
"""

import base64
import logging
import re
import threading
from typing import Any, Dict, List, Mapping, Optional, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from mysqlprovider.errors import ConfigError, ProviderError
from mysqlprovider.models.connection import ConnectionSpec, DataApiTransport
from mysqlprovider.services.capabilities import ServerInfo, probe_server
from mysqlprovider.services.cloud.aws import ResolvedAwsConfig, translate_aws_error

logger = logging.getLogger(__name__)

_PYFORMAT_RE = re.compile(r"%\((\w+)\)s")


def to_named_placeholders(sql: str) -> str:
    """Rewrite pyformat placeholders (%(name)s) to Data API :name placeholders."""
    return _PYFORMAT_RE.sub(r":\1", sql).replace("%%", "%")


def encode_parameter(name: str, value: Any) -> Dict[str, Any]:
    """Encode a Python value as a Data API SqlParameter."""
    if value is None:
        field = {"isNull": True}
    elif isinstance(value, bool):
        field = {"booleanValue": value}
    elif isinstance(value, int):
        field = {"longValue": value}
    elif isinstance(value, float):
        field = {"doubleValue": value}
    elif isinstance(value, (bytes, bytearray)):
        field = {"blobValue": bytes(value)}
    else:
        field = {"stringValue": str(value)}
    return {"name": name, "value": field}


def decode_field(field: Mapping[str, Any]) -> Any:
    """Decode a Data API Field into a Python value."""
    if field.get("isNull"):
        return None
    if "arrayValue" in field:
        array = field["arrayValue"]
        if "arrayValues" in array:
            return [decode_field({"arrayValue": item}) for item in array["arrayValues"]]
        return list(next(iter(array.values()), []))
    if "blobValue" in field:
        blob = field["blobValue"]
        return base64.b64decode(blob) if isinstance(blob, str) else blob
    for key in ("stringValue", "longValue", "doubleValue", "booleanValue"):
        if key in field:
            return field[key]
    return None


class DataApiClient:
    """
    QueryExecutor backed by the RDS Data API.

    Attributes:
        pool_policy_applied: Always False; max_open_conns and
            max_conn_lifetime_sec have no meaning here
    """

    pool_policy_applied = False

    def __init__(self, spec: ConnectionSpec, aws: Optional[ResolvedAwsConfig]):
        if not isinstance(spec.transport, DataApiTransport):
            raise ConfigError("DataApiClient requires a Data API transport")
        if not isinstance(aws, ResolvedAwsConfig):
            raise ConfigError("RDS Data API mode requires an AWS configuration")

        self.cluster_arn = spec.transport.cluster_arn
        self.secret_arn = spec.transport.secret_arn
        self.database = spec.conn_params.get("database") or spec.conn_params.get("db")
        self._aws = aws
        self._server_info: Optional[ServerInfo] = None
        self._probe_lock = threading.Lock()
        self._closed = False

        policy = spec.pool_policy
        if policy.max_open_conns or policy.max_lifetime_seconds:
            logger.info(
                "max_open_conns and max_conn_lifetime_sec are ignored in RDS Data API mode; "
                "requests are stateless"
            )
        logger.info(f"Using RDS Data API for cluster {self.cluster_arn}")

    def _execute_statement(self, sql: str, args: Optional[Mapping[str, Any]], metadata: bool) -> Dict[str, Any]:
        if self._closed:
            raise ProviderError("Data API client is closed")
        self._aws.ensure_role_usable()

        request: Dict[str, Any] = {
            "resourceArn": self.cluster_arn,
            "secretArn": self.secret_arn,
            "sql": to_named_placeholders(sql) if args else sql,
            "includeResultMetadata": metadata,
        }
        if self.database:
            request["database"] = self.database
        if args:
            request["parameters"] = [encode_parameter(name, value) for name, value in args.items()]

        try:
            return self._aws.client("rds-data").execute_statement(**request)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Data API statement on {self.cluster_arn} failed: {e}")
            raise translate_aws_error(e, "Data API statement") from e

    def execute(self, sql: str, args: Optional[Mapping[str, Any]] = None) -> int:
        response = self._execute_statement(sql, args, metadata=False)
        return int(response.get("numberOfRecordsUpdated", 0))

    def _rows(self, sql: str, args: Optional[Mapping[str, Any]] = None) -> Tuple[List[str], List[List[Any]]]:
        response = self._execute_statement(sql, args, metadata=True)
        columns = [column.get("label") or column.get("name") for column in response.get("columnMetadata", [])]
        rows = [[decode_field(field) for field in record] for record in response.get("records", [])]
        return columns, rows

    def query(self, sql: str, args: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        """Run a query and return rows as dictionaries keyed by column label."""
        columns, rows = self._rows(sql, args)
        return [dict(zip(columns, row)) for row in rows]

    def _fetch(self, sql: str) -> List[List[Any]]:
        return self._rows(sql)[1]

    @property
    def server_info(self) -> ServerInfo:
        """Probe lazily; the first access issues the version queries."""
        with self._probe_lock:
            if self._server_info is None:
                self._server_info = probe_server(self._fetch)
            return self._server_info

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True
