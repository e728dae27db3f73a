"""MySQL provider enumeration types"""

from enum import Enum


class TransportKind(Enum):
    """Concrete dial paths"""
    DIRECT_TCP = "direct_tcp"
    DIRECT_UNIX_SOCKET = "direct_unix_socket"
    CLOUDSQL = "cloudsql"
    AWS_DATA_API = "aws_data_api"


class EndpointScheme(Enum):
    """Endpoint prefixes recognised in the endpoint string"""
    NONE = ""
    AWS = "aws"
    AZURE = "azure"
    CLOUDSQL = "cloudsql"


class CloudSQLAttachment(Enum):
    """Cloud SQL network attachment"""
    PUBLIC = "public"
    PRIVATE = "private"


class TLSMode(Enum):
    """TLS enforcement modes"""
    OFF = "false"
    ON = "true"
    SKIP_VERIFY = "skip-verify"
    CUSTOM = "custom"


class AuthPlugin(Enum):
    """Client authentication plugins"""
    NATIVE = "native"
    CLEARTEXT = "cleartext"


class CredentialSource(Enum):
    """Where the effective secret of a connection attempt came from"""
    STATIC = "static"
    AWS_IAM_TOKEN = "aws_iam_token"
    AWS_SECRETS_MANAGER = "aws_secrets_manager"
    AZURE_AD_TOKEN = "azure_ad_token"
    CLOUDSQL_IAM = "cloudsql_iam"
    DATA_API = "data_api"


class AzureEnvironment(Enum):
    """Azure sovereign clouds"""
    PUBLIC = "public"
    CHINA = "china"
    GERMAN = "german"
    USGOVERNMENT = "usgovernment"


class ServerVendor(Enum):
    """Server dialects detected by the capability probe"""
    MYSQL = "mysql"
    MARIADB = "mariadb"
    TIDB = "tidb"
