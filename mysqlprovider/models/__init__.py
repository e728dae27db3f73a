"""MySQL provider models package"""

from mysqlprovider.models.enums import (
    AuthPlugin,
    AzureEnvironment,
    CloudSQLAttachment,
    CredentialSource,
    EndpointScheme,
    ServerVendor,
    TLSMode,
    TransportKind,
)

__all__ = [
    "AuthPlugin",
    "AzureEnvironment",
    "CloudSQLAttachment",
    "CredentialSource",
    "EndpointScheme",
    "ServerVendor",
    "TLSMode",
    "TransportKind",
]
