"""
Azure configuration resolver for the MySQL provider.

Builds the Azure AD credential used to mint access tokens for Azure Database
for MySQL, honouring the sovereign cloud selected by the environment field.

Copyright (c) 2025 Penguin Tech Inc
Licensed under Limited AGPL3
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from azure.identity import AzureAuthorityHosts, ClientSecretCredential, DefaultAzureCredential

from mysqlprovider.models.enums import AzureEnvironment
from mysqlprovider.schemas.provider import AzureConfigBlock

logger = logging.getLogger(__name__)

# Authority host per sovereign cloud
AUTHORITY_HOSTS = {
    AzureEnvironment.PUBLIC: AzureAuthorityHosts.AZURE_PUBLIC_CLOUD,
    AzureEnvironment.CHINA: AzureAuthorityHosts.AZURE_CHINA,
    AzureEnvironment.GERMAN: "login.microsoftonline.de",
    AzureEnvironment.USGOVERNMENT: AzureAuthorityHosts.AZURE_GOVERNMENT,
}

# Token audience of Azure Database for MySQL per sovereign cloud
MYSQL_TOKEN_SCOPES = {
    AzureEnvironment.PUBLIC: "https://ossrdbms-aad.database.windows.net/.default",
    AzureEnvironment.CHINA: "https://ossrdbms-aad.database.chinacloudapi.cn/.default",
    AzureEnvironment.GERMAN: "https://ossrdbms-aad.database.cloudapi.de/.default",
    AzureEnvironment.USGOVERNMENT: "https://ossrdbms-aad.database.usgovcloudapi.net/.default",
}


@dataclass
class ResolvedAzureConfig:
    """
    Azure credential chain and token audience.

    Attributes:
        credential: azure-identity credential object
        environment: Selected sovereign cloud
        authority: Authority host used by the credential
        token_scope: Scope requested when minting MySQL access tokens
        uses_client_secret: True when explicit service principal values were used
    """
    credential: Any
    environment: AzureEnvironment
    authority: str
    token_scope: str
    uses_client_secret: bool

    def close(self) -> None:
        close = getattr(self.credential, "close", None)
        if close is not None:
            close()


def resolve_azure_config(block: Optional[AzureConfigBlock]) -> ResolvedAzureConfig:
    """
    Resolve an azure_config block into a credential chain.

    Explicit client_id, client_secret and tenant_id select a service principal;
    if any of them is empty the ambient chain (workload identity, managed
    identity, Azure CLI) is used instead. No token is fetched here.

    Args:
        block: azure_config block, or None for environment defaults

    Returns:
        ResolvedAzureConfig
    """
    block = block or AzureConfigBlock()
    environment = block.environment
    authority = AUTHORITY_HOSTS[environment]
    scope = MYSQL_TOKEN_SCOPES[environment]

    if block.client_id and block.client_secret and block.tenant_id:
        credential = ClientSecretCredential(
            tenant_id=block.tenant_id,
            client_id=block.client_id,
            client_secret=block.client_secret,
            authority=authority,
        )
        uses_client_secret = True
        logger.info(f"Using Azure service principal {block.client_id} in {environment.value} cloud")
    else:
        kwargs = {"authority": authority}
        if block.client_id:
            kwargs["managed_identity_client_id"] = block.client_id
        credential = DefaultAzureCredential(**kwargs)
        uses_client_secret = False
        logger.info(f"Using Azure default credential chain in {environment.value} cloud")

    return ResolvedAzureConfig(
        credential=credential,
        environment=environment,
        authority=authority,
        token_scope=scope,
        uses_client_secret=uses_client_secret,
    )
