"""
AWS Secrets Manager backed credential providers.

SecretsManagerPasswordProvider reads the password from a secret on every
connection attempt so rotated secrets are picked up. DataApiCredentialProvider
is the Data API counterpart: the SDK signs each request and the secret is
resolved server side, so no password is produced at all.
"""

import json
import logging
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from mysqlprovider.errors import ConfigError
from mysqlprovider.models.connection import ResolvedCredential
from mysqlprovider.models.enums import CredentialSource
from mysqlprovider.services.cloud.aws import ResolvedAwsConfig, translate_aws_error
from mysqlprovider.utils.context import ConnectContext

logger = logging.getLogger(__name__)


class SecretsManagerPasswordProvider:
    """Service for reading database credentials from a Secrets Manager secret."""

    source = CredentialSource.AWS_SECRETS_MANAGER

    def __init__(self, secret_arn: str, aws: ResolvedAwsConfig):
        if not secret_arn:
            raise ConfigError("aws_config.secret_arn is required for Secrets Manager lookups")
        self.secret_arn = secret_arn
        self._aws = aws

    def acquire(self, context: ConnectContext) -> ResolvedCredential:
        """
        Fetch the current secret value.

        The secret must be a JSON document with a "password" key; a
        "username" key, when present, is returned alongside it.

        Raises:
            AuthError: If access to the secret is denied
            ConfigError: If the secret is missing or malformed
            ProviderConnectionError: If Secrets Manager is unreachable
        """
        context.check("Secrets Manager lookup")
        self._aws.ensure_role_usable()
        try:
            response = self._aws.client("secretsmanager").get_secret_value(SecretId=self.secret_arn)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to read secret {self.secret_arn}: {e}")
            raise translate_aws_error(e, f"Reading secret {self.secret_arn}") from e

        secret_string = response.get("SecretString")
        if not secret_string:
            raise ConfigError(f"Secret {self.secret_arn} has no SecretString")
        try:
            payload = json.loads(secret_string)
        except json.JSONDecodeError:
            raise ConfigError(f"Secret {self.secret_arn} is not a JSON document") from None
        if not isinstance(payload, dict) or "password" not in payload:
            raise ConfigError(f"Secret {self.secret_arn} has no 'password' key")

        username: Optional[str] = payload.get("username")
        return ResolvedCredential(
            value=str(payload["password"]),
            source=self.source,
            username=str(username) if username else None,
        )


class DataApiCredentialProvider:
    """
    Credential provider for RDS Data API mode.

    Requests are SigV4-signed by the SDK and reference the secret ARN, so
    the password never enters this process.
    """

    source = CredentialSource.DATA_API

    def __init__(self, secret_arn: str, configured_password: Optional[str] = None):
        self.secret_arn = secret_arn
        if configured_password:
            logger.warning("password is ignored in RDS Data API mode; the secret_arn supplies credentials")

    def acquire(self, context: ConnectContext) -> ResolvedCredential:
        context.check("Data API credential lookup")
        return ResolvedCredential(value="", source=self.source)
