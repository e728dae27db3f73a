"""
AWS RDS IAM authentication token provider.

Tokens are presigned URLs scoped to one hostname, port and user; they are
valid for fifteen minutes and are minted fresh for every connection attempt.
"""

import logging
from datetime import datetime, timedelta, timezone

from botocore.exceptions import BotoCoreError, ClientError

from mysqlprovider.errors import AuthError, ConfigError
from mysqlprovider.models.connection import ResolvedCredential
from mysqlprovider.models.enums import CredentialSource
from mysqlprovider.services.cloud.aws import ResolvedAwsConfig
from mysqlprovider.utils.context import ConnectContext

logger = logging.getLogger(__name__)

TOKEN_VALIDITY = timedelta(minutes=15)


class AwsIamTokenProvider:
    """Service for minting RDS IAM authentication tokens."""

    source = CredentialSource.AWS_IAM_TOKEN

    def __init__(self, host: str, port: int, username: str, aws: ResolvedAwsConfig):
        """
        Initialize the IAM token provider.

        Args:
            host: Exact endpoint hostname the token is signed for
            port: Endpoint port
            username: Database user the token authenticates
            aws: Resolved AWS configuration (session and region)

        Raises:
            ConfigError: If the host or username is missing
        """
        if not host:
            raise ConfigError("aws_rds_iam_auth requires an endpoint hostname")
        if not username:
            raise ConfigError("aws_rds_iam_auth requires a username")
        self.host = host
        self.port = port
        self.username = username
        self._aws = aws

    def acquire(self, context: ConnectContext) -> ResolvedCredential:
        """
        Mint a new IAM authentication token.

        Returns:
            ResolvedCredential with a fifteen minute expiry

        Raises:
            AuthError: If the token cannot be signed
        """
        context.check("IAM token generation")
        self._aws.ensure_role_usable()

        issued_at = datetime.now(timezone.utc)
        try:
            token = self._aws.client("rds").generate_db_auth_token(
                DBHostname=self.host,
                Port=self.port,
                DBUsername=self.username,
                Region=self._aws.region,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to generate IAM auth token for {self.username}@{self.host}:{self.port}: {e}")
            raise AuthError(
                f"IAM auth token generation failed for {self.username}@{self.host}:{self.port}",
                original_error=e,
            ) from e

        logger.debug(f"Generated IAM auth token for {self.username}@{self.host}:{self.port}")
        return ResolvedCredential(
            value=token,
            source=self.source,
            expires_at=issued_at + TOKEN_VALIDITY,
        )
