"""
AWS configuration resolver for the MySQL provider.

Turns an aws_config block into a ready boto3 session:
- Static key pair, named profile or the ambient credential chain
- Optional cross-account role assumption with an eager pre-check
- Validation of the IAM-auth / Data API mode flags

Copyright (c) 2025 Penguin Tech Inc
Licensed under Limited AGPL3
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.credentials import DeferredRefreshableCredentials
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    ProfileNotFound,
    ReadTimeoutError,
)
from botocore.session import get_session

from mysqlprovider.config import Config
from mysqlprovider.errors import AuthError, ConfigError, ProviderConnectionError, ProviderError
from mysqlprovider.schemas.provider import AwsConfigBlock

logger = logging.getLogger(__name__)

ROLE_SESSION_PREFIX = "mysqlprovider"


@dataclass
class ResolvedAwsConfig:
    """
    AWS SDK configuration produced by resolve_aws_config.

    Attributes:
        session: boto3 session carrying region and credentials
        region: Effective region
        block: The validated aws_config block
        client_config: botocore client settings (timeouts, retries)
        role_check_error: Pre-check failure message when role assumption could
            not be verified at resolve time
    """
    session: Any
    region: str
    block: AwsConfigBlock
    client_config: BotoConfig
    role_check_error: Optional[str] = None
    _clients: Dict[str, Any] = field(default_factory=dict, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def client(self, service_name: str):
        """Return a cached service client; creation is serialised, use is thread-safe."""
        with self._lock:
            if service_name not in self._clients:
                self._clients[service_name] = self.session.client(
                    service_name, region_name=self.region, config=self.client_config
                )
            return self._clients[service_name]

    def ensure_role_usable(self) -> None:
        """
        Raise the deferred role-assumption failure, if any.

        Raises:
            AuthError: If the pre-check failed and credentials are still unavailable
        """
        if self.role_check_error is None:
            return
        try:
            self.session.get_credentials().get_frozen_credentials()
        except (BotoCoreError, ClientError) as e:
            raise AuthError(
                f"Assuming role {self.block.role_arn} failed",
                original_error=e,
            ) from e
        self.role_check_error = None


def validate_aws_block(block: AwsConfigBlock) -> None:
    """
    Validate the aws_config block before any network activity.

    Raises:
        ConfigError: On a partial key pair, contradictory mode flags, or a Data
            API configuration missing its ARNs
    """
    if bool(block.access_key) != bool(block.secret_key):
        raise ConfigError("aws_config: access_key and secret_key must be set together")

    if block.use_rds_data_api and block.aws_rds_iam_auth:
        raise ConfigError("aws_config: use_rds_data_api and aws_rds_iam_auth are mutually exclusive")

    if block.use_rds_data_api and not (block.cluster_arn and block.secret_arn):
        raise ConfigError("aws_config: use_rds_data_api requires both cluster_arn and secret_arn")


def build_client_config(settings=Config) -> BotoConfig:
    """Bounded timeouts for every AWS call made by the provider."""
    return BotoConfig(
        connect_timeout=settings.AWS_CONNECT_TIMEOUT,
        read_timeout=settings.AWS_READ_TIMEOUT,
        retries={"max_attempts": settings.AWS_MAX_ATTEMPTS, "mode": "standard"},
    )


def _fetch_assume_role_credentials(
    base_session, role_arn: str, region: str, client_config: BotoConfig
) -> Dict[str, str]:
    """Call STS AssumeRole and return botocore credential metadata."""
    sts = base_session.client("sts", region_name=region, config=client_config)
    response = sts.assume_role(
        RoleArn=role_arn,
        RoleSessionName=f"{ROLE_SESSION_PREFIX}-{int(time.time())}",
    )
    creds = response["Credentials"]
    return {
        "access_key": creds["AccessKeyId"],
        "secret_key": creds["SecretAccessKey"],
        "token": creds["SessionToken"],
        "expiry_time": creds["Expiration"].isoformat(),
    }


def _base_session(block: AwsConfigBlock, region: str):
    kwargs: Dict[str, Any] = {"region_name": region}
    if block.profile:
        kwargs["profile_name"] = block.profile
    if block.access_key:
        kwargs["aws_access_key_id"] = block.access_key
        kwargs["aws_secret_access_key"] = block.secret_key
    try:
        return boto3.Session(**kwargs)
    except ProfileNotFound as e:
        raise ConfigError(f"aws_config: profile '{block.profile}' not found", original_error=e) from e


def _assume_role_session(base_session, block: AwsConfigBlock, region: str, client_config: BotoConfig):
    def refresh() -> Dict[str, str]:
        return _fetch_assume_role_credentials(base_session, block.role_arn, region, client_config)

    credentials = DeferredRefreshableCredentials(refresh_using=refresh, method="sts-assume-role")
    botocore_session = get_session()
    botocore_session._credentials = credentials
    return boto3.Session(botocore_session=botocore_session, region_name=region)


def resolve_aws_config(
    block: Optional[AwsConfigBlock],
    strict_role_check: Optional[bool] = None,
    settings=Config,
) -> ResolvedAwsConfig:
    """
    Resolve an aws_config block into a boto3 session.

    Args:
        block: aws_config block; None yields the ambient default configuration
        strict_role_check: Fail on assume-role pre-check errors instead of
            deferring them to first use (default: settings.STRICT_ROLE_CHECK)
        settings: Settings profile (region default, timeouts, role check)

    Returns:
        ResolvedAwsConfig

    Raises:
        ConfigError: If the block is invalid
        AuthError: If strict_role_check is set and the role cannot be assumed
    """
    block = block or AwsConfigBlock()
    validate_aws_block(block)

    if strict_role_check is None:
        strict_role_check = settings.STRICT_ROLE_CHECK

    region = block.region or settings.AWS_DEFAULT_REGION
    client_config = build_client_config(settings)
    session = _base_session(block, region)
    role_check_error = None

    if block.role_arn:
        session = _assume_role_session(session, block, region, client_config)
        try:
            session.get_credentials().get_frozen_credentials()
            logger.info(f"Assumed AWS role {block.role_arn}")
        except (BotoCoreError, ClientError) as e:
            if strict_role_check:
                logger.error(f"Assume role pre-check failed for {block.role_arn}: {e}")
                raise AuthError(f"Assuming role {block.role_arn} failed", original_error=e) from e
            role_check_error = str(e)
            logger.warning(
                f"Could not verify role {block.role_arn} at resolve time; "
                f"the failure will be reported on first use: {e}"
            )

    logger.info(f"Resolved AWS configuration for region {region}")
    return ResolvedAwsConfig(
        session=session,
        region=region,
        block=block,
        client_config=client_config,
        role_check_error=role_check_error,
    )


# ClientError codes that indicate a rejected identity rather than a bad request
AUTH_ERROR_CODES = {
    "AccessDenied",
    "AccessDeniedException",
    "UnrecognizedClientException",
    "InvalidSignatureException",
    "ExpiredTokenException",
    "ExpiredToken",
    "SignatureDoesNotMatch",
}

# ClientError codes worth retrying
TRANSIENT_ERROR_CODES = {
    "ThrottlingException",
    "TooManyRequestsException",
    "ServiceUnavailable",
    "ServiceUnavailableError",
    "InternalServiceError",
    "InternalFailure",
    "StatementTimeoutException",
}


def translate_aws_error(error: Exception, operation: str) -> ProviderError:
    """
    Map a botocore exception onto the provider error taxonomy.

    Args:
        error: ClientError or BotoCoreError raised by a client call
        operation: Human-readable name of the failed call

    Returns:
        ConfigError, AuthError or ProviderConnectionError
    """
    if isinstance(error, NoCredentialsError):
        return AuthError(f"{operation}: no AWS credentials available", original_error=error)
    if isinstance(error, (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError)):
        return ProviderConnectionError(f"{operation}: AWS endpoint unreachable", original_error=error)
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "")
        if code in AUTH_ERROR_CODES:
            return AuthError(f"{operation}: access denied ({code})", original_error=error)
        if code in TRANSIENT_ERROR_CODES:
            return ProviderConnectionError(f"{operation}: transient AWS error ({code})", original_error=error)
        return ConfigError(f"{operation}: {code or 'request rejected'}", original_error=error)
    return AuthError(f"{operation} failed", original_error=error)
