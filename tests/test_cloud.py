"""
Tests for the AWS and Azure configuration resolvers.

Tests cover:
- aws_config validation (key pairs, mode flags, Data API ARNs)
- Region selection and empty blocks
- Assume-role pre-check in soft and strict modes
- botocore error translation
- Azure sovereign cloud selection and credential choice
"""

from datetime import datetime, timedelta, timezone

import pytest
from azure.identity import ClientSecretCredential, DefaultAzureCredential
from botocore.exceptions import ClientError, EndpointConnectionError, NoCredentialsError

from mysqlprovider.config import Config
from mysqlprovider.errors import AuthError, ConfigError, ProviderConnectionError
from mysqlprovider.models.enums import AzureEnvironment, EndpointScheme
from mysqlprovider.schemas.provider import AwsConfigBlock, AzureConfigBlock, ProviderConfig
from mysqlprovider.services.cloud import (
    ResolvedAwsConfig,
    ResolvedAzureConfig,
    resolve_aws_config,
    resolve_azure_config,
    resolve_cloud_config,
)
from mysqlprovider.services.cloud import aws as aws_module
from mysqlprovider.services.cloud.aws import translate_aws_error

ROLE_ARN = "arn:aws:iam::123456789012:role/db-admin"


def client_error(code, operation="AssumeRole"):
    return ClientError({"Error": {"Code": code, "Message": "denied"}}, operation)


class TestAwsValidation:
    """Blocks that can be rejected without the network."""

    def test_access_key_without_secret(self):
        with pytest.raises(ConfigError):
            resolve_aws_config(AwsConfigBlock(access_key="AKIAEXAMPLE"))

    def test_secret_without_access_key(self):
        with pytest.raises(ConfigError):
            resolve_aws_config(AwsConfigBlock(secret_key="secret"))

    def test_data_api_and_iam_auth_exclusive(self):
        block = AwsConfigBlock(
            use_rds_data_api=True,
            aws_rds_iam_auth=True,
            cluster_arn="arn:aws:rds:us-east-1:1:cluster:c",
            secret_arn="arn:aws:secretsmanager:us-east-1:1:secret:s",
        )

        with pytest.raises(ConfigError):
            resolve_aws_config(block)

    def test_data_api_requires_arns(self):
        with pytest.raises(ConfigError):
            resolve_aws_config(AwsConfigBlock(use_rds_data_api=True, secret_arn="arn:aws:secretsmanager:x"))


class TestAwsResolution:
    """Session construction."""

    def test_empty_block_uses_default_region(self):
        resolved = resolve_aws_config(AwsConfigBlock())

        assert resolved.region == Config.AWS_DEFAULT_REGION
        assert resolved.role_check_error is None

    def test_none_block(self):
        assert isinstance(resolve_aws_config(None), ResolvedAwsConfig)

    def test_region_and_static_keys(self):
        resolved = resolve_aws_config(
            AwsConfigBlock(region="eu-west-1", access_key="AKIAEXAMPLE", secret_key="example-secret")
        )

        assert resolved.region == "eu-west-1"
        credentials = resolved.session.get_credentials()
        assert credentials.access_key == "AKIAEXAMPLE"

    def test_unknown_profile(self):
        with pytest.raises(ConfigError):
            resolve_aws_config(AwsConfigBlock(profile="definitely-not-a-profile-xyz"))

    def test_client_config_bounds_timeouts(self):
        resolved = resolve_aws_config(AwsConfigBlock(region="us-east-1"))

        assert resolved.client_config.connect_timeout == Config.AWS_CONNECT_TIMEOUT
        assert resolved.client_config.read_timeout == Config.AWS_READ_TIMEOUT


class TestAssumeRole:
    """Role assumption pre-check."""

    def test_successful_assume_role(self, monkeypatch):
        expiry = datetime.now(timezone.utc) + timedelta(hours=1)

        def fake_fetch(base_session, role_arn, region, client_config):
            assert role_arn == ROLE_ARN
            return {
                "access_key": "ASIAASSUMED",
                "secret_key": "assumed-secret",
                "token": "assumed-token",
                "expiry_time": expiry.isoformat(),
            }

        monkeypatch.setattr(aws_module, "_fetch_assume_role_credentials", fake_fetch)

        resolved = resolve_aws_config(AwsConfigBlock(region="us-east-1", role_arn=ROLE_ARN))

        assert resolved.role_check_error is None
        assert resolved.session.get_credentials().get_frozen_credentials().access_key == "ASIAASSUMED"

    def test_soft_failure_deferred_to_first_use(self, monkeypatch):
        def failing_fetch(*args):
            raise client_error("AccessDenied")

        monkeypatch.setattr(aws_module, "_fetch_assume_role_credentials", failing_fetch)

        resolved = resolve_aws_config(AwsConfigBlock(region="us-east-1", role_arn=ROLE_ARN), strict_role_check=False)

        assert resolved.role_check_error is not None
        with pytest.raises(AuthError):
            resolved.ensure_role_usable()

    def test_strict_failure_is_fatal(self, monkeypatch):
        def failing_fetch(*args):
            raise client_error("AccessDenied")

        monkeypatch.setattr(aws_module, "_fetch_assume_role_credentials", failing_fetch)

        with pytest.raises(AuthError):
            resolve_aws_config(AwsConfigBlock(region="us-east-1", role_arn=ROLE_ARN), strict_role_check=True)


class TestTranslateAwsError:
    """botocore exceptions map onto the provider taxonomy."""

    def test_access_denied(self):
        assert isinstance(translate_aws_error(client_error("AccessDeniedException"), "op"), AuthError)

    def test_throttling_is_retryable(self):
        error = translate_aws_error(client_error("ThrottlingException"), "op")

        assert isinstance(error, ProviderConnectionError)
        assert error.retryable

    def test_unknown_code_is_config(self):
        assert isinstance(translate_aws_error(client_error("ResourceNotFoundException"), "op"), ConfigError)

    def test_no_credentials(self):
        assert isinstance(translate_aws_error(NoCredentialsError(), "op"), AuthError)

    def test_endpoint_unreachable(self):
        error = translate_aws_error(EndpointConnectionError(endpoint_url="https://sts.amazonaws.com"), "op")

        assert isinstance(error, ProviderConnectionError)


class TestAzureResolution:
    """Azure credential and audience selection."""

    @pytest.mark.parametrize(
        "environment, audience_host",
        [
            ("public", "database.windows.net"),
            ("china", "database.chinacloudapi.cn"),
            ("german", "database.cloudapi.de"),
            ("usgovernment", "database.usgovcloudapi.net"),
        ],
    )
    def test_token_scope_per_cloud(self, environment, audience_host):
        resolved = resolve_azure_config(AzureConfigBlock(environment=environment))

        assert audience_host in resolved.token_scope
        assert resolved.token_scope.endswith("/.default")
        resolved.close()

    def test_service_principal(self):
        resolved = resolve_azure_config(
            AzureConfigBlock(client_id="client", client_secret="client-secret", tenant_id="tenant")
        )

        assert resolved.uses_client_secret
        assert isinstance(resolved.credential, ClientSecretCredential)
        resolved.close()

    def test_incomplete_service_principal_uses_default_chain(self):
        resolved = resolve_azure_config(AzureConfigBlock(client_id="client", tenant_id="tenant"))

        assert not resolved.uses_client_secret
        assert isinstance(resolved.credential, DefaultAzureCredential)
        resolved.close()

    def test_unknown_environment_rejected(self):
        with pytest.raises(ConfigError):
            ProviderConfig.from_mapping({"endpoint": "azure://db:3306", "azure_config": {"environment": "mars"}})


class TestResolveCloudConfig:
    """Scheme and block presence select the resolver."""

    def test_no_cloud(self):
        config = ProviderConfig.from_mapping({"endpoint": "db:3306"})

        assert resolve_cloud_config(config, EndpointScheme.NONE) is None

    def test_aws_scheme_without_block(self):
        config = ProviderConfig.from_mapping({"endpoint": "aws://db:3306"})

        assert isinstance(resolve_cloud_config(config, EndpointScheme.AWS), ResolvedAwsConfig)

    def test_azure_scheme_without_block(self):
        config = ProviderConfig.from_mapping({"endpoint": "azure://db:3306"})

        resolved = resolve_cloud_config(config, EndpointScheme.AZURE)

        assert isinstance(resolved, ResolvedAzureConfig)
        assert resolved.environment is AzureEnvironment.PUBLIC
        resolved.close()
