import os


class Config:
    """Base configuration class with common settings."""

    # Logging settings
    LOG_LEVEL = os.getenv("MYSQLPROVIDER_LOG_LEVEL", "INFO")
    LOG_FORMAT = os.getenv(
        "MYSQLPROVIDER_LOG_FORMAT",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Dial settings
    CONNECT_TIMEOUT = int(os.getenv("MYSQLPROVIDER_CONNECT_TIMEOUT", "10"))
    READ_TIMEOUT = int(os.getenv("MYSQLPROVIDER_READ_TIMEOUT", "60"))
    CONNECT_RETRY_TIMEOUT = int(os.getenv("MYSQLPROVIDER_CONNECT_RETRY_TIMEOUT", "300"))
    DEFAULT_PORT = 3306

    # Backoff between dial attempts
    RETRY_INITIAL_DELAY = float(os.getenv("MYSQLPROVIDER_RETRY_INITIAL_DELAY", "0.5"))
    RETRY_BACKOFF = float(os.getenv("MYSQLPROVIDER_RETRY_BACKOFF", "2.0"))
    RETRY_MAX_DELAY = float(os.getenv("MYSQLPROVIDER_RETRY_MAX_DELAY", "10.0"))

    # Pool settings used when the configuration leaves them at zero
    POOL_SIZE_UNLIMITED = int(os.getenv("MYSQLPROVIDER_POOL_SIZE", "5"))
    POOL_TIMEOUT = int(os.getenv("MYSQLPROVIDER_POOL_TIMEOUT", "30"))

    # Cloud SDK settings
    AWS_DEFAULT_REGION = os.getenv("AWS_REGION", os.getenv("AWS_DEFAULT_REGION", "us-east-1"))
    AWS_CONNECT_TIMEOUT = int(os.getenv("MYSQLPROVIDER_AWS_CONNECT_TIMEOUT", "10"))
    AWS_READ_TIMEOUT = int(os.getenv("MYSQLPROVIDER_AWS_READ_TIMEOUT", "60"))
    AWS_MAX_ATTEMPTS = int(os.getenv("MYSQLPROVIDER_AWS_MAX_ATTEMPTS", "3"))
    AZURE_TOKEN_TIMEOUT = int(os.getenv("MYSQLPROVIDER_AZURE_TOKEN_TIMEOUT", "30"))
    CLOUDSQL_CONNECT_TIMEOUT = int(os.getenv("MYSQLPROVIDER_CLOUDSQL_CONNECT_TIMEOUT", "30"))

    # Freshly issued IAM/AD tokens may be rejected until they propagate
    TOKEN_REJECTION_RETRIES = int(os.getenv("MYSQLPROVIDER_TOKEN_REJECTION_RETRIES", "2"))

    # Fail resolution when the assume-role pre-check cannot retrieve credentials
    STRICT_ROLE_CHECK = os.getenv("MYSQLPROVIDER_STRICT_ROLE_CHECK", "False").lower() == "true"


class DevelopmentConfig(Config):
    """Development configuration."""

    LOG_LEVEL = os.getenv("MYSQLPROVIDER_LOG_LEVEL", "DEBUG")


class TestingConfig(Config):
    """Testing configuration."""

    CONNECT_TIMEOUT = 1
    CONNECT_RETRY_TIMEOUT = 2
    RETRY_INITIAL_DELAY = 0.01
    RETRY_MAX_DELAY = 0.05
    STRICT_ROLE_CHECK = False


class ProductionConfig(Config):
    """Production configuration."""

    LOG_LEVEL = os.getenv("MYSQLPROVIDER_LOG_LEVEL", "WARNING")


# Configuration dictionary for easy selection
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": Config,
}


def get_config(config_name=None):
    """Get configuration class based on environment.

    Args:
        config_name: Configuration name ('development', 'testing', 'production').
                    If None, uses MYSQLPROVIDER_ENV environment variable or defaults to 'default'.

    Returns:
        Configuration class.
    """
    if config_name is None:
        config_name = os.getenv("MYSQLPROVIDER_ENV", "default")

    config_class = config.get(config_name, Config)
    return config_class
