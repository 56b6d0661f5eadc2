"""Application settings loaded from environment variables."""

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Logging
    log_level: str = "INFO"
    audit_log_file: str = ""  # Empty = stdout only

    # Persistence collaborators
    settings_store_backend: str = "json"  # "json" | "memory"
    settings_path: str = "~/.dictation_ai/settings.json"
    secret_store_backend: str = "json"  # "json" | "memory"
    secret_store_path: str = "~/.dictation_ai/secrets.json"

    # AWS shared credential files (same env vars the AWS CLI honours)
    aws_credentials_file: str = Field(
        default="~/.aws/credentials",
        validation_alias=AliasChoices("AWS_SHARED_CREDENTIALS_FILE", "AWS_CREDENTIALS_FILE"),
    )
    aws_config_file: str = Field(
        default="~/.aws/config",
        validation_alias=AliasChoices("AWS_CONFIG_FILE"),
    )
    default_bedrock_region: str = "us-east-1"

    # Request pipeline
    rate_limit_interval: float = 1.0  # Minimum seconds between enhancement calls
    request_timeout: float = 30.0
    connect_timeout: float = 10.0
    max_attempts: int = 3
    initial_retry_delay: float = 1.0  # Doubles after each failed attempt
    enhancement_temperature: float = 0.3
    anthropic_max_tokens: int = 8192
    bedrock_max_tokens: int = 1024

    # Configuration validation
    validation_timeout: float = 5.0
    success_indicator_duration: float = 2.0
    probe_max_tokens: int = 5

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "populate_by_name": True}


@lru_cache
def get_settings() -> Settings:
    return Settings()
