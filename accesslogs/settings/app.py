"""Application settings powered by Pydantic BaseSettings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from accesslogs.api.constants import DEFAULT_PAGE_SIZE
from accesslogs.fetch.config import DEFAULT_BASE_URL, FetchConfig, RateLimiterConfig
from accesslogs.fetch.constants import (
    DEFAULT_RATE_LIMIT,
    DEFAULT_RATE_WINDOW_SECONDS,
    DEFAULT_SAFETY_MARGIN,
)
from accesslogs.fetch.models import RetryPolicy
from accesslogs.storage.s3 import DEFAULT_BASE_PATH


class ConfigurationError(Exception):
    """Raised when required configuration is missing or unusable."""


class AppSettings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_key: str = Field(default="", validation_alias="PH_API_KEY")
    api_user: str = Field(default="", validation_alias="PH_API_USER")
    hosting_username: str = Field(default="", validation_alias="HOSTING_USERNAME")
    s3_endpoint: str = Field(default="", validation_alias="S3_ENDPOINT")
    s3_region: str = Field(default="", validation_alias="S3_REGION")

    api_base_url: str = Field(default=DEFAULT_BASE_URL, validation_alias="PH_API_BASE_URL")
    rate_limit: int = Field(
        default=DEFAULT_RATE_LIMIT, ge=1, validation_alias="PH_RATE_LIMIT"
    )
    rate_window_seconds: float = Field(
        default=DEFAULT_RATE_WINDOW_SECONDS, gt=0, validation_alias="PH_RATE_WINDOW_SECONDS"
    )
    rate_safety_margin: int = Field(
        default=DEFAULT_SAFETY_MARGIN, ge=0, validation_alias="PH_RATE_SAFETY_MARGIN"
    )
    max_retries: int = Field(default=3, ge=0, le=10, validation_alias="PH_MAX_RETRIES")
    page_size: int = Field(
        default=DEFAULT_PAGE_SIZE, ge=1, validation_alias="PH_PAGE_SIZE"
    )
    domain_pause_seconds: float = Field(
        default=5.0, ge=0, validation_alias="PH_DOMAIN_PAUSE_SECONDS"
    )
    s3_verify_ssl: bool = Field(default=False, validation_alias="S3_VERIFY_SSL")
    s3_base_path: str = Field(default=DEFAULT_BASE_PATH, validation_alias="S3_BASE_PATH")
    tmp_dir: Path = Field(default=Path("tmp"), validation_alias="LOG_TMP_DIR")

    def missing_run_settings(self) -> list[str]:
        """Names of required environment variables that are unset."""
        required = {
            "PH_API_KEY": self.api_key,
            "PH_API_USER": self.api_user,
            "HOSTING_USERNAME": self.hosting_username,
            "S3_ENDPOINT": self.s3_endpoint,
            "S3_REGION": self.s3_region,
        }
        return [name for name, value in required.items() if not value]

    def require_run_settings(self) -> None:
        """Ensure everything an export run needs is configured.

        Raises:
            ConfigurationError: Naming every missing variable.
        """
        missing = self.missing_run_settings()
        if missing:
            msg = (
                "Missing required environment variables: "
                f"{', '.join(missing)}. Set them in .env or the environment."
            )
            raise ConfigurationError(msg)

    def fetch_config(self) -> FetchConfig:
        """Build the request executor configuration."""
        return FetchConfig(
            base_url=self.api_base_url,
            retry_policy=RetryPolicy(max_retries=self.max_retries),
            rate_limiter=RateLimiterConfig(
                rate_limit=self.rate_limit,
                rate_window_seconds=self.rate_window_seconds,
                safety_margin=self.rate_safety_margin,
            ),
        )


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
