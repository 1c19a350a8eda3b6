"""Application configuration using Pydantic Settings.

Environment Variable Strategy:
- Every field has a local default so the reconciler runs without any .env
- Tolerance overrides for reconciliation live next to the scoring config
  (see services/reconciliation_config.py) and are read from the environment there
"""

from functools import cached_property

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_comma_list(value: str | list[str] | None, default: list[str]) -> list[str]:
    """Parse comma-separated string into list."""
    if value is None:
        return default
    if isinstance(value, list):
        return value
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Record store
    database_url: str = Field(default="sqlite:///./finsnap.db", validation_alias="DATABASE_URL")

    # App settings
    environment: str = Field(
        default="development", validation_alias=AliasChoices("ENVIRONMENT", "ENV")
    )
    debug: bool = False
    base_currency: str = Field(default="USD", validation_alias="BASE_CURRENCY")

    # Words the extraction collaborator should treat as cheque markers
    # Env format: CHEQUE_KEYWORDS="cheque,chq,check"
    cheque_keywords_str: str | None = Field(default=None, validation_alias="CHEQUE_KEYWORDS")

    # Reconciliation config file (YAML); missing file means built-in defaults
    reconciliation_config_path: str | None = Field(
        default=None, validation_alias="RECONCILIATION_CONFIG_PATH"
    )

    @cached_property
    def cheque_keywords(self) -> list[str]:
        """Parse cheque keywords from env string or use defaults."""
        return parse_comma_list(
            self.cheque_keywords_str,
            ["cheque", "chq", "check", "clearing"],
        )


settings = Settings()
