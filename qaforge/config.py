"""Process configuration — env-driven.

Centralized settings using pydantic-settings.  Reads from a .env file,
QAFORGE_* environment variables, and the unprefixed variables the test
engines share (BASE_URL, API_BASE_URL, TEST_ENV, CI).
"""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProdConfig(BaseSettings):
    """Process settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export QAFORGE_LOG_LEVEL=DEBUG
        export QAFORGE_RESULTS_ROOT=./test-results
        export TEST_ENV=staging

    Or via .env file::

        QAFORGE_REPORT_ROOT=reports
        CI=true
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="QAFORGE_",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    log_level: str = "INFO"

    # Filesystem layout (None defers to the pipeline config file)
    results_root: Path | None = None
    report_root: Path | None = None
    status_file: Path = Path("test-status.json")
    config_file: Path | None = None

    # Shared with the external engines; recorded in snapshot metadata
    base_url: str = Field(
        default="http://localhost:3000",
        validation_alias=AliasChoices("QAFORGE_BASE_URL", "BASE_URL"),
    )
    api_base_url: str = Field(
        default="http://localhost:3000/api",
        validation_alias=AliasChoices("QAFORGE_API_BASE_URL", "API_BASE_URL"),
    )
    test_env: str = Field(
        default="development",
        validation_alias=AliasChoices("QAFORGE_TEST_ENV", "TEST_ENV"),
    )
    ci: bool = Field(
        default=False,
        validation_alias=AliasChoices("QAFORGE_CI", "CI"),
    )

    @property
    def is_ci(self) -> bool:
        """Whether running under continuous integration."""
        return self.ci

    def engine_environment(self) -> dict[str, str]:
        """Variables passed through to external test engines."""
        return {
            "BASE_URL": self.base_url,
            "API_BASE_URL": self.api_base_url,
            "TEST_ENV": self.test_env,
            "CI": "true" if self.ci else "false",
        }


# Module-level singleton: import as `from qaforge.config import config`
config = ProdConfig()
