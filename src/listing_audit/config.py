# ABOUTME: Application configuration using Pydantic Settings for environment variables
# ABOUTME: Provides type-safe access to the listing source, selectors, timeouts and logging config

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from listing_audit.core.models import ListingSelectors


class Config(BaseSettings):
    """Application configuration with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="LISTING_AUDIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore unknown environment variables
    )

    # Source Configuration
    source_url: str = Field(
        default="https://news.ycombinator.com/newest", description="First page of the listing to audit"
    )
    target_count: int = Field(default=100, ge=1, description="Number of records to collect before auditing")

    # Selectors
    item_selector: str = Field(default=".athing", description="CSS selector for each listing item container")
    title_selector: str = Field(default=".titleline > a", description="Title link inside an item container")
    score_selector: str = Field(default=".score", description="Score element inside the metadata row")
    age_selector: str = Field(default=".age", description="Age element inside the metadata row")
    author_selector: str = Field(default=".hnuser", description="Author element inside the metadata row")
    next_page_selector: str = Field(default=".morelink", description="Pagination link to the next page")

    # Timing
    selector_timeout_ms: int = Field(default=10_000, description="How long to wait for listing items to appear")
    quiet_ms: int = Field(default=500, description="Network quiet interval that counts as a settled page")
    quiescence_timeout_ms: int = Field(
        default=30_000, description="Upper bound on waiting for the network to settle after pagination"
    )
    run_deadline_seconds: float = Field(
        default=300.0, description="Overall run deadline; collection stops when it is reached"
    )

    # Browser Configuration
    headless: bool = Field(default=True, description="Run Chromium without a visible window")
    load_attempts: int = Field(default=3, ge=1, description="Attempts for the initial page load")

    # Logging Configuration
    log_mode: Literal["interactive", "production"] = Field(default="interactive", description="Logging output mode")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging verbosity level"
    )

    log_file: Path | None = Field(default=None, description="Custom log file path (overrides default)")

    def selectors(self) -> ListingSelectors:
        """Build the selector set used by the extractor and the browser adapter."""
        return ListingSelectors(
            item=self.item_selector,
            title=self.title_selector,
            score=self.score_selector,
            age=self.age_selector,
            author=self.author_selector,
            next_page=self.next_page_selector,
        )


# Global config instance - lazy loaded when first accessed
_config_instance: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance.

    Creates the config on first access, subsequent calls return the same instance.

    Returns:
        Config: The application configuration instance
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config()
    return _config_instance


def reload_config() -> Config:
    """Reload configuration from environment variables.

    Useful for testing or when environment variables change at runtime.

    Returns:
        Config: A fresh configuration instance
    """
    global _config_instance
    _config_instance = Config()
    return _config_instance
