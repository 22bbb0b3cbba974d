"""Crawler settings loaded from environment variables.

Uses Pydantic Settings v2 for validated, type-safe configuration.
Browser and retry tuning is read exclusively through this module; never
call ``os.getenv`` directly elsewhere in the codebase.

Every field maps to a ``CRAWLER_``-prefixed variable, e.g.::

    CRAWLER_HEADLESS=false CRAWLER_TIMEOUT=60000 python -m page_harvester run

Usage::

    from page_harvester.config.settings import get_settings

    settings = get_settings()
    timeout_ms = settings.timeout
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from page_harvester.crawler.config import (
    BROWSER_LAUNCH_ARGS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_TIMEOUT_MS,
    DEFAULT_VIEWPORT_HEIGHT,
    DEFAULT_VIEWPORT_WIDTH,
    USER_AGENT,
)


class Settings(BaseSettings):
    """Crawler-wide configuration backed by environment variables and an optional .env file.

    All fields have defaults suitable for unattended production runs
    (headless browser, 30 s navigation timeout).  Override them per
    environment rather than per call site.
    """

    model_config = SettingsConfigDict(
        env_prefix="CRAWLER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Browser
    # ------------------------------------------------------------------

    headless: bool = True
    """Launch Chromium without a visible window.  Set to ``False`` to watch a crawl."""

    timeout: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    """Default navigation / readiness timeout in milliseconds.

    A rule set's own ``timeout_ms`` takes precedence when present.
    """

    viewport_width: int = Field(default=DEFAULT_VIEWPORT_WIDTH, gt=0)
    """Browsing context viewport width in CSS pixels."""

    viewport_height: int = Field(default=DEFAULT_VIEWPORT_HEIGHT, gt=0)
    """Browsing context viewport height in CSS pixels."""

    user_agent: str = USER_AGENT
    """User-agent string presented by both the browser process and the context."""

    # ------------------------------------------------------------------
    # Retry policy
    # ------------------------------------------------------------------

    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=1)
    """Total number of attempts per URL when a rule set does not override it."""

    retry_delay_ms: int = Field(default=DEFAULT_RETRY_DELAY_MS, ge=0)
    """Pause between two attempts on the same URL, in milliseconds."""

    # ------------------------------------------------------------------
    # Application behaviour
    # ------------------------------------------------------------------

    debug: bool = False
    """Enable verbose crawler logging (forces ``log_level`` to ``DEBUG``)."""

    log_level: str = "INFO"
    """Logging verbosity.  One of DEBUG, INFO, WARNING, ERROR, CRITICAL."""

    data_dir: Path = Path("data")
    """Directory where completed crawl requests are written as JSON files."""

    # ------------------------------------------------------------------
    # Derived option sets
    # ------------------------------------------------------------------

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level.upper()

    def launch_options(self) -> dict[str, Any]:
        """Keyword arguments for ``playwright.chromium.launch()``."""
        return {
            "headless": self.headless,
            "args": [f'--user-agent="{self.user_agent}"', *BROWSER_LAUNCH_ARGS],
        }

    def context_options(self) -> dict[str, Any]:
        """Keyword arguments for ``browser.new_context()``."""
        return {
            "viewport": {"width": self.viewport_width, "height": self.viewport_height},
            "user_agent": self.user_agent,
        }

    def summary(self) -> str:
        """One-line description of the active configuration, for startup logs."""
        return (
            f"Crawler Config: headless={self.headless}, timeout={self.timeout}ms, "
            f"debug={self.debug}, viewport={self.viewport_width}x{self.viewport_height}"
        )


@lru_cache
def get_settings() -> Settings:
    """Return the cached application settings instance.

    The cache means the environment is read once per process.  Tests that
    patch the environment should call ``get_settings.cache_clear()``.
    """
    return Settings()
