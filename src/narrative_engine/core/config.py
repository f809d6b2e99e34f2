"""Configuration management for the narrative engine.

This module provides centralized configuration using pydantic-settings,
supporting environment variables, .env files, and runtime overrides.

Example:
    >>> from narrative_engine.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.resolver.max_template_depth
    8

Environment Variables:
    NARRATIVE_ENGINE_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    NARRATIVE_ENGINE_JSON_LOGS: Emit JSON log lines instead of console output
    NARRATIVE_ENGINE_RESOLVER_MAX_TEMPLATE_DEPTH: Template recursion limit
    NARRATIVE_ENGINE_RESOLVER_CODE_CSS_CLASS: CSS class for [code] blocks
    NARRATIVE_ENGINE_DRAW_SEED: Seed for the session random source
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from narrative_engine.core.constants import DEFAULT_CHANCE, DEFAULT_COUNT, DEFAULT_WEIGHT
from narrative_engine.core.exceptions import ConfigurationError


_CSS_CLASS_RE = re.compile(r"^-?[_a-zA-Z][_a-zA-Z0-9-]*$")


class ResolverSettings(BaseSettings):
    """Configuration for the directive resolution pipeline.

    Attributes:
        max_template_depth: How deeply |$template| lines may nest before the
            expansion is treated as runaway recursion.
        code_css_class: CSS class of the span wrapping [code] blocks.
    """

    model_config = SettingsConfigDict(
        env_prefix="NARRATIVE_ENGINE_RESOLVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_template_depth: int = Field(
        default=8,
        ge=1,
        le=64,
        description="Maximum nesting of template expansion",
    )
    code_css_class: str = Field(
        default="output_code",
        description="CSS class for escaped [code] blocks",
    )

    @field_validator("code_css_class", mode="after")
    @classmethod
    def validate_css_class(cls, value: str) -> str:
        """Ensure the code block class is a usable CSS identifier.

        Args:
            value: The configured class name.

        Returns:
            The validated class name.

        Raises:
            ConfigurationError: If the name is not a CSS identifier.
        """
        if not _CSS_CLASS_RE.match(value):
            raise ConfigurationError(
                f"code_css_class {value!r} is not a valid CSS class name",
                config_key="code_css_class",
            )
        return value


class DrawSettings(BaseSettings):
    """Configuration for the pool and collection draw engines.

    Attributes:
        default_weight: Weight of an entity group or item without one.
        default_chance: Percentage chance of a group or item without one.
        default_count: Items drawn per selected group without a count.
        seed: Optional seed for reproducible draws.
    """

    model_config = SettingsConfigDict(
        env_prefix="NARRATIVE_ENGINE_DRAW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_weight: float = Field(
        default=DEFAULT_WEIGHT,
        gt=0,
        description="Default selection weight",
    )
    default_chance: float = Field(
        default=DEFAULT_CHANCE,
        ge=0,
        le=100,
        description="Default percentage chance",
    )
    default_count: int = Field(
        default=DEFAULT_COUNT,
        ge=1,
        description="Default number of items per group",
    )
    seed: int | None = Field(
        default=None,
        description="Seed for the session random source",
    )


class Settings(BaseSettings):
    """Main engine settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        log_level: Engine logging level.
        json_logs: Render logs as JSON lines.
        resolver: Directive resolver settings.
        draw: Draw engine settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="NARRATIVE_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(
        default="Narrative Engine",
        description="Application name",
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_logs: bool = Field(
        default=False,
        description="Render logs as JSON",
    )

    resolver: ResolverSettings = Field(default_factory=ResolverSettings)
    draw: DrawSettings = Field(default_factory=DrawSettings)

    @model_validator(mode="after")
    def validate_debug_log_level(self) -> "Settings":
        """Raise the log level to DEBUG when debug mode is on.

        Returns:
            Self with the adjusted log level.
        """
        if self.debug and self.log_level == "INFO":
            self.log_level = "DEBUG"
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the engine settings singleton.

    Returns:
        The engine Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load engine settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "ResolverSettings",
    "DrawSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
