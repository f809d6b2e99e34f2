"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        NarrativeEngineError: Base exception for all engine errors.
        ConditionError: Unregistered or malformed condition function.
        RegistrationError: Invalid registry id.
        DrawError: Pool and collection draw failures.

    Configuration:
        Settings: Main engine settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up engine logging.
        get_logger: Get a configured logger instance.
        log_overwrite: Report a registry overwrite.
"""

from __future__ import annotations

from narrative_engine.core.config import (
    DrawSettings,
    ResolverSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from narrative_engine.core.exceptions import (
    ConditionError,
    ConfigurationError,
    DataNotFoundError,
    DirectiveError,
    DirectiveParseError,
    DrawError,
    NarrativeEngineError,
    PlaceholderError,
    RegistrationError,
    SessionStateError,
    TemplateError,
    ValidationError,
)
from narrative_engine.core.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    log_overwrite,
)


__all__ = [
    # Base exception
    "NarrativeEngineError",
    # Directive exceptions
    "DirectiveError",
    "ConditionError",
    "RegistrationError",
    "PlaceholderError",
    "TemplateError",
    "DirectiveParseError",
    # Draw exceptions
    "DrawError",
    "DataNotFoundError",
    # Session exceptions
    "SessionStateError",
    # Configuration exceptions
    "ConfigurationError",
    "ValidationError",
    # Configuration
    "Settings",
    "ResolverSettings",
    "DrawSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "log_overwrite",
    "bind_context",
    "clear_context",
]
