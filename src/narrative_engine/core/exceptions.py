"""Custom exception hierarchy for the narrative engine.

Every error raised by the engine derives from NarrativeEngineError so hosts
can catch engine failures at a single boundary. Most directive errors never
reach that boundary: the resolver logs them and drops the offending fragment.
Only authoring errors that must be fixed in content (an unregistered condition
function, an invalid registration) propagate to the caller.

Example:
    >>> from narrative_engine.core.exceptions import ConditionError
    >>> raise ConditionError("Condition _missing not found", expression="_missing = 1")
"""

from __future__ import annotations

from typing import Any


class NarrativeEngineError(Exception):
    """Base exception for all narrative engine errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        """Return a detailed string representation of the exception."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Directive Domain Exceptions
# =============================================================================


class DirectiveError(NarrativeEngineError):
    """Base exception for errors raised while processing directive text."""

    def __init__(
        self,
        message: str,
        *,
        fragment: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize directive error with the offending text fragment.

        Args:
            message: Human-readable error description.
            fragment: The piece of directive text that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if fragment is not None:
            combined_details["fragment"] = fragment
        super().__init__(message, details=combined_details)


class ConditionError(DirectiveError):
    """Raised when a condition references a function that cannot be called.

    This is an authoring error: the content names a condition function that
    is not registered, or the function reference is malformed. Unlike most
    directive errors it propagates out of the resolver.
    """

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize condition error with expression context.

        Args:
            message: Human-readable error description.
            expression: The condition key or expression being evaluated.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if expression is not None:
            combined_details["expression"] = expression
        super().__init__(message, details=combined_details)


class RegistrationError(DirectiveError):
    """Raised when a registry entry is registered under an invalid id."""

    def __init__(
        self,
        message: str,
        *,
        registry: str | None = None,
        entry_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize registration error with registry context.

        Args:
            message: Human-readable error description.
            registry: Name of the registry that rejected the entry.
            entry_id: The rejected id.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if registry:
            combined_details["registry"] = registry
        if entry_id is not None:
            combined_details["entry_id"] = entry_id
        super().__init__(message, details=combined_details)


class PlaceholderError(DirectiveError):
    """Raised when a |placeholder| cannot be resolved."""


class TemplateError(DirectiveError):
    """Raised when a |$template| cannot be found or recurses too deeply."""


class DirectiveParseError(DirectiveError):
    """Raised when an inline {...} directive object cannot be parsed."""


# =============================================================================
# Draw Domain Exceptions
# =============================================================================


class DrawError(NarrativeEngineError):
    """Base exception for pool and collection draw errors.

    The draw engine recovers from these locally and returns a partial result.
    """

    def __init__(
        self,
        message: str,
        *,
        pool_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize draw error with pool context.

        Args:
            message: Human-readable error description.
            pool_id: The pool entry or definition involved.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if pool_id:
            combined_details["pool_id"] = pool_id
        super().__init__(message, details=combined_details)


class DataNotFoundError(DrawError):
    """Raised when a data collection does not exist for a source path."""

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize data lookup error with the source path.

        Args:
            message: Human-readable error description.
            source: The data path id that was requested.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if source:
            combined_details["source"] = source
        super().__init__(message, details=combined_details)


# =============================================================================
# Session Exceptions
# =============================================================================


class SessionStateError(NarrativeEngineError):
    """Raised when session state cannot answer a query.

    This typically occurs when a lookup needs the current dungeon but none
    has been entered yet.
    """


# =============================================================================
# Configuration & Validation Exceptions
# =============================================================================


class ConfigurationError(NarrativeEngineError):
    """Raised when engine configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class ValidationError(NarrativeEngineError):
    """Raised when content or pool data fails validation."""

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error with field context.

        Args:
            message: Human-readable error description.
            field_name: Name of the field that failed validation.
            invalid_value: The value that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


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
]
