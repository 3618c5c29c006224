"""
Error taxonomy and error handling for dep-arbiter.

Defines the exceptions that abort a resolution pass, and a centralized
handler that records structured error contexts, logs them and dispatches
callbacks so host applications can observe failures without parsing text.
"""

import logging
import sys
import traceback
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence


class ArbiterError(Exception):
    """Base class for all dep-arbiter failures."""


class InvalidRuleDefinition(ArbiterError, ValueError):
    """A rule line is empty, malformed or lacks a groupId."""

    def __init__(self, message: str, rule_line: Optional[str] = None):
        super().__init__(message)
        self.rule_line = rule_line


class IdentityMismatch(ArbiterError, AssertionError):
    """Arbitration was invoked on two different logical dependencies.

    This is a programming error in the caller, never a data error.
    """

    def __init__(self, first_identity: str, second_identity: str):
        super().__init__(
            f"Fatal bug, trying to choose between different dependencies "
            f"[{first_identity}] and [{second_identity}]"
        )
        self.first_identity = first_identity
        self.second_identity = second_identity


class UnresolvableVersionConflict(ArbiterError):
    """Two versions of one dependency cannot be ordered automatically."""

    def __init__(
        self,
        identity: Optional[str],
        labels: Sequence[str],
        reason: str = "",
    ):
        label_text = " and ".join(f"[{label}]" for label in labels)
        message = (
            f"Could not determine the better version of dep [{identity}]. "
            f"Input contains both version {label_text}."
        )
        if reason:
            message += f" {reason}"
        message += (
            " Remove one of these entries from the input, or add an arbiter rule"
            " (pinnedVersion or winningVersion) for this dependency."
        )
        super().__init__(message)
        self.identity = identity
        self.labels = tuple(labels)
        self.reason = reason


class ErrorLevel(Enum):
    """Error severity levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ErrorCategory(Enum):
    """Error categories for better classification."""

    PARSING = "PARSING"
    RULES = "RULES"
    ARBITRATION = "ARBITRATION"
    CONFIGURATION = "CONFIGURATION"
    FILESYSTEM = "FILESYSTEM"


@dataclass
class ErrorContext:
    """Structured error context information."""

    level: ErrorLevel
    category: ErrorCategory
    message: str
    module: str
    function: str
    details: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Exception] = None
    traceback_info: Optional[str] = None
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error context to dictionary for logging."""
        return {
            "level": self.level.value,
            "category": self.category.value,
            "message": self.message,
            "module": self.module,
            "function": self.function,
            "details": self.details,
            "exception_type": type(self.exception).__name__ if self.exception else None,
            "exception_message": str(self.exception) if self.exception else None,
            "traceback": self.traceback_info,
            "suggestions": self.suggestions,
        }


class ContextLogger:
    """Logger wrapper that renders error contexts on a single line."""

    def __init__(self, name: str, level: int = logging.WARNING):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)

        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
            self.logger.addHandler(handler)

    def log_error_context(self, context: ErrorContext):
        """
        Log error context with appropriate level.

        Args:
            context: Error context to log
        """
        log_data = {
            key: value
            for key, value in context.to_dict().items()
            if key not in ("level", "message", "traceback", "exception_message")
            and value
        }

        log_message = f"{context.message} | {log_data}"

        level = getattr(logging, context.level.value)
        self.logger.log(level, log_message)


# Error callback type
ErrorCallback = Callable[[ErrorContext], None]


class ErrorHandler:
    """
    Centralized error handler for consistent error management.

    Provides logging, callbacks, and per-category statistics for library
    components. Handling an error never raises; callers still raise their
    own exception afterwards.
    """

    def __init__(
        self,
        logger_name: str = "dep_arbiter",
        log_level: int = logging.WARNING,
        enable_callbacks: bool = True,
    ):
        """
        Initialize error handler.

        Args:
            logger_name: Name for the logger
            log_level: Logging level
            enable_callbacks: Whether to enable error callbacks
        """
        self.logger = ContextLogger(logger_name, log_level)
        self.enable_callbacks = enable_callbacks
        self.error_callbacks: Dict[ErrorCategory, List[ErrorCallback]] = {}
        self.global_callbacks: List[ErrorCallback] = []
        self.error_stats: Dict[str, int] = {}

    def register_callback(
        self, callback: ErrorCallback, category: Optional[ErrorCategory] = None
    ):
        """
        Register error callback.

        Args:
            callback: Function to call on errors
            category: Error category to filter, None for all errors
        """
        if not self.enable_callbacks:
            return

        if category is None:
            self.global_callbacks.append(callback)
        else:
            self.error_callbacks.setdefault(category, []).append(callback)

    def unregister_callback(self, callback: ErrorCallback) -> None:
        """Remove a callback from every category it was registered for."""
        if callback in self.global_callbacks:
            self.global_callbacks.remove(callback)
        for callbacks in self.error_callbacks.values():
            if callback in callbacks:
                callbacks.remove(callback)

    def handle_error(
        self,
        level: ErrorLevel,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        exception: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ) -> ErrorContext:
        """
        Handle an error with structured logging and callbacks.

        Args:
            level: Error severity level
            category: Error category
            message: Error message
            module: Module where error occurred
            function: Function where error occurred
            exception: Optional exception object
            details: Additional error details
            suggestions: Suggested fixes

        Returns:
            ErrorContext: The created error context
        """
        context = ErrorContext(
            level=level,
            category=category,
            message=message,
            module=module,
            function=function,
            details=details or {},
            exception=exception,
            traceback_info=(
                "".join(traceback.format_exception(exception)) if exception else None
            ),
            suggestions=suggestions or [],
        )

        stat_key = f"{category.value}_{level.value}"
        self.error_stats[stat_key] = self.error_stats.get(stat_key, 0) + 1

        self.logger.log_error_context(context)

        if self.enable_callbacks:
            for callback in self.error_callbacks.get(category, []):
                try:
                    callback(context)
                except Exception as cb_error:
                    # Don't let callback errors break the main flow
                    self.logger.logger.error(f"Error in callback: {cb_error}")

            for callback in self.global_callbacks:
                try:
                    callback(context)
                except Exception as cb_error:
                    self.logger.logger.error(f"Error in global callback: {cb_error}")

        return context

    def warning(
        self,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        **kwargs,
    ) -> ErrorContext:
        """Handle warning level error."""
        return self.handle_error(
            ErrorLevel.WARNING, category, message, module, function, **kwargs
        )

    def error(
        self,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        **kwargs,
    ) -> ErrorContext:
        """Handle error level error."""
        return self.handle_error(
            ErrorLevel.ERROR, category, message, module, function, **kwargs
        )

    def critical(
        self,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        **kwargs,
    ) -> ErrorContext:
        """Handle critical level error."""
        return self.handle_error(
            ErrorLevel.CRITICAL, category, message, module, function, **kwargs
        )

    def get_error_stats(self) -> Dict[str, int]:
        """Get error statistics."""
        return self.error_stats.copy()

    def reset_stats(self):
        """Reset error statistics."""
        self.error_stats.clear()


# Global error handler instance
_global_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """
    Get the global error handler instance.

    Returns:
        ErrorHandler: Global error handler
    """
    global _global_error_handler
    if _global_error_handler is None:
        _global_error_handler = ErrorHandler()
    return _global_error_handler


def log_parsing_error(
    message: str,
    module: str,
    function: str,
    line_number: Optional[int] = None,
    file_path: Optional[str] = None,
    exception: Optional[Exception] = None,
):
    """
    Convenience function for logging parsing errors.

    Args:
        message: Error message
        module: Module name
        function: Function name
        line_number: Line number where error occurred
        file_path: File being parsed
        exception: Optional exception
    """
    details: Dict[str, Any] = {}
    if line_number is not None:
        details["line_number"] = line_number
    if file_path is not None:
        details["file_path"] = Path(file_path).name

    get_error_handler().warning(
        ErrorCategory.PARSING,
        message,
        module,
        function,
        details=details,
        exception=exception,
        suggestions=[
            "Check the manifest format and encoding",
            "Regenerate the listing with 'mvn dependency:list'",
        ],
    )


def log_rule_error(
    message: str,
    function: str,
    rule_line: Optional[str] = None,
    line_number: Optional[int] = None,
    exception: Optional[Exception] = None,
):
    """Convenience function for logging rejected rule definitions."""
    details: Dict[str, Any] = {}
    if rule_line is not None:
        details["rule_line"] = rule_line
    if line_number is not None:
        details["line_number"] = line_number

    get_error_handler().error(
        ErrorCategory.RULES,
        message,
        "rules",
        function,
        details=details,
        exception=exception,
        suggestions=[
            "Every rule needs a groupId, e.g. 'groupId=com.example pinnedVersion=1.0.0'",
            "Use only groupId, artifactId, pinnedVersion and winningVersion keys",
        ],
    )


def log_version_conflict(conflict: UnresolvableVersionConflict, function: str):
    """Record an unresolvable conflict before it propagates."""
    get_error_handler().error(
        ErrorCategory.ARBITRATION,
        str(conflict),
        "arbiter",
        function,
        details={"identity": conflict.identity, "labels": list(conflict.labels)},
        exception=conflict,
        suggestions=[
            f"Add a rule such as 'groupId=... artifactId=... pinnedVersion={conflict.labels[-1]}'",
            "Remove the unwanted version from the input manifests",
        ],
    )


def log_identity_mismatch(mismatch: IdentityMismatch, function: str):
    """Record a caller bug: arbitration between two different dependencies."""
    get_error_handler().critical(
        ErrorCategory.ARBITRATION,
        str(mismatch),
        "arbiter",
        function,
        details={
            "first_identity": mismatch.first_identity,
            "second_identity": mismatch.second_identity,
        },
        exception=mismatch,
    )
