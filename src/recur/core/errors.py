"""
Structured error types for recur.

Provides a small hierarchy of typed errors with metadata for error
categorization, logging and root cause analysis through error chaining.

Instead of generic exceptions that lose context, RecurError and its
subclasses carry:
- **Category:** What kind of error (validation, config, orchestration, etc.)
- **Retryable:** Whether the command can simply be issued again
- **Context:** Metadata such as the operation name and interval
- **Cause:** Chained underlying exception for root cause analysis

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       RecurError                                 │
        │  (category, retryable, context, cause)                          │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ValidationError          ConfigError       OperationError      │
        │  (VALIDATION)             (CONFIG)          (ORCHESTRATION)     │
        │       │                        │                  │              │
        │  UnnamedOperation         InvalidConfig     Uninitialized        │
        │  InvalidInterval                            DuplicateName        │
        │                                             CancelledResume      │
        │                                             ActionAlreadySet     │
        │                                             MissingWork          │
        │                                             CallbackFault        │
        └─────────────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: Raise bare InvalidOperation-style ValueErrors from commands
    ✅ DO: Raise the OperationError subclass that names the failure

    ❌ DON'T: Let a work function's exception escape into a timer thread
    ✅ DO: Record it on the handle; CallbackFault is only the log record

Usage:
    from recur.core.errors import DuplicateOperationNameError

    try:
        manager.start(handle, interval=5.0, work=refresh)
    except DuplicateOperationNameError as e:
        logger.warning("already_running", **e.to_dict())
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    VALIDATION = "VALIDATION"     # Bad names, bad intervals
    CONFIG = "CONFIG"             # Missing config, invalid settings
    ORCHESTRATION = "ORCHESTRATION"  # Lifecycle command failures
    CALLBACK = "CALLBACK"         # Faults raised by user work functions
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Only fields that are set show up in ``to_dict()``.

    Examples:
        >>> ctx = ErrorContext(operation="refresh-cache", interval_seconds=5.0)
        >>> ctx.to_dict()
        {'operation': 'refresh-cache', 'interval_seconds': 5.0}
    """

    operation: str | None = None
    status: str | None = None
    interval_seconds: float | None = None

    # Additional metadata
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["operation", "status", "interval_seconds"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class RecurError(Exception):
    """
    Base exception for all recur errors.

    Subclasses set ``default_category`` and ``default_retryable`` class
    attributes to provide sensible defaults for their domain.

    Examples:
        >>> error = RecurError("Something broke")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(operation="sync").context.operation
        'sync'
    """

    # Default category for this error type
    default_category: ErrorCategory = ErrorCategory.INTERNAL
    # Default retryable setting
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        # Chain the cause if provided
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RecurError:
        """
        Add context to this error (fluent API).

        Usage:
            raise DuplicateOperationNameError(name).with_context(interval_seconds=5)
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(RecurError):
    """
    Input validation error.

    Never retryable - the arguments must be fixed.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


class UnnamedOperationError(ValidationError):
    """A recurring operation cannot be created with an empty name."""

    def __init__(self, value: Any = None):
        super().__init__(
            "The recurring operation cannot be initialized with an empty name.",
            field="name",
            value=value,
        )


class InvalidIntervalError(ValidationError):
    """The recurrence interval must be a positive duration."""

    def __init__(self, name: str, value: Any):
        super().__init__(
            f"Interval for operation '{name}' must be positive, got {value!r}.",
            field="interval",
            value=value,
            context=ErrorContext(operation=name),
        )


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(RecurError):
    """
    Configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


# =============================================================================
# OPERATION LIFECYCLE ERRORS
# =============================================================================


class OperationError(RecurError):
    """Recurring operation lifecycle error."""

    default_category = ErrorCategory.ORCHESTRATION
    default_retryable = False


class UninitializedOperationError(OperationError):
    """The handle is missing or carries no name."""

    def __init__(self) -> None:
        super().__init__("The recurring operation is uninitialized.")


class DuplicateOperationNameError(OperationError):
    """An operation with the same name is already registered."""

    def __init__(self, name: str):
        self.operation_name = name
        super().__init__(
            f"A recurring operation named '{name}' is already running.",
            context=ErrorContext(operation=name),
        )


class CancelledOperationResumeError(OperationError):
    """Cancelled operations cannot be resumed, only started again."""

    def __init__(self, name: str):
        self.operation_name = name
        super().__init__(
            f"Cannot resume the cancelled recurring operation '{name}'.",
            context=ErrorContext(operation=name, status="CANCELLED"),
        )


class ActionAlreadySpecifiedError(OperationError):
    """Work was passed to start() for a handle that already carries work."""

    def __init__(self, name: str):
        self.operation_name = name
        super().__init__(
            f"The recurring operation '{name}' already has a work function.",
            context=ErrorContext(operation=name),
        )


class MissingWorkError(OperationError):
    """Neither start() nor the handle supplied a work function."""

    def __init__(self, name: str):
        self.operation_name = name
        super().__init__(
            f"No work function was given for recurring operation '{name}'.",
            context=ErrorContext(operation=name),
        )


class CallbackFault(OperationError):
    """
    A work function raised during a tick.

    Never raised into the timer machinery. The original exception is what
    callers see on ``last_fault`` and the fault stream; this wrapper is the
    structured record that gets logged for it.
    """

    default_category = ErrorCategory.CALLBACK

    @classmethod
    def from_exception(cls, name: str, exc: BaseException) -> CallbackFault:
        return cls(
            f"Work function of '{name}' raised {exc.__class__.__name__}: {exc}",
            context=ErrorContext(operation=name),
            cause=exc,
        )


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "RecurError",
    # Validation
    "ValidationError",
    "UnnamedOperationError",
    "InvalidIntervalError",
    # Config
    "ConfigError",
    "InvalidConfigError",
    # Operation lifecycle
    "OperationError",
    "UninitializedOperationError",
    "DuplicateOperationNameError",
    "CancelledOperationResumeError",
    "ActionAlreadySpecifiedError",
    "MissingWorkError",
    "CallbackFault",
]
