"""
Structured error types for sqlspine.

Every failure the migration engine can surface is a typed subclass of
``SqlSpineError`` carrying a category, a retry hint, structured context
and the chained cause.  Callers pattern-match on the type to tell a
reconciliation problem (``PlanError``) from a failed step
(``MigrationExecutionError``) or a broken collaborator (``SourceError``,
``DatabaseError``).

Manifesto:
    - **Typed Error Hierarchy:** One type per failure mode of a run
    - **No Silent Retries:** Nothing in the engine retries; ``retryable``
      is advice for the operator, never acted on internally
    - **Partial Progress Is Data:** Step failures carry ``applied_count``
    - **Error Chaining:** Driver exceptions are kept as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                        SqlSpineError                             │
        │  (category, retryable, context, cause)                          │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  SourceError          PlanError          MigrationExecutionError │
        │  (SOURCE)             (PLAN)             (DATABASE)              │
        │     │                                         │                  │
        │  SourceNotFoundError                     StatementError          │
        │  SourceUnavailableError                  LedgerWriteError        │
        │  ParseError (PARSE)                      MigrationCancelledError │
        │                                                                  │
        │  ConfigError          DatabaseError                              │
        │  (CONFIG)             (DATABASE)                                 │
        │     │                                                            │
        │  MissingConfigError                                              │
        │  InvalidConfigError                                              │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> err = PlanError("unknown migration in database", unknown_ids=["10_x.sql"])
    >>> err.category
    <ErrorCategory.PLAN: 'PLAN'>
    >>> err.unknown_ids
    ['10_x.sql']

    >>> err = StatementError(
    ...     "statement failed", applied_count=2, migration_id="125",
    ...     direction="up", statement="SELECT fail",
    ... )
    >>> err.applied_count
    2

Guardrails:
    ❌ DON'T: Retry a run blindly after MigrationExecutionError
    ✅ DO: Inspect applied_count, fix the failing migration, run again

    ❌ DON'T: Swallow the driver exception
    ✅ DO: Pass it as cause= for error chaining

Tags:
    error-handling, exception-hierarchy, migrations, sqlspine

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Attributes:
        DATABASE: Statement, transaction or ledger failures
        SOURCE: Migration source could not be read
        PARSE: Migration file text is malformed
        PLAN: Declared and applied state cannot be reconciled
        CONFIG: Missing or invalid settings
        CANCELLED: Run stopped by deadline or cancel token
        INTERNAL: Bugs, unexpected state
    """

    DATABASE = "DATABASE"
    SOURCE = "SOURCE"
    PARSE = "PARSE"
    PLAN = "PLAN"
    CONFIG = "CONFIG"
    CANCELLED = "CANCELLED"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    ``to_dict()`` serializes only the fields that are set, so the result
    can be passed straight to a structlog call.
    """

    migration_id: str | None = None
    direction: str | None = None
    source: str | None = None
    table: str | None = None

    # Additional metadata
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["migration_id", "direction", "source", "table"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class SqlSpineError(Exception):
    """
    Base exception for all sqlspine errors.

    Subclasses set ``default_category`` and ``default_retryable`` so a
    bare ``raise SourceError("...")`` is already classified.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
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

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> SqlSpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise SourceError("Failed").with_context(source="migrations/")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
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
# SOURCE ERRORS
# =============================================================================


class SourceError(SqlSpineError):
    """Error reading migrations from a source."""

    default_category = ErrorCategory.SOURCE
    default_retryable = False


class SourceNotFoundError(SourceError):
    """Migration directory, package or URL does not exist."""

    pass


class SourceUnavailableError(SourceError):
    """Source temporarily unreachable (HTTP transport failure)."""

    default_retryable = True


class ParseError(SourceError):
    """Migration file text could not be parsed."""

    default_category = ErrorCategory.PARSE

    def __init__(self, message: str, *, line: int | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.line = line

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.line is not None:
            result["line"] = self.line
        return result


# =============================================================================
# PLANNING ERRORS
# =============================================================================


class PlanError(SqlSpineError):
    """
    Declared and applied state cannot be reconciled.

    Raised before any step runs, for two reasons:

    - the ledger records ids the source no longer declares
      (``unknown_ids`` lists every one of them), or
    - a target version is negative or does not resolve to a migration
      (``requested_version`` holds the value asked for).

    Fully recoverable by the operator: restore the missing migrations,
    enable ``ignore_unknown``, or pick a valid version.
    """

    default_category = ErrorCategory.PLAN
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        unknown_ids: list[str] | None = None,
        requested_version: int | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.unknown_ids = list(unknown_ids or [])
        self.requested_version = requested_version

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.unknown_ids:
            result["unknown_ids"] = list(self.unknown_ids)
        if self.requested_version is not None:
            result["requested_version"] = self.requested_version
        return result


# =============================================================================
# EXECUTION ERRORS
# =============================================================================


class MigrationExecutionError(SqlSpineError):
    """
    A planned step failed and was rolled back.

    ``applied_count`` is the number of steps committed by the same run
    before the failure.  Those steps stay committed; a non-zero count
    means the database moved partway and must be investigated before
    running again.
    """

    default_category = ErrorCategory.DATABASE
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        applied_count: int = 0,
        migration_id: str | None = None,
        direction: str | None = None,
        statement: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.applied_count = applied_count
        self.migration_id = migration_id
        self.direction = direction
        self.statement = statement
        self.with_context(migration_id=migration_id, direction=direction)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["applied_count"] = self.applied_count
        if self.statement is not None:
            result["statement"] = self.statement
        return result


class StatementError(MigrationExecutionError):
    """A migration statement failed inside its step transaction."""

    pass


class LedgerWriteError(MigrationExecutionError):
    """Recording the step in the ledger failed after its statements ran."""

    pass


class MigrationCancelledError(MigrationExecutionError):
    """The run was cancelled or hit its deadline; the in-flight step was rolled back."""

    default_category = ErrorCategory.CANCELLED


# =============================================================================
# CONFIGURATION / DATABASE ERRORS
# =============================================================================


class ConfigError(SqlSpineError):
    """Configuration error.  Never retryable."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class MissingConfigError(ConfigError):
    """Required configuration is missing."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


class DatabaseError(SqlSpineError):
    """Database error outside a migration step (ledger bootstrap, reads)."""

    default_category = ErrorCategory.DATABASE
    default_retryable = False


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "SqlSpineError",
    # Source
    "SourceError",
    "SourceNotFoundError",
    "SourceUnavailableError",
    "ParseError",
    # Planning
    "PlanError",
    # Execution
    "MigrationExecutionError",
    "StatementError",
    "LedgerWriteError",
    "MigrationCancelledError",
    # Config / database
    "ConfigError",
    "MissingConfigError",
    "InvalidConfigError",
    "DatabaseError",
]
