"""Structured exception hierarchy for flinkgen.

Every failure carries enough context (field, path, statement role) for the
operator to tell which stage of the run failed.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from flinkgen.lib.synth import StatementRole

__all__ = [
    "FlinkgenError",
    "ConfigurationError",
    "SchemaValidationError",
    "SynthesisError",
    "ExecutionError",
]


class FlinkgenError(Exception):
    """Base exception for all flinkgen errors.

    Provides structured error information for debugging.
    """

    stage = "pipeline"

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        self.suggestion = suggestion

        parts = [message]

        if self.details:
            detail_lines = [f"  {k}: {v}" for k, v in self.details.items()]
            parts.append("\nDetails:")
            parts.extend(detail_lines)

        if suggestion:
            parts.append(f"\nSuggestion: {suggestion}")

        super().__init__("\n".join(parts) if len(parts) > 1 else message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "stage": self.stage,
            "message": self.message,
            "details": self.details,
            "suggestion": self.suggestion,
        }


class ConfigurationError(FlinkgenError):
    """Required configuration or schema file missing, unreadable or invalid."""

    stage = "config"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        path: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        self.field = field
        self.path = path

        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if path:
            details["path"] = path

        super().__init__(message, details=details, **kwargs)


class SchemaValidationError(FlinkgenError):
    """Malformed schema document.

    Raised at load time for a missing required field, a wrongly typed
    value or a duplicate column name. Never reaches synthesis.
    """

    stage = "schema"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        path: Optional[str] = None,
        issues: Optional[List[str]] = None,
        **kwargs: Any,
    ) -> None:
        self.field = field
        self.path = path
        self.issues = issues or []

        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if path:
            details["path"] = path

        if self.issues:
            issue_lines = "\n".join(f"  - {issue}" for issue in self.issues)
            message = f"{message}\n\nIssues found:\n{issue_lines}"

        super().__init__(message, details=details, **kwargs)


class SynthesisError(FlinkgenError):
    """Statement synthesis failed.

    Synthesis is total over a validated schema, so this signals a
    programming defect rather than an operator-recoverable condition.
    """

    stage = "synthesis"


class ExecutionError(FlinkgenError):
    """The execution engine rejected or failed a submitted statement."""

    def __init__(
        self,
        message: str,
        *,
        role: "StatementRole",
        statement: Optional[str] = None,
        cause: Optional[BaseException] = None,
        **kwargs: Any,
    ) -> None:
        self.role = role
        self.statement = statement
        self.cause = cause

        details = kwargs.pop("details", {})
        details["statement_role"] = role.value
        if cause:
            details["cause"] = str(cause)
            details["cause_type"] = type(cause).__name__

        super().__init__(message, details=details, **kwargs)

    @property
    def stage(self) -> str:  # type: ignore[override]
        return self.role.value
