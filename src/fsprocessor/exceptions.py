"""
Package-level exception hierarchy for fsprocessor.

All exceptions inherit from FsProcessorError, enabling:
- Catching all fsprocessor errors with a single except clause
- Context fields for debugging (kind, activity_id, config_key, etc.)
- Structured serialization via to_dict() for JSON error output

Hierarchy:
    FsProcessorError
    ├── CaptureError          – Activity capture could not be loaded/validated
    ├── PreconditionError     – Caller referenced an id missing from the store
    ├── ProcessorError        – A processor failed while resolving its kind
    └── ConfigurationError    – Invalid configuration or signature table

Data-quality problems (short stacks, missing timestamps, unmatched
siblings) are never raised. They degrade into placeholder values or
dropped candidates.
"""

from __future__ import annotations

from typing import Any


class FsProcessorError(Exception):
    """
    Base exception for all fsprocessor errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON error output."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
        }


# ── Capture Errors ───────────────────────────────────────────────────────


class CaptureError(FsProcessorError):
    """
    Activity capture cannot be loaded or validated.

    Attributes:
        detail: Technical details for debugging (optional).
        source: Where the error occurred ("file_read", "json_decode", ...).
    """

    def __init__(
        self,
        message: str,
        *,
        detail: str | None = None,
        source: str = "unknown",
    ) -> None:
        self.detail = detail
        self.source = source
        super().__init__(message)

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}\n\nDetails: {self.detail}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["detail"] = self.detail
        result["source"] = self.source
        return result


# ── Graph Errors ─────────────────────────────────────────────────────────


class PreconditionError(FsProcessorError):
    """
    A query referenced an activity id that must be present but is not.

    This is a programmer error, not a data-quality issue, so it always
    propagates out of the engine.

    Attributes:
        activity_id: The id that was not found.
    """

    def __init__(self, message: str, activity_id: int | None = None) -> None:
        self.activity_id = activity_id
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["activity_id"] = self.activity_id
        return result


# ── Processing Errors ────────────────────────────────────────────────────


class ProcessorError(FsProcessorError):
    """
    Error raised while a processor resolved or assembled its kind.

    Attributes:
        kind: Operation kind of the processor that failed.
        version: Version of the processor.
        original_error: The underlying exception.
    """

    def __init__(
        self,
        kind: str,
        version: str,
        original_error: Exception,
    ) -> None:
        self.kind = kind
        self.version = version
        self.original_error = original_error

        message = (
            f"Processor '{kind}' v{version} failed: "
            f"{original_error.__class__.__name__}: {original_error}"
        )
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output / logging."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "kind": self.kind,
            "version": self.version,
            "original_error_type": self.original_error.__class__.__name__,
            "original_error_message": str(self.original_error),
        }


class ConfigurationError(FsProcessorError):
    """
    Error in engine configuration or in a signature table.

    Attributes:
        config_key: The configuration key that caused the error (if known).
    """

    def __init__(self, message: str, config_key: str | None = None) -> None:
        self.config_key = config_key
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["config_key"] = self.config_key
        return result
