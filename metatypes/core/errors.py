"""Error Hierarchy — typed, categorized exceptions for all metatypes failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Descriptor errors are raised synchronously at the call that received bad input
    - Converter load failures are never raised; they are logged and kept as state
    - to_dict() produces the structured-log envelope

Design Decisions:
    - Single hierarchy with MetaTypesError base: callers catch one type for all package failures
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - Default values on function/promise kinds are silently dropped, not raised (UnsupportedDefault policy)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    EXTERNAL = "external"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    meta_id: str | None = None
    kind: str | None = None
    loader: str | None = None
    debug_info: dict[str, Any] | None = None


class MetaTypesError(Exception):
    """Base exception for all metatypes errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()

    def to_dict(self) -> dict:
        """Convert to a structured envelope for logs."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "meta_id": self.context.meta_id,
                    "kind": self.context.kind,
                    "loader": self.context.loader,
                },
            }
        }


# ─── Descriptor Errors ──────────────────────────────────────────

class InvalidDescriptorError(MetaTypesError):
    """Value cannot be interpreted as a structural descriptor."""
    def __init__(
        self, value: Any, reason: str | None = None, context: ErrorContext | None = None,
    ):
        message = f"Invalid meta descriptor: {value!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(
            message, "INVALID_DESCRIPTOR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context,
        )
        self.value = value


# ─── Converter Errors ───────────────────────────────────────────

class ConverterFormatError(MetaTypesError):
    """Loader resolved to neither a callable nor a container with a callable `default`."""
    def __init__(self, result: Any, context: ErrorContext | None = None):
        super().__init__(
            f"Unknown converter function format: {result!r}",
            "CONVERTER_FORMAT", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context,
        )
        self.result = result


class ConverterLoadError(MetaTypesError):
    """Converter loader raised. Logged and recorded, never propagated."""
    def __init__(
        self, loader: str, cause: BaseException, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.loader = loader
        super().__init__(
            f"Converter loader {loader} failed: {cause}",
            "CONVERTER_LOAD_FAILED", ErrorCategory.EXTERNAL,
            ErrorSeverity.ERROR, ctx,
        )
        self.cause = cause
