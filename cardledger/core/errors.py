"""Error Hierarchy — typed, categorized exceptions for every card ledger failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are the caller's to fix; infrastructure errors (500-level) are ours
    - to_response() produces the REST envelope rendered by the global handlers
    - No internal details leaked in user-facing messages
    - CardNotFoundError reads the same whether the card is absent or owned by someone else

Design Decisions:
    - Single hierarchy with LedgerError base: FastAPI global handler catches all (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
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
    RESOURCE_NOT_FOUND = "resource_not_found"
    AUTHENTICATION = "authentication"
    DATABASE = "database"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    card_id: str | None = None
    field: str | None = None
    operation: str | None = None


class LedgerError(Exception):
    """Base exception for all card ledger errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "card_id": self.context.card_id,
                    "field": self.context.field,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class LedgerValidationError(LedgerError):
    """A request field is missing or malformed."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.field = field
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, ctx, 400,
        )
        self.field = field


class ResourceNotFoundError(LedgerError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


class CardNotFoundError(ResourceNotFoundError):
    """Card is absent, or exists under another owner."""
    def __init__(self, card_id: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.card_id = str(card_id)
        super().__init__("Card", str(card_id), ctx)


class AuthError(LedgerError):
    """Request credential missing or rejected."""


class MissingCredentialError(AuthError):
    """No bearer credential on the request."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Authentication required",
            "AUTH_REQUIRED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class InvalidCredentialError(AuthError):
    """Bearer credential is malformed, forged or expired."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Invalid or expired credential",
            "AUTH_INVALID", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 403,
        )


class ConcurrencyError(LedgerError):
    """Concurrent modification detected."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONCURRENCY_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class StorageError(LedgerError):
    """Persistence operation failed. Message stays generic."""
    def __init__(self, operation: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.operation = operation
        super().__init__(
            "Storage operation failed",
            "STORAGE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, ctx, 503,
        )
        self.operation = operation
