"""Error Hierarchy — typed, categorized exceptions for all marketplace failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - to_response() produces the REST envelope used by every error handler
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with MarketplaceError base: FastAPI global handler catches all
    - Business-rule conflicts (sold item, self-purchase, non-pending request) share the
      CONFLICT category and HTTP 409 — retrying them is never correct
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
    AUTHORIZATION = "authorization"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    DATABASE = "database"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    product_id: str | None = None
    request_id: str | None = None
    user_id: str | None = None
    debug_info: dict[str, Any] | None = None


class MarketplaceError(Exception):
    """Base exception for all marketplace errors."""

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
                    "product_id": self.context.product_id,
                    "request_id": self.context.request_id,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class ValidationError(MarketplaceError):
    """Input field failed validation."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class UnauthenticatedError(MarketplaceError):
    """No verified caller identity accompanied the request."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Authentication required",
            "UNAUTHENTICATED", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, 401,
        )


class ForbiddenError(MarketplaceError):
    """Caller is authenticated but does not own the resource."""
    def __init__(self, action: str, context: ErrorContext | None = None):
        super().__init__(
            f"Only the seller may {action}",
            "FORBIDDEN", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, 403,
        )
        self.action = action


class ResourceNotFoundError(MarketplaceError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type


class SelfPurchaseError(MarketplaceError):
    """Seller attempted to request their own product."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Cannot request to buy your own product",
            "SELF_PURCHASE", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class ProductAlreadySoldError(MarketplaceError):
    """Product has already been sold to an approved buyer."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Product already sold",
            "PRODUCT_ALREADY_SOLD", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class RequestNotPendingError(MarketplaceError):
    """Approve/reject targeted a request that was already decided."""
    def __init__(self, status: str, context: ErrorContext | None = None):
        super().__init__(
            f"Purchase request is already {status}",
            "REQUEST_NOT_PENDING", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )
        self.status = status


class UsernameTakenError(MarketplaceError):
    """Registration picked a username another profile already holds."""
    def __init__(self, username: str, context: ErrorContext | None = None):
        super().__init__(
            f"Username '{username}' is already taken",
            "USERNAME_TAKEN", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


class ProductHasRequestsError(MarketplaceError):
    """Product cannot be deleted while purchase requests reference it."""
    def __init__(self, count: int, context: ErrorContext | None = None):
        super().__init__(
            f"Product has {count} purchase request(s) and cannot be deleted",
            "PRODUCT_HAS_REQUESTS", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )
        self.count = count


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(MarketplaceError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
