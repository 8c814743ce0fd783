"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - UserId, ProductId, RequestId wrap UUIDs — never use bare UUID in domain logic
    - All valid states encoded as Enums — no raw string matching
    - CallerContext is built once per HTTP request and never re-derived

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and compare equal to the DB string column
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", UUID)
ProductId = NewType("ProductId", UUID)
RequestId = NewType("RequestId", UUID)


# ─── Limits ──────────────────────────────────────────────────────

MAX_MESSAGE_LENGTH = 1000
MAX_TITLE_LENGTH = 200


# ─── Enums ───────────────────────────────────────────────────────

class RequestStatus(str, Enum):
    """Purchase request lifecycle — maps to DB `status` column."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ProductCategory(str, Enum):
    """Listing categories offered by the catalog."""
    BOOKS = "Books"
    ELECTRONICS = "Electronics"
    OTHERS = "Others"


# ─── Caller ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class CallerContext:
    """Authenticated caller, resolved once at the HTTP boundary."""
    user_id: UserId
    username: str
