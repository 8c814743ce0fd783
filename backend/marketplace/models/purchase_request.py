"""PurchaseRequest ORM — a buyer's offer to take one product.

Invariants:
    - Always belongs to a Product (product_id FK) and a buyer (buyer_id FK)
    - status transitions: pending -> approved | rejected, only via the arbitration engine
    - Never deleted

Design Decisions:
    - Composite index (product_id, status): every cascade query filters on both
    - created_at used for display ordering only
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from marketplace.core.domain_types import RequestStatus
from marketplace.db.base import Base


class PurchaseRequest(Base):
    """Purchase request entity."""
    __tablename__ = "purchase_requests"
    __table_args__ = (
        Index("ix_purchase_requests_product_status", "product_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("products.id"), nullable=False,
    )
    buyer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RequestStatus.PENDING.value,
    )
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    product: Mapped["Product"] = relationship(
        "Product", back_populates="requests", lazy="selectin",
    )
    buyer: Mapped["User"] = relationship("User", lazy="selectin")
