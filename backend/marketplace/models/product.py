"""Product ORM — a single sellable unit listed by a seller.

Invariants:
    - Always belongs to a seller (seller_id FK)
    - sold defaults to False and is only ever set True by an approval
    - Product row is the lock target for arbitration (SELECT ... FOR UPDATE)

Design Decisions:
    - price as Integer minor units: no float rounding in the catalog
    - image stores a URL only; upload/storage lives outside this service
    - requests relationship has no delete cascade: purchase requests are never deleted
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from marketplace.db.base import Base


class Product(Base):
    """Product entity — arbitration unit for its purchase requests."""
    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    seller_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[str] = mapped_column(
        String(50), nullable=False, index=True,
    )
    image: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    sold: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    seller: Mapped["User"] = relationship(
        "User", back_populates="products", lazy="selectin",
    )
    requests: Mapped[list["PurchaseRequest"]] = relationship(
        "PurchaseRequest", back_populates="product",
    )
