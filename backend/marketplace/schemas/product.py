"""Product Schemas — listing input validation and catalog responses.

Invariants:
    - category restricted to ProductCategory values
    - price is a non-negative integer (minor currency units)
    - ProductUpdate has no `sold` field: sold is only set by an approval
    - ProductUpdate fields are optional but never null

Design Decisions:
    - extra="forbid" on ProductUpdate: a client PATCHing `sold` gets a 400
      instead of a silently ignored field
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from marketplace.core.domain_types import MAX_TITLE_LENGTH, ProductCategory
from marketplace.schemas.user import UserResponse


class ProductCreate(BaseModel):
    """New listing — the caller becomes the seller."""
    title: str = Field(min_length=1, max_length=MAX_TITLE_LENGTH)
    description: str = Field(min_length=1, max_length=5_000)
    price: int = Field(ge=0)
    category: ProductCategory
    image: str = Field("", max_length=500)

    @field_validator("title", "description")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty or whitespace")
        return v


class ProductUpdate(BaseModel):
    """Partial listing edit by its seller."""
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(None, min_length=1, max_length=MAX_TITLE_LENGTH)
    description: str | None = Field(None, min_length=1, max_length=5_000)
    price: int | None = Field(None, ge=0)
    category: ProductCategory | None = None
    image: str | None = Field(None, max_length=500)

    @field_validator("*", mode="before")
    @classmethod
    def refuse_null(cls, v):
        # Omit a field to leave it unchanged; null is not a value for any column
        if v is None:
            raise ValueError("must not be null")
        return v


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    seller_id: UUID
    title: str
    description: str
    price: int
    category: str
    image: str
    sold: bool
    created_at: datetime


class ProductWithSeller(ProductResponse):
    """Catalog entry — listing plus its seller's public profile."""
    seller: UserResponse
