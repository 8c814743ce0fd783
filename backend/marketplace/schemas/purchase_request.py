"""Purchase Request Schemas — submission input and arbitration responses.

Invariants:
    - message is optional, stripped, at most MAX_MESSAGE_LENGTH chars; blank becomes None
    - status serialized as the RequestStatus string value
    - ApprovalResponse carries both the approved request and the sold product
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from marketplace.core.domain_types import MAX_MESSAGE_LENGTH, RequestStatus
from marketplace.schemas.product import ProductResponse
from marketplace.schemas.user import UserResponse


class PurchaseRequestCreate(BaseModel):
    """Buyer's request body — the product comes from the URL path."""
    message: str | None = Field(None, max_length=MAX_MESSAGE_LENGTH)

    @field_validator("message")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None


class PurchaseRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    product_id: UUID
    buyer_id: UUID
    status: RequestStatus
    message: str | None = None
    created_at: datetime


class ApprovalResponse(BaseModel):
    request: PurchaseRequestResponse
    product: ProductResponse


class SellerRequestView(PurchaseRequestResponse):
    """Incoming request on one of the caller's listings."""
    product: ProductResponse
    buyer: UserResponse


class BuyerRequestView(PurchaseRequestResponse):
    """Caller's own request, with the listing and who sells it."""
    product: ProductResponse
    seller: UserResponse
