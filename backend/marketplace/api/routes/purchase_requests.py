"""Purchase Requests — seller/buyer inboxes and the approve/reject decisions.

Invariants:
    - approve/reject delegate to ArbitrationEngine (atomic, product-locked)
    - Seller inbox lists requests on the caller's listings; buyer inbox lists the caller's own
    - Both inboxes are newest first

Design Decisions:
    - The engine stays log-free; outcomes are logged here, at the caller
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.dependencies import get_caller, get_engine
from marketplace.core.domain_types import CallerContext, RequestId
from marketplace.infrastructure.database import get_db
from marketplace.models.product import Product
from marketplace.models.purchase_request import PurchaseRequest
from marketplace.models.user import User
from marketplace.schemas.product import ProductResponse
from marketplace.schemas.purchase_request import (
    ApprovalResponse,
    BuyerRequestView,
    PurchaseRequestResponse,
    SellerRequestView,
)
from marketplace.schemas.user import UserResponse
from marketplace.services.arbitration_engine import ArbitrationEngine

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/purchase-requests", tags=["purchase-requests"])


@router.get("/seller", response_model=list[SellerRequestView])
async def list_incoming_requests(
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    """Requests on the caller's listings, with product and buyer."""
    result = await db.execute(
        select(PurchaseRequest, Product, User)
        .join(Product, PurchaseRequest.product_id == Product.id)
        .join(User, PurchaseRequest.buyer_id == User.id)
        .where(Product.seller_id == caller.user_id)
        .order_by(PurchaseRequest.created_at.desc()),
    )
    return [
        SellerRequestView(
            **_request_fields(request),
            product=ProductResponse.model_validate(product),
            buyer=UserResponse.model_validate(buyer),
        )
        for request, product, buyer in result.all()
    ]


@router.get("/buyer", response_model=list[BuyerRequestView])
async def list_outgoing_requests(
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    """Caller's own requests, with product and seller."""
    result = await db.execute(
        select(PurchaseRequest, Product, User)
        .join(Product, PurchaseRequest.product_id == Product.id)
        .join(User, Product.seller_id == User.id)
        .where(PurchaseRequest.buyer_id == caller.user_id)
        .order_by(PurchaseRequest.created_at.desc()),
    )
    return [
        BuyerRequestView(
            **_request_fields(request),
            product=ProductResponse.model_validate(product),
            seller=UserResponse.model_validate(seller),
        )
        for request, product, seller in result.all()
    ]


@router.post("/{request_id}/approve", response_model=ApprovalResponse)
async def approve_request(
    request_id: UUID,
    caller: CallerContext = Depends(get_caller),
    engine: ArbitrationEngine = Depends(get_engine),
):
    """Sell the product to this request's buyer; every rival request is settled."""
    outcome = await engine.approve(caller, RequestId(request_id))
    logger.info(
        "Purchase request approved",
        extra={
            "request_id": request_id,
            "product_id": outcome.product.id,
            "user_id": caller.user_id,
        },
    )
    return ApprovalResponse(
        request=PurchaseRequestResponse.model_validate(outcome.request),
        product=ProductResponse.model_validate(outcome.product),
    )


@router.post("/{request_id}/reject", response_model=PurchaseRequestResponse)
async def reject_request(
    request_id: UUID,
    caller: CallerContext = Depends(get_caller),
    engine: ArbitrationEngine = Depends(get_engine),
):
    """Turn this buyer down; other buyers' requests stay pending."""
    request = await engine.reject(caller, RequestId(request_id))
    logger.info(
        "Purchase request rejected",
        extra={"request_id": request_id, "user_id": caller.user_id},
    )
    return request


def _request_fields(request: PurchaseRequest) -> dict:
    return PurchaseRequestResponse.model_validate(request).model_dump()
