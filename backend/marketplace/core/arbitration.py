"""Arbitration Rules — decides how a product's requests transition on approve/reject.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Guards raise MarketplaceError subclasses; planners return an ArbitrationPlan
    - Approval: target approved, product sold, other pending requests rejected,
      then the target buyer's other pending requests follow the target (approved)
    - Rejection: target rejected, the target buyer's other pending requests
      rejected too; other buyers untouched, sold flag untouched
    - Only pending requests are ever transitioned

Design Decisions:
    - Plans are computed from snapshots the engine read under the product lock,
      then applied by the engine in one transaction (functional core, imperative shell)
    - The two approval passes are kept as two ordered passes over one dict so the
      same-buyer pass visibly overrides the cascade
"""

from dataclasses import dataclass, field
from typing import Iterable

from marketplace.core.domain_types import RequestId, RequestStatus
from marketplace.core.errors import (
    ErrorContext,
    ForbiddenError,
    ProductAlreadySoldError,
    RequestNotPendingError,
    SelfPurchaseError,
)
from marketplace.core.repository_protocols import ProductLike, PurchaseRequestLike


@dataclass
class ArbitrationPlan:
    """Status writes and product flag change produced by one decision."""
    target_id: RequestId
    target_status: RequestStatus
    sibling_statuses: dict[RequestId, RequestStatus] = field(default_factory=dict)
    mark_sold: bool = False

    @property
    def transitions(self) -> dict[RequestId, RequestStatus]:
        """All request writes, target first."""
        return {self.target_id: self.target_status, **self.sibling_statuses}


# --- Guards -------------------------------------------------------------------

def check_can_submit(product: ProductLike, buyer_id) -> None:
    """A buyer may request an unsold product they do not sell."""
    ctx = _context(product=product, user_id=buyer_id)
    if product.sold:
        raise ProductAlreadySoldError(ctx)
    if product.seller_id == buyer_id:
        raise SelfPurchaseError(ctx)


def check_seller_owns(product: ProductLike, caller_id, action: str) -> None:
    if product.seller_id != caller_id:
        raise ForbiddenError(action, _context(product=product, user_id=caller_id))


def check_decidable(request: PurchaseRequestLike) -> None:
    """Approve/reject only ever applies to a pending request."""
    if request.status != RequestStatus.PENDING.value:
        raise RequestNotPendingError(
            request.status, _context(request=request),
        )


def check_can_approve(product: ProductLike, request: PurchaseRequestLike) -> None:
    check_decidable(request)
    if product.sold:
        raise ProductAlreadySoldError(_context(product=product, request=request))


# --- Planners -----------------------------------------------------------------

def plan_approval(
    target: PurchaseRequestLike,
    pending_on_product: Iterable[PurchaseRequestLike],
    pending_from_buyer: Iterable[PurchaseRequestLike],
) -> ArbitrationPlan:
    """Approve target; reject rivals; same-buyer duplicates follow the target."""
    plan = ArbitrationPlan(
        target_id=RequestId(target.id),
        target_status=RequestStatus.APPROVED,
        mark_sold=True,
    )
    for sibling in _pending_siblings(target, pending_on_product):
        plan.sibling_statuses[RequestId(sibling.id)] = RequestStatus.REJECTED
    for sibling in _pending_siblings(target, pending_from_buyer):
        if sibling.buyer_id == target.buyer_id:
            plan.sibling_statuses[RequestId(sibling.id)] = plan.target_status
    return plan


def plan_rejection(
    target: PurchaseRequestLike,
    pending_from_buyer: Iterable[PurchaseRequestLike],
) -> ArbitrationPlan:
    """Reject target and the same buyer's other pending requests only."""
    plan = ArbitrationPlan(
        target_id=RequestId(target.id),
        target_status=RequestStatus.REJECTED,
    )
    for sibling in _pending_siblings(target, pending_from_buyer):
        if sibling.buyer_id == target.buyer_id:
            plan.sibling_statuses[RequestId(sibling.id)] = plan.target_status
    return plan


# --- Helpers ------------------------------------------------------------------

def _pending_siblings(
    target: PurchaseRequestLike, candidates: Iterable[PurchaseRequestLike],
) -> list[PurchaseRequestLike]:
    return [
        r for r in candidates
        if r.id != target.id
        and r.product_id == target.product_id
        and r.status == RequestStatus.PENDING.value
    ]


def _context(
    product: ProductLike | None = None,
    request: PurchaseRequestLike | None = None,
    user_id=None,
) -> ErrorContext:
    return ErrorContext(
        product_id=str(product.id) if product is not None else (
            str(request.product_id) if request is not None else None
        ),
        request_id=str(request.id) if request is not None else None,
        user_id=str(user_id) if user_id is not None else None,
    )
