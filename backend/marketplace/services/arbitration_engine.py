"""Arbitration Engine — applies purchase-request decisions atomically per product.

Invariants:
    - Every operation runs inside exactly one store transaction (all writes or none)
    - approve/reject lock the product row before reading request state, then
      re-read the target so concurrent decisions on one product serialize
    - The engine performs no logging and no retries; errors propagate to the caller
    - Ownership is checked against the locked product, identity comes from CallerContext

Design Decisions:
    - Store injected through the constructor: SQL in production, in-memory fake in tests
    - Rules live in core/arbitration.py; this module only reads, delegates, writes
"""

from dataclasses import dataclass

from marketplace.core.arbitration import (
    check_can_approve,
    check_can_submit,
    check_decidable,
    check_seller_owns,
    plan_approval,
    plan_rejection,
    ArbitrationPlan,
)
from marketplace.core.domain_types import (
    CallerContext, ProductId, RequestId, UserId,
)
from marketplace.core.errors import ErrorContext, ResourceNotFoundError
from marketplace.core.repository_protocols import (
    MarketplaceStore,
    MarketplaceUnitOfWork,
    ProductLike,
    PurchaseRequestLike,
)


@dataclass
class ApprovalResult:
    """Approved request plus the product it sold."""
    request: PurchaseRequestLike
    product: ProductLike


class ArbitrationEngine:
    """Submits, approves, and rejects purchase requests."""

    def __init__(self, store: MarketplaceStore):
        self.store = store

    async def submit_request(
        self, caller: CallerContext, product_id: ProductId, message: str | None,
    ) -> PurchaseRequestLike:
        """Create a pending request from caller on an unsold product."""
        async with self.store.transaction() as uow:
            product = await _lock_product(uow, product_id)
            check_can_submit(product, caller.user_id)
            return await uow.requests.create(
                ProductId(product.id), caller.user_id, message,
            )

    async def approve(
        self, caller: CallerContext, request_id: RequestId,
    ) -> ApprovalResult:
        """Approve a request, sell the product, settle every rival request."""
        async with self.store.transaction() as uow:
            product, target = await self._lock_target(uow, caller, request_id, "approve")
            check_can_approve(product, target)

            product_id = ProductId(product.id)
            pending_on_product = await uow.requests.list_pending_for_product(
                product_id, excluding=request_id,
            )
            pending_from_buyer = await uow.requests.list_pending_for_buyer_on_product(
                product_id, UserId(target.buyer_id), excluding=request_id,
            )
            plan = plan_approval(target, pending_on_product, pending_from_buyer)

            updated = await _apply(uow, plan)
            sold = await uow.products.set_sold(product_id)
            return ApprovalResult(request=updated, product=sold)

    async def reject(
        self, caller: CallerContext, request_id: RequestId,
    ) -> PurchaseRequestLike:
        """Reject a request and the same buyer's other pending requests."""
        async with self.store.transaction() as uow:
            product, target = await self._lock_target(uow, caller, request_id, "reject")
            check_decidable(target)

            pending_from_buyer = await uow.requests.list_pending_for_buyer_on_product(
                ProductId(product.id), UserId(target.buyer_id), excluding=request_id,
            )
            plan = plan_rejection(target, pending_from_buyer)
            return await _apply(uow, plan)

    async def _lock_target(
        self,
        uow: MarketplaceUnitOfWork,
        caller: CallerContext,
        request_id: RequestId,
        action: str,
    ) -> tuple[ProductLike, PurchaseRequestLike]:
        """Resolve request → lock its product → re-read request under the lock."""
        request = await uow.requests.get(request_id)
        if request is None:
            raise ResourceNotFoundError(
                "PurchaseRequest", str(request_id),
                ErrorContext(request_id=str(request_id)),
            )
        product = await _lock_product(uow, ProductId(request.product_id))
        check_seller_owns(product, caller.user_id, f"{action} purchase requests")

        # Status may have moved while we waited for the lock
        request = await uow.requests.get(request_id)
        return product, request


async def _lock_product(
    uow: MarketplaceUnitOfWork, product_id: ProductId,
) -> ProductLike:
    product = await uow.products.get_for_update(product_id)
    if product is None:
        raise ResourceNotFoundError(
            "Product", str(product_id), ErrorContext(product_id=str(product_id)),
        )
    return product


async def _apply(
    uow: MarketplaceUnitOfWork, plan: ArbitrationPlan,
) -> PurchaseRequestLike:
    """Write every planned transition, return the updated target."""
    target = None
    for request_id, status in plan.transitions.items():
        updated = await uow.requests.set_status(request_id, status)
        if request_id == plan.target_id:
            target = updated
    return target
