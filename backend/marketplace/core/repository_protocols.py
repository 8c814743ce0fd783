"""Boundary Protocols — contracts between the arbitration engine and storage.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Every repository call happens inside MarketplaceStore.transaction():
      commit on normal exit, rollback on any exception

Design Decisions:
    - Protocol over ABC: structural subtyping, the ORM models satisfy
      ProductLike/PurchaseRequestLike without inheriting anything
    - get_for_update is the serialization point: whoever holds the product
      lock owns every request on that product until the transaction ends
"""

from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Protocol
from uuid import UUID

from marketplace.core.domain_types import ProductId, RequestId, UserId, RequestStatus


class ProductLike(Protocol):
    """Structural contract for the product fields arbitration reads."""
    id: UUID
    seller_id: UUID
    sold: bool


class PurchaseRequestLike(Protocol):
    """Structural contract for the purchase request fields arbitration reads."""
    id: UUID
    product_id: UUID
    buyer_id: UUID
    status: str
    message: str | None
    created_at: datetime


class ProductRepository(Protocol):
    """Contract for product lookup/update — implemented by shell."""
    async def get(self, product_id: ProductId) -> ProductLike | None: ...
    async def get_for_update(self, product_id: ProductId) -> ProductLike | None: ...
    async def set_sold(self, product_id: ProductId) -> ProductLike: ...


class PurchaseRequestRepository(Protocol):
    """Contract for purchase request persistence — implemented by shell."""
    async def get(self, request_id: RequestId) -> PurchaseRequestLike | None: ...
    async def create(
        self, product_id: ProductId, buyer_id: UserId, message: str | None,
    ) -> PurchaseRequestLike: ...
    async def list_pending_for_product(
        self, product_id: ProductId, excluding: RequestId,
    ) -> list[PurchaseRequestLike]: ...
    async def list_pending_for_buyer_on_product(
        self, product_id: ProductId, buyer_id: UserId, excluding: RequestId,
    ) -> list[PurchaseRequestLike]: ...
    async def set_status(
        self, request_id: RequestId, status: RequestStatus,
    ) -> PurchaseRequestLike: ...


class MarketplaceUnitOfWork(Protocol):
    """Repositories bound to one open transaction."""
    products: ProductRepository
    requests: PurchaseRequestRepository


class MarketplaceStore(Protocol):
    """Transaction factory injected into the arbitration engine."""
    def transaction(self) -> AbstractAsyncContextManager[MarketplaceUnitOfWork]: ...
