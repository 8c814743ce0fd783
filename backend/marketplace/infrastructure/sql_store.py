"""SQL Store — SQLAlchemy implementation of the arbitration storage protocols.

Invariants:
    - transaction() commits once on normal exit, rolls back on any exception
    - get_for_update issues SELECT ... FOR UPDATE on the product row (PostgreSQL);
      concurrent arbitration on one product waits on that lock until commit
    - Reads use populate_existing so state read after acquiring the lock is never
      served stale from the session identity map
    - SQLAlchemy exceptions leave as DatabaseError

Design Decisions:
    - Bound to the request-scoped AsyncSession from get_db: one session, one
      transaction per engine operation
    - commit/rollback instead of session.begin(): the session may already have
      autobegun for the caller lookup that precedes the operation
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.domain_types import ProductId, RequestId, UserId, RequestStatus
from marketplace.core.errors import DatabaseError, ErrorContext, ResourceNotFoundError
from marketplace.models.product import Product
from marketplace.models.purchase_request import PurchaseRequest

logger = logging.getLogger(__name__)


class SqlProductRepository:
    """Product lookup/update over an open AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, product_id: ProductId) -> Product | None:
        result = await self.db.execute(
            select(Product)
            .where(Product.id == product_id)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def get_for_update(self, product_id: ProductId) -> Product | None:
        result = await self.db.execute(
            select(Product)
            .where(Product.id == product_id)
            .with_for_update()
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def set_sold(self, product_id: ProductId) -> Product:
        """Mark sold. Idempotent: a sold product stays sold."""
        product = await self.db.get(Product, product_id)
        if product is None:
            raise ResourceNotFoundError(
                "Product", str(product_id), ErrorContext(product_id=str(product_id)),
            )
        product.sold = True
        await self.db.flush()
        return product


class SqlPurchaseRequestRepository:
    """Purchase request persistence over an open AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, request_id: RequestId) -> PurchaseRequest | None:
        result = await self.db.execute(
            select(PurchaseRequest)
            .where(PurchaseRequest.id == request_id)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def create(
        self, product_id: ProductId, buyer_id: UserId, message: str | None,
    ) -> PurchaseRequest:
        request = PurchaseRequest(
            product_id=product_id,
            buyer_id=buyer_id,
            message=message,
            status=RequestStatus.PENDING.value,
        )
        self.db.add(request)
        await self.db.flush()
        return request

    async def list_pending_for_product(
        self, product_id: ProductId, excluding: RequestId,
    ) -> list[PurchaseRequest]:
        return await self._list_pending(
            PurchaseRequest.product_id == product_id,
            PurchaseRequest.id != excluding,
        )

    async def list_pending_for_buyer_on_product(
        self, product_id: ProductId, buyer_id: UserId, excluding: RequestId,
    ) -> list[PurchaseRequest]:
        return await self._list_pending(
            PurchaseRequest.product_id == product_id,
            PurchaseRequest.buyer_id == buyer_id,
            PurchaseRequest.id != excluding,
        )

    async def set_status(
        self, request_id: RequestId, status: RequestStatus,
    ) -> PurchaseRequest:
        request = await self.db.get(PurchaseRequest, request_id)
        if request is None:
            raise ResourceNotFoundError(
                "PurchaseRequest", str(request_id),
                ErrorContext(request_id=str(request_id)),
            )
        request.status = RequestStatus(status).value
        await self.db.flush()
        return request

    async def _list_pending(self, *criteria) -> list[PurchaseRequest]:
        result = await self.db.execute(
            select(PurchaseRequest)
            .where(PurchaseRequest.status == RequestStatus.PENDING.value, *criteria)
            .order_by(PurchaseRequest.created_at.asc())
            .execution_options(populate_existing=True),
        )
        return list(result.scalars().all())


class SqlUnitOfWork:
    """Repositories sharing one session and therefore one transaction."""

    def __init__(self, db: AsyncSession):
        self.products = SqlProductRepository(db)
        self.requests = SqlPurchaseRequestRepository(db)


class SqlMarketplaceStore:
    """MarketplaceStore backed by a request-scoped AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[SqlUnitOfWork, None]:
        try:
            yield SqlUnitOfWork(self.db)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Arbitration transaction failed: {e}")
            raise DatabaseError("Transaction rolled back", "commit") from e
        except Exception:
            await self.db.rollback()
            raise
