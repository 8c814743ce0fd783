"""Product Catalog — listing CRUD and the purchase-request submission entry point.

Invariants:
    - Catalog order: unsold first, then newest first
    - Only the seller may edit or delete a listing
    - `sold` is never writable here; it changes only through approval
    - A listing referenced by any purchase request cannot be deleted
      (purchase requests are never deleted)
    - Delete counts requests under the same product row lock submissions take,
      so a concurrent submission either lands first (409) or finds no product (404)
    - Submission goes through ArbitrationEngine.submit_request

Design Decisions:
    - Catalog reads query the ORM directly: no invariants to protect on reads
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.dependencies import get_caller, get_engine
from marketplace.config import get_settings
from marketplace.core.arbitration import check_seller_owns
from marketplace.core.domain_types import CallerContext, ProductCategory, ProductId
from marketplace.core.errors import (
    ErrorContext, ProductHasRequestsError, ResourceNotFoundError, ValidationError,
)
from marketplace.infrastructure.database import get_db
from marketplace.infrastructure.sql_store import SqlProductRepository
from marketplace.models.product import Product
from marketplace.models.purchase_request import PurchaseRequest
from marketplace.schemas.product import (
    ProductCreate, ProductResponse, ProductUpdate, ProductWithSeller,
)
from marketplace.schemas.purchase_request import (
    PurchaseRequestCreate, PurchaseRequestResponse,
)
from marketplace.services.arbitration_engine import ArbitrationEngine

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/products", tags=["products"])

PAGE_SIZE_MAX = get_settings().page_size_max


async def get_product_or_404(
    product_id: UUID, db: AsyncSession, for_update: bool = False,
) -> Product:
    if for_update:
        product = await SqlProductRepository(db).get_for_update(ProductId(product_id))
    else:
        product = await db.get(Product, product_id)
    if product is None:
        raise ResourceNotFoundError(
            "Product", str(product_id), ErrorContext(product_id=str(product_id)),
        )
    return product


@router.get("", response_model=list[ProductWithSeller])
async def list_products(
    category: ProductCategory | None = Query(None),
    limit: int = Query(50, ge=1, le=PAGE_SIZE_MAX),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """Browse the catalog, optionally by category."""
    query = select(Product).order_by(
        Product.sold.asc(), Product.created_at.desc(),
    )
    if category:
        query = query.where(Product.category == category.value)
    result = await db.execute(query.limit(limit).offset(offset))
    return result.scalars().all()


@router.get("/mine", response_model=list[ProductWithSeller])
async def list_my_products(
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    """Caller's own listings, newest first."""
    result = await db.execute(
        select(Product)
        .where(Product.seller_id == caller.user_id)
        .order_by(Product.created_at.desc()),
    )
    return result.scalars().all()


@router.get("/{product_id}", response_model=ProductWithSeller)
async def get_product(product_id: UUID, db: AsyncSession = Depends(get_db)):
    return await get_product_or_404(product_id, db)


@router.post(
    "", response_model=ProductResponse, status_code=status.HTTP_201_CREATED,
)
async def create_product(
    body: ProductCreate,
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    """List a new product; the caller becomes its seller."""
    product = Product(
        seller_id=caller.user_id,
        title=body.title,
        description=body.description,
        price=body.price,
        category=body.category.value,
        image=body.image,
        sold=False,
    )
    db.add(product)
    await db.commit()
    logger.info(
        f"Product listed: {product.title}",
        extra={"product_id": product.id, "user_id": caller.user_id},
    )
    return product


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: UUID,
    body: ProductUpdate,
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    """Edit listing fields. Seller only."""
    product = await get_product_or_404(product_id, db)
    check_seller_owns(product, caller.user_id, "edit this product")

    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError(
            "No fields to update", "body", ErrorContext(product_id=str(product_id)),
        )
    for name, value in changes.items():
        if isinstance(value, ProductCategory):
            value = value.value
        setattr(product, name, value)
    await db.commit()
    return product


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: UUID,
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    """Withdraw a listing nobody has requested yet. Seller only."""
    # Same product lock as submit_request: no request lands between count and delete
    product = await get_product_or_404(product_id, db, for_update=True)
    check_seller_owns(product, caller.user_id, "delete this product")

    count = await db.scalar(
        select(func.count())
        .select_from(PurchaseRequest)
        .where(PurchaseRequest.product_id == product_id),
    )
    if count:
        raise ProductHasRequestsError(
            count, ErrorContext(product_id=str(product_id)),
        )
    await db.delete(product)
    await db.commit()
    logger.info("Product deleted", extra={"product_id": product_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{product_id}/requests",
    response_model=PurchaseRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_purchase_request(
    product_id: UUID,
    body: PurchaseRequestCreate,
    caller: CallerContext = Depends(get_caller),
    engine: ArbitrationEngine = Depends(get_engine),
):
    """Ask the seller to sell this product to the caller."""
    request = await engine.submit_request(
        caller, ProductId(product_id), body.message,
    )
    logger.info(
        "Purchase request submitted",
        extra={
            "product_id": product_id,
            "request_id": request.id,
            "user_id": caller.user_id,
        },
    )
    return request
