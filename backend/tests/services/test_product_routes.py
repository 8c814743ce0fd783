"""Product Routes — catalog browsing and seller-only listing management.

Invariants:
    - Catalog lists unsold products first, newest first within each group
    - Category filter narrows the catalog
    - Creating a listing requires a caller; the caller becomes the seller
    - Only the seller may edit or delete; `sold` is not editable
    - A listing with purchase requests cannot be deleted
"""

from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.domain_types import ProductCategory
from marketplace.infrastructure.sql_store import SqlProductRepository
from marketplace.models.product import Product

from tests.services.conftest import auth


NEW_LISTING = {
    "title": "  Desk lamp  ",
    "description": "Warm light, works fine",
    "price": 800,
    "category": "Electronics",
}


# --- Catalog ------------------------------------------------------------------

async def test_catalog_puts_sold_last_then_newest_first(client, make_product):
    old = await make_product(title="Old", age_minutes=30)
    new = await make_product(title="New", age_minutes=1)
    sold = await make_product(title="Sold", sold=True, age_minutes=0)

    res = await client.get("/api/v1/products")

    assert res.status_code == 200
    assert [p["id"] for p in res.json()] == [str(new.id), str(old.id), str(sold.id)]


async def test_catalog_includes_seller_profile(client, product):
    res = await client.get("/api/v1/products")
    assert res.json()[0]["seller"]["username"] == "seller"


async def test_catalog_filters_by_category(client, make_product):
    await make_product(category=ProductCategory.BOOKS)
    gadget = await make_product(category=ProductCategory.ELECTRONICS, title="Phone")

    res = await client.get("/api/v1/products", params={"category": "Electronics"})

    assert [p["id"] for p in res.json()] == [str(gadget.id)]


async def test_catalog_rejects_unknown_category(client):
    res = await client.get("/api/v1/products", params={"category": "Furniture"})
    assert res.status_code == 400


async def test_catalog_paginates(client, make_product):
    for i in range(3):
        await make_product(title=f"Book {i}", age_minutes=i)

    res = await client.get("/api/v1/products", params={"limit": 2, "offset": 1})

    assert [p["title"] for p in res.json()] == ["Book 1", "Book 2"]


async def test_get_product(client, product):
    res = await client.get(f"/api/v1/products/{product.id}")
    assert res.status_code == 200
    assert res.json()["sold"] is False


async def test_get_unknown_product_is_404(client):
    res = await client.get(f"/api/v1/products/{uuid4()}")
    assert res.status_code == 404
    assert res.json()["error"]["context"]["product_id"] is not None


async def test_my_products_lists_only_callers_listings(client, make_product, seller, buyer):
    mine = await make_product()
    await make_product(owner=buyer, title="Buyer's bike")

    res = await client.get("/api/v1/products/mine", headers=auth(seller))

    assert [p["id"] for p in res.json()] == [str(mine.id)]


# --- Create / edit / delete ---------------------------------------------------

async def test_create_makes_caller_the_seller(client, seller):
    res = await client.post("/api/v1/products", json=NEW_LISTING, headers=auth(seller))

    assert res.status_code == 201
    body = res.json()
    assert body["seller_id"] == str(seller.id)
    assert body["title"] == "Desk lamp"
    assert body["sold"] is False
    assert body["image"] == ""


async def test_create_without_caller_is_401(client):
    res = await client.post("/api/v1/products", json=NEW_LISTING)
    assert res.status_code == 401


async def test_create_rejects_negative_price(client, seller):
    res = await client.post(
        "/api/v1/products", json={**NEW_LISTING, "price": -1}, headers=auth(seller),
    )
    assert res.status_code == 400


async def test_create_ignores_client_sold_flag(client, seller):
    res = await client.post(
        "/api/v1/products", json={**NEW_LISTING, "sold": True}, headers=auth(seller),
    )
    assert res.status_code == 201
    assert res.json()["sold"] is False


async def test_seller_can_edit_listing(client, product, seller):
    res = await client.patch(
        f"/api/v1/products/{product.id}",
        json={"price": 1200, "category": "Others"},
        headers=auth(seller),
    )
    assert res.status_code == 200
    assert res.json()["price"] == 1200
    assert res.json()["category"] == "Others"
    assert res.json()["title"] == "Used textbook"


async def test_edit_by_other_user_is_403(client, product, buyer):
    res = await client.patch(
        f"/api/v1/products/{product.id}", json={"price": 1}, headers=auth(buyer),
    )
    assert res.status_code == 403


async def test_edit_cannot_set_sold(client, test_db, product, seller):
    res = await client.patch(
        f"/api/v1/products/{product.id}", json={"sold": True}, headers=auth(seller),
    )
    assert res.status_code == 400
    sold = await test_db.scalar(select(Product.sold).where(Product.id == product.id))
    assert sold is False


async def test_delete_unrequested_listing(client, test_db, product, seller):
    product_id = product.id
    res = await client.delete(f"/api/v1/products/{product_id}", headers=auth(seller))

    assert res.status_code == 204
    remaining = await test_db.scalar(select(Product.id).where(Product.id == product_id))
    assert remaining is None


async def test_delete_with_requests_is_409(client, product, seller, buyer, make_request):
    await make_request(product, buyer, status="rejected")

    res = await client.delete(f"/api/v1/products/{product.id}", headers=auth(seller))

    assert res.status_code == 409
    assert res.json()["error"]["code"] == "PRODUCT_HAS_REQUESTS"


async def test_delete_by_other_user_is_403(client, product, buyer):
    res = await client.delete(f"/api/v1/products/{product.id}", headers=auth(buyer))
    assert res.status_code == 403


async def test_edit_with_no_fields_is_400(client, product, seller):
    res = await client.patch(
        f"/api/v1/products/{product.id}", json={}, headers=auth(seller),
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_delete_counts_requests_under_product_lock(client, product, seller, monkeypatch):
    """SQLite takes no row locks, so check ordering: lock the product, then count."""
    events = []
    get_for_update = SqlProductRepository.get_for_update
    scalar = AsyncSession.scalar

    async def locking(self, product_id):
        events.append("lock")
        return await get_for_update(self, product_id)

    async def counting(self, *args, **kwargs):
        events.append("count")
        return await scalar(self, *args, **kwargs)

    monkeypatch.setattr(SqlProductRepository, "get_for_update", locking)
    monkeypatch.setattr(AsyncSession, "scalar", counting)

    res = await client.delete(f"/api/v1/products/{product.id}", headers=auth(seller))

    assert res.status_code == 204
    assert events == ["lock", "count"]


async def test_delete_unknown_product_is_404(client, seller):
    res = await client.delete(f"/api/v1/products/{uuid4()}", headers=auth(seller))
    assert res.status_code == 404


async def test_edit_with_null_field_is_400_and_changes_nothing(client, test_db, product, seller):
    res = await client.patch(
        f"/api/v1/products/{product.id}",
        json={"price": 5, "title": None},
        headers=auth(seller),
    )
    assert res.status_code == 400
    assert res.json()["error"]["details"][0]["field"] == "body.title"
    price = await test_db.scalar(select(Product.price).where(Product.id == product.id))
    assert price == 1500
