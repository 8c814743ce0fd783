"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Product is the arbitration unit; purchase requests are scoped by product_id

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from marketplace.models.user import User  # noqa: F401
from marketplace.models.product import Product  # noqa: F401
from marketplace.models.purchase_request import PurchaseRequest  # noqa: F401
