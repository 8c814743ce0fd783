"""Request Dependencies — caller identity and arbitration engine wiring.

Invariants:
    - Caller identity resolved ONCE per request into a CallerContext
    - Missing, malformed, or unknown caller ids raise UnauthenticatedError (401)
    - Engine receives a store bound to the same session the caller lookup used

Design Decisions:
    - Identity header is set by the upstream authenticating gateway; this service
      trusts it and only checks the user exists
"""

from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.config import get_settings
from marketplace.core.domain_types import CallerContext, UserId
from marketplace.core.errors import UnauthenticatedError
from marketplace.infrastructure.database import get_db
from marketplace.infrastructure.sql_store import SqlMarketplaceStore
from marketplace.models.user import User
from marketplace.services.arbitration_engine import ArbitrationEngine


async def get_caller(
    request: Request, db: AsyncSession = Depends(get_db),
) -> CallerContext:
    """Resolve the verified caller forwarded by the gateway."""
    raw = request.headers.get(get_settings().caller_id_header)
    if not raw:
        raise UnauthenticatedError()
    try:
        user_id = UUID(raw)
    except ValueError:
        raise UnauthenticatedError()

    user = await db.get(User, user_id)
    if user is None:
        raise UnauthenticatedError()
    return CallerContext(user_id=UserId(user.id), username=user.username)


def get_engine(db: AsyncSession = Depends(get_db)) -> ArbitrationEngine:
    return ArbitrationEngine(SqlMarketplaceStore(db))
