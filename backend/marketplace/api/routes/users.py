"""User Profiles — registration and the caller's own profile.

Invariants:
    - A taken username is UsernameTakenError (409), whether the pre-check sees it
      or a concurrent registration wins the unique constraint at commit
    - GET /users/me requires a resolved caller
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.dependencies import get_caller
from marketplace.core.domain_types import CallerContext
from marketplace.core.errors import UsernameTakenError
from marketplace.infrastructure.database import get_db
from marketplace.models.user import User
from marketplace.schemas.user import UserCreate, UserResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.post(
    "", response_model=UserResponse, status_code=status.HTTP_201_CREATED,
)
async def register_user(body: UserCreate, db: AsyncSession = Depends(get_db)):
    """Register a marketplace profile for an upstream-verified identity."""
    result = await db.execute(select(User).where(User.username == body.username))
    if result.scalar_one_or_none():
        raise UsernameTakenError(body.username)
    user = User(username=body.username, name=body.name)
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise UsernameTakenError(body.username)
    logger.info(f"User {user.username} registered", extra={"user_id": user.id})
    return user


@router.get("/me", response_model=UserResponse)
async def get_me(
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    """Profile of the authenticated caller."""
    return await db.get(User, caller.user_id)
