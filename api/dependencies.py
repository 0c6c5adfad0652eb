"""FastAPI dependencies for dependency injection."""

from fastapi import Depends, Query, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.common import PaginationParams
from api.services.notifications import Notifier
from core.errors import Forbidden, Unauthenticated
from core.utils.datetime import Clock, now
from database.engine import get_db
from database.models.users import User, UserType


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Load the caller named by the verified token.

    AuthenticationMiddleware has already checked the signature and put
    ``user_id`` on the scope.
    """
    user_id = request.scope.get("user_id")
    if user_id is None:
        raise Unauthenticated("Authentication required")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise Unauthenticated("User account not found")
    if not user.is_active:
        raise Forbidden("User account is inactive", code="USER_INACTIVE")
    return user


async def require_admin_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Require user to be an admin."""
    if current_user.user_type != UserType.ADMIN:
        raise Forbidden("Only admins can access this resource")
    return current_user


def get_notifier() -> Notifier:
    """Fresh outbox per request."""
    return Notifier()


def get_clock() -> Clock:
    return now


def get_pagination_params(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> PaginationParams:
    return PaginationParams(page=page, page_size=limit)
