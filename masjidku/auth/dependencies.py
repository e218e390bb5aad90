from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from masjidku.auth.schemas import CurrentUser
from masjidku.auth.security import decode_access_token
from masjidku.core.models import User
from masjidku.db.session import get_db

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login-oauth")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login-oauth", auto_error=False)


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _resolve_user(token: str, db: AsyncSession) -> CurrentUser:
    user_id = decode_access_token(token)
    if user_id is None:
        raise _credentials_exception()

    result = await db.execute(select(User).where(User.id == user_id, User.deleted_at.is_(None)))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise _credentials_exception()

    # Role is read from the DB, not the token, so promotions/demotions apply immediately
    return CurrentUser(
        id=user.id,
        user_name=user.user_name,
        full_name=user.full_name,
        email=user.email,
        role=user.role,
    )


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Resolve the authenticated user from the access token."""
    return await _resolve_user(token, db)


async def get_optional_user(
    token: Optional[str] = Depends(optional_oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[CurrentUser]:
    """Like get_current_user, but anonymous requests yield None. A bad token is still a 401."""
    if not token:
        return None
    return await _resolve_user(token, db)
