import structlog
from fastapi import status
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from masjidku.auth.schemas import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from masjidku.auth.security import create_access_token, hash_password, verify_password
from masjidku.common.db_errors import is_unique_violation
from masjidku.core.exceptions import ConflictError, ServiceError
from masjidku.core.models import User

logger = structlog.get_logger(__name__)


async def register_user(db: AsyncSession, payload: RegisterRequest) -> UserResponse:
    email = payload.email.strip().lower()
    user_name = payload.user_name.strip()
    existing = await db.execute(
        select(User.id).where(or_(func.lower(User.email) == email, User.user_name == user_name))
    )
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Email or user name is already in use")

    user = User(
        user_name=user_name,
        full_name=payload.full_name,
        email=email,
        password_hash=hash_password(payload.password),
        role="user",
        is_active=True,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if is_unique_violation(e):
            raise ConflictError("Email or user name is already in use") from e
        raise
    await db.refresh(user)
    logger.info("user_registered", user_id=str(user.id))
    return UserResponse.model_validate(user)


async def login_user(db: AsyncSession, payload: LoginRequest) -> TokenResponse:
    identifier = payload.identifier.strip()
    result = await db.execute(
        select(User).where(
            or_(func.lower(User.email) == identifier.lower(), User.user_name == identifier),
            User.deleted_at.is_(None),
        )
    )
    user = result.scalar_one_or_none()
    if not user or not verify_password(payload.password, user.password_hash):
        raise ServiceError("Invalid credentials", status.HTTP_401_UNAUTHORIZED)
    if not user.is_active:
        raise ServiceError("User account is inactive", status.HTTP_401_UNAUTHORIZED)

    token = create_access_token(user.id, user.role)
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))
