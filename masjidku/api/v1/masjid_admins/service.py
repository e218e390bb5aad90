"""DKM membership: add (upsert), revoke (deactivate) and list active admins of a masjid."""

from typing import List, Optional, Tuple
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from masjidku.common.db_errors import is_unique_violation
from masjidku.common.pagination import PageParams, apply_search, paginate
from masjidku.common.responses import PaginationMeta
from masjidku.core.exceptions import BadRequestError, ConflictError, NotFoundError
from masjidku.core.models import MasjidAdmin, User

from .schemas import MasjidAdminResponse

logger = structlog.get_logger(__name__)

# Global roles that are demoted back to "user" once no active admin row remains
DEMOTABLE_ROLES = ("admin", "dkm")


def _to_response(row: MasjidAdmin, user: Optional[User] = None) -> MasjidAdminResponse:
    user = user or row.user
    return MasjidAdminResponse(
        id=row.id,
        masjid_id=row.masjid_id,
        user_id=row.user_id,
        is_active=row.is_active,
        created_at=row.created_at,
        updated_at=row.updated_at,
        user_name=user.user_name if user else None,
        full_name=user.full_name if user else None,
        email=user.email if user else None,
    )


async def _get_user(db: AsyncSession, user_id: UUID) -> User:
    user = await db.get(User, user_id)
    if not user or user.deleted_at is not None:
        raise NotFoundError("User not found")
    return user


async def _locked_row(db: AsyncSession, masjid_id: UUID, user_id: UUID) -> Optional[MasjidAdmin]:
    result = await db.execute(
        select(MasjidAdmin)
        .where(MasjidAdmin.masjid_id == masjid_id, MasjidAdmin.user_id == user_id)
        .with_for_update()
    )
    return result.scalar_one_or_none()


async def add_admin(db: AsyncSession, masjid_id: UUID, user_id: UUID) -> Tuple[MasjidAdminResponse, bool]:
    """Returns (admin, created). An existing row is re-activated; an active one is left as is."""
    user = await _get_user(db, user_id)
    if user.role == "owner":
        raise BadRequestError("The platform owner cannot be assigned as masjid admin")

    row = await _locked_row(db, masjid_id, user_id)
    created = row is None
    if row is None:
        row = MasjidAdmin(masjid_id=masjid_id, user_id=user_id, is_active=True)
        db.add(row)
    elif not row.is_active:
        row.is_active = True

    if user.role != "dkm":
        user.role = "dkm"

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if is_unique_violation(e):
            raise ConflictError("User is already an admin of this masjid") from e
        raise
    await db.refresh(row)
    logger.info("masjid_admin_added", masjid_id=str(masjid_id), user_id=str(user_id), created=created)
    return _to_response(row, user), created


async def revoke_admin(db: AsyncSession, masjid_id: UUID, user_id: UUID) -> Tuple[Optional[MasjidAdminResponse], str]:
    user = await _get_user(db, user_id)
    if user.role == "owner":
        return None, "Owner role is not changed"

    row = await _locked_row(db, masjid_id, user_id)
    if row is None or not row.is_active:
        return (_to_response(row, user) if row else None), "Admin is already inactive"

    row.is_active = False
    await db.flush()

    remaining = await db.execute(
        select(func.count())
        .select_from(MasjidAdmin)
        .where(MasjidAdmin.user_id == user_id, MasjidAdmin.is_active.is_(True))
    )
    if remaining.scalar_one() == 0 and user.role in DEMOTABLE_ROLES:
        user.role = "user"

    await db.commit()
    await db.refresh(row)
    logger.info("masjid_admin_revoked", masjid_id=str(masjid_id), user_id=str(user_id))
    return _to_response(row, user), "Admin revoked"


async def list_admins(
    db: AsyncSession,
    masjid_id: UUID,
    params: PageParams,
    q: Optional[str] = None,
) -> Tuple[List[MasjidAdminResponse], PaginationMeta]:
    stmt = (
        select(MasjidAdmin)
        .join(User, User.id == MasjidAdmin.user_id)
        .where(MasjidAdmin.masjid_id == masjid_id, MasjidAdmin.is_active.is_(True))
        .options(selectinload(MasjidAdmin.user))
    )
    stmt = apply_search(stmt, q, [User.user_name, User.full_name, User.email])
    stmt = stmt.order_by(MasjidAdmin.created_at.desc(), MasjidAdmin.id.asc())
    rows, meta = await paginate(db, stmt, params)
    return [_to_response(r) for r in rows], meta
