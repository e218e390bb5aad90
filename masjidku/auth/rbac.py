from typing import List
from uuid import UUID

from fastapi import Depends, HTTPException, Path, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from masjidku.auth.dependencies import get_current_user
from masjidku.auth.schemas import CurrentUser, MasjidContext
from masjidku.core.exceptions import ServiceError
from masjidku.core.models import Masjid, MasjidAdmin, MasjidTeacher
from masjidku.db.session import get_db


async def resolve_masjid(db: AsyncSession, masjid_ref: str) -> Masjid:
    """Look up an alive masjid by UUID or slug."""
    ref = (masjid_ref or "").strip()
    if not ref:
        raise ServiceError("Masjid id or slug is required", status.HTTP_400_BAD_REQUEST)
    try:
        stmt = select(Masjid).where(Masjid.id == UUID(ref))
    except ValueError:
        stmt = select(Masjid).where(Masjid.slug == ref.lower())
    result = await db.execute(stmt.where(Masjid.deleted_at.is_(None)))
    masjid = result.scalar_one_or_none()
    if not masjid:
        raise ServiceError("Masjid not found", status.HTTP_404_NOT_FOUND)
    return masjid


async def masjid_roles_for(db: AsyncSession, user_id: UUID, masjid_id: UUID) -> List[str]:
    roles: List[str] = []
    admin = await db.execute(
        select(MasjidAdmin.id).where(
            MasjidAdmin.masjid_id == masjid_id,
            MasjidAdmin.user_id == user_id,
            MasjidAdmin.is_active.is_(True),
        )
    )
    if admin.scalar_one_or_none() is not None:
        roles.append("dkm")
    teacher = await db.execute(
        select(MasjidTeacher.id).where(
            MasjidTeacher.masjid_id == masjid_id,
            MasjidTeacher.user_id == user_id,
            MasjidTeacher.deleted_at.is_(None),
        )
    )
    if teacher.scalar_one_or_none() is not None:
        roles.append("teacher")
    return roles


def require_masjid_roles(*allowed: str):
    """
    Dependency factory: resolve the masjid from the ``masjid_id`` path parameter
    (UUID or slug) and require one of ``allowed`` roles in it. Owners always pass.

    Example:
        ctx: MasjidContext = Depends(require_masjid_roles("dkm", "teacher"))
    """

    async def _checker(
        masjid_id: str = Path(..., description="Masjid UUID or slug"),
        current_user: CurrentUser = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ) -> MasjidContext:
        try:
            masjid = await resolve_masjid(db, masjid_id)
        except ServiceError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)
        roles = await masjid_roles_for(db, current_user.id, masjid.id)
        if not current_user.is_owner and not set(roles) & set(allowed):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role for this masjid",
            )
        return MasjidContext(masjid_id=masjid.id, masjid_slug=masjid.slug, user=current_user, roles=roles)

    return _checker


require_dkm = require_masjid_roles("dkm")
require_dkm_or_teacher = require_masjid_roles("dkm", "teacher")


async def require_owner(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """Require the platform owner role. Used for platform-wide endpoints."""
    if not current_user.is_owner:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the platform owner can perform this action",
        )
    return current_user
