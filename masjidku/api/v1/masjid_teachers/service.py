from typing import List, Optional, Tuple
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from masjidku.api.v1.class_section_subject_teachers import snapshots
from masjidku.common.db_errors import is_unique_violation
from masjidku.common.pagination import PageParams, alive, apply_search, apply_sort, paginate
from masjidku.common.responses import PaginationMeta
from masjidku.core.exceptions import ConflictError, NotFoundError
from masjidku.core.models import MasjidTeacher, User
from masjidku.db.types import utcnow

from .schemas import MasjidTeacherCreate, MasjidTeacherResponse, MasjidTeacherUpdate

logger = structlog.get_logger(__name__)

SORT_FIELDS = {
    "created_at": MasjidTeacher.created_at,
    "name": MasjidTeacher.full_name_snap,
    "user_name": MasjidTeacher.user_name_snap,
}


async def create_teacher(db: AsyncSession, masjid_id: UUID, payload: MasjidTeacherCreate) -> MasjidTeacherResponse:
    user = await db.get(User, payload.user_id)
    if not user or user.deleted_at is not None:
        raise NotFoundError("User not found")

    existing = await db.execute(
        select(MasjidTeacher.id).where(
            MasjidTeacher.masjid_id == masjid_id,
            MasjidTeacher.user_id == payload.user_id,
            alive(MasjidTeacher),
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("User is already a teacher of this masjid")

    teacher = MasjidTeacher(
        masjid_id=masjid_id,
        user_id=user.id,
        user_name_snap=user.user_name,
        full_name_snap=user.full_name,
        title=(payload.title or "").strip() or None,
        is_active=True,
    )
    db.add(teacher)
    if user.role == "user":
        user.role = "teacher"
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if is_unique_violation(e):
            raise ConflictError("User is already a teacher of this masjid") from e
        raise
    await db.refresh(teacher)
    logger.info("masjid_teacher_created", masjid_id=str(masjid_id), teacher_id=str(teacher.id))
    return MasjidTeacherResponse.model_validate(teacher)


async def list_teachers(
    db: AsyncSession,
    masjid_id: UUID,
    params: PageParams,
    q: Optional[str] = None,
    is_active: Optional[bool] = None,
    sort_by: Optional[str] = None,
    order: Optional[str] = None,
    include_deleted: bool = False,
) -> Tuple[List[MasjidTeacherResponse], PaginationMeta]:
    stmt = select(MasjidTeacher).where(MasjidTeacher.masjid_id == masjid_id)
    if not include_deleted:
        stmt = stmt.where(alive(MasjidTeacher))
    if is_active is not None:
        stmt = stmt.where(MasjidTeacher.is_active.is_(is_active))
    stmt = apply_search(stmt, q, [MasjidTeacher.full_name_snap, MasjidTeacher.user_name_snap, MasjidTeacher.title])
    stmt = apply_sort(stmt, sort_by, order, SORT_FIELDS, tiebreaker=MasjidTeacher.id)
    rows, meta = await paginate(db, stmt, params)
    return [MasjidTeacherResponse.model_validate(t) for t in rows], meta


async def _get_alive(db: AsyncSession, masjid_id: UUID, teacher_id: UUID) -> MasjidTeacher:
    result = await db.execute(
        select(MasjidTeacher).where(
            MasjidTeacher.id == teacher_id,
            MasjidTeacher.masjid_id == masjid_id,
            alive(MasjidTeacher),
        )
    )
    teacher = result.scalar_one_or_none()
    if not teacher:
        raise NotFoundError("Teacher not found")
    return teacher


async def get_teacher(db: AsyncSession, masjid_id: UUID, teacher_id: UUID) -> MasjidTeacherResponse:
    return MasjidTeacherResponse.model_validate(await _get_alive(db, masjid_id, teacher_id))


async def update_teacher(
    db: AsyncSession,
    masjid_id: UUID,
    teacher_id: UUID,
    payload: MasjidTeacherUpdate,
) -> MasjidTeacherResponse:
    teacher = await _get_alive(db, masjid_id, teacher_id)
    if payload.title is not None:
        teacher.title = payload.title.strip() or None
    if payload.is_active is not None:
        teacher.is_active = payload.is_active
    if payload.refresh_snapshot:
        user = await db.get(User, teacher.user_id)
        if user:
            teacher.user_name_snap = user.user_name
            teacher.full_name_snap = user.full_name

    refreshed = await snapshots.refresh_for_teacher(db, teacher)
    await db.commit()
    await db.refresh(teacher)
    logger.info("masjid_teacher_updated", teacher_id=str(teacher.id), csst_refreshed=refreshed)
    return MasjidTeacherResponse.model_validate(teacher)


async def delete_teacher(db: AsyncSession, masjid_id: UUID, teacher_id: UUID) -> None:
    teacher = await _get_alive(db, masjid_id, teacher_id)
    teacher.deleted_at = utcnow()
    await db.commit()
    logger.info("masjid_teacher_deleted", teacher_id=str(teacher_id))
