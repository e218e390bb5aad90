from typing import List, Optional, Tuple
from uuid import UUID

import structlog
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from masjidku.common.db_errors import is_foreign_key_violation, is_unique_violation
from masjidku.common.pagination import PageParams, alive, apply_search, apply_sort, paginate
from masjidku.common.responses import PaginationMeta
from masjidku.common.slugs import ensure_unique_slug, slugify
from masjidku.core.exceptions import BadRequestError, ConflictError, NotFoundError
from masjidku.core.models import ClassSection, ClassSectionSubjectTeacher as CSST, ClassSubject, MasjidTeacher, Subject
from masjidku.db.types import utcnow

from . import snapshots
from .schemas import CSSTCreate, CSSTResponse, CSSTUpdate

logger = structlog.get_logger(__name__)

SLUG_MAX_LEN = 160

SORT_FIELDS = {
    "created_at": CSST.created_at,
    "updated_at": CSST.updated_at,
    "slug": CSST.slug,
    "teacher_name": CSST.teacher_name_snap,
}

DUPLICATE_MESSAGE = "This teacher is already assigned to the subject in this section"


async def _get_section(db: AsyncSession, masjid_id: UUID, section_id: UUID) -> ClassSection:
    section = await db.get(ClassSection, section_id)
    if not section or section.masjid_id != masjid_id or section.deleted_at is not None:
        raise BadRequestError("Invalid section")
    return section


async def _get_class_subject(db: AsyncSession, masjid_id: UUID, class_subject_id: UUID) -> ClassSubject:
    cs = await db.get(ClassSubject, class_subject_id)
    if not cs or cs.masjid_id != masjid_id or cs.deleted_at is not None:
        raise BadRequestError("Invalid class subject")
    return cs


async def _get_teacher(db: AsyncSession, masjid_id: UUID, teacher_id: UUID, label: str = "teacher") -> MasjidTeacher:
    teacher = await db.get(MasjidTeacher, teacher_id)
    if not teacher or teacher.masjid_id != masjid_id or teacher.deleted_at is not None:
        raise BadRequestError(f"Invalid {label}")
    return teacher


def _check_same_class(section: ClassSection, cs: ClassSubject) -> None:
    if section.class_id != cs.class_id:
        raise BadRequestError("Class subject does not belong to the section's class")


async def _build_slug(
    db: AsyncSession,
    masjid_id: UUID,
    requested: Optional[str],
    section: ClassSection,
    cs: ClassSubject,
    exclude_id: Optional[UUID] = None,
) -> str:
    base = slugify(requested, SLUG_MAX_LEN)
    if not base:
        subject = await db.get(Subject, cs.subject_id)
        base = slugify(f"{section.name} {subject.name if subject else ''}", SLUG_MAX_LEN)
    if not base:
        base = f"csst-{str(section.id)[:8]}-{str(cs.id)[:8]}"
    return await ensure_unique_slug(
        db,
        CSST,
        base,
        scope=[CSST.masjid_id == masjid_id, alive(CSST)],
        exclude_id=exclude_id,
        max_len=SLUG_MAX_LEN,
    )


async def _ensure_not_duplicate(
    db: AsyncSession,
    section_id: UUID,
    class_subject_id: UUID,
    teacher_id: Optional[UUID],
    exclude_id: Optional[UUID] = None,
) -> None:
    stmt = select(CSST.id).where(
        CSST.section_id == section_id,
        CSST.class_subject_id == class_subject_id,
        CSST.teacher_id == teacher_id,
        alive(CSST),
    )
    if exclude_id is not None:
        stmt = stmt.where(CSST.id != exclude_id)
    if (await db.execute(stmt)).scalar_one_or_none() is not None:
        raise ConflictError(DUPLICATE_MESSAGE)


async def _commit(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if is_unique_violation(e):
            raise ConflictError(DUPLICATE_MESSAGE) from e
        if is_foreign_key_violation(e):
            raise BadRequestError("Referenced section, subject or teacher does not exist") from e
        raise


async def create_csst(db: AsyncSession, masjid_id: UUID, payload: CSSTCreate) -> CSSTResponse:
    section = await _get_section(db, masjid_id, payload.section_id)
    cs = await _get_class_subject(db, masjid_id, payload.class_subject_id)
    _check_same_class(section, cs)
    teacher = await _get_teacher(db, masjid_id, payload.teacher_id)
    assistant = None
    if payload.assistant_teacher_id is not None:
        assistant = await _get_teacher(db, masjid_id, payload.assistant_teacher_id, "assistant teacher")

    await _ensure_not_duplicate(db, section.id, cs.id, teacher.id)
    slug = await _build_slug(db, masjid_id, payload.slug, section, cs)

    row = CSST(
        masjid_id=masjid_id,
        section_id=section.id,
        class_subject_id=cs.id,
        slug=slug,
        description=(payload.description or "").strip() or None,
        group_url=(payload.group_url or "").strip() or None,
        capacity=payload.capacity,
        delivery_mode=payload.delivery_mode,
        enrolled_count=0,
        total_attendance=0,
        is_active=payload.is_active,
    )
    snapshots.set_teacher(row, teacher)
    snapshots.set_assistant_teacher(row, assistant)
    db.add(row)
    await _commit(db)
    await db.refresh(row)
    logger.info("csst_created", masjid_id=str(masjid_id), csst_id=str(row.id), slug=row.slug)
    return CSSTResponse.model_validate(row)


async def list_csst(
    db: AsyncSession,
    masjid_id: UUID,
    params: PageParams,
    section_id: Optional[UUID] = None,
    class_subject_id: Optional[UUID] = None,
    teacher_id: Optional[UUID] = None,
    is_active: Optional[bool] = None,
    delivery_mode: Optional[str] = None,
    q: Optional[str] = None,
    sort_by: Optional[str] = None,
    order: Optional[str] = None,
    include_deleted: bool = False,
) -> Tuple[List[CSSTResponse], PaginationMeta]:
    stmt = select(CSST).where(CSST.masjid_id == masjid_id)
    if not include_deleted:
        stmt = stmt.where(alive(CSST))
    if section_id is not None:
        stmt = stmt.where(CSST.section_id == section_id)
    if class_subject_id is not None:
        stmt = stmt.where(CSST.class_subject_id == class_subject_id)
    if teacher_id is not None:
        stmt = stmt.where(or_(CSST.teacher_id == teacher_id, CSST.assistant_teacher_id == teacher_id))
    if is_active is not None:
        stmt = stmt.where(CSST.is_active.is_(is_active))
    if delivery_mode:
        stmt = stmt.where(CSST.delivery_mode == delivery_mode)
    stmt = apply_search(stmt, q, [CSST.slug, CSST.description, CSST.teacher_name_snap])
    stmt = apply_sort(stmt, sort_by, order, SORT_FIELDS, tiebreaker=CSST.id)
    rows, meta = await paginate(db, stmt, params)
    return [CSSTResponse.model_validate(r) for r in rows], meta


async def _get_alive(db: AsyncSession, masjid_id: UUID, csst_id: UUID) -> CSST:
    result = await db.execute(select(CSST).where(CSST.id == csst_id, CSST.masjid_id == masjid_id, alive(CSST)))
    row = result.scalar_one_or_none()
    if not row:
        raise NotFoundError("Class section subject teacher not found")
    return row


async def get_csst(db: AsyncSession, masjid_id: UUID, csst_id: UUID) -> CSSTResponse:
    return CSSTResponse.model_validate(await _get_alive(db, masjid_id, csst_id))


async def update_csst(db: AsyncSession, masjid_id: UUID, csst_id: UUID, payload: CSSTUpdate) -> CSSTResponse:
    row = await _get_alive(db, masjid_id, csst_id)

    refs_changed = payload.section_id is not None or payload.class_subject_id is not None
    section = await _get_section(db, masjid_id, payload.section_id or row.section_id)
    cs = await _get_class_subject(db, masjid_id, payload.class_subject_id or row.class_subject_id)
    if refs_changed:
        _check_same_class(section, cs)
        row.section_id = section.id
        row.class_subject_id = cs.id

    if payload.teacher_id is not None:
        snapshots.set_teacher(row, await _get_teacher(db, masjid_id, payload.teacher_id))
    if payload.clear_assistant_teacher:
        snapshots.set_assistant_teacher(row, None)
    elif payload.assistant_teacher_id is not None:
        snapshots.set_assistant_teacher(
            row, await _get_teacher(db, masjid_id, payload.assistant_teacher_id, "assistant teacher")
        )

    if refs_changed or payload.teacher_id is not None:
        await _ensure_not_duplicate(db, row.section_id, row.class_subject_id, row.teacher_id, exclude_id=row.id)

    if payload.slug is not None:
        row.slug = await _build_slug(db, masjid_id, payload.slug.strip(), section, cs, exclude_id=row.id)
    if payload.description is not None:
        row.description = payload.description.strip() or None
    if payload.group_url is not None:
        row.group_url = payload.group_url.strip() or None
    if payload.capacity is not None:
        row.capacity = payload.capacity
    if payload.delivery_mode is not None:
        row.delivery_mode = payload.delivery_mode
    if payload.is_active is not None:
        row.is_active = payload.is_active

    await _commit(db)
    await db.refresh(row)
    return CSSTResponse.model_validate(row)


async def delete_csst(db: AsyncSession, masjid_id: UUID, csst_id: UUID) -> bool:
    """Soft delete. Returns False when the row was already deleted."""
    result = await db.execute(select(CSST).where(CSST.id == csst_id, CSST.masjid_id == masjid_id))
    row = result.scalar_one_or_none()
    if not row:
        raise NotFoundError("Class section subject teacher not found")
    if row.deleted_at is not None:
        return False
    row.deleted_at = utcnow()
    await db.commit()
    logger.info("csst_deleted", csst_id=str(csst_id))
    return True


async def list_my_assignments(
    db: AsyncSession,
    user_id: UUID,
    params: PageParams,
    is_active: Optional[bool] = None,
) -> Tuple[List[CSSTResponse], PaginationMeta]:
    """Assignments, across every masjid, where the user is the teacher or assistant."""
    teacher_ids = select(MasjidTeacher.id).where(MasjidTeacher.user_id == user_id, alive(MasjidTeacher))
    stmt = select(CSST).where(
        alive(CSST),
        or_(CSST.teacher_id.in_(teacher_ids), CSST.assistant_teacher_id.in_(teacher_ids)),
    )
    if is_active is not None:
        stmt = stmt.where(CSST.is_active.is_(is_active))
    stmt = stmt.order_by(CSST.created_at.desc(), CSST.id.asc())
    rows, meta = await paginate(db, stmt, params)
    return [CSSTResponse.model_validate(r) for r in rows], meta
