"""Classes, sections, subjects and class-subject mappings that CSST rows point at."""

from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from masjidku.common.db_errors import is_unique_violation
from masjidku.common.pagination import PageParams, alive, apply_search, paginate
from masjidku.common.responses import PaginationMeta
from masjidku.common.slugs import ensure_unique_slug, slugify
from masjidku.core.exceptions import BadRequestError, ConflictError
from masjidku.core.models import ClassSection, ClassSubject, MasjidClass, Subject

from .schemas import (
    ClassCreate,
    ClassResponse,
    ClassSectionCreate,
    ClassSectionResponse,
    ClassSubjectCreate,
    ClassSubjectResponse,
    SubjectCreate,
    SubjectResponse,
)


async def _commit(db: AsyncSession, conflict_message: str) -> None:
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if is_unique_violation(e):
            raise ConflictError(conflict_message) from e
        raise


async def _get_class(db: AsyncSession, masjid_id: UUID, class_id: UUID) -> MasjidClass:
    cl = await db.get(MasjidClass, class_id)
    if not cl or cl.masjid_id != masjid_id or cl.deleted_at is not None:
        raise BadRequestError("Invalid class")
    return cl


async def create_class(db: AsyncSession, masjid_id: UUID, payload: ClassCreate) -> ClassResponse:
    name = payload.name.strip()
    base = slugify(name) or "class"
    slug = await ensure_unique_slug(db, MasjidClass, base, scope=[MasjidClass.masjid_id == masjid_id, alive(MasjidClass)])
    obj = MasjidClass(masjid_id=masjid_id, name=name, slug=slug)
    db.add(obj)
    await _commit(db, "Class already exists")
    await db.refresh(obj)
    return ClassResponse.model_validate(obj)


async def list_classes(
    db: AsyncSession, masjid_id: UUID, params: PageParams, q: Optional[str] = None
) -> Tuple[List[ClassResponse], PaginationMeta]:
    stmt = select(MasjidClass).where(MasjidClass.masjid_id == masjid_id, alive(MasjidClass))
    stmt = apply_search(stmt, q, [MasjidClass.name, MasjidClass.slug])
    stmt = stmt.order_by(MasjidClass.name.asc(), MasjidClass.id.asc())
    rows, meta = await paginate(db, stmt, params)
    return [ClassResponse.model_validate(r) for r in rows], meta


async def create_section(db: AsyncSession, masjid_id: UUID, payload: ClassSectionCreate) -> ClassSectionResponse:
    cl = await _get_class(db, masjid_id, payload.class_id)
    name = payload.name.strip()
    base = slugify(f"{cl.name} {name}") or "section"
    slug = await ensure_unique_slug(
        db, ClassSection, base, scope=[ClassSection.masjid_id == masjid_id, alive(ClassSection)]
    )
    obj = ClassSection(masjid_id=masjid_id, class_id=cl.id, name=name, slug=slug)
    db.add(obj)
    await _commit(db, "Section already exists")
    await db.refresh(obj)
    return ClassSectionResponse.model_validate(obj)


async def list_sections(
    db: AsyncSession,
    masjid_id: UUID,
    params: PageParams,
    class_id: Optional[UUID] = None,
    q: Optional[str] = None,
) -> Tuple[List[ClassSectionResponse], PaginationMeta]:
    stmt = select(ClassSection).where(ClassSection.masjid_id == masjid_id, alive(ClassSection))
    if class_id is not None:
        stmt = stmt.where(ClassSection.class_id == class_id)
    stmt = apply_search(stmt, q, [ClassSection.name, ClassSection.slug])
    stmt = stmt.order_by(ClassSection.name.asc(), ClassSection.id.asc())
    rows, meta = await paginate(db, stmt, params)
    return [ClassSectionResponse.model_validate(r) for r in rows], meta


async def create_subject(db: AsyncSession, masjid_id: UUID, payload: SubjectCreate) -> SubjectResponse:
    obj = Subject(
        masjid_id=masjid_id,
        name=payload.name.strip(),
        code=(payload.code or "").strip() or None,
    )
    db.add(obj)
    await _commit(db, "Subject already exists")
    await db.refresh(obj)
    return SubjectResponse.model_validate(obj)


async def list_subjects(
    db: AsyncSession, masjid_id: UUID, params: PageParams, q: Optional[str] = None
) -> Tuple[List[SubjectResponse], PaginationMeta]:
    stmt = select(Subject).where(Subject.masjid_id == masjid_id, alive(Subject))
    stmt = apply_search(stmt, q, [Subject.name, Subject.code])
    stmt = stmt.order_by(Subject.name.asc(), Subject.id.asc())
    rows, meta = await paginate(db, stmt, params)
    return [SubjectResponse.model_validate(r) for r in rows], meta


def _class_subject_response(cs: ClassSubject, class_name: Optional[str] = None, subject_name: Optional[str] = None) -> ClassSubjectResponse:
    return ClassSubjectResponse(
        id=cs.id,
        masjid_id=cs.masjid_id,
        class_id=cs.class_id,
        subject_id=cs.subject_id,
        created_at=cs.created_at,
        class_name=class_name,
        subject_name=subject_name,
    )


async def create_class_subject(db: AsyncSession, masjid_id: UUID, payload: ClassSubjectCreate) -> ClassSubjectResponse:
    cl = await _get_class(db, masjid_id, payload.class_id)
    subj = await db.get(Subject, payload.subject_id)
    if not subj or subj.masjid_id != masjid_id or subj.deleted_at is not None:
        raise BadRequestError("Invalid subject")

    existing = await db.execute(
        select(ClassSubject.id).where(
            ClassSubject.masjid_id == masjid_id,
            ClassSubject.class_id == cl.id,
            ClassSubject.subject_id == subj.id,
            alive(ClassSubject),
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("This class already has this subject")

    obj = ClassSubject(masjid_id=masjid_id, class_id=cl.id, subject_id=subj.id)
    db.add(obj)
    await _commit(db, "This class already has this subject")
    await db.refresh(obj)
    return _class_subject_response(obj, cl.name, subj.name)


async def list_class_subjects(
    db: AsyncSession,
    masjid_id: UUID,
    params: PageParams,
    class_id: Optional[UUID] = None,
) -> Tuple[List[ClassSubjectResponse], PaginationMeta]:
    stmt = (
        select(ClassSubject)
        .where(ClassSubject.masjid_id == masjid_id, alive(ClassSubject))
        .options(selectinload(ClassSubject.masjid_class), selectinload(ClassSubject.subject))
    )
    if class_id is not None:
        stmt = stmt.where(ClassSubject.class_id == class_id)
    stmt = stmt.order_by(ClassSubject.created_at.desc(), ClassSubject.id.asc())
    rows, meta = await paginate(db, stmt, params)
    items = [
        _class_subject_response(
            cs,
            cs.masjid_class.name if cs.masjid_class else None,
            cs.subject.name if cs.subject else None,
        )
        for cs in rows
    ]
    return items, meta
