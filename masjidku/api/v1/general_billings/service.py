from datetime import date
from typing import List, Optional, Tuple
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from masjidku.common.pagination import PageParams, alive, apply_search, apply_sort, paginate
from masjidku.common.patch import apply_patch
from masjidku.common.responses import PaginationMeta
from masjidku.core.exceptions import BadRequestError, NotFoundError
from masjidku.core.models import ClassSection, GeneralBilling, MasjidClass
from masjidku.db.types import utcnow

from .schemas import GeneralBillingCreate, GeneralBillingPatch, GeneralBillingResponse

logger = structlog.get_logger(__name__)

SORT_FIELDS = {
    "created_at": GeneralBilling.created_at,
    "due_date": GeneralBilling.due_date,
    "title": GeneralBilling.title,
    "year": GeneralBilling.year,
}


async def _check_refs(
    db: AsyncSession,
    masjid_id: UUID,
    class_id: Optional[UUID],
    section_id: Optional[UUID],
) -> None:
    if class_id is not None:
        cl = await db.get(MasjidClass, class_id)
        if not cl or cl.masjid_id != masjid_id or cl.deleted_at is not None:
            raise BadRequestError("Invalid class")
    if section_id is not None:
        section = await db.get(ClassSection, section_id)
        if not section or section.masjid_id != masjid_id or section.deleted_at is not None:
            raise BadRequestError("Invalid section")
        if class_id is not None and section.class_id != class_id:
            raise BadRequestError("Section does not belong to the class")


async def create_billing(db: AsyncSession, masjid_id: UUID, payload: GeneralBillingCreate) -> GeneralBillingResponse:
    title = payload.title.strip()
    if not title:
        raise BadRequestError("title cannot be empty")
    await _check_refs(db, masjid_id, payload.class_id, payload.section_id)

    data = payload.model_dump()
    data["title"] = title
    data["bill_code"] = payload.bill_code.strip() or "SPP"
    billing = GeneralBilling(masjid_id=masjid_id, **data)
    db.add(billing)
    await db.commit()
    await db.refresh(billing)
    logger.info("general_billing_created", masjid_id=str(masjid_id), billing_id=str(billing.id))
    return GeneralBillingResponse.model_validate(billing)


async def list_billings(
    db: AsyncSession,
    masjid_id: UUID,
    params: PageParams,
    category: Optional[str] = None,
    is_active: Optional[bool] = None,
    class_id: Optional[UUID] = None,
    section_id: Optional[UUID] = None,
    month: Optional[int] = None,
    year: Optional[int] = None,
    due_from: Optional[date] = None,
    due_to: Optional[date] = None,
    q: Optional[str] = None,
    sort_by: Optional[str] = None,
    order: Optional[str] = None,
    include_deleted: bool = False,
) -> Tuple[List[GeneralBillingResponse], PaginationMeta]:
    if due_from and due_to and due_from > due_to:
        raise BadRequestError("due_from must be on or before due_to")
    stmt = select(GeneralBilling).where(GeneralBilling.masjid_id == masjid_id)
    if not include_deleted:
        stmt = stmt.where(alive(GeneralBilling))
    if category:
        stmt = stmt.where(GeneralBilling.category == category)
    if is_active is not None:
        stmt = stmt.where(GeneralBilling.is_active.is_(is_active))
    if class_id is not None:
        stmt = stmt.where(GeneralBilling.class_id == class_id)
    if section_id is not None:
        stmt = stmt.where(GeneralBilling.section_id == section_id)
    if month is not None:
        stmt = stmt.where(GeneralBilling.month == month)
    if year is not None:
        stmt = stmt.where(GeneralBilling.year == year)
    if due_from:
        stmt = stmt.where(GeneralBilling.due_date >= due_from)
    if due_to:
        stmt = stmt.where(GeneralBilling.due_date <= due_to)
    stmt = apply_search(stmt, q, [GeneralBilling.title, GeneralBilling.code, GeneralBilling.bill_code])
    stmt = apply_sort(stmt, sort_by, order, SORT_FIELDS, tiebreaker=GeneralBilling.id)
    rows, meta = await paginate(db, stmt, params)
    return [GeneralBillingResponse.model_validate(b) for b in rows], meta


async def get_billing_model(db: AsyncSession, masjid_id: UUID, billing_id: UUID) -> GeneralBilling:
    result = await db.execute(
        select(GeneralBilling).where(
            GeneralBilling.id == billing_id,
            GeneralBilling.masjid_id == masjid_id,
            alive(GeneralBilling),
        )
    )
    billing = result.scalar_one_or_none()
    if not billing:
        raise NotFoundError("General billing not found")
    return billing


async def get_billing(db: AsyncSession, masjid_id: UUID, billing_id: UUID) -> GeneralBillingResponse:
    return GeneralBillingResponse.model_validate(await get_billing_model(db, masjid_id, billing_id))


async def patch_billing(
    db: AsyncSession,
    masjid_id: UUID,
    billing_id: UUID,
    patch: GeneralBillingPatch,
) -> GeneralBillingResponse:
    billing = await get_billing_model(db, masjid_id, billing_id)

    if patch.is_set("title"):
        patch.title = patch.title.strip()
        if not patch.title:
            raise BadRequestError("title cannot be empty")
    class_id = patch.class_id if patch.is_set("class_id") else billing.class_id
    section_id = patch.section_id if patch.is_set("section_id") else billing.section_id
    if patch.is_set("class_id") or patch.is_set("section_id"):
        await _check_refs(db, masjid_id, class_id, section_id)

    changes = apply_patch(billing, patch)
    await db.commit()
    await db.refresh(billing)
    logger.info("general_billing_patched", billing_id=str(billing.id), fields=sorted(changes))
    return GeneralBillingResponse.model_validate(billing)


async def delete_billing(db: AsyncSession, masjid_id: UUID, billing_id: UUID) -> None:
    billing = await get_billing_model(db, masjid_id, billing_id)
    billing.deleted_at = utcnow()
    await db.commit()
    logger.info("general_billing_deleted", billing_id=str(billing_id))
