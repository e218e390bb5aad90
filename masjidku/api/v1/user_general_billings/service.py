"""Per-payer bill instances created from a general billing."""

from typing import Dict, List, Optional, Set, Tuple
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from masjidku.api.v1.general_billings.service import get_billing_model
from masjidku.common.db_errors import is_unique_violation
from masjidku.common.pagination import PageParams, alive, paginate
from masjidku.common.patch import apply_patch
from masjidku.common.responses import PaginationMeta
from masjidku.core.exceptions import BadRequestError, ConflictError, NotFoundError
from masjidku.core.models import User, UserGeneralBilling
from masjidku.db.types import utcnow

from .schemas import UserGeneralBillingCreate, UserGeneralBillingPatch, UserGeneralBillingResponse

logger = structlog.get_logger(__name__)

ALLOWED_TRANSITIONS: Dict[str, Set[str]] = {
    "unpaid": {"paid", "canceled"},
    "paid": {"unpaid"},
    "canceled": {"unpaid"},
}


def check_transition(current: str, target: str) -> None:
    if current == target:
        return
    if target not in ALLOWED_TRANSITIONS.get(current, set()):
        raise BadRequestError(f"Cannot change status from {current} to {target}")


async def create_user_billing(
    db: AsyncSession,
    masjid_id: UUID,
    billing_id: UUID,
    payload: UserGeneralBillingCreate,
) -> UserGeneralBillingResponse:
    billing = await get_billing_model(db, masjid_id, billing_id)
    payer = await db.get(User, payload.payer_user_id)
    if not payer or payer.deleted_at is not None:
        raise BadRequestError("Invalid payer")

    amount = payload.amount_idr if payload.amount_idr is not None else billing.default_amount_idr
    if amount is None:
        raise BadRequestError("amount_idr is required when the billing has no default amount")

    existing = await db.execute(
        select(UserGeneralBilling.id).where(
            UserGeneralBilling.general_billing_id == billing.id,
            UserGeneralBilling.payer_user_id == payer.id,
            alive(UserGeneralBilling),
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("This payer already has this billing")

    row = UserGeneralBilling(
        masjid_id=masjid_id,
        general_billing_id=billing.id,
        payer_user_id=payer.id,
        amount_idr=amount,
        status="unpaid",
        note=(payload.note or "").strip() or None,
        meta=payload.meta,
        title_snapshot=billing.title,
        category_snapshot=billing.category,
        bill_code_snapshot=billing.bill_code,
    )
    db.add(row)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if is_unique_violation(e):
            raise ConflictError("This payer already has this billing") from e
        raise
    await db.refresh(row)
    return UserGeneralBillingResponse.model_validate(row)


async def list_for_billing(
    db: AsyncSession,
    masjid_id: UUID,
    billing_id: UUID,
    params: PageParams,
    status: Optional[str] = None,
) -> Tuple[List[UserGeneralBillingResponse], PaginationMeta]:
    await get_billing_model(db, masjid_id, billing_id)
    stmt = select(UserGeneralBilling).where(
        UserGeneralBilling.masjid_id == masjid_id,
        UserGeneralBilling.general_billing_id == billing_id,
        alive(UserGeneralBilling),
    )
    if status:
        stmt = stmt.where(UserGeneralBilling.status == status)
    stmt = stmt.order_by(UserGeneralBilling.created_at.desc(), UserGeneralBilling.id.asc())
    rows, meta = await paginate(db, stmt, params)
    return [UserGeneralBillingResponse.model_validate(r) for r in rows], meta


async def list_mine(
    db: AsyncSession,
    user_id: UUID,
    params: PageParams,
    status: Optional[str] = None,
) -> Tuple[List[UserGeneralBillingResponse], PaginationMeta]:
    stmt = select(UserGeneralBilling).where(UserGeneralBilling.payer_user_id == user_id, alive(UserGeneralBilling))
    if status:
        stmt = stmt.where(UserGeneralBilling.status == status)
    stmt = stmt.order_by(UserGeneralBilling.created_at.desc(), UserGeneralBilling.id.asc())
    rows, meta = await paginate(db, stmt, params)
    return [UserGeneralBillingResponse.model_validate(r) for r in rows], meta


async def _get_alive(db: AsyncSession, masjid_id: UUID, user_billing_id: UUID) -> UserGeneralBilling:
    result = await db.execute(
        select(UserGeneralBilling).where(
            UserGeneralBilling.id == user_billing_id,
            UserGeneralBilling.masjid_id == masjid_id,
            alive(UserGeneralBilling),
        )
    )
    row = result.scalar_one_or_none()
    if not row:
        raise NotFoundError("User billing not found")
    return row


async def get_user_billing(db: AsyncSession, masjid_id: UUID, user_billing_id: UUID) -> UserGeneralBillingResponse:
    return UserGeneralBillingResponse.model_validate(await _get_alive(db, masjid_id, user_billing_id))


async def patch_user_billing(
    db: AsyncSession,
    masjid_id: UUID,
    user_billing_id: UUID,
    patch: UserGeneralBillingPatch,
) -> UserGeneralBillingResponse:
    row = await _get_alive(db, masjid_id, user_billing_id)
    previous_status = row.status

    if patch.is_set("status"):
        check_transition(previous_status, patch.status)
    target_status = patch.status if patch.is_set("status") else previous_status
    if patch.is_set("paid_at") and patch.paid_at is not None and target_status != "paid":
        raise BadRequestError("paid_at can only be set on a paid billing")

    apply_patch(row, patch)

    if row.status == "paid" and row.paid_at is None:
        row.paid_at = utcnow()
    elif row.status != "paid" and previous_status == "paid":
        row.paid_at = None

    await db.commit()
    await db.refresh(row)
    if row.status != previous_status:
        logger.info(
            "user_billing_status_changed",
            user_billing_id=str(row.id),
            from_status=previous_status,
            to_status=row.status,
        )
    return UserGeneralBillingResponse.model_validate(row)


async def delete_user_billing(db: AsyncSession, masjid_id: UUID, user_billing_id: UUID) -> None:
    row = await _get_alive(db, masjid_id, user_billing_id)
    row.deleted_at = utcnow()
    await db.commit()
