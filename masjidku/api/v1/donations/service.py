"""
Donation checkout and Midtrans notification handling.

A donation is inserted as ``pending`` and a Snap token is requested right away.
The gateway later calls the notification endpoint, which moves the donation to
``completed`` or ``failed`` based on ``transaction_status``.
"""

import time
from datetime import date, datetime, time as dt_time, timedelta, timezone
from typing import Dict, List, Optional, Tuple
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from masjidku.common.pagination import PageParams, alive, apply_search, apply_sort, paginate
from masjidku.common.responses import PaginationMeta
from masjidku.core.exceptions import BadRequestError, ForbiddenError, NotFoundError, UpstreamError
from masjidku.core.models import Donation, Masjid
from masjidku.db.types import utcnow
from masjidku.integrations.midtrans import MidtransClient, verify_notification_signature

from .schemas import (
    DonationCheckoutResponse,
    DonationCreate,
    DonationNotification,
    DonationResponse,
    NotificationResult,
    PublicDonationResponse,
)

logger = structlog.get_logger(__name__)

PAYMENT_GATEWAY = "midtrans"

# transaction_status -> donation status. Anything not listed leaves the donation unchanged.
TRANSACTION_STATUS_MAP: Dict[str, str] = {
    "settlement": "completed",
    "success": "completed",
    "failed": "failed",
    "cancelled": "failed",
}

SORT_FIELDS = {
    "created_at": Donation.created_at,
    "amount": Donation.amount,
    "status": Donation.status,
}


def map_transaction_status(transaction_status: Optional[str]) -> Optional[str]:
    return TRANSACTION_STATUS_MAP.get((transaction_status or "").strip().lower())


def new_order_id() -> str:
    return f"DONATION-{time.time_ns()}"


def resolve_breakdown(payload: DonationCreate) -> Dict[str, int]:
    """Fill in whichever split amounts the client left out."""
    amount_masjid = payload.amount_masjid
    amount_masjidku = payload.amount_masjidku
    if amount_masjid is None and amount_masjidku is None:
        amount_masjid, amount_masjidku = payload.amount, 0
    elif amount_masjid is None:
        amount_masjid = payload.amount - amount_masjidku
    elif amount_masjidku is None:
        amount_masjidku = payload.amount - amount_masjid

    to_masjid = payload.amount_masjidku_to_masjid
    to_app = payload.amount_masjidku_to_app
    if to_masjid is None and to_app is None:
        # Half of the platform share goes back to the masjid, the remainder to the app
        to_masjid = amount_masjidku // 2
        to_app = amount_masjidku - to_masjid
    elif to_masjid is None:
        to_masjid = amount_masjidku - to_app
    elif to_app is None:
        to_app = amount_masjidku - to_masjid

    return {
        "amount_masjid": amount_masjid,
        "amount_masjidku": amount_masjidku,
        "amount_masjidku_to_masjid": to_masjid,
        "amount_masjidku_to_app": to_app,
    }


async def _masjid_by_slug(db: AsyncSession, slug: str) -> Masjid:
    result = await db.execute(
        select(Masjid).where(func.lower(Masjid.slug) == slug.strip().lower(), alive(Masjid))
    )
    masjid = result.scalar_one_or_none()
    if not masjid:
        raise NotFoundError("Masjid not found")
    return masjid


async def create_donation(
    db: AsyncSession,
    midtrans: MidtransClient,
    slug: str,
    payload: DonationCreate,
    user_id: Optional[UUID] = None,
) -> DonationCheckoutResponse:
    masjid = await _masjid_by_slug(db, slug)

    donation = Donation(
        user_id=user_id,
        masjid_id=masjid.id,
        name=payload.name.strip(),
        email=payload.email,
        message=(payload.message or "").strip() or None,
        amount=payload.amount,
        status="pending",
        order_id=new_order_id(),
        payment_gateway=PAYMENT_GATEWAY,
        **resolve_breakdown(payload),
    )
    db.add(donation)
    await db.commit()
    await db.refresh(donation)

    try:
        snap = await midtrans.create_snap_transaction(
            order_id=donation.order_id,
            gross_amount=donation.amount,
            customer_name=donation.name,
            customer_email=donation.email,
        )
    except UpstreamError:
        # The pending row is kept; the donor can retry with a new order
        logger.warning("donation_checkout_failed", order_id=donation.order_id, masjid_id=str(masjid.id))
        raise

    donation.payment_token = snap.token
    donation.redirect_url = snap.redirect_url
    await db.commit()
    logger.info("donation_created", order_id=donation.order_id, masjid_id=str(masjid.id), amount=donation.amount)
    return DonationCheckoutResponse(
        donation_id=donation.id,
        order_id=donation.order_id,
        snap_token=snap.token,
        redirect_url=snap.redirect_url,
    )


async def handle_notification(
    db: AsyncSession,
    payload: DonationNotification,
    verify_signature: bool = False,
    server_key: Optional[str] = None,
) -> NotificationResult:
    order_id = (payload.order_id or "").strip()
    transaction_status = (payload.transaction_status or "").strip().lower()
    if not order_id or not transaction_status:
        raise BadRequestError("order_id and transaction_status are required")

    if verify_signature and not verify_notification_signature(
        order_id, payload.status_code, payload.gross_amount, payload.signature_key, server_key
    ):
        logger.warning("donation_notification_bad_signature", order_id=order_id)
        raise ForbiddenError("Invalid notification signature")

    result = await db.execute(select(Donation).where(Donation.order_id == order_id).with_for_update())
    donation = result.scalar_one_or_none()
    if not donation:
        raise NotFoundError("Donation not found")

    new_status = map_transaction_status(transaction_status)
    changed = False
    if new_status is not None and new_status != donation.status:
        donation.status = new_status
        changed = True
        if new_status == "completed":
            donation.paid_at = utcnow()
    if new_status == "completed" and payload.payment_type and donation.payment_method != payload.payment_type:
        donation.payment_method = payload.payment_type
        changed = True

    current_status = donation.status
    if changed:
        await db.commit()
        logger.info(
            "donation_status_updated",
            order_id=order_id,
            transaction_status=transaction_status,
            status=current_status,
        )
    else:
        # Nothing to write; release the row lock
        await db.rollback()
        logger.info("donation_notification_ignored", order_id=order_id, transaction_status=transaction_status)

    return NotificationResult(
        order_id=order_id,
        transaction_status=transaction_status,
        status=current_status,
        changed=changed,
    )


def _completed_for_masjid(masjid_id: UUID):
    return (
        select(Donation)
        .where(Donation.masjid_id == masjid_id, Donation.status == "completed", alive(Donation))
        .order_by(Donation.created_at.desc(), Donation.id.asc())
    )


async def list_completed_by_masjid(
    db: AsyncSession, masjid_id: UUID, params: PageParams
) -> Tuple[List[PublicDonationResponse], PaginationMeta]:
    rows, meta = await paginate(db, _completed_for_masjid(masjid_id), params)
    return [PublicDonationResponse.model_validate(d) for d in rows], meta


async def list_completed_by_slug(
    db: AsyncSession, slug: str, params: PageParams
) -> Tuple[List[PublicDonationResponse], PaginationMeta]:
    masjid = await _masjid_by_slug(db, slug)
    return await list_completed_by_masjid(db, masjid.id, params)


async def list_my_donations(
    db: AsyncSession, user_id: UUID, slug: str, params: PageParams
) -> Tuple[List[DonationResponse], PaginationMeta]:
    masjid = await _masjid_by_slug(db, slug)
    stmt = (
        select(Donation)
        .where(Donation.masjid_id == masjid.id, Donation.user_id == user_id, alive(Donation))
        .order_by(Donation.created_at.desc(), Donation.id.asc())
    )
    rows, meta = await paginate(db, stmt, params)
    return [DonationResponse.model_validate(d) for d in rows], meta


def _day_start(d: date) -> datetime:
    return datetime.combine(d, dt_time.min, tzinfo=timezone.utc)


async def list_donations(
    db: AsyncSession,
    params: PageParams,
    masjid_id: Optional[UUID] = None,
    status: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    q: Optional[str] = None,
    sort_by: Optional[str] = None,
    order: Optional[str] = None,
    include_deleted: bool = False,
) -> Tuple[List[DonationResponse], PaginationMeta]:
    if date_from and date_to and date_from > date_to:
        raise BadRequestError("date_from must be on or before date_to")
    stmt = select(Donation)
    if masjid_id is not None:
        stmt = stmt.where(Donation.masjid_id == masjid_id)
    if not include_deleted:
        stmt = stmt.where(alive(Donation))
    if status:
        stmt = stmt.where(Donation.status == status)
    if date_from:
        stmt = stmt.where(Donation.created_at >= _day_start(date_from))
    if date_to:
        stmt = stmt.where(Donation.created_at < _day_start(date_to + timedelta(days=1)))
    stmt = apply_search(stmt, q, [Donation.name, Donation.message, Donation.order_id])
    stmt = apply_sort(stmt, sort_by, order, SORT_FIELDS, tiebreaker=Donation.id)
    rows, meta = await paginate(db, stmt, params)
    return [DonationResponse.model_validate(d) for d in rows], meta


async def delete_donation(db: AsyncSession, donation_id: UUID) -> None:
    result = await db.execute(select(Donation).where(Donation.id == donation_id, alive(Donation)))
    donation = result.scalar_one_or_none()
    if not donation:
        raise NotFoundError("Donation not found")
    donation.deleted_at = utcnow()
    await db.commit()
    logger.info("donation_deleted", donation_id=str(donation_id))
