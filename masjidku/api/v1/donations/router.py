from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from masjidku.auth.dependencies import get_current_user, get_optional_user
from masjidku.auth.rbac import require_dkm, require_owner
from masjidku.auth.schemas import CurrentUser, MasjidContext
from masjidku.common.pagination import PageParams, pagination_params
from masjidku.common.responses import ApiResponse, PaginatedResponse
from masjidku.core.config import settings
from masjidku.core.enums import DonationStatus
from masjidku.core.exceptions import ServiceError
from masjidku.db.session import get_db
from masjidku.integrations.midtrans import MidtransClient, get_midtrans_client

from .schemas import (
    DonationCheckoutResponse,
    DonationCreate,
    DonationNotification,
    DonationResponse,
    NotificationResult,
    PublicDonationResponse,
)
from . import service

public_router = APIRouter(prefix="/public/masjids", tags=["donations"])
user_router = APIRouter(prefix="/api/u/masjids", tags=["donations"])
router = APIRouter(prefix="/api/a", tags=["donations"])
webhook_router = APIRouter(prefix="/api/donations", tags=["donations"])


@public_router.post(
    "/{slug}/donations",
    response_model=ApiResponse[DonationCheckoutResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_donation(
    slug: str,
    payload: DonationCreate,
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    midtrans: MidtransClient = Depends(get_midtrans_client),
    db: AsyncSession = Depends(get_db),
):
    try:
        checkout = await service.create_donation(
            db, midtrans, slug, payload, user_id=current_user.id if current_user else None
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Donation created", data=checkout)


@public_router.get("/slug/{slug}/donations", response_model=PaginatedResponse[PublicDonationResponse])
async def list_donations_by_slug(
    slug: str,
    params: PageParams = Depends(pagination_params()),
    db: AsyncSession = Depends(get_db),
):
    try:
        items, meta = await service.list_completed_by_slug(db, slug, params)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return PaginatedResponse(message="Donations retrieved", data=items, pagination=meta)


@public_router.get("/{masjid_id}/donations", response_model=PaginatedResponse[PublicDonationResponse])
async def list_donations_by_masjid(
    masjid_id: UUID,
    params: PageParams = Depends(pagination_params()),
    db: AsyncSession = Depends(get_db),
):
    items, meta = await service.list_completed_by_masjid(db, masjid_id, params)
    return PaginatedResponse(message="Donations retrieved", data=items, pagination=meta)


@user_router.get("/{slug}/donations/mine", response_model=PaginatedResponse[DonationResponse])
async def list_my_donations(
    slug: str,
    params: PageParams = Depends(pagination_params()),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        items, meta = await service.list_my_donations(db, current_user.id, slug, params)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return PaginatedResponse(message="Donations retrieved", data=items, pagination=meta)


@router.get(
    "/donations",
    response_model=PaginatedResponse[DonationResponse],
    dependencies=[Depends(require_owner)],
)
async def list_all_donations(
    masjid_id: Optional[UUID] = Query(None),
    donation_status: Optional[DonationStatus] = Query(None, alias="status"),
    date_from: Optional[date] = Query(None, description="YYYY-MM-DD"),
    date_to: Optional[date] = Query(None, description="YYYY-MM-DD, inclusive"),
    q: Optional[str] = Query(None, description="Search donor name, message, order id"),
    sort_by: Optional[str] = Query(None, description="created_at | amount | status"),
    order: Optional[str] = Query(None),
    include_deleted: bool = Query(False),
    params: PageParams = Depends(pagination_params(200)),
    db: AsyncSession = Depends(get_db),
):
    try:
        items, meta = await service.list_donations(
            db,
            params,
            masjid_id=masjid_id,
            status=donation_status.value if donation_status else None,
            date_from=date_from,
            date_to=date_to,
            q=q,
            sort_by=sort_by,
            order=order,
            include_deleted=include_deleted,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return PaginatedResponse(message="Donations retrieved", data=items, pagination=meta)


@router.delete(
    "/donations/{donation_id}",
    response_model=ApiResponse[None],
    dependencies=[Depends(require_owner)],
)
async def delete_donation(
    donation_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    try:
        await service.delete_donation(db, donation_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Donation deleted")


@router.get("/{masjid_id}/donations", response_model=PaginatedResponse[DonationResponse])
async def list_masjid_donations(
    donation_status: Optional[DonationStatus] = Query(None, alias="status"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    q: Optional[str] = Query(None),
    sort_by: Optional[str] = Query(None),
    order: Optional[str] = Query(None),
    include_deleted: bool = Query(False),
    params: PageParams = Depends(pagination_params(200)),
    ctx: MasjidContext = Depends(require_dkm),
    db: AsyncSession = Depends(get_db),
):
    try:
        items, meta = await service.list_donations(
            db,
            params,
            masjid_id=ctx.masjid_id,
            status=donation_status.value if donation_status else None,
            date_from=date_from,
            date_to=date_to,
            q=q,
            sort_by=sort_by,
            order=order,
            include_deleted=include_deleted,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return PaginatedResponse(message="Donations retrieved", data=items, pagination=meta)


@webhook_router.post("/notification", response_model=ApiResponse[NotificationResult])
async def donation_notification(
    payload: DonationNotification,
    db: AsyncSession = Depends(get_db),
):
    try:
        result = await service.handle_notification(
            db,
            payload,
            verify_signature=settings.midtrans_verify_signature,
            server_key=settings.midtrans_server_key,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Notification processed", data=result)
