from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from masjidku.auth.dependencies import get_current_user
from masjidku.auth.rbac import require_dkm
from masjidku.auth.schemas import CurrentUser, MasjidContext
from masjidku.common.pagination import PageParams, pagination_params
from masjidku.common.responses import ApiResponse, PaginatedResponse
from masjidku.core.enums import UserBillingStatus
from masjidku.core.exceptions import ServiceError
from masjidku.db.session import get_db

from .schemas import UserGeneralBillingCreate, UserGeneralBillingPatch, UserGeneralBillingResponse
from . import service

router = APIRouter(prefix="/api/a/{masjid_id}", tags=["user-general-billings"])
user_router = APIRouter(prefix="/api/u/user-general-billings", tags=["user-general-billings"])


@router.post(
    "/general-billings/{billing_id}/user-billings",
    response_model=ApiResponse[UserGeneralBillingResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_user_billing(
    billing_id: UUID,
    payload: UserGeneralBillingCreate,
    ctx: MasjidContext = Depends(require_dkm),
    db: AsyncSession = Depends(get_db),
):
    try:
        row = await service.create_user_billing(db, ctx.masjid_id, billing_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="User billing created", data=row)


@router.get(
    "/general-billings/{billing_id}/user-billings",
    response_model=PaginatedResponse[UserGeneralBillingResponse],
)
async def list_user_billings(
    billing_id: UUID,
    billing_status: Optional[UserBillingStatus] = Query(None, alias="status"),
    params: PageParams = Depends(pagination_params(200)),
    ctx: MasjidContext = Depends(require_dkm),
    db: AsyncSession = Depends(get_db),
):
    try:
        items, meta = await service.list_for_billing(
            db, ctx.masjid_id, billing_id, params, status=billing_status.value if billing_status else None
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return PaginatedResponse(message="User billings retrieved", data=items, pagination=meta)


@router.get("/user-general-billings/{user_billing_id}", response_model=ApiResponse[UserGeneralBillingResponse])
async def get_user_billing(
    user_billing_id: UUID,
    ctx: MasjidContext = Depends(require_dkm),
    db: AsyncSession = Depends(get_db),
):
    try:
        row = await service.get_user_billing(db, ctx.masjid_id, user_billing_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="User billing retrieved", data=row)


@router.patch("/user-general-billings/{user_billing_id}", response_model=ApiResponse[UserGeneralBillingResponse])
async def patch_user_billing(
    user_billing_id: UUID,
    payload: UserGeneralBillingPatch,
    ctx: MasjidContext = Depends(require_dkm),
    db: AsyncSession = Depends(get_db),
):
    try:
        row = await service.patch_user_billing(db, ctx.masjid_id, user_billing_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="User billing updated", data=row)


@router.delete("/user-general-billings/{user_billing_id}", response_model=ApiResponse[None])
async def delete_user_billing(
    user_billing_id: UUID,
    ctx: MasjidContext = Depends(require_dkm),
    db: AsyncSession = Depends(get_db),
):
    try:
        await service.delete_user_billing(db, ctx.masjid_id, user_billing_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="User billing deleted")


@user_router.get("", response_model=PaginatedResponse[UserGeneralBillingResponse])
async def list_my_user_billings(
    billing_status: Optional[UserBillingStatus] = Query(None, alias="status"),
    params: PageParams = Depends(pagination_params()),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, meta = await service.list_mine(
        db, current_user.id, params, status=billing_status.value if billing_status else None
    )
    return PaginatedResponse(message="User billings retrieved", data=items, pagination=meta)
