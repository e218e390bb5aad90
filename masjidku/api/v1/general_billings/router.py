from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from masjidku.auth.rbac import require_dkm, require_dkm_or_teacher
from masjidku.auth.schemas import MasjidContext
from masjidku.common.pagination import PageParams, pagination_params
from masjidku.common.responses import ApiResponse, PaginatedResponse
from masjidku.core.enums import BillingCategory
from masjidku.core.exceptions import ServiceError
from masjidku.db.session import get_db

from .schemas import GeneralBillingCreate, GeneralBillingPatch, GeneralBillingResponse
from . import service

router = APIRouter(prefix="/api/a/{masjid_id}/general-billings", tags=["general-billings"])


@router.post("", response_model=ApiResponse[GeneralBillingResponse], status_code=status.HTTP_201_CREATED)
async def create_general_billing(
    payload: GeneralBillingCreate,
    ctx: MasjidContext = Depends(require_dkm),
    db: AsyncSession = Depends(get_db),
):
    try:
        billing = await service.create_billing(db, ctx.masjid_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="General billing created", data=billing)


@router.get("", response_model=PaginatedResponse[GeneralBillingResponse])
async def list_general_billings(
    category: Optional[BillingCategory] = Query(None),
    is_active: Optional[bool] = Query(None),
    class_id: Optional[UUID] = Query(None),
    section_id: Optional[UUID] = Query(None),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    due_from: Optional[date] = Query(None, description="YYYY-MM-DD"),
    due_to: Optional[date] = Query(None, description="YYYY-MM-DD"),
    q: Optional[str] = Query(None, description="Search title, code, bill code"),
    sort_by: Optional[str] = Query(None, description="created_at | due_date | title | year"),
    order: Optional[str] = Query(None),
    include_deleted: bool = Query(False),
    params: PageParams = Depends(pagination_params(200)),
    ctx: MasjidContext = Depends(require_dkm_or_teacher),
    db: AsyncSession = Depends(get_db),
):
    try:
        items, meta = await service.list_billings(
            db,
            ctx.masjid_id,
            params,
            category=category.value if category else None,
            is_active=is_active,
            class_id=class_id,
            section_id=section_id,
            month=month,
            year=year,
            due_from=due_from,
            due_to=due_to,
            q=q,
            sort_by=sort_by,
            order=order,
            include_deleted=include_deleted and ctx.is_dkm,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return PaginatedResponse(message="General billings retrieved", data=items, pagination=meta)


@router.get("/{billing_id}", response_model=ApiResponse[GeneralBillingResponse])
async def get_general_billing(
    billing_id: UUID,
    ctx: MasjidContext = Depends(require_dkm_or_teacher),
    db: AsyncSession = Depends(get_db),
):
    try:
        billing = await service.get_billing(db, ctx.masjid_id, billing_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="General billing retrieved", data=billing)


@router.patch("/{billing_id}", response_model=ApiResponse[GeneralBillingResponse])
async def patch_general_billing(
    billing_id: UUID,
    payload: GeneralBillingPatch,
    ctx: MasjidContext = Depends(require_dkm),
    db: AsyncSession = Depends(get_db),
):
    try:
        billing = await service.patch_billing(db, ctx.masjid_id, billing_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="General billing updated", data=billing)


@router.delete("/{billing_id}", response_model=ApiResponse[None])
async def delete_general_billing(
    billing_id: UUID,
    ctx: MasjidContext = Depends(require_dkm),
    db: AsyncSession = Depends(get_db),
):
    try:
        await service.delete_billing(db, ctx.masjid_id, billing_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="General billing deleted")
