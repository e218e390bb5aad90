from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from masjidku.auth.dependencies import get_current_user
from masjidku.auth.rbac import require_dkm, require_dkm_or_teacher
from masjidku.auth.schemas import CurrentUser, MasjidContext
from masjidku.common.pagination import PageParams, pagination_params
from masjidku.common.responses import ApiResponse, PaginatedResponse
from masjidku.core.enums import DeliveryMode
from masjidku.core.exceptions import ServiceError
from masjidku.db.session import get_db

from .schemas import CSSTCreate, CSSTResponse, CSSTUpdate
from . import service

router = APIRouter(
    prefix="/api/a/{masjid_id}/class-section-subject-teachers",
    tags=["class-section-subject-teachers"],
)
user_router = APIRouter(prefix="/api/u/class-section-subject-teachers", tags=["class-section-subject-teachers"])


@router.post("", response_model=ApiResponse[CSSTResponse], status_code=status.HTTP_201_CREATED)
async def create_csst(
    payload: CSSTCreate,
    ctx: MasjidContext = Depends(require_dkm),
    db: AsyncSession = Depends(get_db),
):
    try:
        row = await service.create_csst(db, ctx.masjid_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Assignment created", data=row)


@router.get("", response_model=PaginatedResponse[CSSTResponse])
async def list_csst(
    section_id: Optional[UUID] = Query(None),
    class_subject_id: Optional[UUID] = Query(None),
    teacher_id: Optional[UUID] = Query(None),
    is_active: Optional[bool] = Query(None),
    delivery_mode: Optional[DeliveryMode] = Query(None),
    q: Optional[str] = Query(None, description="Search slug, description, teacher name"),
    sort_by: Optional[str] = Query(None, description="created_at | updated_at | slug | teacher_name"),
    order: Optional[str] = Query(None),
    include_deleted: bool = Query(False),
    params: PageParams = Depends(pagination_params(200)),
    ctx: MasjidContext = Depends(require_dkm_or_teacher),
    db: AsyncSession = Depends(get_db),
):
    items, meta = await service.list_csst(
        db,
        ctx.masjid_id,
        params,
        section_id=section_id,
        class_subject_id=class_subject_id,
        teacher_id=teacher_id,
        is_active=is_active,
        delivery_mode=delivery_mode.value if delivery_mode else None,
        q=q,
        sort_by=sort_by,
        order=order,
        include_deleted=include_deleted and ctx.is_dkm,
    )
    return PaginatedResponse(message="Assignments retrieved", data=items, pagination=meta)


@router.get("/{csst_id}", response_model=ApiResponse[CSSTResponse])
async def get_csst(
    csst_id: UUID,
    ctx: MasjidContext = Depends(require_dkm_or_teacher),
    db: AsyncSession = Depends(get_db),
):
    try:
        row = await service.get_csst(db, ctx.masjid_id, csst_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Assignment retrieved", data=row)


@router.patch("/{csst_id}", response_model=ApiResponse[CSSTResponse])
async def update_csst(
    csst_id: UUID,
    payload: CSSTUpdate,
    ctx: MasjidContext = Depends(require_dkm),
    db: AsyncSession = Depends(get_db),
):
    try:
        row = await service.update_csst(db, ctx.masjid_id, csst_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Assignment updated", data=row)


@router.delete("/{csst_id}", response_model=ApiResponse[None])
async def delete_csst(
    csst_id: UUID,
    ctx: MasjidContext = Depends(require_dkm),
    db: AsyncSession = Depends(get_db),
):
    try:
        deleted = await service.delete_csst(db, ctx.masjid_id, csst_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Assignment deleted" if deleted else "Assignment already deleted")


@user_router.get("/mine", response_model=PaginatedResponse[CSSTResponse])
async def list_my_csst(
    is_active: Optional[bool] = Query(None),
    params: PageParams = Depends(pagination_params()),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, meta = await service.list_my_assignments(db, current_user.id, params, is_active=is_active)
    return PaginatedResponse(message="Assignments retrieved", data=items, pagination=meta)
