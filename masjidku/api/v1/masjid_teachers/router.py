from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from masjidku.auth.rbac import require_dkm, require_dkm_or_teacher
from masjidku.auth.schemas import MasjidContext
from masjidku.common.pagination import PageParams, pagination_params
from masjidku.common.responses import ApiResponse, PaginatedResponse
from masjidku.core.exceptions import ServiceError
from masjidku.db.session import get_db

from .schemas import MasjidTeacherCreate, MasjidTeacherResponse, MasjidTeacherUpdate
from . import service

router = APIRouter(prefix="/api/a/{masjid_id}/masjid-teachers", tags=["masjid-teachers"])


@router.post(
    "",
    response_model=ApiResponse[MasjidTeacherResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_masjid_teacher(
    payload: MasjidTeacherCreate,
    ctx: MasjidContext = Depends(require_dkm),
    db: AsyncSession = Depends(get_db),
):
    try:
        teacher = await service.create_teacher(db, ctx.masjid_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Teacher created", data=teacher)


@router.get("", response_model=PaginatedResponse[MasjidTeacherResponse])
async def list_masjid_teachers(
    q: Optional[str] = Query(None, description="Search name, user name, title"),
    is_active: Optional[bool] = Query(None),
    sort_by: Optional[str] = Query(None, description="created_at | name | user_name"),
    order: Optional[str] = Query(None),
    include_deleted: bool = Query(False),
    params: PageParams = Depends(pagination_params()),
    ctx: MasjidContext = Depends(require_dkm_or_teacher),
    db: AsyncSession = Depends(get_db),
):
    items, meta = await service.list_teachers(
        db,
        ctx.masjid_id,
        params,
        q=q,
        is_active=is_active,
        sort_by=sort_by,
        order=order,
        include_deleted=include_deleted and ctx.is_dkm,
    )
    return PaginatedResponse(message="Teachers retrieved", data=items, pagination=meta)


@router.get("/{teacher_id}", response_model=ApiResponse[MasjidTeacherResponse])
async def get_masjid_teacher(
    teacher_id: UUID,
    ctx: MasjidContext = Depends(require_dkm_or_teacher),
    db: AsyncSession = Depends(get_db),
):
    try:
        teacher = await service.get_teacher(db, ctx.masjid_id, teacher_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Teacher retrieved", data=teacher)


@router.patch("/{teacher_id}", response_model=ApiResponse[MasjidTeacherResponse])
async def update_masjid_teacher(
    teacher_id: UUID,
    payload: MasjidTeacherUpdate,
    ctx: MasjidContext = Depends(require_dkm),
    db: AsyncSession = Depends(get_db),
):
    try:
        teacher = await service.update_teacher(db, ctx.masjid_id, teacher_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Teacher updated", data=teacher)


@router.delete("/{teacher_id}", response_model=ApiResponse[None])
async def delete_masjid_teacher(
    teacher_id: UUID,
    ctx: MasjidContext = Depends(require_dkm),
    db: AsyncSession = Depends(get_db),
):
    try:
        await service.delete_teacher(db, ctx.masjid_id, teacher_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Teacher deleted")
