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
from . import service

router = APIRouter(prefix="/api/a/{masjid_id}", tags=["academics"])


@router.post("/classes", response_model=ApiResponse[ClassResponse], status_code=status.HTTP_201_CREATED)
async def create_class(
    payload: ClassCreate,
    ctx: MasjidContext = Depends(require_dkm),
    db: AsyncSession = Depends(get_db),
):
    try:
        obj = await service.create_class(db, ctx.masjid_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Class created", data=obj)


@router.get("/classes", response_model=PaginatedResponse[ClassResponse])
async def list_classes(
    q: Optional[str] = Query(None),
    params: PageParams = Depends(pagination_params()),
    ctx: MasjidContext = Depends(require_dkm_or_teacher),
    db: AsyncSession = Depends(get_db),
):
    items, meta = await service.list_classes(db, ctx.masjid_id, params, q=q)
    return PaginatedResponse(message="Classes retrieved", data=items, pagination=meta)


@router.post("/class-sections", response_model=ApiResponse[ClassSectionResponse], status_code=status.HTTP_201_CREATED)
async def create_section(
    payload: ClassSectionCreate,
    ctx: MasjidContext = Depends(require_dkm),
    db: AsyncSession = Depends(get_db),
):
    try:
        obj = await service.create_section(db, ctx.masjid_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Section created", data=obj)


@router.get("/class-sections", response_model=PaginatedResponse[ClassSectionResponse])
async def list_sections(
    class_id: Optional[UUID] = Query(None),
    q: Optional[str] = Query(None),
    params: PageParams = Depends(pagination_params()),
    ctx: MasjidContext = Depends(require_dkm_or_teacher),
    db: AsyncSession = Depends(get_db),
):
    items, meta = await service.list_sections(db, ctx.masjid_id, params, class_id=class_id, q=q)
    return PaginatedResponse(message="Sections retrieved", data=items, pagination=meta)


@router.post("/subjects", response_model=ApiResponse[SubjectResponse], status_code=status.HTTP_201_CREATED)
async def create_subject(
    payload: SubjectCreate,
    ctx: MasjidContext = Depends(require_dkm),
    db: AsyncSession = Depends(get_db),
):
    try:
        obj = await service.create_subject(db, ctx.masjid_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Subject created", data=obj)


@router.get("/subjects", response_model=PaginatedResponse[SubjectResponse])
async def list_subjects(
    q: Optional[str] = Query(None),
    params: PageParams = Depends(pagination_params()),
    ctx: MasjidContext = Depends(require_dkm_or_teacher),
    db: AsyncSession = Depends(get_db),
):
    items, meta = await service.list_subjects(db, ctx.masjid_id, params, q=q)
    return PaginatedResponse(message="Subjects retrieved", data=items, pagination=meta)


@router.post("/class-subjects", response_model=ApiResponse[ClassSubjectResponse], status_code=status.HTTP_201_CREATED)
async def create_class_subject(
    payload: ClassSubjectCreate,
    ctx: MasjidContext = Depends(require_dkm),
    db: AsyncSession = Depends(get_db),
):
    try:
        obj = await service.create_class_subject(db, ctx.masjid_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Class subject created", data=obj)


@router.get("/class-subjects", response_model=PaginatedResponse[ClassSubjectResponse])
async def list_class_subjects(
    class_id: Optional[UUID] = Query(None),
    params: PageParams = Depends(pagination_params()),
    ctx: MasjidContext = Depends(require_dkm_or_teacher),
    db: AsyncSession = Depends(get_db),
):
    items, meta = await service.list_class_subjects(db, ctx.masjid_id, params, class_id=class_id)
    return PaginatedResponse(message="Class subjects retrieved", data=items, pagination=meta)
