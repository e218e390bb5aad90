from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from masjidku.auth.rbac import require_dkm, require_owner
from masjidku.auth.schemas import MasjidContext
from masjidku.common.pagination import PageParams, pagination_params
from masjidku.common.responses import ApiResponse, PaginatedResponse
from masjidku.core.enums import VerificationStatus
from masjidku.core.exceptions import ServiceError
from masjidku.db.session import get_db

from .schemas import MasjidCreate, MasjidResponse, MasjidUpdate, MasjidVerificationUpdate
from . import service

public_router = APIRouter(prefix="/public/masjids", tags=["masjids"])
router = APIRouter(prefix="/api/a/masjids", tags=["masjids"])


@public_router.get("", response_model=PaginatedResponse[MasjidResponse])
async def list_masjids(
    q: Optional[str] = Query(None, description="Search name, location, slug, domain"),
    is_verified: Optional[bool] = Query(None),
    is_active: Optional[bool] = Query(None),
    verification_status: Optional[VerificationStatus] = Query(None),
    sort_by: Optional[str] = Query(None, description="name | created_at | updated_at"),
    order: Optional[str] = Query(None, description="asc | desc"),
    params: PageParams = Depends(pagination_params()),
    db: AsyncSession = Depends(get_db),
):
    items, meta = await service.list_masjids(
        db,
        params,
        q=q,
        is_verified=is_verified,
        is_active=is_active,
        verification_status=verification_status.value if verification_status else None,
        sort_by=sort_by,
        order=order,
    )
    return PaginatedResponse(message="Masjids retrieved", data=items, pagination=meta)


@public_router.get("/verified", response_model=PaginatedResponse[MasjidResponse])
async def list_verified_masjids(
    q: Optional[str] = Query(None),
    sort_by: Optional[str] = Query(None),
    order: Optional[str] = Query(None),
    params: PageParams = Depends(pagination_params()),
    db: AsyncSession = Depends(get_db),
):
    items, meta = await service.list_masjids(db, params, q=q, is_verified=True, sort_by=sort_by, order=order)
    return PaginatedResponse(message="Verified masjids retrieved", data=items, pagination=meta)


@public_router.get("/verified/{masjid_id}", response_model=ApiResponse[MasjidResponse])
async def get_verified_masjid(
    masjid_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    try:
        masjid = await service.get_masjid(db, masjid_id, verified_only=True)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Masjid retrieved", data=masjid)


@public_router.get("/slug/{slug}", response_model=ApiResponse[MasjidResponse])
async def get_masjid_by_slug(
    slug: str,
    db: AsyncSession = Depends(get_db),
):
    try:
        masjid = await service.get_masjid_by_slug(db, slug)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Masjid retrieved", data=masjid)


@public_router.get("/{masjid_id}", response_model=ApiResponse[MasjidResponse])
async def get_masjid(
    masjid_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    try:
        masjid = await service.get_masjid(db, masjid_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Masjid retrieved", data=masjid)


@router.post(
    "",
    response_model=ApiResponse[MasjidResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_owner)],
)
async def create_masjid(
    payload: MasjidCreate,
    db: AsyncSession = Depends(get_db),
):
    try:
        masjid = await service.create_masjid(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Masjid created", data=masjid)


@router.get(
    "",
    response_model=PaginatedResponse[MasjidResponse],
    dependencies=[Depends(require_owner)],
)
async def admin_list_masjids(
    q: Optional[str] = Query(None),
    is_verified: Optional[bool] = Query(None),
    is_active: Optional[bool] = Query(None),
    verification_status: Optional[VerificationStatus] = Query(None),
    sort_by: Optional[str] = Query(None),
    order: Optional[str] = Query(None),
    include_deleted: bool = Query(False),
    params: PageParams = Depends(pagination_params(200)),
    db: AsyncSession = Depends(get_db),
):
    items, meta = await service.list_masjids(
        db,
        params,
        q=q,
        is_verified=is_verified,
        is_active=is_active,
        verification_status=verification_status.value if verification_status else None,
        sort_by=sort_by,
        order=order,
        include_deleted=include_deleted,
    )
    return PaginatedResponse(message="Masjids retrieved", data=items, pagination=meta)


@router.patch("/{masjid_id}", response_model=ApiResponse[MasjidResponse])
async def update_masjid(
    payload: MasjidUpdate,
    ctx: MasjidContext = Depends(require_dkm),
    db: AsyncSession = Depends(get_db),
):
    try:
        masjid = await service.update_masjid(db, ctx.masjid_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Masjid updated", data=masjid)


@router.patch(
    "/{masjid_id}/verification",
    response_model=ApiResponse[MasjidResponse],
    dependencies=[Depends(require_owner)],
)
async def set_masjid_verification(
    masjid_id: UUID,
    payload: MasjidVerificationUpdate,
    db: AsyncSession = Depends(get_db),
):
    try:
        masjid = await service.set_verification(db, masjid_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Masjid verification updated", data=masjid)


@router.delete(
    "/{masjid_id}",
    response_model=ApiResponse[None],
    dependencies=[Depends(require_owner)],
)
async def delete_masjid(
    masjid_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    try:
        await service.delete_masjid(db, masjid_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Masjid deleted")
