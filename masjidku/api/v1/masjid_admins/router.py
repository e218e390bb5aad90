from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from masjidku.auth.rbac import require_dkm
from masjidku.auth.schemas import MasjidContext
from masjidku.common.pagination import PageParams, pagination_params
from masjidku.common.responses import ApiResponse, PaginatedResponse
from masjidku.core.exceptions import ServiceError
from masjidku.db.session import get_db

from .schemas import MasjidAdminAssign, MasjidAdminResponse
from . import service

router = APIRouter(prefix="/api/a/{masjid_id}/masjid-admins", tags=["masjid-admins"])


@router.post("", response_model=ApiResponse[MasjidAdminResponse])
async def add_masjid_admin(
    payload: MasjidAdminAssign,
    response: Response,
    ctx: MasjidContext = Depends(require_dkm),
    db: AsyncSession = Depends(get_db),
):
    try:
        admin, created = await service.add_admin(db, ctx.masjid_id, payload.user_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if created:
        response.status_code = status.HTTP_201_CREATED
        return ApiResponse(message="Admin added", data=admin)
    return ApiResponse(message="Admin is active", data=admin)


@router.get("", response_model=PaginatedResponse[MasjidAdminResponse])
async def list_masjid_admins(
    q: Optional[str] = Query(None, description="Search user name, full name, email"),
    params: PageParams = Depends(pagination_params()),
    ctx: MasjidContext = Depends(require_dkm),
    db: AsyncSession = Depends(get_db),
):
    items, meta = await service.list_admins(db, ctx.masjid_id, params, q=q)
    return PaginatedResponse(message="Admins retrieved", data=items, pagination=meta)


@router.post("/revoke", response_model=ApiResponse[Optional[MasjidAdminResponse]])
async def revoke_masjid_admin(
    payload: MasjidAdminAssign,
    ctx: MasjidContext = Depends(require_dkm),
    db: AsyncSession = Depends(get_db),
):
    try:
        admin, message = await service.revoke_admin(db, ctx.masjid_id, payload.user_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message=message, data=admin)
