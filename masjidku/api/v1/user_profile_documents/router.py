from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile as StarletteUploadFile

from masjidku.auth.dependencies import get_current_user
from masjidku.auth.schemas import CurrentUser
from masjidku.common.pagination import PageParams, pagination_params
from masjidku.common.responses import ApiResponse, PaginatedResponse
from masjidku.core.exceptions import ServiceError
from masjidku.db.session import get_db
from masjidku.integrations.storage import StorageClient, get_storage_client

from .schemas import UserProfileDocumentCreate, UserProfileDocumentResponse, UserProfileDocumentUpdate
from . import service

router = APIRouter(prefix="/api/u/profile/documents", tags=["user-profile-documents"])


@router.post("", response_model=ApiResponse[UserProfileDocumentResponse], status_code=status.HTTP_201_CREATED)
async def create_document(
    payload: UserProfileDocumentCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        doc = await service.create_document(db, current_user.id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Document created", data=doc)


@router.post(
    "/upload",
    response_model=ApiResponse[List[UserProfileDocumentResponse]],
    status_code=status.HTTP_201_CREATED,
)
async def upload_documents(
    files: List[UploadFile] = File(...),
    doc_type: Optional[List[str]] = Form(None),
    current_user: CurrentUser = Depends(get_current_user),
    storage: StorageClient = Depends(get_storage_client),
    db: AsyncSession = Depends(get_db),
):
    try:
        docs = await service.upload_documents(db, storage, current_user.id, files, doc_type)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Documents uploaded", data=docs)


@router.get("", response_model=PaginatedResponse[UserProfileDocumentResponse])
async def list_documents(
    only_alive: bool = Query(True),
    doc_type: Optional[str] = Query(None),
    params: PageParams = Depends(pagination_params()),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, meta = await service.list_documents(
        db, current_user.id, params, only_alive=only_alive, doc_type=doc_type
    )
    return PaginatedResponse(message="Documents retrieved", data=items, pagination=meta)


@router.get("/{doc_type}", response_model=ApiResponse[UserProfileDocumentResponse])
async def get_document(
    doc_type: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        doc = await service.get_document(db, current_user.id, doc_type)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Document retrieved", data=doc)


async def _read_update(request: Request) -> Tuple[UserProfileDocumentUpdate, Optional[UploadFile]]:
    """Parse a JSON body, or a form (multipart or urlencoded) carrying the same fields plus an optional ``file``."""
    upload: Optional[UploadFile] = None
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        file = form.get("file")
        if isinstance(file, StarletteUploadFile) and file.filename:
            upload = file
        body = {
            name: form.get(name)
            for name in UserProfileDocumentUpdate.model_fields
            if isinstance(form.get(name), str)
        }
    else:
        try:
            body = await request.json()
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Request body must be valid JSON")
        if not isinstance(body, dict):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Request body must be a JSON object")
    try:
        payload = UserProfileDocumentUpdate.model_validate(body)
    except ValidationError as e:
        raise RequestValidationError(e.errors())
    return payload, upload


@router.patch("/{doc_type}", response_model=ApiResponse[UserProfileDocumentResponse])
async def update_document(
    doc_type: str,
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    storage: StorageClient = Depends(get_storage_client),
    db: AsyncSession = Depends(get_db),
):
    payload, upload = await _read_update(request)
    try:
        doc = await service.update_document(db, current_user.id, doc_type, payload, storage=storage, upload=upload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Document updated", data=doc)


@router.delete("/{doc_type}", response_model=ApiResponse[dict])
async def delete_document(
    doc_type: str,
    hard: bool = Query(False),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        await service.delete_document(db, current_user.id, doc_type, hard=hard)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    message = "Document permanently deleted" if hard else "Document deleted"
    return ApiResponse(message=message, data={"doc_type": doc_type})
