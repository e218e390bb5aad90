import os
import uuid
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

import structlog
from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from masjidku.common.db_errors import is_unique_violation
from masjidku.common.pagination import PageParams, paginate
from masjidku.common.patch import apply_plain_updates
from masjidku.common.responses import PaginationMeta
from masjidku.core.exceptions import BadRequestError, ConflictError, NotFoundError, UpstreamError
from masjidku.core.models import UserProfileDocument
from masjidku.db.types import utcnow
from masjidku.integrations.storage import StorageClient

from .schemas import UserProfileDocumentCreate, UserProfileDocumentResponse, UserProfileDocumentUpdate

logger = structlog.get_logger(__name__)

DOC_TYPE_MAX_LEN = 50
CLEARABLE_FIELDS = ("file_trash_url", "file_delete_pending_until")


def storage_dir(user_id: UUID) -> str:
    return f"users/documents/{user_id}"


def doc_type_from_filename(filename: Optional[str]) -> str:
    base, _ = os.path.splitext(os.path.basename(filename or ""))
    base = base.strip() or "document"
    return base[:DOC_TYPE_MAX_LEN]


async def _doc_type_taken(db: AsyncSession, user_id: UUID, doc_type: str) -> bool:
    result = await db.execute(
        select(UserProfileDocument.id).where(
            UserProfileDocument.user_id == user_id,
            UserProfileDocument.doc_type == doc_type,
            UserProfileDocument.deleted_at.is_(None),
        )
    )
    return result.scalar_one_or_none() is not None


async def _store_file(storage: StorageClient, user_id: UUID, upload: UploadFile) -> Tuple[str, str]:
    _, ext = os.path.splitext(upload.filename or "")
    path = f"{storage_dir(user_id)}/{uuid.uuid4().hex}{ext.lower()}"
    content = await upload.read()
    url = await storage.upload(path, content, upload.content_type)
    return path, url


async def _discard_stored(storage: StorageClient, paths: List[str]) -> None:
    """Best-effort removal of objects whose rows were never saved."""
    if not paths:
        return
    try:
        await storage.delete(paths)
    except UpstreamError:
        logger.warning("storage_cleanup_failed", paths=paths)


async def _commit_or_conflict(db: AsyncSession, doc_type: str) -> None:
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if is_unique_violation(e):
            raise ConflictError(f"Document '{doc_type}' already exists") from e
        raise


async def create_document(
    db: AsyncSession, user_id: UUID, payload: UserProfileDocumentCreate
) -> UserProfileDocumentResponse:
    doc_type = payload.doc_type.strip()
    if not doc_type:
        raise BadRequestError("doc_type is required")
    if await _doc_type_taken(db, user_id, doc_type):
        raise ConflictError(f"Document '{doc_type}' already exists")

    doc = UserProfileDocument(user_id=user_id, doc_type=doc_type, file_url=payload.file_url.strip())
    db.add(doc)
    await _commit_or_conflict(db, doc_type)
    await db.refresh(doc)
    return UserProfileDocumentResponse.model_validate(doc)


async def upload_documents(
    db: AsyncSession,
    storage: StorageClient,
    user_id: UUID,
    files: Sequence[UploadFile],
    doc_types: Optional[Sequence[str]] = None,
) -> List[UserProfileDocumentResponse]:
    """
    Upload every file to object storage and insert one row per file.
    Rows are committed together; any failure leaves no rows behind and removes
    the objects already stored.
    """
    if not files:
        raise BadRequestError("At least one file is required")
    doc_types = list(doc_types or [])
    if doc_types and len(doc_types) != len(files):
        raise BadRequestError("The number of doc_type values must match the number of files")

    resolved: List[str] = []
    for i, upload in enumerate(files):
        doc_type = doc_types[i].strip() if doc_types else doc_type_from_filename(upload.filename)
        if not doc_type or len(doc_type) > DOC_TYPE_MAX_LEN:
            raise BadRequestError(f"doc_type[{i}] is invalid")
        if doc_type in resolved:
            raise BadRequestError(f"doc_type '{doc_type}' is repeated")
        if await _doc_type_taken(db, user_id, doc_type):
            raise ConflictError(f"Document '{doc_type}' already exists")
        resolved.append(doc_type)

    docs: List[UserProfileDocument] = []
    stored: List[str] = []
    try:
        for doc_type, upload in zip(resolved, files):
            path, url = await _store_file(storage, user_id, upload)
            stored.append(path)
            doc = UserProfileDocument(user_id=user_id, doc_type=doc_type, file_url=url)
            db.add(doc)
            docs.append(doc)
        await _commit_or_conflict(db, ", ".join(resolved))
    except Exception:
        await _discard_stored(storage, stored)
        raise
    for doc in docs:
        await db.refresh(doc)
    logger.info("profile_documents_uploaded", user_id=str(user_id), count=len(docs))
    return [UserProfileDocumentResponse.model_validate(d) for d in docs]


async def list_documents(
    db: AsyncSession,
    user_id: UUID,
    params: PageParams,
    only_alive: bool = True,
    doc_type: Optional[str] = None,
) -> Tuple[List[UserProfileDocumentResponse], PaginationMeta]:
    stmt = select(UserProfileDocument).where(UserProfileDocument.user_id == user_id)
    if only_alive:
        stmt = stmt.where(UserProfileDocument.deleted_at.is_(None))
    if doc_type:
        stmt = stmt.where(UserProfileDocument.doc_type == doc_type.strip())
    stmt = stmt.order_by(UserProfileDocument.uploaded_at.desc(), UserProfileDocument.id.asc())
    rows, meta = await paginate(db, stmt, params)
    return [UserProfileDocumentResponse.model_validate(r) for r in rows], meta


async def _get_alive(db: AsyncSession, user_id: UUID, doc_type: str) -> UserProfileDocument:
    doc_type = doc_type.strip()
    if not doc_type:
        raise BadRequestError("doc_type is required")
    result = await db.execute(
        select(UserProfileDocument).where(
            UserProfileDocument.user_id == user_id,
            UserProfileDocument.doc_type == doc_type,
            UserProfileDocument.deleted_at.is_(None),
        )
    )
    doc = result.scalar_one_or_none()
    if not doc:
        raise NotFoundError("Document not found")
    return doc


async def get_document(db: AsyncSession, user_id: UUID, doc_type: str) -> UserProfileDocumentResponse:
    return UserProfileDocumentResponse.model_validate(await _get_alive(db, user_id, doc_type))


async def update_document(
    db: AsyncSession,
    user_id: UUID,
    doc_type: str,
    payload: UserProfileDocumentUpdate,
    storage: Optional[StorageClient] = None,
    upload: Optional[UploadFile] = None,
) -> UserProfileDocumentResponse:
    """
    Partial update. When ``upload`` is given the file is stored under the user's
    document directory and its URL replaces ``file_url``, whatever the body says.
    """
    doc = await _get_alive(db, user_id, doc_type)
    apply_plain_updates(doc, payload, clearable=CLEARABLE_FIELDS)
    if upload is None:
        await db.commit()
    else:
        if storage is None:
            raise BadRequestError("File uploads are not available")
        path, url = await _store_file(storage, user_id, upload)
        doc.file_url = url
        try:
            await db.commit()
        except Exception:
            await _discard_stored(storage, [path])
            raise
        logger.info("profile_document_file_replaced", user_id=str(user_id), doc_type=doc.doc_type)
    await db.refresh(doc)
    return UserProfileDocumentResponse.model_validate(doc)


async def delete_document(db: AsyncSession, user_id: UUID, doc_type: str, hard: bool = False) -> None:
    doc = await _get_alive(db, user_id, doc_type)
    if hard:
        await db.delete(doc)
    else:
        doc.deleted_at = utcnow()
    await db.commit()
    logger.info("profile_document_deleted", user_id=str(user_id), doc_type=doc_type.strip(), hard=hard)
