from typing import List, Optional, Tuple
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from masjidku.common.db_errors import is_unique_violation
from masjidku.common.pagination import PageParams, alive, apply_search, apply_sort, paginate
from masjidku.common.patch import apply_plain_updates
from masjidku.common.responses import PaginationMeta
from masjidku.common.slugs import ensure_unique_slug, slugify
from masjidku.core.exceptions import BadRequestError, ConflictError, NotFoundError
from masjidku.core.models import Masjid
from masjidku.db.types import utcnow

from .schemas import MasjidCreate, MasjidResponse, MasjidUpdate, MasjidVerificationUpdate

logger = structlog.get_logger(__name__)

SLUG_MAX_LEN = 100

SORT_FIELDS = {
    "name": Masjid.name,
    "created_at": Masjid.created_at,
    "updated_at": Masjid.updated_at,
}

# Nullable text columns that an empty string clears on update
CLEARABLE_FIELDS = (
    "bio_short",
    "location",
    "image_url",
    "google_maps_url",
    "domain",
    "instagram_url",
    "whatsapp_url",
    "youtube_url",
    "facebook_url",
    "tiktok_url",
)


def normalize_domain(domain: Optional[str]) -> Optional[str]:
    if domain is None:
        return None
    domain = domain.strip().lower()
    return domain or None


async def _ensure_domain_free(db: AsyncSession, domain: Optional[str], exclude_id: Optional[UUID] = None) -> None:
    if not domain:
        return
    stmt = select(Masjid.id).where(Masjid.domain == domain)
    if exclude_id is not None:
        stmt = stmt.where(Masjid.id != exclude_id)
    if (await db.execute(stmt)).scalar_one_or_none() is not None:
        raise ConflictError("Domain is already used by another masjid")


async def _slug_taken(db: AsyncSession, slug: str, exclude_id: Optional[UUID] = None) -> bool:
    stmt = select(Masjid.id).where(func.lower(Masjid.slug) == slug)
    if exclude_id is not None:
        stmt = stmt.where(Masjid.id != exclude_id)
    return (await db.execute(stmt)).scalar_one_or_none() is not None


async def _commit_or_conflict(db: AsyncSession, message: str) -> None:
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if is_unique_violation(e):
            raise ConflictError(message) from e
        raise


async def create_masjid(db: AsyncSession, payload: MasjidCreate) -> MasjidResponse:
    if payload.slug and payload.slug.strip():
        slug = slugify(payload.slug, SLUG_MAX_LEN)
        if not slug:
            raise BadRequestError("Invalid slug")
        if await _slug_taken(db, slug):
            raise ConflictError("Slug is already in use")
    else:
        base = slugify(payload.name, SLUG_MAX_LEN)
        if not base:
            raise BadRequestError("Name must contain letters or digits")
        slug = await ensure_unique_slug(db, Masjid, base, max_len=SLUG_MAX_LEN)

    domain = normalize_domain(payload.domain)
    await _ensure_domain_free(db, domain)

    data = payload.model_dump(exclude={"slug", "domain"})
    data["name"] = data["name"].strip()
    masjid = Masjid(**data, slug=slug, domain=domain, verification_status="pending", is_verified=False)
    db.add(masjid)
    await _commit_or_conflict(db, "Masjid slug or domain already exists")
    await db.refresh(masjid)
    logger.info("masjid_created", masjid_id=str(masjid.id), slug=masjid.slug)
    return MasjidResponse.model_validate(masjid)


async def list_masjids(
    db: AsyncSession,
    params: PageParams,
    q: Optional[str] = None,
    is_verified: Optional[bool] = None,
    is_active: Optional[bool] = None,
    verification_status: Optional[str] = None,
    sort_by: Optional[str] = None,
    order: Optional[str] = None,
    include_deleted: bool = False,
) -> Tuple[List[MasjidResponse], PaginationMeta]:
    stmt = select(Masjid)
    if not include_deleted:
        stmt = stmt.where(alive(Masjid))
    if is_verified is not None:
        stmt = stmt.where(Masjid.is_verified.is_(is_verified))
    if is_active is not None:
        stmt = stmt.where(Masjid.is_active.is_(is_active))
    if verification_status:
        stmt = stmt.where(Masjid.verification_status == verification_status)
    stmt = apply_search(stmt, q, [Masjid.name, Masjid.location, Masjid.slug, Masjid.domain])
    stmt = apply_sort(stmt, sort_by, order, SORT_FIELDS, tiebreaker=Masjid.id)
    rows, meta = await paginate(db, stmt, params)
    return [MasjidResponse.model_validate(m) for m in rows], meta


async def _get_alive(db: AsyncSession, masjid_id: UUID) -> Masjid:
    result = await db.execute(select(Masjid).where(Masjid.id == masjid_id, alive(Masjid)))
    masjid = result.scalar_one_or_none()
    if not masjid:
        raise NotFoundError("Masjid not found")
    return masjid


async def get_masjid(db: AsyncSession, masjid_id: UUID, verified_only: bool = False) -> MasjidResponse:
    masjid = await _get_alive(db, masjid_id)
    if verified_only and not masjid.is_verified:
        raise NotFoundError("Masjid not found")
    return MasjidResponse.model_validate(masjid)


async def get_masjid_by_slug(db: AsyncSession, slug: str) -> MasjidResponse:
    result = await db.execute(
        select(Masjid).where(func.lower(Masjid.slug) == slug.strip().lower(), alive(Masjid))
    )
    masjid = result.scalar_one_or_none()
    if not masjid:
        raise NotFoundError("Masjid not found")
    return MasjidResponse.model_validate(masjid)


async def update_masjid(db: AsyncSession, masjid_id: UUID, payload: MasjidUpdate) -> MasjidResponse:
    masjid = await _get_alive(db, masjid_id)

    if payload.slug is not None and payload.slug.strip():
        slug = slugify(payload.slug, SLUG_MAX_LEN)
        if not slug:
            raise BadRequestError("Invalid slug")
        if slug != masjid.slug and await _slug_taken(db, slug, exclude_id=masjid.id):
            raise ConflictError("Slug is already in use")
        payload.slug = slug
    if payload.name is not None and not payload.name.strip():
        raise BadRequestError("name cannot be empty")
    if payload.domain is not None:
        payload.domain = normalize_domain(payload.domain) or ""
        await _ensure_domain_free(db, payload.domain or None, exclude_id=masjid.id)

    apply_plain_updates(masjid, payload, clearable=CLEARABLE_FIELDS)
    await _commit_or_conflict(db, "Masjid slug or domain already exists")
    await db.refresh(masjid)
    return MasjidResponse.model_validate(masjid)


async def set_verification(db: AsyncSession, masjid_id: UUID, payload: MasjidVerificationUpdate) -> MasjidResponse:
    masjid = await _get_alive(db, masjid_id)
    masjid.verification_status = payload.verification_status
    masjid.is_verified = payload.verification_status == "approved"
    masjid.verified_at = utcnow() if masjid.is_verified else None
    if payload.verification_notes is not None:
        masjid.verification_notes = payload.verification_notes.strip() or None
    await db.commit()
    await db.refresh(masjid)
    logger.info("masjid_verification_changed", masjid_id=str(masjid.id), status=masjid.verification_status)
    return MasjidResponse.model_validate(masjid)


async def delete_masjid(db: AsyncSession, masjid_id: UUID) -> None:
    masjid = await _get_alive(db, masjid_id)
    masjid.deleted_at = utcnow()
    await db.commit()
    logger.info("masjid_deleted", masjid_id=str(masjid_id))
