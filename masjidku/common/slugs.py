import re
import unicodedata
from typing import Any, Iterable, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(value: Optional[str], max_len: int = 160) -> str:
    if not value:
        return ""
    ascii_value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    slug = _NON_ALNUM.sub("-", ascii_value.lower()).strip("-")
    return slug[:max_len].rstrip("-")


async def ensure_unique_slug(
    db: AsyncSession,
    model: Any,
    base: str,
    scope: Iterable[Any] = (),
    exclude_id: Optional[UUID] = None,
    max_len: int = 160,
) -> str:
    """Return ``base`` or ``base-2``, ``base-3``... whichever is free within ``scope`` (case-insensitive)."""
    scope = list(scope)
    candidate = base
    n = 2
    while True:
        stmt = select(model.id).where(func.lower(model.slug) == candidate.lower(), *scope)
        if exclude_id is not None:
            stmt = stmt.where(model.id != exclude_id)
        taken = (await db.execute(stmt.limit(1))).scalar_one_or_none()
        if taken is None:
            return candidate
        suffix = f"-{n}"
        candidate = base[: max_len - len(suffix)].rstrip("-") + suffix
        n += 1
