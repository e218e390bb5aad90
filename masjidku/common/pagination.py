"""Paging, sorting and search helpers used by every list endpoint."""

from typing import Any, Dict, List, Optional, Sequence, Tuple

from fastapi import Query
from pydantic import BaseModel
from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from masjidku.common.responses import PaginationMeta

DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


class PageParams(BaseModel):
    page: int = 1
    per_page: int = DEFAULT_PER_PAGE

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


def resolve_paging(
    page: Optional[int],
    per_page: Optional[int],
    max_per_page: int = MAX_PER_PAGE,
    default_per_page: int = DEFAULT_PER_PAGE,
) -> PageParams:
    """Clamp raw query values: page < 1 becomes 1, per_page <= 0 the default, above the cap the cap."""
    if page is None or page < 1:
        page = 1
    if per_page is None or per_page <= 0:
        per_page = default_per_page
    if per_page > max_per_page:
        per_page = max_per_page
    return PageParams(page=page, per_page=per_page)


def pagination_params(max_per_page: int = MAX_PER_PAGE):
    """
    Dependency factory reading ?page=&per_page= (``limit`` is accepted as an alias of per_page).

    Example:
        params: PageParams = Depends(pagination_params(200))
    """

    async def _params(
        page: Optional[int] = Query(None, description="1-based page number"),
        per_page: Optional[int] = Query(None, description=f"Items per page (max {max_per_page})"),
        limit: Optional[int] = Query(None, description="Alias of per_page"),
    ) -> PageParams:
        return resolve_paging(page, per_page if per_page is not None else limit, max_per_page)

    return _params


def build_pagination(total: int, params: PageParams, count: int) -> PaginationMeta:
    total_pages = max(1, (total + params.per_page - 1) // params.per_page)
    return PaginationMeta(
        page=params.page,
        per_page=params.per_page,
        total=total,
        total_pages=total_pages,
        has_next=params.page < total_pages,
        has_prev=params.page > 1,
        count=count,
    )


async def paginate(db: AsyncSession, stmt: Select, params: PageParams) -> Tuple[List[Any], PaginationMeta]:
    """Run the count and the page query over the same filtered statement."""
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar_one()
    result = await db.execute(stmt.offset(params.offset).limit(params.per_page))
    rows = list(result.scalars().all())
    return rows, build_pagination(total, params, len(rows))


def apply_sort(
    stmt: Select,
    sort_by: Optional[str],
    order: Optional[str],
    allowed: Dict[str, Any],
    default: str = "created_at",
    tiebreaker: Any = None,
) -> Select:
    """
    Order by an allow-listed column. Unknown keys fall back to ``default`` DESC;
    an order other than asc/desc is treated as desc.
    """
    key = (sort_by or "").strip().lower()
    direction = (order or "").strip().lower()
    if key not in allowed:
        key = default
        direction = "desc"
    col = allowed[key]
    clauses = [col.asc() if direction == "asc" else col.desc()]
    if tiebreaker is not None:
        clauses.append(tiebreaker.asc())
    return stmt.order_by(*clauses)


def apply_search(stmt: Select, term: Optional[str], columns: Sequence[Any]) -> Select:
    """Case-insensitive substring match OR-ed across ``columns``; blank terms are ignored."""
    term = (term or "").strip().lower()
    if not term:
        return stmt
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"
    return stmt.where(or_(*[func.lower(col).like(pattern, escape="\\") for col in columns]))


def alive(model) -> Any:
    return model.deleted_at.is_(None)
