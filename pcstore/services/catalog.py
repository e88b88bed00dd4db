"""
Catalog Query Service

Offset pagination and case-insensitive substring search shared by the
product and category listings.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from pcstore.services.errors import InvalidLimit, ValidationError

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """
    URL-safe slug for a display name.

    Lowercase, runs of anything outside [a-z0-9] become one hyphen, no hyphen
    at either end. slugify(slugify(x)) == slugify(x).
    """
    return _NON_ALNUM.sub("-", name.lower()).strip("-")


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the search term matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass
class PageRequest:
    """Validated listing parameters"""
    page: int = 1
    limit: int = 10
    search: str = ""

    @classmethod
    def build(
        cls,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        search: Optional[str] = None,
        default_limit: int = 10,
        max_limit: Optional[int] = None,
    ) -> "PageRequest":
        page = 1 if page is None else page
        limit = default_limit if limit is None else limit

        if limit < 1:
            raise InvalidLimit()
        if page < 1:
            raise ValidationError("page must be a positive integer")
        if max_limit is not None:
            limit = min(limit, max_limit)

        return cls(page=page, limit=limit, search=(search or "").strip())

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class Pagination:
    """Pagination metadata returned beside every listing"""
    current_page: int
    total_pages: int
    total_count: int
    has_next_page: bool
    has_prev_page: bool
    limit: int

    @classmethod
    def compute(cls, request: PageRequest, total_count: int) -> "Pagination":
        total_pages = math.ceil(total_count / request.limit)
        return cls(
            current_page=request.page,
            total_pages=total_pages,
            total_count=total_count,
            has_next_page=request.page < total_pages,
            has_prev_page=request.page > 1,
            limit=request.limit,
        )

    def to_dict(self, count_key: str) -> Dict[str, Any]:
        """Envelope with the per-entity total name (totalProducts, totalCategories)."""
        return {
            "currentPage": self.current_page,
            "totalPages": self.total_pages,
            count_key: self.total_count,
            "hasNextPage": self.has_next_page,
            "hasPrevPage": self.has_prev_page,
            "limit": self.limit,
        }


def search_condition(term: str, columns: Sequence[InstrumentedAttribute]):
    """OR of case-insensitive substring matches over `columns`, or None for a blank term."""
    if not term:
        return None
    pattern = f"%{escape_like(term)}%"
    return or_(*(column.ilike(pattern, escape="\\") for column in columns))


async def paginate(
    session: AsyncSession,
    query: Select,
    request: PageRequest,
    order_by,
    options: Sequence[Any] = (),
) -> Tuple[List[Any], Pagination]:
    """
    Run one page of `query`.

    The total is counted over the filtered query without the page window, so
    a page past the end yields no rows but the correct totals.
    """
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await session.execute(count_query)).scalar() or 0
    pagination = Pagination.compute(request, total)

    # Offsets past the end may not fit the database's integer type
    if request.skip >= total:
        return [], pagination

    page_query = query.options(*options).order_by(*order_by).offset(request.skip).limit(request.limit)
    rows = (await session.execute(page_query)).scalars().all()

    return list(rows), pagination
