"""
api/pagination.py -- page/limit query parameters and bounded path ids shared by the routers.

Usage:
    @router.get("/bootcamps")
    def list_bootcamps(request: Request, page: PageParams = Depends(page_params)): ...

    @router.get("/bootcamps/{bootcamp_id}")
    def get_bootcamp(request: Request, bootcamp_id: ResourceId): ...

SQLite integers are signed 64-bit. Ids and offsets past that range make the
driver raise OverflowError, so both are rejected at validation time (400).
"""

from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Path, Query, Request

from api.models import PageLink, Pagination

MAX_DB_INT = 2**63 - 1
MAX_LIMIT = 100
# (page - 1) * limit must stay a valid SQLite integer
MAX_PAGE = MAX_DB_INT // MAX_LIMIT

ResourceId = Annotated[int, Path(ge=1, le=MAX_DB_INT)]


@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def links(self, total: int) -> Pagination:
        """Return next/prev links; each is omitted when that page does not exist."""
        next_link: Optional[PageLink] = None
        prev_link: Optional[PageLink] = None
        if self.offset + self.limit < total:
            next_link = PageLink(page=self.page + 1, limit=self.limit)
        if self.offset > 0:
            prev_link = PageLink(page=self.page - 1, limit=self.limit)
        return Pagination(next=next_link, prev=prev_link)


def page_params(
    request: Request,
    page: int = Query(default=1, ge=1, le=MAX_PAGE),
    limit: Optional[int] = Query(default=None, ge=1, le=MAX_LIMIT),
) -> PageParams:
    """FastAPI dependency. limit falls back to DEFAULT_PAGE_SIZE."""
    return PageParams(page=page, limit=limit or request.app.state.settings.default_page_size)
