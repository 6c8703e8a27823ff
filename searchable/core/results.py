"""
Execution helpers for built search queries.

These run a search query through an AsyncSession and unpack the
``(entity, relevance)`` rows it yields.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

logger = logging.getLogger(__name__)


@dataclass
class SearchHit:
    """A matched entity with its computed relevance."""
    entity: Any
    relevance: float


@dataclass
class SearchPage:
    """One page of search hits plus pagination details."""
    hits: List[SearchHit]
    total: int
    page: int
    per_page: int
    total_pages: int = field(init=False)
    has_next: bool = field(init=False)
    has_previous: bool = field(init=False)

    def __post_init__(self):
        self.total_pages = (self.total + self.per_page - 1) // self.per_page
        self.has_next = self.page < self.total_pages
        self.has_previous = self.page > 1


async def fetch_hits(session: AsyncSession, query: Select) -> List[SearchHit]:
    """Execute a search query and return its hits in relevance order."""
    result = await session.execute(query)
    hits = [SearchHit(entity=row[0], relevance=float(row[-1] or 0)) for row in result.all()]
    logger.debug(f"Search returned {len(hits)} hits")
    return hits


async def count_hits(session: AsyncSession, query: Select) -> int:
    """Count the groups a search query would return."""
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    return await session.scalar(count_query) or 0


async def paginate(session: AsyncSession, query: Select, page: int = 1, per_page: int = 20) -> SearchPage:
    """
    Fetch one page of a search query.

    Args:
        session: Async database session
        query: Built search query
        page: 1-based page number
        per_page: Page size

    Returns:
        SearchPage with the page's hits and totals
    """
    if page < 1 or per_page < 1:
        raise ValueError("page and per_page must be positive")
    total = await count_hits(session, query)
    offset = (page - 1) * per_page
    hits = await fetch_hits(session, query.offset(offset).limit(per_page))
    return SearchPage(hits=hits, total=total, page=page, per_page=per_page)
