"""
User search API endpoints.

This module exposes relevance search over users, ranking matches across
names, email, bio and the titles of the user's posts.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime
from typing import Optional
import logging

from ...database import get_db
from ...models.user import User
from ...core.config import settings
from ...core.exceptions import ConfigurationError, InvalidArgument
from ...core.query_builder import search
from ...core.results import paginate
from ...schemas.search import (
    PaginationInfo,
    UserResponse,
    UserSearchResponse,
    UserSearchResult,
)

router = APIRouter(tags=["users"])
logger = logging.getLogger(__name__)


@router.get("/search", response_model=UserSearchResponse)
async def search_users(
    q: str = Query("", description="Free-text search input"),
    threshold: Optional[float] = Query(None, description="Minimum relevance (exclusive)"),
    entire_text: bool = Query(False, description="Prioritize rows starting with the whole phrase"),
    entire_text_only: bool = Query(False, description="Match the whole phrase only"),
    page: int = Query(1, ge=1),
    per_page: int = Query(settings.SEARCH_DEFAULT_PAGE_SIZE, ge=1, le=settings.SEARCH_MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db)
):
    """
    Search users ordered by relevance.

    Matches across:
    - First and last name
    - Email
    - Bio
    - Post titles
    """
    start_time = datetime.utcnow()

    try:
        query = search(
            User,
            q,
            threshold=threshold,
            require_full_text=entire_text,
            full_text_only=entire_text_only,
        )
    except InvalidArgument as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConfigurationError as e:
        logger.error(f"User search is misconfigured: {str(e)}")
        raise HTTPException(status_code=500, detail="Search is not configured")

    try:
        result_page = await paginate(db, query, page=page, per_page=per_page)
    except Exception as e:
        logger.error(f"Search failed: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail="Search failed"
        )

    search_time = (datetime.utcnow() - start_time).total_seconds()

    return UserSearchResponse(
        results=[
            UserSearchResult(user=UserResponse.model_validate(hit.entity), relevance=hit.relevance)
            for hit in result_page.hits
        ],
        total_matches=result_page.total,
        search_time=search_time,
        pagination=PaginationInfo(
            page=result_page.page,
            per_page=result_page.per_page,
            total_items=result_page.total,
            total_pages=result_page.total_pages,
            has_next=result_page.has_next,
            has_previous=result_page.has_previous,
        ),
        query_info={
            'query': q,
            'entire_text': entire_text,
            'entire_text_only': entire_text_only,
            'threshold': threshold,
        }
    )
