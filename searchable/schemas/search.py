"""
Search API schemas.

This module defines Pydantic schemas for the relevance search endpoints,
including ranked results and pagination details.
"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import List, Optional, Dict, Any


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: Optional[str] = None
    created_at: Optional[datetime] = None


class UserSearchResult(BaseModel):
    """Single ranked search result."""
    user: UserResponse = Field(description="Matched user")
    relevance: float = Field(description="Computed relevance score")


class PaginationInfo(BaseModel):
    """Pagination details for a result page."""
    page: int
    per_page: int
    total_items: int
    total_pages: int
    has_next: bool
    has_previous: bool


class UserSearchResponse(BaseModel):
    """Search response with ranked results and metadata."""
    results: List[UserSearchResult] = Field(description="Results ordered by relevance")
    total_matches: int = Field(description="Total number of matching users")
    search_time: float = Field(description="Search execution time in seconds")
    pagination: PaginationInfo = Field(description="Pagination information")
    query_info: Dict[str, Any] = Field(description="Search query information")
