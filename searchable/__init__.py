"""
Weighted multi-column relevance search for SQLAlchemy queries.
"""

from .core.configuration import JoinSpec, SearchColumn, SearchConfiguration, configure
from .core.exceptions import ConfigurationError, InvalidArgument, SearchError
from .core.expressions import (
    PHRASE_PREFIX_MULTIPLIER,
    TOKEN_PREFIX_MULTIPLIER,
    TOKEN_SUBSTRING_MULTIPLIER,
    WHOLE_WORD_MULTIPLIER,
    SearchRequest,
    Tier,
)
from .core.query_builder import SearchQueryBuilder, build_search_query, search, searchable_for

__all__ = [
    "ConfigurationError",
    "InvalidArgument",
    "JoinSpec",
    "PHRASE_PREFIX_MULTIPLIER",
    "SearchColumn",
    "SearchConfiguration",
    "SearchError",
    "SearchQueryBuilder",
    "SearchRequest",
    "TOKEN_PREFIX_MULTIPLIER",
    "TOKEN_SUBSTRING_MULTIPLIER",
    "Tier",
    "WHOLE_WORD_MULTIPLIER",
    "build_search_query",
    "configure",
    "search",
    "searchable_for",
]
