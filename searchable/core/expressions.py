"""
Relevance expression tree for weighted multi-column search.

This module builds a backend-independent description of how a row is scored:
- Per-column match predicates across four tiers (phrase prefix, whole word,
  token prefix, token substring)
- A weighted sum of those predicates over every searchable column
- The acceptance threshold a row's relevance must exceed

The tree can be scored in Python (``WeightedSum.score``) and is lowered into
SQLAlchemy expressions by ``searchable.core.renderer``.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from numbers import Real
from typing import Any, List, Mapping, Optional, Tuple

from .configuration import SearchColumn, SearchConfiguration
from .exceptions import ConfigurationError, InvalidArgument
from .tokenizer import normalize_phrase, tokenize

logger = logging.getLogger(__name__)

# Ratios matter: a phrase prefix match must outweigh the strongest token tier
# of the same column.
PHRASE_PREFIX_MULTIPLIER = 30
WHOLE_WORD_MULTIPLIER = 15
TOKEN_PREFIX_MULTIPLIER = 5
TOKEN_SUBSTRING_MULTIPLIER = 1


class Tier(Enum):
    """Match strength tiers, strongest first."""
    PHRASE_PREFIX = "phrase_prefix"
    WHOLE_WORD = "whole_word"
    TOKEN_PREFIX = "token_prefix"
    TOKEN_SUBSTRING = "token_substring"

    @property
    def multiplier(self) -> int:
        return _MULTIPLIERS[self]


_MULTIPLIERS = {
    Tier.PHRASE_PREFIX: PHRASE_PREFIX_MULTIPLIER,
    Tier.WHOLE_WORD: WHOLE_WORD_MULTIPLIER,
    Tier.TOKEN_PREFIX: TOKEN_PREFIX_MULTIPLIER,
    Tier.TOKEN_SUBSTRING: TOKEN_SUBSTRING_MULTIPLIER,
}

TOKEN_TIERS = (Tier.WHOLE_WORD, Tier.TOKEN_PREFIX, Tier.TOKEN_SUBSTRING)


def _fold(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value).lower()


@dataclass(frozen=True)
class PhraseMatch:
    """Column value starts with the whole search phrase."""
    column: SearchColumn
    phrase: str

    tier = Tier.PHRASE_PREFIX

    @property
    def score(self) -> float:
        return self.column.weight * self.tier.multiplier

    def matches(self, value: Any) -> bool:
        folded = _fold(value)
        return folded is not None and folded.startswith(self.phrase.lower())


@dataclass(frozen=True)
class TokenMatch:
    """Column value equals, starts with or contains any of ``tokens``."""
    column: SearchColumn
    tokens: Tuple[str, ...]
    tier: Tier

    @property
    def score(self) -> float:
        return self.column.weight * self.tier.multiplier

    def matches(self, value: Any) -> bool:
        folded = _fold(value)
        if folded is None:
            return False
        for token in self.tokens:
            token = token.lower()
            if self.tier is Tier.WHOLE_WORD and folded == token:
                return True
            if self.tier is Tier.TOKEN_PREFIX and folded.startswith(token):
                return True
            if self.tier is Tier.TOKEN_SUBSTRING and token in folded:
                return True
        return False


@dataclass(frozen=True)
class ColumnRelevance:
    """
    Relevance contribution of a single column.

    The phrase term is added on top of the token tiers. Token tiers are
    evaluated strongest first and only the first matching tier counts.
    """
    column: SearchColumn
    phrase: Optional[PhraseMatch] = None
    tiers: Tuple[TokenMatch, ...] = ()

    @property
    def is_empty(self) -> bool:
        return self.phrase is None and not self.tiers

    def score(self, value: Any) -> float:
        total = 0.0
        if self.phrase is not None and self.phrase.matches(value):
            total += self.phrase.score
        for match in self.tiers:
            if match.matches(value):
                total += match.score
                break
        return total


@dataclass(frozen=True)
class WeightedSum:
    """Sum of every column's relevance contribution."""
    terms: Tuple[ColumnRelevance, ...]

    @property
    def active_terms(self) -> Tuple[ColumnRelevance, ...]:
        return tuple(term for term in self.terms if not term.is_empty)

    def score(self, row: Mapping[str, Any]) -> float:
        """
        Score a row given as a mapping of qualified column name to value.

        Missing columns are treated as NULL.
        """
        return sum(term.score(row.get(term.column.qualified_name)) for term in self.active_terms)


@dataclass(frozen=True)
class Threshold:
    """Minimum (exclusive) relevance for a row to be included."""
    value: float
    derived: bool = False

    def admits(self, relevance: float) -> bool:
        return relevance > self.value and relevance > 0


def _validate_threshold(threshold: Any) -> float:
    if isinstance(threshold, bool) or not isinstance(threshold, Real):
        raise InvalidArgument(f"Threshold must be a number, got {threshold!r}")
    threshold = float(threshold)
    if math.isnan(threshold) or math.isinf(threshold):
        raise InvalidArgument(f"Threshold must be finite, got {threshold!r}")
    return threshold


@dataclass(frozen=True)
class SearchRequest:
    """A single search invocation."""
    raw_text: str
    threshold: Optional[float] = None
    require_full_text: bool = False
    full_text_only: bool = False

    def validate(self) -> "SearchRequest":
        if not isinstance(self.raw_text, str):
            raise InvalidArgument(f"Search text must be a string, got {type(self.raw_text).__name__}")
        if self.threshold is not None:
            _validate_threshold(self.threshold)
        if self.full_text_only and not self.phrase:
            raise InvalidArgument("Full-text-only search requires a non-empty search text")
        return self

    @property
    def phrase(self) -> str:
        return normalize_phrase(self.raw_text)

    @property
    def tokens(self) -> Tuple[str, ...]:
        if self.full_text_only:
            return (self.phrase,) if self.phrase else ()
        return tuple(tokenize(self.raw_text))


def build_column_relevance(column: SearchColumn, request: SearchRequest) -> ColumnRelevance:
    """Build the phrase and token tier predicates for one column."""
    phrase = None
    if request.require_full_text and request.phrase:
        phrase = PhraseMatch(column=column, phrase=request.phrase)

    tokens = request.tokens
    tiers: Tuple[TokenMatch, ...] = ()
    if tokens:
        tiers = tuple(TokenMatch(column=column, tokens=tokens, tier=tier) for tier in TOKEN_TIERS)

    return ColumnRelevance(column=column, phrase=phrase, tiers=tiers)


def build_relevance(configuration: SearchConfiguration, request: SearchRequest) -> WeightedSum:
    """
    Combine every column's predicates into one relevance expression.

    Args:
        configuration: Normalized search configuration
        request: Validated search request

    Returns:
        WeightedSum with one term per configured column, in declaration order
    """
    terms = tuple(build_column_relevance(column, request) for column in configuration.columns)
    relevance = WeightedSum(terms=terms)
    logger.debug(
        f"Built relevance for {configuration.primary_table}: tokens={list(request.tokens)}, "
        f"phrase={request.phrase if request.require_full_text else None!r}, "
        f"active_terms={len(relevance.active_terms)}"
    )
    return relevance


def default_threshold(configuration: SearchConfiguration) -> float:
    """Average column weight scaled by the substring multiplier."""
    if configuration.column_count == 0:
        raise ConfigurationError(f"No searchable columns configured for {configuration.primary_table}")
    return configuration.total_weight / configuration.column_count * TOKEN_SUBSTRING_MULTIPLIER


def resolve_threshold(configuration: SearchConfiguration, threshold: Optional[Any] = None) -> Threshold:
    """
    Resolve the acceptance threshold for a search.

    Args:
        configuration: Normalized search configuration
        threshold: Caller-supplied threshold, or None to derive one

    Returns:
        Threshold the aggregated relevance must strictly exceed

    Raises:
        InvalidArgument: If an explicit threshold is not a finite number
        ConfigurationError: If the configuration has no columns
    """
    if threshold is not None:
        return Threshold(value=_validate_threshold(threshold), derived=False)
    return Threshold(value=default_threshold(configuration), derived=True)


def score_rows(
    configuration: SearchConfiguration,
    request: SearchRequest,
    rows: List[Mapping[str, Any]],
) -> List[Tuple[Mapping[str, Any], float]]:
    """
    Score and rank in-memory rows the same way the SQL query does.

    Values are compared after ``str.lower``, the folding SQL ``lower()``
    applies (SQLite gets a Unicode-aware ``lower`` from
    ``searchable.database.register_sqlite_functions``).

    Rows are mappings of qualified column name to value, one per entity
    (no join duplication). Rows not admitted by the threshold are dropped;
    the rest are ordered by descending relevance, ties in input order.
    """
    request.validate()
    relevance = build_relevance(configuration, request)
    threshold = resolve_threshold(configuration, request.threshold)
    scored = [(row, relevance.score(row)) for row in rows]
    admitted = [item for item in scored if threshold.admits(item[1])]
    return sorted(admitted, key=lambda item: item[1], reverse=True)
