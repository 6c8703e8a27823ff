"""
Lowering of relevance expression trees into SQLAlchemy Core expressions.

All LIKE escaping and parameter binding for search predicates happens here,
so no SQL text is ever assembled by hand.
"""

import logging
from typing import Callable, List, Optional

from sqlalchemy import Float, and_, case, func, literal, or_
from sqlalchemy.sql.elements import ColumnElement, Label

from .configuration import SearchColumn
from .expressions import ColumnRelevance, PhraseMatch, Threshold, Tier, TokenMatch, WeightedSum
from .tokenizer import LIKE_ESCAPE_CHAR, escape_like

logger = logging.getLogger(__name__)

RELEVANCE_LABEL = "relevance"

ColumnResolver = Callable[[SearchColumn], ColumnElement]


def _score(value: float) -> ColumnElement:
    return literal(value, Float)


class SQLAlchemyRenderer:
    """
    Render expression tree nodes against resolved SQLAlchemy columns.

    Args:
        resolve_column: Maps a SearchColumn to the bound column expression
        primary_table: Table whose terms repeat unchanged on every row of a group
    """

    def __init__(self, resolve_column: ColumnResolver, primary_table: str):
        self.resolve_column = resolve_column
        self.primary_table = primary_table

    def render_phrase(self, match: PhraseMatch) -> ColumnElement:
        column = self.resolve_column(match.column)
        return column.ilike(escape_like(match.phrase) + "%", escape=LIKE_ESCAPE_CHAR)

    def render_tokens(self, match: TokenMatch) -> ColumnElement:
        column = self.resolve_column(match.column)
        if match.tier is Tier.WHOLE_WORD:
            conditions = [func.lower(column) == token.lower() for token in match.tokens]
        elif match.tier is Tier.TOKEN_PREFIX:
            conditions = [
                column.ilike(escape_like(token) + "%", escape=LIKE_ESCAPE_CHAR)
                for token in match.tokens
            ]
        elif match.tier is Tier.TOKEN_SUBSTRING:
            conditions = [
                column.ilike("%" + escape_like(token) + "%", escape=LIKE_ESCAPE_CHAR)
                for token in match.tokens
            ]
        else:
            raise ValueError(f"Unsupported token tier: {match.tier}")
        return or_(*conditions)

    def render_column(self, term: ColumnRelevance) -> Optional[ColumnElement]:
        """Render one column's contribution, or None when it has no predicates."""
        parts: List[ColumnElement] = []
        if term.phrase is not None:
            parts.append(case((self.render_phrase(term.phrase), _score(term.phrase.score)), else_=_score(0)))
        if term.tiers:
            whens = [(self.render_tokens(match), _score(match.score)) for match in term.tiers]
            parts.append(case(*whens, else_=_score(0)))
        if not parts:
            return None
        return self._add(parts)

    def render_row_relevance(self, relevance: WeightedSum) -> ColumnElement:
        """Per-row relevance, before any grouping."""
        rendered = [self.render_column(term) for term in relevance.active_terms]
        return self._add([part for part in rendered if part is not None])

    def render_relevance(self, relevance: WeightedSum) -> Label:
        """
        Aggregated relevance for a group of joined rows.

        Primary table terms are the same on every row of a group and count
        once (max). Joined table terms are summed, so a base row matching in
        several related rows accumulates each contribution.
        """
        primary: List[ColumnElement] = []
        joined: List[ColumnElement] = []
        for term in relevance.active_terms:
            rendered = self.render_column(term)
            if rendered is None:
                continue
            if term.column.table == self.primary_table:
                primary.append(rendered)
            else:
                joined.append(rendered)

        aggregates: List[ColumnElement] = []
        if primary:
            aggregates.append(func.coalesce(func.max(self._add(primary)), _score(0)))
        if joined:
            aggregates.append(func.coalesce(func.sum(self._add(joined)), _score(0)))
        return self._add(aggregates).label(RELEVANCE_LABEL)

    def render_threshold(self, relevance: ColumnElement, threshold: Threshold) -> ColumnElement:
        if isinstance(relevance, Label):
            relevance = relevance.element
        return and_(relevance > _score(threshold.value), relevance > _score(0))

    @staticmethod
    def _add(parts: List[ColumnElement]) -> ColumnElement:
        if not parts:
            return _score(0)
        expression = parts[0]
        for part in parts[1:]:
            expression = expression + part
        return expression
