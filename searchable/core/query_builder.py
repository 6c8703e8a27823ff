"""
Search query assembly on top of SQLAlchemy ``Select`` constructs.

A SearchQueryBuilder binds a SearchConfiguration to concrete tables and
turns a search request into a deferred query that:
- Left-joins every related table a searchable column lives in
- Projects the aggregated relevance as a ``relevance`` column
- Groups by the entity identity to collapse one-to-many join duplicates
- Keeps only groups whose relevance exceeds the threshold
- Orders by relevance, highest first

Nothing is executed here; the returned query can still be filtered and
paginated by the caller.
"""

import logging
import threading
from typing import Any, Dict, List, Optional, Set, Tuple

from sqlalchemy import Table, inspect, select
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.sql import Select
from sqlalchemy.sql.elements import ColumnElement, Label
from sqlalchemy.sql.util import find_tables

from .configuration import SearchColumn, SearchConfiguration, configure, configure_from_mapping, split_qualified
from .exceptions import ConfigurationError
from .expressions import SearchRequest, Threshold, WeightedSum, build_relevance, resolve_threshold
from .renderer import RELEVANCE_LABEL, SQLAlchemyRenderer

logger = logging.getLogger(__name__)

SEARCHABLE_ATTRIBUTE = "__searchable__"


def _as_table(entity: Any) -> Table:
    if isinstance(entity, Table):
        return entity
    try:
        mapper = inspect(entity)
    except NoInspectionAvailable as e:
        raise ConfigurationError(f"Cannot search {entity!r}: not a table or mapped class") from e
    table = getattr(mapper, "local_table", None)
    if not isinstance(table, Table):
        raise ConfigurationError(f"Cannot search {entity!r}: no local table")
    return table


class SearchQueryBuilder:
    """
    Relevance search bound to one entity table.

    Args:
        entity: SQLAlchemy Table or mapped class being searched
        configuration: Normalized configuration for that entity
        identity_key: Column names to group by; defaults to the primary key
            (or the configuration's ``group_by`` when set)

    Raises:
        ConfigurationError: If a configured table or column cannot be
            resolved against the entity's metadata
    """

    def __init__(
        self,
        entity: Any,
        configuration: SearchConfiguration,
        identity_key: Optional[List[str]] = None,
    ):
        self.table = _as_table(entity)
        self.configuration = configuration

        if self.table.name != configuration.primary_table:
            raise ConfigurationError(
                f"Configuration is for table {configuration.primary_table!r}, "
                f"cannot bind it to {self.table.name!r}"
            )

        self._tables: Dict[str, Table] = {self.table.name: self.table}
        for join in configuration.joins:
            self._tables[join.related_table] = self._lookup_table(join.related_table)

        # Resolve everything now so bad names fail at configuration time.
        self._columns: Dict[str, ColumnElement] = {
            column.qualified_name: self._lookup_column(column.qualified_name)
            for column in configuration.columns
        }
        self._join_conditions = [
            (join, self._lookup_column(join.local_key) == self._lookup_column(join.foreign_key))
            for join in configuration.joins_in_use()
        ]
        self.identity = self._resolve_identity(identity_key)
        self.renderer = SQLAlchemyRenderer(self._resolve, configuration.primary_table)

        logger.debug(
            f"Search on {self.table.name} bound: {len(self._columns)} columns, "
            f"{len(self._join_conditions)} joins, grouped by {[str(c) for c in self.identity]}"
        )

    def _lookup_table(self, name: str) -> Table:
        if name in self._tables:
            return self._tables[name]
        table = self.table.metadata.tables.get(name)
        if table is None:
            raise ConfigurationError(f"Table {name!r} is not defined in the metadata of {self.table.name!r}")
        return table

    def _lookup_column(self, qualified_name: str) -> ColumnElement:
        table_name, column_name = split_qualified(qualified_name)
        table = self._lookup_table(table_name)
        if column_name not in table.c:
            raise ConfigurationError(f"Column {qualified_name!r} does not exist")
        return table.c[column_name]

    def _resolve_identity(self, identity_key: Optional[List[str]]) -> Tuple[ColumnElement, ...]:
        if identity_key:
            names = [
                name if "." in name else f"{self.table.name}.{name}" for name in identity_key
            ]
            return tuple(self._lookup_column(name) for name in names)
        if self.configuration.group_by:
            return tuple(self._lookup_column(name) for name in self.configuration.group_by)
        primary_key = tuple(self.table.primary_key.columns)
        if not primary_key:
            raise ConfigurationError(
                f"Table {self.table.name!r} has no primary key; configure group_by explicitly"
            )
        return primary_key

    def _resolve(self, column: SearchColumn) -> ColumnElement:
        return self._columns[column.qualified_name]

    def relevance_tree(self, request: SearchRequest) -> WeightedSum:
        return build_relevance(self.configuration, request.validate())

    def relevance_expression(self, request: SearchRequest) -> Label:
        """Aggregated relevance, labelled ``relevance``."""
        return self.renderer.render_relevance(self.relevance_tree(request))

    def row_relevance_expression(self, request: SearchRequest) -> Label:
        """Relevance of a single (ungrouped) row, labelled ``relevance``."""
        return self.renderer.render_row_relevance(self.relevance_tree(request)).label(RELEVANCE_LABEL)

    def threshold(self, value: Optional[Any] = None) -> Threshold:
        return resolve_threshold(self.configuration, value)

    def apply_joins(self, query: Select) -> Select:
        """Left-join related tables the query does not already reference."""
        present: Set[str] = set()
        for from_clause in query.get_final_froms():
            present.update(table.name for table in find_tables(from_clause))

        for join, condition in self._join_conditions:
            if join.related_table in present:
                continue
            query = query.outerjoin(self._tables[join.related_table], condition)
            present.add(join.related_table)
        return query

    def build(
        self,
        base_query: Select,
        text: str,
        threshold: Optional[Any] = None,
        require_full_text: bool = False,
        full_text_only: bool = False,
    ) -> Select:
        """
        Augment ``base_query`` with relevance scoring, filtering and ordering.

        Args:
            base_query: Select over the entity (e.g. ``select(User)``)
            text: Raw search text
            threshold: Minimum relevance (exclusive); derived when None
            require_full_text: Add the whole-phrase prefix tier on top of the
                token tiers
            full_text_only: Match the whole phrase only, never single tokens

        Returns:
            Select yielding ``(entity..., relevance)`` rows

        Raises:
            InvalidArgument: If the threshold or text is invalid
        """
        request = SearchRequest(
            raw_text=text,
            threshold=threshold,
            require_full_text=require_full_text,
            full_text_only=full_text_only,
        ).validate()
        resolved = self.threshold(threshold)
        relevance = self.relevance_expression(request)

        logger.debug(
            f"Searching {self.table.name} for {request.raw_text!r}: tokens={list(request.tokens)}, "
            f"threshold={resolved.value} ({'derived' if resolved.derived else 'explicit'})"
        )

        query = self.apply_joins(base_query)
        return (
            query.add_columns(relevance)
            .group_by(*self.identity)
            .having(self.renderer.render_threshold(relevance, resolved))
            .order_by(relevance.desc())
        )


_builders: Dict[Tuple[SearchConfiguration, Table], SearchQueryBuilder] = {}
_model_builders: Dict[Any, SearchQueryBuilder] = {}
_lock = threading.Lock()


def _primary_table_of(configuration: SearchConfiguration, base_query: Select) -> Table:
    for from_clause in base_query.get_final_froms():
        for table in find_tables(from_clause):
            if isinstance(table, Table) and table.name == configuration.primary_table:
                return table
    raise ConfigurationError(
        f"Base query does not select from the primary table {configuration.primary_table!r}"
    )


def builder_for(configuration: SearchConfiguration, table: Table) -> SearchQueryBuilder:
    """Return the cached builder for ``configuration`` bound to ``table``."""
    key = (configuration, table)
    builder = _builders.get(key)
    if builder is None:
        with _lock:
            builder = _builders.get(key)
            if builder is None:
                builder = SearchQueryBuilder(table, configuration)
                _builders[key] = builder
    return builder


def build_search_query(
    configuration: SearchConfiguration,
    base_query: Select,
    text: str,
    threshold: Optional[Any] = None,
    require_full_text: bool = False,
    full_text_only: bool = False,
) -> Select:
    """
    Build a relevance search query from a configuration and a base query.

    The primary table is located among the base query's FROM objects.
    See ``SearchQueryBuilder.build`` for the arguments.
    """
    table = _primary_table_of(configuration, base_query)
    return builder_for(configuration, table).build(
        base_query,
        text,
        threshold=threshold,
        require_full_text=require_full_text,
        full_text_only=full_text_only,
    )


def searchable_for(model: Any) -> SearchQueryBuilder:
    """
    Return the search builder declared by a mapped class.

    The class's ``__searchable__`` mapping is normalized and bound once;
    later calls reuse the same builder.
    """
    builder = _model_builders.get(model)
    if builder is not None:
        return builder
    with _lock:
        builder = _model_builders.get(model)
        if builder is None:
            declaration = getattr(model, SEARCHABLE_ATTRIBUTE, None)
            if declaration is None:
                raise ConfigurationError(f"{getattr(model, '__name__', model)!r} declares no {SEARCHABLE_ATTRIBUTE}")
            table = _as_table(model)
            builder = SearchQueryBuilder(model, configure_from_mapping(declaration, table.name))
            _model_builders[model] = builder
            logger.info(f"Registered searchable model {getattr(model, '__name__', table.name)}")
    return builder


def search(
    model: Any,
    text: str,
    threshold: Optional[Any] = None,
    require_full_text: bool = False,
    full_text_only: bool = False,
    base_query: Optional[Select] = None,
) -> Select:
    """Search a model declaring ``__searchable__``; defaults to ``select(model)``."""
    if base_query is None:
        base_query = select(model)
    return searchable_for(model).build(
        base_query,
        text,
        threshold=threshold,
        require_full_text=require_full_text,
        full_text_only=full_text_only,
    )


__all__ = [
    "SearchQueryBuilder",
    "build_search_query",
    "builder_for",
    "configure",
    "search",
    "searchable_for",
]
