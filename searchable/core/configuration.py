"""
Searchable column configuration.

This module turns the loosely-typed column/join mapping a model declares into
an immutable SearchConfiguration value object. All validation happens here,
at configuration time, so that per-request search calls can only fail on
their own arguments.
"""

import logging
import math
from dataclasses import dataclass
from numbers import Real
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def split_qualified(name: str) -> Tuple[str, str]:
    """Split ``table.column`` into its two parts."""
    table, _, column = name.partition(".")
    return table, column


@dataclass(frozen=True)
class SearchColumn:
    """A column eligible for matching, with its relative importance."""
    table: str
    name: str
    weight: float

    @property
    def qualified_name(self) -> str:
        return f"{self.table}.{self.name}"


@dataclass(frozen=True)
class JoinSpec:
    """Join of ``related_table`` into the base query on ``local_key = foreign_key``."""
    related_table: str
    local_key: str
    foreign_key: str

    @property
    def local(self) -> Tuple[str, str]:
        return split_qualified(self.local_key)

    @property
    def foreign(self) -> Tuple[str, str]:
        return split_qualified(self.foreign_key)


@dataclass(frozen=True)
class SearchConfiguration:
    """
    Canonical, immutable search configuration for one entity type.

    Columns keep their declaration order. Joins are only applied to a query
    when at least one column lives in the joined table.
    """
    primary_table: str
    columns: Tuple[SearchColumn, ...]
    joins: Tuple[JoinSpec, ...] = ()
    group_by: Tuple[str, ...] = ()

    @property
    def column_count(self) -> int:
        return len(self.columns)

    @property
    def total_weight(self) -> float:
        return sum(column.weight for column in self.columns)

    @property
    def tables(self) -> Tuple[str, ...]:
        """Tables referenced by searchable columns, in first-seen order."""
        seen: List[str] = []
        for column in self.columns:
            if column.table not in seen:
                seen.append(column.table)
        return tuple(seen)

    def weight_of(self, qualified_name: str) -> float:
        for column in self.columns:
            if column.qualified_name == qualified_name:
                return column.weight
        raise KeyError(qualified_name)

    def joins_in_use(self) -> Tuple[JoinSpec, ...]:
        referenced = set(self.tables)
        return tuple(join for join in self.joins if join.related_table in referenced)


def _qualify(key: Any, primary_table: str, what: str) -> str:
    if not isinstance(key, str) or not key.strip():
        raise ConfigurationError(f"Invalid {what} name: {key!r}")
    key = key.strip()
    parts = key.split(".")
    if len(parts) == 1:
        return f"{primary_table}.{key}"
    if len(parts) != 2 or not all(part.strip() for part in parts):
        raise ConfigurationError(f"Invalid {what} name: {key!r} (expected 'column' or 'table.column')")
    return key


def _validate_weight(qualified_name: str, weight: Any) -> float:
    if isinstance(weight, bool) or not isinstance(weight, Real):
        raise ConfigurationError(f"Weight for {qualified_name} must be a number, got {weight!r}")
    weight = float(weight)
    if math.isnan(weight) or math.isinf(weight):
        raise ConfigurationError(f"Weight for {qualified_name} must be finite, got {weight!r}")
    if weight <= 0:
        raise ConfigurationError(f"Weight for {qualified_name} must be positive, got {weight!r}")
    return weight


def _normalize_join(related_table: Any, keys: Any) -> JoinSpec:
    if not isinstance(related_table, str) or not related_table.strip():
        raise ConfigurationError(f"Invalid join table name: {related_table!r}")
    if isinstance(keys, (str, bytes)) or not isinstance(keys, Sequence) or len(keys) != 2:
        raise ConfigurationError(
            f"Join for {related_table} must be a (local_key, foreign_key) pair, got {keys!r}"
        )
    qualified = []
    for key in keys:
        if not isinstance(key, str) or key.count(".") != 1 or not all(split_qualified(key)):
            raise ConfigurationError(
                f"Join key {key!r} for {related_table} must be a qualified 'table.column' name"
            )
        qualified.append(key.strip())
    return JoinSpec(related_table=related_table.strip(), local_key=qualified[0], foreign_key=qualified[1])


def _check_join_tables(join: JoinSpec, primary_table: str) -> None:
    """One key must live in the primary table and the other in the joined table."""
    if join.related_table == primary_table:
        raise ConfigurationError(f"Table {primary_table} cannot be joined to itself")
    tables = sorted(table for table, _ in (join.local, join.foreign))
    if tables != sorted([primary_table, join.related_table]):
        raise ConfigurationError(
            f"Join for {join.related_table} must link {primary_table} and {join.related_table}, "
            f"got {join.local_key} = {join.foreign_key}"
        )


def configure(
    columns: Mapping[str, Any],
    joins: Optional[Mapping[str, Sequence[str]]] = None,
    primary_table: str = "",
    group_by: Optional[Iterable[str]] = None,
) -> SearchConfiguration:
    """
    Validate and normalize a searchable-columns configuration.

    Args:
        columns: Mapping of column name to weight. Bare names are qualified
            with ``primary_table``; ``table.column`` names are kept as given.
        joins: Mapping of related table to its (local_key, foreign_key) pair
        primary_table: Table name of the searched entity
        group_by: Optional grouping columns replacing the primary key

    Returns:
        SearchConfiguration ready to be bound to a table

    Raises:
        ConfigurationError: If any part of the configuration is invalid
    """
    if not isinstance(primary_table, str) or not primary_table.strip():
        raise ConfigurationError("A primary table name is required")
    primary_table = primary_table.strip()

    if not isinstance(columns, Mapping) or not columns:
        raise ConfigurationError("At least one searchable column is required")

    if joins is None:
        joins = {}
    if not isinstance(joins, Mapping):
        raise ConfigurationError(f"Joins must be a mapping of table to key pair, got {type(joins).__name__}")

    join_specs = tuple(_normalize_join(table, keys) for table, keys in joins.items())
    for join in join_specs:
        _check_join_tables(join, primary_table)
    joined_tables = {join.related_table for join in join_specs}

    search_columns: List[SearchColumn] = []
    seen: Dict[str, Any] = {}
    for key, weight in columns.items():
        qualified_name = _qualify(key, primary_table, "column")
        if qualified_name in seen:
            raise ConfigurationError(
                f"Column {qualified_name} is configured twice ({seen[qualified_name]!r} and {key!r})"
            )
        seen[qualified_name] = key
        table, name = split_qualified(qualified_name)
        if table != primary_table and table not in joined_tables:
            raise ConfigurationError(
                f"Column {qualified_name} references table {table!r} which is not joined"
            )
        search_columns.append(SearchColumn(table=table, name=name, weight=_validate_weight(qualified_name, weight)))

    grouping = tuple(_qualify(key, primary_table, "group by column") for key in (group_by or ()))

    configuration = SearchConfiguration(
        primary_table=primary_table,
        columns=tuple(search_columns),
        joins=join_specs,
        group_by=grouping,
    )
    logger.debug(
        f"Configured search on {primary_table}: "
        f"{[column.qualified_name for column in configuration.columns]}"
    )
    return configuration


def configure_from_mapping(declaration: Mapping[str, Any], primary_table: str) -> SearchConfiguration:
    """Build a configuration from a model's ``__searchable__`` declaration."""
    if not isinstance(declaration, Mapping):
        raise ConfigurationError(
            f"Searchable declaration for {primary_table} must be a mapping, got {type(declaration).__name__}"
        )
    unknown = set(declaration) - {"columns", "joins", "group_by"}
    if unknown:
        raise ConfigurationError(f"Unknown searchable options for {primary_table}: {sorted(unknown)}")
    return configure(
        declaration.get("columns") or {},
        joins=declaration.get("joins"),
        primary_table=primary_table,
        group_by=declaration.get("group_by"),
    )
