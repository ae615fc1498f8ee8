"""Typed predicate language for the document stores.

Queries are expressed as a tree of conditions over raw records rather than
as strings in a store's query language. Each document store renders the
tree itself (the memory store evaluates it directly, the SQLite store turns
it into parameterised SQL), so user input is only ever a bound value.

Field paths use dots for nesting and a ``[]`` suffix for "any element of
this list", e.g. ``location.city``, ``tags[]`` or ``timeline[].title``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union


class Operator(Enum):
    """Query operators."""

    # Comparison
    EQ = "="
    GTE = ">="
    LTE = "<="

    # String
    CONTAINS = "contains"  # case-insensitive substring

    # Collection
    IN = "in"

    # Logical
    AND = "and"
    OR = "or"


def resolve_path(record: dict[str, Any], path: str) -> list[Any]:
    """Collect the non-null values found at ``path`` in a raw record."""
    values: list[Any] = [record]
    for part in path.split("."):
        many = part.endswith("[]")
        name = part[:-2] if many else part
        next_values = []
        for value in values:
            if not isinstance(value, dict):
                continue
            item = value.get(name)
            if item is None:
                continue
            if many:
                if isinstance(item, list | tuple):
                    next_values.extend(i for i in item if i is not None)
            else:
                next_values.append(item)
        values = next_values
    return values


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


@dataclass(frozen=True)
class Condition:
    """A single query condition.

    For list paths the condition holds when any element satisfies it.
    """

    field: str
    operator: Operator
    value: Any

    def matches(self, record: dict[str, Any]) -> bool:
        """Check if a raw record matches this condition."""
        return any(self._compare(v) for v in resolve_path(record, self.field))

    def _compare(self, field_value: Any) -> bool:
        expected = _plain(self.value)
        field_value = _plain(field_value)
        try:
            if self.operator == Operator.EQ:
                return field_value == expected
            elif self.operator == Operator.GTE:
                return field_value >= expected
            elif self.operator == Operator.LTE:
                return field_value <= expected
            elif self.operator == Operator.CONTAINS:
                return str(expected).lower() in str(field_value).lower()
            elif self.operator == Operator.IN:
                return field_value in {_plain(v) for v in expected}
        except TypeError:
            return False

        return False


@dataclass
class Query:
    """A query combining multiple conditions."""

    conditions: list[Union[Condition, "Query"]]
    operator: Operator = Operator.AND

    def matches(self, record: dict[str, Any]) -> bool:
        """Check if a raw record matches this query."""
        if not self.conditions:
            return True

        if self.operator == Operator.AND:
            return all(c.matches(record) for c in self.conditions)
        elif self.operator == Operator.OR:
            return any(c.matches(record) for c in self.conditions)

        return False

    def add(self, condition: Union[Condition, "Query"]) -> "Query":
        """Add a condition to this query."""
        self.conditions.append(condition)
        return self


@dataclass(frozen=True)
class Sort:
    """Store-level ordering on a single field."""

    field: str
    descending: bool = False


class Grouping(Enum):
    """How an aggregation derives its group key."""

    VALUE = "value"  # the field value itself, one key per list element
    YEAR = "year"  # calendar year of an ISO date
    COMPOSITE = "composite"  # several fields joined, all must be present


@dataclass(frozen=True)
class GroupBy:
    """Group-by-with-count specification."""

    fields: tuple[str, ...]
    grouping: Grouping = Grouping.VALUE
    separator: str = ", "

    def keys_for(self, record: dict[str, Any]) -> list[Any]:
        """Compute the group keys a raw record contributes to."""
        if self.grouping == Grouping.COMPOSITE:
            parts = []
            for path in self.fields:
                values = resolve_path(record, path)
                if not values or not str(values[0]).strip():
                    return []
                parts.append(str(values[0]))
            return [self.separator.join(parts)]

        values = resolve_path(record, self.fields[0])
        if self.grouping == Grouping.YEAR:
            years = []
            for value in values:
                prefix = str(value)[:4]
                if prefix.isdigit():
                    years.append(int(prefix))
            return years[:1]

        # Each distinct element counts once per record
        keys = []
        for value in values:
            if value == "" or value in keys:
                continue
            keys.append(value)
        return keys


@dataclass
class StoreQuery:
    """Selection, ordering and pagination handed to a document store."""

    where: Query
    sort: Sort | None = None
    offset: int = 0
    limit: int | None = None


@dataclass
class AggregateQuery:
    """Grouped count over the records matching ``where``."""

    where: Query
    group_by: GroupBy


class QueryBuilder:
    """Fluent interface for building queries."""

    def __init__(self):
        self.query = Query(conditions=[])

    def where(self, field: str, operator: str | Operator, value: Any) -> "QueryBuilder":
        """Add a where condition."""
        if isinstance(operator, str):
            operator = Operator(operator)

        self.query.add(Condition(field, operator, value))
        return self

    def where_any(self, *conditions: Condition | Query) -> "QueryBuilder":
        """Add a group of conditions of which at least one must hold."""
        self.query.add(Query(conditions=list(conditions), operator=Operator.OR))
        return self

    def where_query(self, query: Query) -> "QueryBuilder":
        """Add a nested query."""
        self.query.add(query)
        return self

    def build(self) -> Query:
        """Build the final query."""
        return self.query

