"""Query filters and their in-memory evaluation."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from trustmatch.models.records import Record, get_field, stringify_value

__all__ = [
    "FilterOperator",
    "SortDirection",
    "FilterCondition",
    "SortKey",
    "QueryFilter",
    "apply_filter",
    "count_matching",
]


class FilterOperator(StrEnum):
    """Comparison operators of a filter condition."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    CONTAINS = "contains"
    IN = "in"


class SortDirection(StrEnum):
    ASC = "asc"
    DESC = "desc"


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _ordered(value: Any, expected: Any) -> tuple[Any, Any]:
    """Operands for ordering: numbers compare numerically, anything else as text."""
    if _is_number(value) and _is_number(expected):
        return value, expected
    return stringify_value(value), stringify_value(expected)


@dataclass(frozen=True, slots=True)
class FilterCondition:
    """``<field> <operator> <value>`` test on one record.

    Attributes
    ----------
    field : str
        Field name; dotted paths reach nested values.
    operator : FilterOperator
        Comparison operator.
    value : Any
        Operand. ``in`` expects a list or tuple.
    """

    field: str
    operator: FilterOperator
    value: Any = None

    def __post_init__(self) -> None:
        """Validate the operand of ``in``."""
        if self.operator is FilterOperator.IN and not isinstance(self.value, list | tuple):
            raise ValueError(f"'in' expects a list of values, got {type(self.value).__name__}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FilterCondition:
        """Build from ``{"field": ..., "op": ..., "value": ...}``."""
        return cls(
            field=data["field"],
            operator=FilterOperator(data.get("op") or data["operator"]),
            value=data.get("value"),
        )

    def matches(self, record: Record) -> bool:
        """Return True when *record* satisfies the condition."""
        value = get_field(record, self.field)
        op = self.operator

        if op is FilterOperator.EQ:
            return bool(value == self.value)
        if op is FilterOperator.NEQ:
            return bool(value != self.value)
        if op is FilterOperator.CONTAINS:
            return stringify_value(self.value).lower() in stringify_value(value).lower()
        if op is FilterOperator.IN:
            return value in self.value

        left, right = _ordered(value, self.value)
        if op is FilterOperator.GT:
            return bool(left > right)
        if op is FilterOperator.LT:
            return bool(left < right)
        if op is FilterOperator.GTE:
            return bool(left >= right)
        return bool(left <= right)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"field": self.field, "op": str(self.operator), "value": self.value}


@dataclass(frozen=True, slots=True)
class SortKey:
    field: str
    direction: SortDirection = SortDirection.ASC


@dataclass(frozen=True, slots=True)
class QueryFilter:
    """Selection applied by a connector's ``query``.

    Attributes
    ----------
    conditions : tuple[FilterCondition, ...]
        Conditions combined with AND.
    order_by : tuple[SortKey, ...]
        Sort keys applied before pagination.
    limit : int | None
        Maximum number of records returned.
    offset : int
        Records skipped after filtering and sorting.
    select : tuple[str, ...]
        Fields kept in each returned record; empty keeps all.
    """

    conditions: tuple[FilterCondition, ...] = ()
    order_by: tuple[SortKey, ...] = ()
    limit: int | None = None
    offset: int = 0
    select: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Validate pagination."""
        if self.limit is not None and self.limit < 0:
            raise ValueError(f"limit must be >= 0, got {self.limit}")
        if self.offset < 0:
            raise ValueError(f"offset must be >= 0, got {self.offset}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QueryFilter:
        """Build from a JSON-style mapping (``where``, ``order_by``, ``limit``, ...)."""
        return cls(
            conditions=tuple(FilterCondition.from_dict(c) for c in data.get("where", [])),
            order_by=tuple(
                SortKey(s["field"], SortDirection(s.get("direction", SortDirection.ASC)))
                for s in data.get("order_by", [])
            ),
            limit=data.get("limit"),
            offset=int(data.get("offset", 0)),
            select=tuple(data.get("select", ())),
        )


def _sort(records: list[Record], keys: Sequence[SortKey]) -> list[Record]:
    # Stable sorts applied from the least significant key
    for key in reversed(keys):
        numeric = all(_is_number(get_field(r, key.field)) for r in records)

        def sort_value(record: Record, field_name: str = key.field, numeric: bool = numeric) -> Any:
            value = get_field(record, field_name)
            return value if numeric else stringify_value(value)

        records.sort(key=sort_value, reverse=key.direction is SortDirection.DESC)
    return records


def apply_filter(
    records: Iterable[Record],
    query_filter: QueryFilter | None = None,
) -> list[Record]:
    """Apply *query_filter* to records held in memory.

    Parameters
    ----------
    records : Iterable[Record]
        Candidate records.
    query_filter : QueryFilter | None, optional
        Selection; None returns every record.

    Returns
    -------
    list[Record]
        Selected records: filtered, sorted, paginated, then projected.
    """
    result = list(records)
    if query_filter is None:
        return result

    if query_filter.conditions:
        result = [r for r in result if all(c.matches(r) for c in query_filter.conditions)]

    if query_filter.order_by:
        result = _sort(result, query_filter.order_by)

    end = None if query_filter.limit is None else query_filter.offset + query_filter.limit
    result = result[query_filter.offset : end]

    if query_filter.select:
        result = [{k: r[k] for k in query_filter.select if k in r} for r in result]

    return result


def count_matching(records: Iterable[Record], conditions: Sequence[FilterCondition] = ()) -> int:
    """Count records satisfying every condition, ignoring pagination."""
    return sum(1 for r in records if all(c.matches(r) for c in conditions))
