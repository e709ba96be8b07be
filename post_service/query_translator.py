"""
Translate loosely-typed list query parameters into a QueryDescriptor.

The translator is pure: the same parameters always produce an equal
descriptor, nothing is read from or written to storage, and no input makes it
raise. Validation of field names and filter values is left to the repository.

Usage:
    descriptor = translate_query(
        {"page": "2", "limit": "20", "search": "python", "tags": ["a", "b"]},
        search_fields=("title", "content"),
    )
"""

import math
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel

from post_service.query_descriptor import (
    ContainsInsensitive,
    DateGte,
    DefaultSort,
    EndsWith,
    Equals,
    In,
    InvalidDate,
    QueryDescriptor,
    SortOrder,
    as_predicate,
)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100

# Keys that drive pagination, search and sorting; never turned into filters
RESERVED_KEYS = frozenset({"page", "limit", "search", "sortBy", "sortOrder"})


def _to_number(value: Any) -> int | float | None:
    # None, empty or non-numeric strings, containers, NaN and inf give None
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int | float):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if isinstance(number, float) and (math.isnan(number) or math.isinf(number)):
        return None
    return number


def to_positive_int(value: Any, default: int) -> int:
    """Parse `value` as a positive integer, falling back to `default`.

    Used for `limit`. Zero, negative numbers, NaN, empty strings and anything
    that does not parse as a number all map to `default`, so `limit=0` means
    "default limit", not "no rows". Floats are truncated and `True` counts as 1.
    """
    number = _to_number(value)
    if number is None:
        return default
    result = int(number)
    return result if result > 0 else default


def to_page(value: Any, default: int = DEFAULT_PAGE) -> int:
    """Parse a page number, falling back to `default` only for falsy numbers.

    Zero, NaN, empty strings and non-numeric input give `default`. Any other
    finite number is truncated and kept as given, negatives included; the
    storage layer reads a page below 1 from the first row.
    """
    number = _to_number(value)
    if number is None:
        return default
    return int(number) or default


def parse_date(value: str) -> datetime | InvalidDate:
    """Parse an ISO-8601 date or datetime string.

    Naive values are taken as UTC, so "2023-01-01" is midnight UTC. Values
    that do not parse give an InvalidDate instead of raising.
    """
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return InvalidDate(raw=value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _to_text(value: Any, default: str) -> str:
    if not value:
        return default
    if isinstance(value, SortOrder):
        return value.value
    return str(value)


# Filter inference rules
@dataclass(frozen=True)
class FilterRule:
    """One entry of the filter inference table.

    `matches(key, value)` decides whether the rule applies; `build(key, value)`
    returns the (field, predicate) pair to store.
    """

    name: str
    matches: Callable[[str, Any], bool]
    build: Callable[[str, Any], tuple[str, Any]]


def _strip_domain(key: str) -> str:
    # Only the first occurrence is removed: "emailDomain" -> "email"
    return key.replace("Domain", "", 1)


FILTER_RULES: tuple[FilterRule, ...] = (
    FilterRule(
        name="domain",
        matches=lambda key, value: key.endswith("Domain") and isinstance(value, str),
        build=lambda key, value: (_strip_domain(key), EndsWith(suffix=f"@{value}")),
    ),
    FilterRule(
        name="date",
        matches=lambda key, value: "Date" in key and isinstance(value, str),
        build=lambda key, value: (key, DateGte(date=parse_date(value))),
    ),
    FilterRule(
        name="in",
        matches=lambda key, value: isinstance(value, list | tuple),
        build=lambda key, value: (key, In(values=list(value))),
    ),
    FilterRule(
        name="name",
        matches=lambda key, value: isinstance(value, str) and "Name" in key,
        build=lambda key, value: (key, ContainsInsensitive(text=value)),
    ),
)


def infer_filter(key: str, value: Any) -> tuple[str, Any]:
    """Apply the first matching rule of FILTER_RULES, else Equals."""
    for rule in FILTER_RULES:
        if rule.matches(key, value):
            return rule.build(key, value)
    return key, Equals(value=value)


def build_filters(params: Mapping[str, Any]) -> dict[str, Any]:
    """Infer filter predicates from every non-reserved, non-null parameter."""
    filters: dict[str, Any] = {}
    for key, value in params.items():
        if key in RESERVED_KEYS or value is None:
            continue
        field, predicate = infer_filter(key, value)
        filters[field] = predicate
    return filters


def _as_mapping(raw: Mapping[str, Any] | BaseModel | None) -> Mapping[str, Any]:
    if raw is None:
        return {}
    if isinstance(raw, BaseModel):
        return raw.model_dump(by_alias=True)
    return raw


def translate_query(
    raw: Mapping[str, Any] | BaseModel | None,
    *,
    default_sort: DefaultSort | None = None,
    search_fields: Iterable[str] = (),
    relations: Iterable[str] = (),
    extra_custom_filters: Mapping[str, Any] | None = None,
) -> QueryDescriptor:
    """Build a QueryDescriptor from raw list parameters.

    Args:
        raw: Query parameters (mapping or pydantic DTO) with unknown keys
        default_sort: Sort used when sortBy / sortOrder are missing
        search_fields: Fields the free-text search applies to
        relations: Relation paths to eager-load, dot separated for nesting
        extra_custom_filters: Caller filters; they win over inferred ones

    Returns:
        QueryDescriptor
    """
    params = _as_mapping(raw)
    default_sort = default_sort or DefaultSort()

    page = to_page(params.get("page"))
    limit = min(to_positive_int(params.get("limit"), DEFAULT_LIMIT), MAX_LIMIT)

    search = params.get("search")
    if search is not None and not isinstance(search, str):
        search = str(search)

    fields = tuple(search_fields)

    custom_filters = build_filters(params)
    for key, value in (extra_custom_filters or {}).items():
        if value is not None:
            custom_filters[key] = as_predicate(value)

    return QueryDescriptor(
        page=page,
        limit=limit,
        search=search,
        search_fields=fields or None,
        sort_by=_to_text(params.get("sortBy"), default_sort.field),
        sort_order=_to_text(params.get("sortOrder"), default_sort.order.value),
        relations=tuple(relations),
        custom_filters=custom_filters,
    )
