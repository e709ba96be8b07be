from collections.abc import Iterable, Mapping
from typing import Any

from pydantic.alias_generators import to_camel

from post_service.errors import InvalidQueryError
from post_service.query_builder import QueryBuilder
from post_service.query_descriptor import (
    ContainsInsensitive,
    DateGte,
    EndsWith,
    Equals,
    In,
    InvalidDate,
    QueryDescriptor,
    SortOrder,
    as_predicate,
)


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so user text matches literally"""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_column_map(field_names: Iterable[str]) -> dict[str, str]:
    """Map both snake_case and camelCase spellings of each field to its column"""
    columns: dict[str, str] = {}
    for name in field_names:
        columns[name] = name
        columns[to_camel(name)] = name
    return columns


class FilterConditionBuilder:
    """Composition class that turns descriptor parts into QueryBuilder conditions.

    Only fields present in the column map can be filtered, searched or sorted
    on; anything else raises InvalidQueryError before SQL is built.
    """

    def __init__(self, columns: Mapping[str, str]):
        self.columns = dict(columns)

    def resolve(self, field: str) -> str:
        try:
            return self.columns[field]
        except KeyError:
            raise InvalidQueryError(f"Unknown field '{field}'") from None

    def apply_predicate(self, builder: QueryBuilder, field: str, predicate: Any) -> QueryBuilder:
        """Apply one filter predicate; bare values are treated as Equals"""
        column = self.resolve(field)
        predicate = as_predicate(predicate)

        match predicate:
            case Equals(value=value):
                return builder.where(column, value)
            case EndsWith(suffix=suffix):
                return builder.where(column, "LIKE", f"%{escape_like(suffix)}")
            case DateGte(date=InvalidDate(raw=raw)):
                raise InvalidQueryError(f"Invalid date '{raw}' for field '{field}'")
            case DateGte(date=date):
                return builder.where(column, ">=", date)
            case In(values=values):
                return builder.where_in(column, values)
            case ContainsInsensitive(text=text):
                return builder.where(column, "ILIKE", f"%{escape_like(text)}%")
        raise InvalidQueryError(f"Unsupported filter for field '{field}'")

    def apply_filters(
        self, builder: QueryBuilder, filters: Mapping[str, Any] | None
    ) -> QueryBuilder:
        """AND every filter onto the builder"""
        for field, predicate in (filters or {}).items():
            builder = self.apply_predicate(builder, field, predicate)
        return builder

    def apply_search(
        self,
        builder: QueryBuilder,
        search: str | None,
        search_fields: Iterable[str] | None,
    ) -> QueryBuilder:
        """Add (f1 ILIKE $n OR f2 ILIKE $m ...) over the search fields only"""
        if search is None or not search_fields:
            return builder

        columns = [self.resolve(field) for field in search_fields]
        pattern = f"%{escape_like(search)}%"

        def search_group(group: QueryBuilder) -> QueryBuilder:
            for column in columns:
                group = group.or_where(column, "ILIKE", pattern)
            return group

        return builder.where(search_group)

    def apply_sort(self, builder: QueryBuilder, sort_by: str, sort_order: str) -> QueryBuilder:
        """Apply sorting with order_by (ASC) or order_by_desc"""
        column = self.resolve(sort_by)
        order = str(sort_order).lower()
        if order == SortOrder.DESC.value:
            return builder.order_by_desc(column)
        if order == SortOrder.ASC.value:
            return builder.order_by(column)
        raise InvalidQueryError(f"Invalid sort order '{sort_order}'")

    def apply_descriptor(self, builder: QueryBuilder, descriptor: QueryDescriptor) -> QueryBuilder:
        """Filters, search and sort of a descriptor; paging is left to the caller"""
        builder = self.apply_filters(builder, descriptor.custom_filters)
        builder = self.apply_search(builder, descriptor.search, descriptor.search_fields)
        return self.apply_sort(builder, descriptor.sort_by, descriptor.sort_order)
