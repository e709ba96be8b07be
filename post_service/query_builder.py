"""
Immutable builder for parameterized PostgreSQL SELECT statements.
The builder only produces SQL and parameters; it never executes anything.
"""

from collections.abc import Callable
from typing import Any


class QueryBuilder:
    """
    Every method returns a new builder, so partial queries can be shared.

    Placeholders use asyncpg's $n style. Field names are interpolated as
    given and must be validated by the caller.

    Usage:
        builder = QueryBuilder("posts")
        query, params = (
            builder.where("is_deleted", False)
            .where("title", "ILIKE", "%python%")
            .order_by_desc("created_at")
            .paginate(page=2, per_page=10)
            .build()
        )
    """

    def __init__(self, table_name: str, param_offset: int = 0):
        self.table_name = table_name
        self.select_fields = "*"
        self.where_conditions: list[str] = []
        self.or_where_conditions: list[str] = []
        self.params: list[Any] = []
        self.order_by_parts: list[str] = []
        self.limit_count: int | None = None
        self.offset_count: int | None = None
        # Placeholders of a group builder continue the parent's numbering
        self._param_offset = param_offset

    def _clone(self) -> "QueryBuilder":
        new_builder = QueryBuilder(self.table_name, self._param_offset)
        new_builder.select_fields = self.select_fields
        new_builder.where_conditions = self.where_conditions.copy()
        new_builder.or_where_conditions = self.or_where_conditions.copy()
        new_builder.params = self.params.copy()
        new_builder.order_by_parts = self.order_by_parts.copy()
        new_builder.limit_count = self.limit_count
        new_builder.offset_count = self.offset_count
        return new_builder

    def _bind(self, value: Any) -> str:
        """Append a parameter and return its placeholder"""
        self.params.append(value)
        return f"${self._param_offset + len(self.params)}"

    def _add_condition(
        self, field: str, value: Any, operator: str, is_or: bool = False
    ) -> "QueryBuilder":
        new_builder = self._clone()

        if value is None and operator == "=":
            condition = f"{field} IS NULL"
        elif value is None and operator in ("!=", "<>"):
            condition = f"{field} IS NOT NULL"
        else:
            condition = f"{field} {operator} {new_builder._bind(value)}"

        new_builder._append(condition, is_or)
        return new_builder

    def _add_in_condition(
        self, field: str, values: Any, is_not: bool = False, is_or: bool = False
    ) -> "QueryBuilder":
        new_builder = self._clone()

        if not isinstance(values, list | tuple):
            values = [values]

        if not values:
            # IN () is not valid SQL; an empty set matches nothing
            condition = "TRUE" if is_not else "FALSE"
        else:
            placeholders = ", ".join(new_builder._bind(value) for value in values)
            not_keyword = "NOT " if is_not else ""
            condition = f"{field} {not_keyword}IN ({placeholders})"

        new_builder._append(condition, is_or)
        return new_builder

    def _append(self, condition: str, is_or: bool) -> None:
        if is_or:
            self.or_where_conditions.append(condition)
        else:
            self.where_conditions.append(condition)

    def _add_group_condition(
        self, group_function: Callable[["QueryBuilder"], "QueryBuilder"], is_or: bool
    ) -> "QueryBuilder":
        group_builder = QueryBuilder("", self._param_offset + len(self.params))
        result = group_function(group_builder)
        if result is not None:
            group_builder = result

        group_condition = group_builder._where_clause()
        if not group_condition:
            return self

        new_builder = self._clone()
        new_builder._append(f"({group_condition})", is_or)
        new_builder.params.extend(group_builder.params)
        return new_builder

    def select(self, *fields: str) -> "QueryBuilder":
        """Set the SELECT fields; no fields means *"""
        new_builder = self._clone()
        new_builder.select_fields = ", ".join(fields) if fields else "*"
        return new_builder

    def where(
        self,
        field_or_function: str | Callable[["QueryBuilder"], "QueryBuilder"],
        *args: Any,
    ) -> "QueryBuilder":
        """Add a WHERE condition or a grouped WHERE clause.

        Call styles:
        - where(field, value) -> operator defaults to '='
        - where(field, operator, value)
        - where(lambda qb: qb.where(...).or_where(...)) -> parenthesized group
        """
        if callable(field_or_function):
            return self._add_group_condition(field_or_function, is_or=False)
        if len(args) == 2:
            operator, value = args
            return self._add_condition(field_or_function, value, operator)
        if len(args) == 1:
            return self._add_condition(field_or_function, args[0], "=")
        raise TypeError("where() expects (field, value) or (field, operator, value)")

    def or_where(
        self,
        field_or_function: str | Callable[["QueryBuilder"], "QueryBuilder"],
        *args: Any,
    ) -> "QueryBuilder":
        """Add an OR WHERE condition or a grouped OR WHERE clause."""
        if callable(field_or_function):
            return self._add_group_condition(field_or_function, is_or=True)
        if len(args) == 2:
            operator, value = args
            return self._add_condition(field_or_function, value, operator, is_or=True)
        if len(args) == 1:
            return self._add_condition(field_or_function, args[0], "=", is_or=True)
        raise TypeError("or_where() expects (field, value) or (field, operator, value)")

    def where_in(self, field: str, values: Any) -> "QueryBuilder":
        return self._add_in_condition(field, values)

    def where_not_in(self, field: str, values: Any) -> "QueryBuilder":
        return self._add_in_condition(field, values, is_not=True)

    def or_where_in(self, field: str, values: Any) -> "QueryBuilder":
        return self._add_in_condition(field, values, is_or=True)

    def order_by(self, field: str) -> "QueryBuilder":
        """Add ORDER BY ascending for a field. Chain to add multiple fields."""
        new_builder = self._clone()
        new_builder.order_by_parts.append(field)
        return new_builder

    def order_by_desc(self, field: str) -> "QueryBuilder":
        new_builder = self._clone()
        new_builder.order_by_parts.append(f"{field} DESC")
        return new_builder

    def limit(self, count: int) -> "QueryBuilder":
        new_builder = self._clone()
        new_builder.limit_count = count
        return new_builder

    def offset(self, count: int) -> "QueryBuilder":
        new_builder = self._clone()
        new_builder.offset_count = count
        return new_builder

    def paginate(self, page: int, per_page: int = 10) -> "QueryBuilder":
        """
        Set LIMIT and OFFSET for a 1-based page.

        Args:
            page: Page number (1-based)
            per_page: Number of records per page (default: 10)
        """
        if page < 1:
            raise ValueError("Page number must be 1 or greater")
        if per_page < 1:
            raise ValueError("Per page count must be 1 or greater")
        return self.limit(per_page).offset((page - 1) * per_page)

    def _where_clause(self) -> str:
        """AND conditions first, each OR condition appended with OR"""
        parts: list[str] = []
        if self.where_conditions:
            and_clause = " AND ".join(self.where_conditions)
            if self.or_where_conditions and len(self.where_conditions) > 1:
                and_clause = f"({and_clause})"
            parts.append(and_clause)
        parts.extend(self.or_where_conditions)
        return " OR ".join(parts)

    def _from_where(self) -> str:
        clause = f"FROM {self.table_name}"
        where_clause = self._where_clause()
        if where_clause:
            clause += f" WHERE {where_clause}"
        return clause

    def build(self) -> tuple[str, list[Any]]:
        """Build the final SQL query and parameters"""
        query_parts = [f"SELECT {self.select_fields} {self._from_where()}"]

        if self.order_by_parts:
            query_parts.append(f"ORDER BY {', '.join(self.order_by_parts)}")
        if self.limit_count is not None:
            query_parts.append(f"LIMIT {self.limit_count}")
        if self.offset_count is not None:
            query_parts.append(f"OFFSET {self.offset_count}")

        return " ".join(query_parts), self.params.copy()

    def build_count(self) -> tuple[str, list[Any]]:
        """Build a COUNT(*) over the same conditions, ignoring order and paging"""
        return f"SELECT COUNT(*) {self._from_where()}", self.params.copy()

    def to_sql(self) -> str:
        query, _ = self.build()
        return query

    def __str__(self) -> str:
        query, params = self.build()
        return f"Query: {query}\nParams: {params}"
