"""Repository class"""

import copy
import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from post_service.database_operations import DatabaseOperations, affected_rows
from post_service.entity_mapper import EntityMapper
from post_service.filter_conditions import FilterConditionBuilder, build_column_map
from post_service.pagination import build_page_meta, page_offset
from post_service.query_builder import QueryBuilder
from post_service.query_descriptor import PaginatedResult, QueryDescriptor
from post_service.relation_loader import Relation, RelationLoader

logger = logging.getLogger(__name__)


class RepositoryConfig(BaseModel):
    """Configuration options for Repository"""

    db_schema: str | None = Field(default=None, description="Database schema name")
    relations: dict[str, Relation] = Field(
        default_factory=dict, description="Relations loadable by dotted path"
    )


class Repository[T: BaseModel, U: BaseModel]:
    """Generic asyncpg repository with a fluent, immutable query interface.

    Type Parameters:
        T: Entity class; its fields are the table's columns
        U: Update model type

    Soft delete is enabled when the entity has an `is_deleted` or `deleted_at`
    field: queries then skip deleted rows unless with_trashed() or
    only_trashed() is used, and delete() marks rows instead of removing them.
    `created_at` / `updated_at` fields are filled automatically.
    """

    def __init__(
        self,
        entity_class: type[T],
        update_class: type[U],
        table_name: str,
        config: RepositoryConfig | None = None,
    ):
        if not table_name:
            raise ValueError("table_name is required")

        self.entity_class = entity_class
        self.update_class = update_class
        self.table_name = table_name
        self.config = config or RepositoryConfig()
        self._qualified_table_name = (
            f"{self.config.db_schema}.{table_name}"
            if self.config.db_schema
            else table_name
        )
        self._query_builder: QueryBuilder | None = None

        # Soft delete scope
        self._include_trashed: bool = False
        self._only_trashed: bool = False

        fields = entity_class.model_fields
        self._has_created_at = "created_at" in fields
        self._has_updated_at = "updated_at" in fields
        self._has_is_deleted = "is_deleted" in fields
        self._has_deleted_at = "deleted_at" in fields
        self._has_deleted_by = "deleted_by" in fields

        # Composition: Inject dependencies
        self.db_ops = DatabaseOperations()
        self.entity_mapper = EntityMapper(entity_class)
        self.conditions = FilterConditionBuilder(build_column_map(fields))
        self.relation_loader = RelationLoader(
            self.config.relations, self.db_ops, self.config.db_schema
        )

    @property
    def soft_deletes(self) -> bool:
        return self._has_is_deleted or self._has_deleted_at

    def _get_or_create_query_builder(self) -> QueryBuilder:
        if self._query_builder is None:
            return QueryBuilder(self._qualified_table_name)
        return self._query_builder

    def _clone_with_query_builder(self, query_builder: QueryBuilder):
        """Shallow copy of this repository (subclass preserved) with a new builder"""
        new_repo = copy.copy(self)
        new_repo._query_builder = query_builder
        return new_repo

    def _apply_trash_scope(self, builder: QueryBuilder) -> QueryBuilder:
        if not self.soft_deletes or self._include_trashed:
            return builder
        if self._has_is_deleted:
            return builder.where("is_deleted", not self._only_trashed)
        if self._only_trashed:
            return builder.where("deleted_at", "!=", None)
        return builder.where("deleted_at", None)

    def _scoped_builder(self) -> QueryBuilder:
        return self._apply_trash_scope(self._get_or_create_query_builder())

    def _not_deleted_condition(self) -> str:
        if self._has_is_deleted:
            return " AND is_deleted = FALSE"
        if self._has_deleted_at:
            return " AND deleted_at IS NULL"
        return ""

    def _apply_automatic_fields(
        self, data: dict[str, Any], is_create: bool = True
    ) -> dict[str, Any]:
        """Fill created_at / updated_at and the soft delete defaults"""
        current_time = datetime.now(UTC)

        if is_create:
            if self._has_created_at and data.get("created_at") is None:
                data["created_at"] = current_time
            if self._has_updated_at and data.get("updated_at") is None:
                data["updated_at"] = current_time
            if self._has_is_deleted and data.get("is_deleted") is None:
                data["is_deleted"] = False
            if self._has_deleted_at and "deleted_at" not in data:
                data["deleted_at"] = None
        elif self._has_updated_at and data.get("updated_at") is None:
            data["updated_at"] = current_time

        return data

    @staticmethod
    def _set_clause(data: Mapping[str, Any], start: int = 1) -> str:
        return ", ".join(f"{column} = ${start + i}" for i, column in enumerate(data))

    # Fluent query methods that return a new repository instance
    def where(self, field: str, *args: Any):
        """Add a WHERE condition: where(field, value) or where(field, operator, value)"""
        builder = self._get_or_create_query_builder()
        return self._clone_with_query_builder(builder.where(field, *args))

    def or_where(self, field: str, *args: Any):
        builder = self._get_or_create_query_builder()
        return self._clone_with_query_builder(builder.or_where(field, *args))

    def where_in(self, field: str, values: list):
        builder = self._get_or_create_query_builder()
        return self._clone_with_query_builder(builder.where_in(field, values))

    def where_not_in(self, field: str, values: list):
        builder = self._get_or_create_query_builder()
        return self._clone_with_query_builder(builder.where_not_in(field, values))

    def order_by(self, field: str):
        builder = self._get_or_create_query_builder()
        return self._clone_with_query_builder(builder.order_by(field))

    def order_by_desc(self, field: str):
        builder = self._get_or_create_query_builder()
        return self._clone_with_query_builder(builder.order_by_desc(field))

    def limit(self, count: int):
        builder = self._get_or_create_query_builder()
        return self._clone_with_query_builder(builder.limit(count))

    def offset(self, count: int):
        builder = self._get_or_create_query_builder()
        return self._clone_with_query_builder(builder.offset(count))

    def paginate(self, page: int, per_page: int = 10):
        builder = self._get_or_create_query_builder()
        return self._clone_with_query_builder(builder.paginate(page, per_page))

    def with_trashed(self):
        """Include soft-deleted records in query results"""
        new_repo = self._clone_with_query_builder(self._get_or_create_query_builder())
        new_repo._include_trashed = True
        new_repo._only_trashed = False
        return new_repo

    def only_trashed(self):
        """Only return soft-deleted records"""
        new_repo = self._clone_with_query_builder(self._get_or_create_query_builder())
        new_repo._include_trashed = False
        new_repo._only_trashed = True
        return new_repo

    # Execution methods for fluent queries
    async def get(self) -> list[T]:
        query, params = self._scoped_builder().build()
        rows = await self.db_ops.fetch_all(query, params)
        return self.entity_mapper.map_rows_to_entities(rows)

    async def first(self) -> T | None:
        query, params = self._scoped_builder().limit(1).build()
        row = await self.db_ops.fetch_one(query, params)
        return self.entity_mapper.map_row_to_entity(row) if row else None

    async def count(self, filters: Mapping[str, Any] | None = None) -> int:
        """Count rows matching the current query and the optional filters.

        Filters use the same shape as QueryDescriptor.custom_filters; plain
        values mean equality.
        """
        builder = self.conditions.apply_filters(self._scoped_builder(), filters)
        query, params = builder.build_count()
        result = await self.db_ops.fetch_value(query, params)
        return result or 0

    def to_sql(self) -> str:
        return self._scoped_builder().to_sql()

    async def find_many(self, descriptor: QueryDescriptor) -> PaginatedResult[T]:
        """Run a list query described by `descriptor`.

        Filters are ANDed, search is ORed over the search fields, rows are
        sorted, paged and their relations loaded. Field names are checked
        against the entity and unknown ones raise InvalidQueryError.
        """
        builder = self.conditions.apply_descriptor(self._scoped_builder(), descriptor)
        self.relation_loader.validate(descriptor.relations)

        count_query, count_params = builder.build_count()
        total = await self.db_ops.fetch_value(count_query, count_params) or 0

        query, params = (
            builder.limit(descriptor.limit)
            .offset(page_offset(descriptor.page, descriptor.limit))
            .build()
        )
        rows = [
            self.entity_mapper.row_to_dict(row)
            for row in await self.db_ops.fetch_all(query, params)
        ]
        await self.relation_loader.load(rows, descriptor.relations)

        return PaginatedResult(
            items=self.entity_mapper.map_rows_to_entities(rows),
            meta=build_page_meta(total, descriptor.page, descriptor.limit),
        )

    # CRUD operations
    async def find_by_id(self, entity_id: UUID | str) -> T | None:
        return await self.where("id", str(entity_id)).first()

    async def create(self, entity: BaseModel) -> T:
        """Insert an entity and return the stored row"""
        fields = self.entity_mapper.entity_to_columns(entity)
        fields = self._apply_automatic_fields(fields, is_create=True)

        columns = ", ".join(fields)
        placeholders = ", ".join(f"${i + 1}" for i in range(len(fields)))
        row = await self.db_ops.fetch_one(
            f"INSERT INTO {self._qualified_table_name} ({columns}) "
            f"VALUES ({placeholders}) RETURNING *",
            list(fields.values()),
        )
        return self.entity_mapper.map_row_to_entity(row)

    async def update(self, entity_id: UUID | str, update_data: U) -> T | None:
        """Update the fields explicitly set on `update_data`.

        Returns the updated entity, or None when no live row has that id.
        """
        update_dict = update_data.model_dump(exclude_unset=True)
        if not update_dict:
            return await self.find_by_id(entity_id)
        update_dict = self._apply_automatic_fields(update_dict, is_create=False)

        row = await self.db_ops.fetch_one(
            f"UPDATE {self._qualified_table_name} SET {self._set_clause(update_dict, 2)} "
            f"WHERE id = $1{self._not_deleted_condition()} RETURNING *",
            [str(entity_id), *update_dict.values()],
        )
        return self.entity_mapper.map_row_to_entity(row) if row else None

    def _soft_delete_values(self, deleted_by: str | None) -> dict[str, Any]:
        values: dict[str, Any] = {}
        if self._has_is_deleted:
            values["is_deleted"] = True
        if self._has_deleted_at:
            values["deleted_at"] = datetime.now(UTC)
        if self._has_deleted_by and deleted_by is not None:
            values["deleted_by"] = deleted_by
        return values

    async def delete(self, entity_id: UUID | str, deleted_by: str | None = None) -> T | None:
        """
        Delete an entity by ID and return it, or None if nothing was deleted.

        Performs soft delete if the entity supports it, hard delete otherwise.
        """
        if not self.soft_deletes:
            row = await self.db_ops.fetch_one(
                f"DELETE FROM {self._qualified_table_name} WHERE id = $1 RETURNING *",
                [str(entity_id)],
            )
        else:
            values = self._soft_delete_values(deleted_by)
            row = await self.db_ops.fetch_one(
                f"UPDATE {self._qualified_table_name} SET {self._set_clause(values, 2)} "
                f"WHERE id = $1{self._not_deleted_condition()} RETURNING *",
                [str(entity_id), *values.values()],
            )
        return self.entity_mapper.map_row_to_entity(row) if row else None

    async def delete_many(
        self, ids: list[UUID | str], deleted_by: str | None = None
    ) -> int:
        """Delete (soft when supported) the given ids and return the number affected"""
        if not ids:
            return 0

        str_ids = [str(entity_id) for entity_id in ids]
        if not self.soft_deletes:
            placeholders = ", ".join(f"${i + 1}" for i in range(len(str_ids)))
            result = await self.db_ops.execute_query(
                f"DELETE FROM {self._qualified_table_name} WHERE id IN ({placeholders})",
                str_ids,
            )
            return affected_rows(result)

        values = self._soft_delete_values(deleted_by)
        placeholders = ", ".join(
            f"${len(values) + i + 1}" for i in range(len(str_ids))
        )
        result = await self.db_ops.execute_query(
            f"UPDATE {self._qualified_table_name} SET {self._set_clause(values)} "
            f"WHERE id IN ({placeholders}){self._not_deleted_condition()}",
            [*values.values(), *str_ids],
        )
        count = affected_rows(result)
        logger.info("Soft deleted %d of %d %s rows", count, len(str_ids), self.table_name)
        return count

    async def force_delete(self, entity_id: UUID | str) -> bool:
        """Permanently delete entity by ID, bypassing soft delete"""
        result = await self.db_ops.execute_query(
            f"DELETE FROM {self._qualified_table_name} WHERE id = $1", [str(entity_id)]
        )
        return affected_rows(result) > 0

    async def restore(self, entity_id: UUID | str) -> T | None:
        """Restore a soft-deleted entity"""
        if not self.soft_deletes:
            return None

        values: dict[str, Any] = {}
        if self._has_is_deleted:
            values["is_deleted"] = False
        if self._has_deleted_at:
            values["deleted_at"] = None
        if self._has_deleted_by:
            values["deleted_by"] = None

        row = await self.db_ops.fetch_one(
            f"UPDATE {self._qualified_table_name} SET {self._set_clause(values, 2)} "
            f"WHERE id = $1 RETURNING *",
            [str(entity_id), *values.values()],
        )
        return self.entity_mapper.map_row_to_entity(row) if row else None
