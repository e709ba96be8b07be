from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel


class EntityMapper[T: BaseModel]:
    """Composition class for entity mapping operations"""

    def __init__(self, entity_class: type[T]):
        self.entity_class = entity_class

    @staticmethod
    def row_to_dict(row: Mapping[str, Any]) -> dict[str, Any]:
        """Plain dict of an asyncpg Record (or any mapping)"""
        return dict(row)

    def map_row_to_entity(self, row: Mapping[str, Any]) -> T:
        return self.entity_class(**dict(row))

    def map_rows_to_entities(self, rows: list[Mapping[str, Any]]) -> list[T]:
        return [self.map_row_to_entity(row) for row in rows]

    def entity_to_columns(self, entity: BaseModel) -> dict[str, Any]:
        """Field values of `entity` restricted to the columns of the entity class"""
        columns = set(self.entity_class.model_fields)
        return {k: v for k, v in entity.model_dump().items() if k in columns}
