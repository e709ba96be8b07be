from collections.abc import Mapping
from typing import Any, Protocol
from uuid import UUID

from post_service.entities import Post, PostChanges
from post_service.query_descriptor import PaginatedResult, QueryDescriptor
from post_service.relation_loader import Relation
from post_service.repository import Repository, RepositoryConfig


class IPostRepository(Protocol):
    """Storage operations the post service relies on"""

    async def find_many(self, descriptor: QueryDescriptor) -> PaginatedResult[Post]: ...

    async def count(self, filters: Mapping[str, Any] | None = None) -> int: ...

    async def find_by_id(self, entity_id: UUID | str) -> Post | None: ...

    async def create(self, entity: Post) -> Post: ...

    async def update(self, entity_id: UUID | str, update_data: PostChanges) -> Post | None: ...

    async def soft_delete(self, entity_id: UUID | str, user_id: str | None = None) -> Post | None: ...

    async def soft_delete_many(self, ids: list[UUID | str], user_id: str | None = None) -> int: ...


class PostRepository(Repository[Post, PostChanges]):
    """Posts table; soft-deleted rows are hidden unless with_trashed() is used"""

    def __init__(
        self,
        db_schema: str | None = None,
        relations: Mapping[str, Relation] | None = None,
    ):
        super().__init__(
            Post,
            PostChanges,
            "posts",
            RepositoryConfig(db_schema=db_schema, relations=dict(relations or {})),
        )

    async def soft_delete(self, entity_id: UUID | str, user_id: str | None = None) -> Post | None:
        return await self.delete(entity_id, deleted_by=user_id)

    async def soft_delete_many(self, ids: list[UUID | str], user_id: str | None = None) -> int:
        return await self.delete_many(ids, deleted_by=user_id)
