"""
Post use cases on top of a post repository and the paginated query service.

All methods expect to run inside DatabaseManager.transaction() (or a
@transactional function) when backed by PostRepository.
"""

import logging
from collections.abc import Mapping
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from post_service.entities import (
    Post,
    PostBulkResponse,
    PostChanges,
    PostCreate,
    PostListQuery,
    PostResponse,
    PostUpdate,
)
from post_service.errors import PostNotFound
from post_service.post_mapping import PostMapper
from post_service.post_repository import IPostRepository
from post_service.query_descriptor import (
    DefaultSort,
    Equals,
    PaginatedResult,
    QueryDescriptor,
    SortOrder,
)
from post_service.query_service import PaginatedQueryService

logger = logging.getLogger(__name__)

POST_SEARCH_FIELDS = ("title", "content")
POST_DEFAULT_SORT = DefaultSort(field="createdAt", order=SortOrder.DESC)


class PostService:
    def __init__(
        self,
        repository: IPostRepository,
        query_service: PaginatedQueryService[Post] | None = None,
        mapper: PostMapper | None = None,
    ):
        self.repository = repository
        self.query_service = query_service or PaginatedQueryService(repository)
        self.mapper = mapper or PostMapper()

    def _map_page(self, result: PaginatedResult[Post]) -> PaginatedResult[PostResponse]:
        return PaginatedResult[PostResponse](
            items=self.mapper.map_to_list(result.items), meta=result.meta
        )

    async def create_post(self, data: PostCreate, user_id: str) -> PostResponse:
        post = Post(
            title=data.title,
            content=data.content,
            images=data.images or [],
            created_by=user_id,
        )
        created = await self.repository.create(post)
        logger.info("Post %s created by %s", created.id, user_id)
        return self.mapper.map_to_response(created)

    async def find_one(self, post_id: UUID | str) -> PostResponse | None:
        post = await self.repository.find_by_id(post_id)
        return self.mapper.map_to_response(post) if post else None

    async def find_all(
        self, params: Mapping[str, Any] | BaseModel | None
    ) -> PaginatedResult[PostResponse]:
        """List live posts from raw query parameters.

        Search runs over title and content; the remaining parameters are
        inferred into filters by the query translator.
        """
        result = await self.query_service.find_many_with_pagination(
            params,
            default_sort=POST_DEFAULT_SORT,
            search_fields=POST_SEARCH_FIELDS,
            custom_filters={"isDeleted": False},
        )
        return self._map_page(result)

    async def get_posts(self, query: PostListQuery) -> PaginatedResult[PostResponse]:
        """List live posts, optionally of one author, newest first.

        Page and limit are passed to the repository as given.
        """
        filters: dict[str, Any] = {"isDeleted": Equals(value=False)}
        if query.author_id:
            filters["createdBy"] = Equals(value=query.author_id)

        descriptor = QueryDescriptor(
            page=query.page,
            limit=query.limit,
            search=query.search,
            search_fields=POST_SEARCH_FIELDS,
            sort_by=POST_DEFAULT_SORT.field,
            sort_order=POST_DEFAULT_SORT.order.value,
            custom_filters=filters,
        )
        result = await self.repository.find_many(descriptor)
        return self._map_page(result)

    async def update_post(
        self, user_id: str, post_id: UUID | str, data: PostUpdate
    ) -> PostResponse:
        changes = PostChanges(**data.model_dump(exclude_unset=True), updated_by=user_id)
        updated = await self.repository.update(post_id, changes)
        if updated is None:
            raise PostNotFound(str(post_id))
        logger.info("Post %s updated by %s", post_id, user_id)
        return self.mapper.map_to_response(updated)

    async def remove(self, post_id: UUID | str, user_id: str | None = None) -> PostResponse | None:
        """Soft delete one post; None when it does not exist or is already deleted"""
        deleted = await self.repository.soft_delete(post_id, user_id)
        if deleted is None:
            return None
        logger.info("Post %s soft deleted", post_id)
        return self.mapper.map_to_response(deleted)

    async def soft_delete_posts(
        self, user_id: str, ids: list[UUID | str]
    ) -> PostBulkResponse:
        count = await self.repository.soft_delete_many(ids, user_id)
        logger.info("User %s soft deleted %d of %d posts", user_id, count, len(ids))
        return PostBulkResponse(count=count)
