"""
Paginated list queries over any repository that accepts a QueryDescriptor.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from pydantic import BaseModel

from post_service.query_descriptor import DefaultSort, PaginatedResult, QueryDescriptor
from post_service.query_translator import translate_query

logger = logging.getLogger(__name__)


class PaginatedRepository[T](Protocol):
    """The part of a repository the query service depends on."""

    async def find_many(self, descriptor: QueryDescriptor) -> PaginatedResult[T]: ...

    async def count(self, filters: Mapping[str, Any] | None = None) -> int: ...


class PaginatedQueryService[T]:
    """
    Translate list parameters and run them against a repository.

    The repository is the source of truth for pagination metadata; its result
    is returned as is. Errors raised by the repository propagate unchanged.

    Usage:
        service = PaginatedQueryService(post_repository)
        result = await service.find_many_with_pagination(
            {"page": 2, "search": "python"}, search_fields=("title", "content")
        )
    """

    def __init__(self, repository: PaginatedRepository[T]):
        self.repository = repository

    async def find_many_with_pagination(
        self,
        params: Mapping[str, Any] | BaseModel | None,
        *,
        default_sort: DefaultSort | None = None,
        search_fields: Iterable[str] = (),
        relations: Iterable[str] = (),
        custom_filters: Mapping[str, Any] | None = None,
    ) -> PaginatedResult[T]:
        descriptor = translate_query(
            params,
            default_sort=default_sort,
            search_fields=search_fields,
            relations=relations,
            extra_custom_filters=custom_filters,
        )
        logger.debug("find_many descriptor: %r", descriptor)
        return await self.repository.find_many(descriptor)

    async def get_count(self, filters: Mapping[str, Any] | None = None) -> int:
        return await self.repository.count(filters)
