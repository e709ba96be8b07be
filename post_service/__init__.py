"""Paginated post listing over asyncpg"""

from post_service.db_context import DatabaseManager, transactional
from post_service.errors import InvalidQueryError, PostNotFound, PostServiceError
from post_service.post_repository import IPostRepository, PostRepository
from post_service.post_service import PostService
from post_service.query_descriptor import PageMeta, PaginatedResult, QueryDescriptor
from post_service.query_service import PaginatedQueryService
from post_service.query_translator import translate_query
from post_service.repository import Repository, RepositoryConfig

__all__ = [
    "DatabaseManager",
    "IPostRepository",
    "InvalidQueryError",
    "PageMeta",
    "PaginatedQueryService",
    "PaginatedResult",
    "PostNotFound",
    "PostRepository",
    "PostService",
    "PostServiceError",
    "QueryDescriptor",
    "Repository",
    "RepositoryConfig",
    "transactional",
    "translate_query",
]
