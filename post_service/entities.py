from datetime import datetime
from typing import ClassVar
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BaseEntity(BaseModel):
    """Base entity class for all database models.

    Extra attributes are kept so that eager-loaded relations ride along with
    the entity (post.author, post.comments, ...).
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(use_enum_values=True, extra="allow")
    id: UUID = Field(default_factory=uuid4)


class Post(BaseEntity):
    """Row of the posts table"""

    title: str
    content: str
    images: list[str] = Field(default_factory=list)
    created_by: str | None = None
    updated_by: str | None = None
    deleted_by: str | None = None
    is_deleted: bool = False
    deleted_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


# Update model - the columns a repository update may change
class PostChanges(BaseModel):
    title: str | None = None
    content: str | None = None
    images: list[str] | None = None
    updated_by: str | None = None


class _CamelModel(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(
        alias_generator=to_camel, populate_by_name=True
    )


# Request payloads
class PostCreate(_CamelModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    images: list[str] | None = None


class PostUpdate(_CamelModel):
    """Fields an author may change; unset fields are left untouched"""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    title: str | None = None
    content: str | None = None
    images: list[str] | None = None


class ApiQueryParams(_CamelModel):
    """Generic list query string.

    Unknown keys are kept as extras and become filters (emailDomain,
    createdDate, tags, authorName, isPublished, ...).
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="allow")

    page: int | None = None
    limit: int | None = None
    search: str | None = None
    sort_by: str | None = None
    sort_order: str | None = None


class PostListQuery(_CamelModel):
    author_id: str | None = None
    search: str | None = None
    # page is forwarded untouched; limit is bounded by validation
    page: int = 1
    limit: int = Field(default=10, ge=1, le=100)


# Responses
class PostResponse(_CamelModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    content: str
    images: list[str] = Field(default_factory=list)
    created_by: str | None = None
    updated_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PostBulkResponse(BaseModel):
    count: int
