"""
Storage-agnostic description of a list query and of its paginated result.

A QueryDescriptor is what the query translator hands to a repository's
find_many(). Filter predicates are small frozen models tagged by `kind` so that
a descriptor can be compared, logged and serialized as plain data.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, ClassVar, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class DefaultSort(BaseModel):
    """Sort applied when the caller does not send sortBy / sortOrder."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    field: str = "createdAt"
    order: SortOrder = SortOrder.DESC


class InvalidDate(BaseModel):
    """Result of parsing a date filter value that is not a valid date.

    The translator never rejects such values; the repository decides.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    raw: str


# Filter predicates
class Equals(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)
    kind: Literal["equals"] = "equals"
    value: Any


class EndsWith(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)
    kind: Literal["ends_with"] = "ends_with"
    suffix: str


class DateGte(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)
    kind: Literal["date_gte"] = "date_gte"
    date: datetime | InvalidDate


class In(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)
    kind: Literal["in"] = "in"
    values: list[Any]


class ContainsInsensitive(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)
    kind: Literal["contains_insensitive"] = "contains_insensitive"
    text: str


FilterPredicate = Annotated[
    Equals | EndsWith | DateGte | In | ContainsInsensitive,
    Field(discriminator="kind"),
]

PREDICATE_TYPES = (Equals, EndsWith, DateGte, In, ContainsInsensitive)


def as_predicate(value: Any) -> Equals | EndsWith | DateGte | In | ContainsInsensitive:
    """Return `value` if it already is a predicate, otherwise wrap it in Equals."""
    if isinstance(value, PREDICATE_TYPES):
        return value
    return Equals(value=value)


class QueryDescriptor(BaseModel):
    """Normalized list query handed to a repository."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    page: int = 1
    limit: int = Field(default=10, ge=1, le=100)
    search: str | None = None
    # None means "no search configured"; never an empty tuple
    search_fields: tuple[str, ...] | None = None
    sort_by: str = "createdAt"
    # "asc" or "desc" when well formed; checked by the repository
    sort_order: str = SortOrder.DESC.value
    relations: tuple[str, ...] = ()
    custom_filters: dict[str, FilterPredicate] = Field(default_factory=dict)


class PageMeta(BaseModel):
    """Pagination accounting returned next to a page of items."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        alias_generator=to_camel, populate_by_name=True
    )

    page: int
    limit: int
    total: int = Field(ge=0)
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


class PaginatedResult(BaseModel, Generic[T]):
    items: list[T]
    meta: PageMeta
