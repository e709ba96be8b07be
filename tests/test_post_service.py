"""
Tests for PostService use cases with an in-memory repository.
"""

from uuid import uuid4

import pytest
from pydantic import ValidationError

from post_service.entities import (
    ApiQueryParams,
    Post,
    PostBulkResponse,
    PostCreate,
    PostListQuery,
    PostResponse,
    PostUpdate,
)
from post_service.errors import PostNotFound
from post_service.post_mapping import PostMapper
from post_service.post_service import PostService
from post_service.query_descriptor import ContainsInsensitive, Equals
from tests.fakes import FakePostRepository


@pytest.fixture
def posts():
    return [
        Post(title="First", content="Hello", created_by="u1"),
        Post(title="Second", content="World", created_by="u2", images=["a.png"]),
    ]


@pytest.fixture
def repository(posts):
    return FakePostRepository(posts)


@pytest.fixture
def service(repository):
    return PostService(repository)


class TestCreateAndFind:
    """Test cases for create_post() and find_one()"""

    @pytest.mark.asyncio
    async def test_create_post(self, service, repository):
        response = await service.create_post(
            PostCreate(title="New", content="Body"), user_id="author-1"
        )

        assert isinstance(response, PostResponse)
        assert response.title == "New"
        assert response.images == []
        assert response.created_by == "author-1"
        assert response.created_at is not None
        assert str(response.id) in repository.posts

    @pytest.mark.asyncio
    async def test_create_post_keeps_images(self, service):
        response = await service.create_post(
            PostCreate(title="New", content="Body", images=["x.png"]), user_id="u1"
        )

        assert response.images == ["x.png"]

    def test_create_payload_validation(self):
        with pytest.raises(ValidationError):
            PostCreate(title="", content="Body")
        with pytest.raises(ValidationError):
            PostCreate(title="T", content="Body", createdBy="someone")

    @pytest.mark.asyncio
    async def test_find_one(self, service, posts):
        response = await service.find_one(posts[0].id)

        assert response is not None
        assert response.id == posts[0].id

    @pytest.mark.asyncio
    async def test_find_one_missing(self, service):
        assert await service.find_one(uuid4()) is None


class TestListing:
    """Test cases for find_all() and get_posts()"""

    @pytest.mark.asyncio
    async def test_find_all_descriptor(self, service, repository):
        await service.find_all({"page": 2, "search": "hello", "authorName": "jo"})

        descriptor = repository.descriptors[-1]
        assert descriptor.page == 2
        assert descriptor.search == "hello"
        assert descriptor.search_fields == ("title", "content")
        assert (descriptor.sort_by, descriptor.sort_order) == ("createdAt", "desc")
        assert descriptor.custom_filters == {
            "authorName": ContainsInsensitive(text="jo"),
            "isDeleted": Equals(value=False),
        }

    @pytest.mark.asyncio
    async def test_find_all_cannot_list_deleted_posts(self, service, repository):
        await service.find_all(ApiQueryParams(isDeleted=True))

        assert repository.descriptors[-1].custom_filters == {"isDeleted": Equals(value=False)}

    @pytest.mark.asyncio
    async def test_find_all_maps_items(self, service, posts):
        result = await service.find_all({})

        assert [item.title for item in result.items] == ["First", "Second"]
        assert all(isinstance(item, PostResponse) for item in result.items)
        assert result.meta.total == 2
        assert result.meta.total_pages == 1

    @pytest.mark.asyncio
    async def test_get_posts_for_author(self, service, repository):
        await service.get_posts(PostListQuery(authorId="u1", page=3, limit=5, search="x"))

        descriptor = repository.descriptors[-1]
        assert (descriptor.page, descriptor.limit) == (3, 5)
        assert descriptor.search == "x"
        assert descriptor.search_fields == ("title", "content")
        assert (descriptor.sort_by, descriptor.sort_order) == ("createdAt", "desc")
        assert descriptor.custom_filters == {
            "isDeleted": Equals(value=False),
            "createdBy": Equals(value="u1"),
        }

    @pytest.mark.asyncio
    async def test_get_posts_without_author(self, service, repository):
        await service.get_posts(PostListQuery(authorId=""))

        descriptor = repository.descriptors[-1]
        assert (descriptor.page, descriptor.limit) == (1, 10)
        assert descriptor.custom_filters == {"isDeleted": Equals(value=False)}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page", [0, -2])
    async def test_get_posts_forwards_page_untouched(self, service, repository, page):
        result = await service.get_posts(PostListQuery(page=page))

        assert repository.descriptors[-1].page == page
        assert result.meta.has_previous_page is False

    @pytest.mark.parametrize("limit", [0, 101])
    def test_list_query_limit_bounds(self, limit):
        with pytest.raises(ValidationError):
            PostListQuery(limit=limit)


class TestChanges:
    """Test cases for update_post(), remove() and soft_delete_posts()"""

    @pytest.mark.asyncio
    async def test_update_post(self, service, posts):
        response = await service.update_post("editor", posts[1].id, PostUpdate(title="Renamed"))

        assert response.title == "Renamed"
        assert response.content == "World"
        assert response.images == ["a.png"]
        assert response.updated_by == "editor"

    @pytest.mark.asyncio
    async def test_update_missing_post(self, service):
        missing = uuid4()

        with pytest.raises(PostNotFound) as exc_info:
            await service.update_post("editor", missing, PostUpdate(title="x"))

        assert exc_info.value.post_id == str(missing)

    @pytest.mark.asyncio
    async def test_remove(self, service, repository, posts):
        response = await service.remove(posts[0].id, user_id="admin")

        assert response is not None
        stored = repository.posts[str(posts[0].id)]
        assert stored.is_deleted is True
        assert stored.deleted_by == "admin"
        assert await service.find_one(posts[0].id) is None

    @pytest.mark.asyncio
    async def test_remove_missing(self, service):
        assert await service.remove(uuid4()) is None

    @pytest.mark.asyncio
    async def test_soft_delete_posts(self, service, posts):
        result = await service.soft_delete_posts("admin", [posts[0].id, posts[1].id, uuid4()])

        assert result == PostBulkResponse(count=2)

    @pytest.mark.asyncio
    async def test_soft_delete_posts_twice(self, service, posts):
        await service.soft_delete_posts("admin", [posts[0].id])
        result = await service.soft_delete_posts("admin", [posts[0].id])

        assert result.count == 0


class TestPostMapper:
    """Test cases for PostMapper"""

    def test_map_to_response_hides_deletion_fields(self, posts):
        response = PostMapper().map_to_response(posts[0])

        dumped = response.model_dump(by_alias=True)
        assert dumped["createdBy"] == "u1"
        assert "isDeleted" not in dumped
        assert "deletedBy" not in dumped

    def test_map_to_list(self, posts):
        responses = PostMapper().map_to_list(posts)

        assert [r.id for r in responses] == [p.id for p in posts]

    @pytest.mark.asyncio
    async def test_custom_mapper_is_used(self, repository, posts):
        class UpperTitleMapper(PostMapper):
            def map_to_response(self, post):
                response = super().map_to_response(post)
                return response.model_copy(update={"title": response.title.upper()})

        service = PostService(repository, mapper=UpperTitleMapper())

        response = await service.find_one(posts[0].id)

        assert response.title == "FIRST"
