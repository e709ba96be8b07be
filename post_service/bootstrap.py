from post_service.config import Settings, configure_logging, get_settings
from post_service.database_service import DatabaseService
from post_service.post_mapping import PostMapper
from post_service.post_service import PostService
from post_service.query_service import PaginatedQueryService


def create_post_service(settings: Settings | None = None) -> tuple[DatabaseService, PostService]:
    """
    Wire the post service for `settings`.

    The returned DatabaseService still has to be connected before the
    PostService is used:

        database, posts = create_post_service()
        await database.connect()
        async with database.transaction():
            page = await posts.find_all({"page": 1, "search": "python"})
    """
    settings = settings or get_settings()
    configure_logging(settings)

    database = DatabaseService(settings)
    repository = database.post_repository
    service = PostService(
        repository,
        query_service=PaginatedQueryService(repository),
        mapper=PostMapper(),
    )
    return database, service
