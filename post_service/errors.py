"""Exceptions raised by the post service and its storage layer."""


class PostServiceError(Exception):
    """Base class for all post_service errors."""


class InvalidQueryError(PostServiceError, ValueError):
    """Raised by the storage layer when a query descriptor cannot be executed.

    Examples:
        - a filter, sort or search field that is not a column of the entity
        - a date filter whose value could not be parsed
        - an unknown relation path
    """


class NoActiveTransactionError(PostServiceError, RuntimeError):
    """Raised when a repository method runs outside DatabaseManager.transaction()."""

    def __init__(self, message: str | None = None):
        super().__init__(
            message
            or "No active transaction found. Repository methods must be called "
            "within a transaction context."
        )


class PostNotFound(PostServiceError):
    """Post does not exist (or has been soft deleted)."""

    def __init__(self, post_id: str | None = None, message: str | None = None):
        self.post_id = post_id
        if message:
            super().__init__(message)
        elif post_id is not None:
            super().__init__(f"post {post_id} not found")
        else:
            super().__init__("post not found")
