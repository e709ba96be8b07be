from post_service.entities import Post, PostResponse


class PostMapper:
    """Entity to response conversion"""

    def map_to_response(self, post: Post) -> PostResponse:
        return PostResponse.model_validate(post)

    def map_to_list(self, posts: list[Post]) -> list[PostResponse]:
        return [self.map_to_response(post) for post in posts]
