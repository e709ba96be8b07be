"""Page accounting shared by every repository that returns a PaginatedResult."""

import math

from post_service.query_descriptor import PageMeta


def build_page_meta(total: int, page: int, limit: int) -> PageMeta:
    """
    Derive page metadata from a total row count.

    `page` and `limit` are echoed as given; they are expected to be the values
    the storage layer actually used. A page past the end of the data reports
    no next page and a previous page.

    Args:
        total: Number of rows matching the query
        page: Page number (1-based)
        limit: Rows per page, at least 1

    Returns:
        PageMeta
    """
    if limit < 1:
        raise ValueError("Limit must be 1 or greater")

    page_count = math.ceil(total / limit)
    return PageMeta(
        page=page,
        limit=limit,
        total=total,
        # An empty result is still displayed as one (empty) page
        total_pages=page_count or 1,
        has_next_page=page < page_count,
        has_previous_page=page > 1,
    )


def page_offset(page: int, limit: int) -> int:
    """Zero-based row offset of `page`; pages below 1 start at the first row."""
    return max(page - 1, 0) * limit
