"""
Tadoku Backend — Offset Pagination Helper
==========================================

What:  Pure function turning (page, limit, total_count) into page metadata.
Who:   StoryService.list_stories.

Rules:
    page <= 0   → 1
    limit <= 0  → default_limit
    offset      = (page - 1) * limit
    total_pages = 0 when total_count == 0, else ceil(total_count / limit)

    Pages past the end are allowed and simply select no rows. The ceiling is
    integer division, so it stays exact for arbitrarily large counts.
"""

from dataclasses import dataclass

DEFAULT_PAGE_LIMIT = 10


@dataclass(frozen=True)
class PageInfo:
    offset: int
    limit: int
    total_pages: int
    current_page: int


def ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def paginate(
    page: int,
    limit: int,
    total_count: int,
    default_limit: int = DEFAULT_PAGE_LIMIT,
) -> PageInfo:
    """Sanitizes the request and computes page metadata. Never raises for bad input."""
    if page <= 0:
        page = 1
    if limit <= 0:
        limit = default_limit if default_limit > 0 else DEFAULT_PAGE_LIMIT
    total_count = max(total_count, 0)

    total_pages = 0 if total_count == 0 else ceil_div(total_count, limit)

    return PageInfo(
        offset=(page - 1) * limit,
        limit=limit,
        total_pages=total_pages,
        current_page=page,
    )
