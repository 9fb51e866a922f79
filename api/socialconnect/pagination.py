from __future__ import annotations

import math

from .schemas import Pagination


def clamp_page(page: int | None) -> int:
    """Pages are 1-indexed; anything below 1 is treated as the first page."""
    if page is None:
        return 1
    return max(1, page)


def page_offset(page: int, limit: int) -> int:
    return (clamp_page(page) - 1) * limit


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    """
    Build the pagination block for a response envelope.

    ``hasNext`` is true iff more rows exist after this page and ``hasPrev`` is
    true for every page after the first, even when the page itself is past the
    end of the result set.
    """
    page = clamp_page(page)
    total = max(0, total)
    total_pages = math.ceil(total / limit) if limit > 0 else 0
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_next=page * limit < total,
        has_prev=page > 1,
    )
