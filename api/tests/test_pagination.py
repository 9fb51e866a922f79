from __future__ import annotations

import pytest

from socialconnect.pagination import build_pagination, clamp_page, page_offset
from socialconnect.schemas import Envelope


@pytest.mark.parametrize("page, expected", [(None, 1), (-3, 1), (0, 1), (1, 1), (7, 7)])
def test_clamp_page(page, expected):
    assert clamp_page(page) == expected


def test_page_offset():
    assert page_offset(1, 20) == 0
    assert page_offset(3, 20) == 40
    assert page_offset(0, 20) == 0


@pytest.mark.parametrize(
    "page, limit, total, total_pages, has_next, has_prev",
    [
        (1, 20, 0, 0, False, False),
        (1, 20, 20, 1, False, False),
        (1, 20, 21, 2, True, False),
        (2, 20, 21, 2, False, True),
        (3, 2, 3, 2, False, True),
    ],
)
def test_build_pagination(page, limit, total, total_pages, has_next, has_prev):
    pagination = build_pagination(page, limit, total)
    assert pagination.total_pages == total_pages
    assert pagination.has_next is has_next
    assert pagination.has_prev is has_prev


def test_pagination_serializes_camel_case():
    envelope = Envelope(data=[], pagination=build_pagination(1, 10, 15))
    assert envelope.model_dump(by_alias=True) == {
        "success": True,
        "data": [],
        "message": None,
        "pagination": {
            "page": 1,
            "limit": 10,
            "total": 15,
            "totalPages": 2,
            "hasNext": True,
            "hasPrev": False,
        },
    }
