"""Page-window computation for result lists.

Every function here is pure. The page picker shows all pages when there are at
most ten; otherwise it shows the first five pages, an ellipsis while the current
page is before the final stretch, and the last five pages.
"""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, Literal, TypeVar

from hbscan.errors import ValidationError

T = TypeVar("T")

ELLIPSIS: Literal["ellipsis"] = "ellipsis"
FULL_WINDOW_LIMIT = 10
EDGE_WINDOW_SIZE = 5

PageMarker = int | Literal["ellipsis"]

_DIGITS = re.compile(r"^\d+$")


@dataclass(frozen=True)
class PageWindow:
    current_page: int
    total_pages: int
    total_count: int
    page_size: int

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def offset(self) -> int:
        return (self.current_page - 1) * self.page_size


@dataclass(frozen=True)
class PageView(Generic[T]):
    window: PageWindow
    items: tuple[T, ...]
    visible_pages: tuple[PageMarker, ...]

    @property
    def show_controls(self) -> bool:
        return self.window.total_pages > 1


def total_pages(total_count: int, page_size: int) -> int:
    _validate(total_count, page_size)
    return max(1, math.ceil(total_count / page_size))


def clamp_page(requested_page: int, pages: int) -> int:
    return min(max(requested_page, 1), max(pages, 1))


def build_window(total_count: int, page_size: int, requested_page: int) -> PageWindow:
    pages = total_pages(total_count, page_size)
    return PageWindow(
        current_page=clamp_page(requested_page, pages),
        total_pages=pages,
        total_count=total_count,
        page_size=page_size,
    )


def visible_pages(pages: int, current_page: int) -> list[PageMarker]:
    if pages <= FULL_WINDOW_LIMIT:
        return list(range(1, pages + 1))

    markers: list[PageMarker] = list(range(1, EDGE_WINDOW_SIZE + 1))
    if current_page < pages - EDGE_WINDOW_SIZE:
        markers.append(ELLIPSIS)
    tail_start = max(pages - (EDGE_WINDOW_SIZE - 1), EDGE_WINDOW_SIZE + 1)
    for page in range(tail_start, pages + 1):
        if page not in markers:
            markers.append(page)
    return markers


def paginate(items: Sequence[T], page_size: int, requested_page: int) -> PageView[T]:
    window = build_window(len(items), page_size, requested_page)
    start = window.offset
    return PageView(
        window=window,
        items=tuple(items[start : start + page_size]),
        visible_pages=tuple(visible_pages(window.total_pages, window.current_page)),
    )


def parse_page_input(raw: str, pages: int) -> int | None:
    """Validate text typed into the jump-to-page box; ``None`` means keep the current page."""
    value = raw.strip()
    if not _DIGITS.match(value):
        return None
    page = int(value)
    if page < 1 or page > pages:
        return None
    return page


def _validate(total_count: int, page_size: int) -> None:
    if page_size < 1:
        raise ValidationError(f"page_size must be >= 1, got {page_size}")
    if total_count < 0:
        raise ValidationError(f"total_count must be >= 0, got {total_count}")
