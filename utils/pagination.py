"""
Page slicing and page-number windowing for list views.

Invoices and clients share this one implementation.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Sequence

ELLIPSIS = "..."


@dataclass
class Page:
    """One page of a list plus what a pager needs to render."""

    items: list[Any]
    page: int
    page_size: int
    total_items: int
    total_pages: int
    page_numbers: list[int | str] = field(default_factory=list)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def first_index(self) -> int:
        """1-based index of the first item shown ("Showing 11-20 of 42")."""
        return (self.page - 1) * self.page_size + 1 if self.items else 0

    @property
    def last_index(self) -> int:
        return min(self.page * self.page_size, self.total_items)


def total_pages_for(total_items: int, page_size: int) -> int:
    """Number of pages needed for total_items at page_size per page."""
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    return math.ceil(total_items / page_size)


def page_numbers(current_page: int, total_pages: int, max_visible: int = 5) -> list[int | str]:
    """
    Page numbers to show in a pager.

    Always shows the first and last page and the pages either side of the
    current one; gaps are collapsed into ELLIPSIS.

        page_numbers(1, 3)   -> [1, 2, 3]
        page_numbers(6, 12)  -> [1, "...", 5, 6, 7, "...", 12]
    """
    if total_pages <= 1:
        return [1]

    if total_pages <= max_visible:
        return list(range(1, total_pages + 1))

    numbers: list[int | str] = [1]

    if current_page > 3:
        numbers.append(ELLIPSIS)

    start = max(2, current_page - 1)
    end = min(total_pages - 1, current_page + 1)
    numbers.extend(range(start, end + 1))

    if current_page < total_pages - 2:
        numbers.append(ELLIPSIS)

    numbers.append(total_pages)
    return numbers


def clamp_page(page: int, total_items: int, page_size: int) -> int:
    """Pull an out-of-range page number back to the nearest valid page."""
    total_pages = total_pages_for(total_items, page_size)
    return min(max(page, 1), max(total_pages, 1))


def page_of(
    items: Sequence[Any],
    page: int,
    page_size: int,
    total_items: int,
    max_visible: int = 5,
) -> Page:
    """Wrap items the database already sliced for page (see clamp_page)."""
    total_pages = total_pages_for(total_items, page_size)
    return Page(
        items=list(items),
        page=page,
        page_size=page_size,
        total_items=total_items,
        total_pages=total_pages,
        page_numbers=page_numbers(page, total_pages, max_visible),
    )


def paginate(items: Sequence[Any], page: int, page_size: int, max_visible: int = 5) -> Page:
    """
    Slice items to the requested page.

    Out-of-range pages are clamped to the nearest valid page.
    """
    page = clamp_page(page, len(items), page_size)
    start = (page - 1) * page_size
    return page_of(items[start:start + page_size], page, page_size, len(items), max_visible)
