"""
Pagination state shared between a list view and the repository.

The repository mutates ``total_records`` in place on every page fetch so the
view can recompute ``page_count`` without issuing its own count query.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

DEFAULT_PAGE_SIZE = 10


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"

    @classmethod
    def parse(cls, value: Union[str, "SortOrder"]) -> "SortOrder":
        if isinstance(value, SortOrder):
            return value
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ValueError(f"Unknown sort order {value!r}; expected 'asc' or 'desc'") from None


@dataclass
class Pagination:
    """
    Page position, size, total count and sort order for one list view.

    ``page_number`` is 1-based; 0 or None means the first page. ``page_size``
    of 0 or None falls back to ``DEFAULT_PAGE_SIZE``.
    """

    page_number: Optional[int] = 1
    page_size: Optional[int] = DEFAULT_PAGE_SIZE
    total_records: int = 0
    sort_by: Optional[str] = None
    sort_order: Optional[SortOrder] = None

    def __post_init__(self) -> None:
        if self.sort_order is not None:
            self.sort_order = SortOrder.parse(self.sort_order)

    @property
    def limit(self) -> int:
        if self.page_size and self.page_size > 0:
            return self.page_size
        return DEFAULT_PAGE_SIZE

    @property
    def offset(self) -> int:
        page = max(self.page_number or 1, 1)
        return (page - 1) * self.limit

    @property
    def page_count(self) -> int:
        """Number of pages needed to show ``total_records`` rows."""
        return -(-self.total_records // self.limit)

    @property
    def is_sorted(self) -> bool:
        return bool(self.sort_by) and self.sort_order is not None

    def sort(self, column: str, order: Union[str, SortOrder] = SortOrder.ASC) -> "Pagination":
        self.sort_by = column
        self.sort_order = SortOrder.parse(order)
        return self

    def next_page(self) -> bool:
        """Advance one page if there is one; return whether it moved."""
        current = max(self.page_number or 1, 1)
        if current >= self.page_count:
            return False
        self.page_number = current + 1
        return True


__all__ = ["DEFAULT_PAGE_SIZE", "Pagination", "SortOrder"]
