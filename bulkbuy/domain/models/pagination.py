from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Generic, List, TypeVar

T = TypeVar("T")

# Keeps OFFSET within SQLite's 64-bit integer range.
MAX_PAGE = 1_000_000


@dataclass
class Page(Generic[T]):
    items: List[T]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @staticmethod
    def offset(page: int, limit: int) -> int:
        return (min(page, MAX_PAGE) - 1) * limit
