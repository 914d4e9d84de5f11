"""
Pagination primitives shared by list operations.

``PageRequest`` is clamped rather than rejected so list endpoints stay lenient
with out-of-range query values.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, List, Optional


DEFAULT_LIMIT = 20
MAX_LIMIT = 100


@dataclass(frozen=True)
class PageRequest:
    limit: int = DEFAULT_LIMIT
    page: int = 1
    search: Optional[str] = None

    def normalized(self) -> "PageRequest":
        limit = self.limit if self.limit and self.limit > 0 else DEFAULT_LIMIT
        limit = min(limit, MAX_LIMIT)
        page = self.page if self.page and self.page > 0 else 1
        search = (self.search or "").strip() or None
        return PageRequest(limit=limit, page=page, search=search)

    @property
    def offset(self) -> int:
        page = self.normalized()
        return (page.page - 1) * page.limit


@dataclass
class Page:
    items: List[Any] = field(default_factory=list)
    total: int = 0
    limit: int = DEFAULT_LIMIT
    page: int = 1

    @property
    def total_pages(self) -> int:
        if self.total <= 0:
            return 0
        return math.ceil(self.total / self.limit)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @classmethod
    def build(cls, items: List[Any], total: int, request: PageRequest) -> "Page":
        request = request.normalized()
        return cls(items=list(items), total=total, limit=request.limit, page=request.page)
