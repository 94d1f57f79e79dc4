"""
Small helpers shared by the domain modules.
"""

import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Query


@dataclass
class Page:
    items: list[Any]
    page: int
    per_page: int
    total: int

    @property
    def last_page(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))

    @property
    def has_more_pages(self) -> bool:
        return self.page < self.last_page

    def meta(self) -> dict[str, int]:
        return {
            "current_page": self.page,
            "last_page": self.last_page,
            "per_page": self.per_page,
            "total": self.total,
        }


def paginate(query: Query, page: int, per_page: int) -> Page:
    """Offset pagination over an already-ordered query. page is 1-based."""
    page = max(1, page)
    per_page = max(1, per_page)
    total = query.order_by(None).count()
    items = query.offset((page - 1) * per_page).limit(per_page).all()
    return Page(items=items, page=page, per_page=per_page, total=total)


def canonical_pair(a: int, b: int) -> tuple[int, int]:
    """Order two user ids so the smaller comes first."""
    return (a, b) if a < b else (b, a)
