from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

from .enums import TaskPriority, TaskStatus

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

T = TypeVar("T")


@dataclass(frozen=True)
class TaskFilters:
    owner_id: str
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    overdue_only: bool = False
    search: str | None = None


@dataclass(frozen=True)
class Pagination:
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    @classmethod
    def clamped(cls, page: int | None, page_size: int | None) -> Pagination:
        page = max(page if page is not None else 1, 1)
        size = page_size if page_size is not None else DEFAULT_PAGE_SIZE
        size = min(max(size, 1), MAX_PAGE_SIZE)
        return cls(page=page, page_size=size)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def total_pages(total: int, page_size: int) -> int:
    if total <= 0:
        return 0
    return math.ceil(total / page_size)


@dataclass(frozen=True)
class PaginatedResult(Generic[T]):
    items: list[T]
    total: int
    page: int
    page_size: int
    total_pages: int = field(default=0)

    @classmethod
    def build(cls, items: list[T], total: int, pagination: Pagination) -> PaginatedResult[T]:
        return cls(
            items=items,
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=total_pages(total, pagination.page_size),
        )
