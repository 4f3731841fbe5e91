from dataclasses import dataclass, field
from math import ceil
from typing import TYPE_CHECKING, Generic, List, Optional, Sequence, TypeVar

if TYPE_CHECKING:
    from crudcore.schemas import PagingQuery

T = TypeVar("T")

@dataclass(slots=True)
class PagedResultDTO(Generic[T]):
    """Generic pagination envelope. `total` counts the filtered set before paging."""
    total: int = 0
    items: List[T] = field(default_factory=list)
    page: int = 0
    page_size: Optional[int] = None
    total_pages: int = 1
    has_next: bool = False
    has_prev: bool = False

    @classmethod
    def build(
        cls,
        items: Sequence[T],
        total: int,
        paging: Optional["PagingQuery"] = None,
    ) -> "PagedResultDTO[T]":
        total = int(total or 0)
        if paging is None:
            return cls(total=total, items=list(items))

        total_pages = max(1, ceil(total / paging.size)) if total else 1
        return cls(
            total=total,
            items=list(items),
            page=paging.page,
            page_size=paging.size,
            total_pages=total_pages,
            has_next=paging.page + 1 < total_pages,
            has_prev=paging.page > 0,
        )
