from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from crudcore.core.settings import settings


class PagingQuery(BaseModel):
    """Page request: zero-based page, page size and optional sort field/direction."""
    model_config = ConfigDict(frozen=True)

    page: int = Field(0, ge=0)
    size: int = Field(default_factory=lambda: settings.DEFAULT_PAGE_SIZE, gt=0)
    order_by: Optional[str] = Field(None, description="Field to sort by")
    sort_by: Optional[str] = Field(None, description="Sort direction: asc | desc")

    @property
    def offset(self) -> int:
        return self.page * self.size

    @property
    def limit(self) -> int:
        return self.size

    @property
    def sort_field(self) -> Optional[str]:
        return self.order_by or None

    @property
    def sort_direction(self) -> Optional[str]:
        if not self.sort_field:
            return None
        return self.sort_by or "asc"


def default_paging_query() -> PagingQuery:
    return PagingQuery()
