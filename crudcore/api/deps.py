from typing import Optional
from fastapi import HTTPException, Query
from pydantic import ValidationError

from crudcore.core.logger import get_logger
from crudcore.core.settings import settings
from crudcore.schemas import PagingQuery

logger = get_logger(__name__)


def get_paging_query(
    page: int = Query(0, ge=0, description="Zero-based page number"),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, gt=0, le=settings.MAX_PAGE_SIZE, description="Items per page"),
    order_by: Optional[str] = Query(None, description="Field to sort by"),
    sort_by: Optional[str] = Query(None, description="Sort direction: asc | desc"),
) -> PagingQuery:
    """
    FastAPI dependency turning `?page=&size=&order_by=&sort_by=` into a PagingQuery.

    Usage:
        @router.get("/customers")
        async def list_customers(paging: PagingQuery = Depends(get_paging_query)): ...
    """
    if sort_by is not None and sort_by.strip().lower() not in ("asc", "desc"):
        raise HTTPException(
            status_code=422,
            detail="sort_by must be 'asc' or 'desc'",
        )
    try:
        return PagingQuery(page=page, size=size, order_by=order_by, sort_by=sort_by)
    except ValidationError as e:
        logger.debug("[deps] invalid paging query: %s", e)
        raise HTTPException(status_code=422, detail="Invalid paging parameters")
