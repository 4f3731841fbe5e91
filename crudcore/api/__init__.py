from .deps import get_paging_query

__all__ = ["get_paging_query"]
