from .paging_schema import PagingQuery, default_paging_query

__all__ = ["PagingQuery", "default_paging_query"]
