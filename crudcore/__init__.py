from crudcore.core.errors import ConversionError, CrudError, NotFoundError, StoreError
from crudcore.entities import PagedResultDTO
from crudcore.helper import as_mapping, merge_onto, project, project_many
from crudcore.repositories import BaseRepository, Join, Preload
from crudcore.schemas import PagingQuery, default_paging_query
from crudcore.services import BaseService

__version__ = "1.0.0"

__all__ = [
    "BaseRepository", "BaseService",
    "PagingQuery", "default_paging_query", "PagedResultDTO",
    "Preload", "Join",
    "project", "project_many", "merge_onto", "as_mapping",
    "CrudError", "NotFoundError", "StoreError", "ConversionError",
]
