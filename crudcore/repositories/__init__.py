from .base_repository import BaseRepository
from .query_options import Join, Preload, QueryOption, normalize_query_options

__all__ = ["BaseRepository", "Join", "Preload", "QueryOption", "normalize_query_options"]
