from .errors import CrudError, NotFoundError, StoreError, ConversionError
from .logger import configure_logging, get_logger, logger
from .settings import Settings, settings

__all__ = [
    "CrudError", "NotFoundError", "StoreError", "ConversionError",
    "configure_logging", "get_logger", "logger",
    "Settings", "settings",
]
