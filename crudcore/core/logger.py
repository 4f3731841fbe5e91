import logging
from typing import Optional

from colorlog import ColoredFormatter
from crudcore.core.settings import settings

ROOT_LOGGER = "crudcore"

LOG_FORMAT = (
    "%(log_color)s[%(asctime)s] [%(levelname)-8s] "
    "%(reset)s%(blue)s%(name)s:%(reset)s %(message)s"
)

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Attach the colored stream handler to the package logger.

    Safe to call again: the handler is installed once and only the level is
    updated. Module loggers obtained through `get_logger` inherit it.
    """
    root = logging.getLogger(ROOT_LOGGER)
    if not any(getattr(h, "_crudcore", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S", reset=True, log_colors=LOG_COLORS))
        handler._crudcore = True
        root.addHandler(handler)
    root.setLevel(level or settings.LOG_LEVEL)
    root.propagate = False
    return root


def get_logger(name: str) -> logging.Logger:
    """Child of the package logger; `name` is usually the caller's `__name__`."""
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


logger = configure_logging()
