from .tx import maybe_begin

__all__ = ["maybe_begin"]
