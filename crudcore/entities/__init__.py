from .page import PagedResultDTO

__all__ = ["PagedResultDTO"]
