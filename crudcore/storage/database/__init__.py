from .db_connector import build_engine, build_session_factory, open_session

__all__ = ["build_engine", "build_session_factory", "open_session"]
