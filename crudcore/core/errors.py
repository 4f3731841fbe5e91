"""
Error taxonomy for the repository and service layers.

These errors are independent of the HTTP layer; routers decide how to map
them onto status codes.
"""

from typing import Any, Optional


class CrudError(Exception):
    """Base exception for all crudcore errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(CrudError):
    """Raised when an identity lookup matches no record."""

    def __init__(self, model: str, id_: Any):
        self.model = model
        self.id = id_
        super().__init__(
            message=f"{model} not found: {id_!r}",
            details={"model": model, "id": id_},
        )


class StoreError(CrudError):
    """Raised for any other storage failure: connectivity, constraints, malformed queries."""

    def __init__(self, message: str, operation: Optional[str] = None):
        self.operation = operation
        super().__init__(message=message, details={"operation": operation})


class ConversionError(CrudError):
    """Raised when a value cannot be reshaped into the requested target."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message=message, details={"field": field})
