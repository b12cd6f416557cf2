"""
Search Pipeline Errors
Error taxonomy for providers, vector encoding and indexing, plus the result
values used for domain outcomes that are not exceptional.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar


class SearchPipelineError(Exception):
    """Base exception for the embedding / search / recommendation pipeline."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ProviderUnavailable(SearchPipelineError):
    """Embedding or language-model backend is not configured or failed."""

    pass


class ProviderTimeout(ProviderUnavailable):
    """Provider call exceeded the configured timeout."""

    pass


class MalformedResponse(SearchPipelineError):
    """Language-model output could not be parsed."""

    pass


class DimensionMismatch(SearchPipelineError):
    """Vector length differs from the expected dimension."""

    pass


class MalformedVectorEncoding(SearchPipelineError):
    """A VectorRecord string contains a component that is not a number."""

    pass


class RunAlreadyInProgress(SearchPipelineError):
    """An indexing pass is already active."""

    def __init__(self, holder: Optional[str] = None):
        super().__init__(
            "An indexing run is already in progress",
            details={"holder": holder} if holder else None,
        )
        self.holder = holder


class ErrorKind(Enum):
    """Domain outcome kinds returned as values instead of raised."""

    NOT_FOUND = "not_found"
    INSUFFICIENT_STOCK = "insufficient_stock"
    VALIDATION_ERROR = "validation_error"


T = TypeVar("T")


@dataclass
class Result(Generic[T]):
    """Outcome of a catalog operation: either a value or an error kind."""

    value: Optional[T] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "Result[Any]":
        return cls(error_kind=kind, message=message)
