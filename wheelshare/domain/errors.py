"""
Error model shared by every layer.

Business failures are ``Error(code, message)`` pairs.  Entities raise
``DomainError`` when an operation's precondition does not hold; the
orchestration handlers catch it and hand callers a ``Result`` instead, so
no exception escapes a handler for an expected business outcome.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Error:
    code: str
    message: str

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class DomainError(Exception):
    """Raised when an aggregate rejects an operation."""

    def __init__(self, error: Error):
        super().__init__(str(error))
        self.error = error

    @property
    def code(self) -> str:
        return self.error.code

    @property
    def message(self) -> str:
        return self.error.message


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[Error] = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    @classmethod
    def ok(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, error: Error) -> "Result[T]":
        return cls(error=error)
