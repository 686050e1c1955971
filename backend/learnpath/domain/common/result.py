"""Expected failures travel as values; exceptions are kept for real faults."""
from __future__ import annotations
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class Result(Generic[T]):
    def __init__(self, is_success: bool, value: Optional[T] = None, error: Optional[str] = None):
        self.is_success = is_success
        self.value = value
        self.error = error

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(is_success=True, value=value)

    @classmethod
    def fail(cls, error: str) -> "Result[T]":
        return cls(is_success=False, error=error)

    def value_or(self, default: T) -> T:
        """Return the wrapped value, or `default` when this is a failure."""
        return self.value if self.is_success else default

    def __repr__(self) -> str:
        if self.is_success:
            return f"Result.ok({self.value!r})"
        return f"Result.fail({self.error!r})"
