"""
Success/failure container returned by every repository and use case.
"""
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from bookclub.errors import BookclubError

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Either a value or a BookclubError, never both.

    Usage:
        result = await repository.get_club("42")
        if result.is_success:
            club = result.value
        else:
            logger.error(result.error.message)
    """
    value: Optional[T] = None
    error: Optional[BookclubError] = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: BookclubError) -> "Result[T]":
        return cls(error=error)

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    def map(self, fn: Callable[[T], U]) -> "Result[U]":
        """Transform the value; failures pass through untouched."""
        if self.error is not None:
            return Result(error=self.error)
        return Result(value=fn(self.value))

    def on_failure(self, fn: Callable[[BookclubError], object]) -> "Result[T]":
        if self.error is not None:
            fn(self.error)
        return self
