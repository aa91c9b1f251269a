"""Tagged success/failure values for operations whose errors are absorbed."""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E", bound=Exception)


@dataclass(frozen=True)
class Ok(Generic[T]):
    """A successful outcome carrying a value."""

    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    """A failed outcome carrying the error that caused it."""

    error: E

    @property
    def is_ok(self) -> bool:
        return False


Result = Ok[T] | Err[E]
