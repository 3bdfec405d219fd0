"""Result type for workflow operations that can be refused.

An illegal phase transition or a plan that cannot be confirmed is
reported as data instead of raising:
- Ok: the operation went through, carrying its value
- Err: the operation was refused, with a message and a machine-readable code
"""

from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class Result(Generic[T]):
    """Base class for Ok and Err."""

    def is_ok(self) -> bool:
        return isinstance(self, Ok)

    def is_err(self) -> bool:
        return isinstance(self, Err)

    def unwrap(self) -> T:
        """Return the Ok value.

        Raises:
            ValueError: On an Err, with the error message.
        """
        raise NotImplementedError

    def unwrap_or(self, default: T) -> T:
        raise NotImplementedError


class Ok(Result[T]):
    """Accepted operation and its value."""

    def __init__(self, value: T):
        self.value = value

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, Ok) and self.value == other.value


class Err(Result[T]):
    """Refused operation.

    Args:
        error: Human-readable reason, shown by the CLI.
        code: Category such as "INVALID_TRANSITION" or "PLAN_LOCKED".
    """

    def __init__(self, error: str, code: Optional[str] = None):
        self.error = error
        self.code = code

    def unwrap(self) -> T:
        raise ValueError(self.error)

    def unwrap_or(self, default: T) -> T:
        return default

    def __repr__(self) -> str:
        if self.code:
            return f"Err({self.error!r}, code={self.code!r})"
        return f"Err({self.error!r})"

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, Err) and (self.error, self.code) == (other.error, other.code)
