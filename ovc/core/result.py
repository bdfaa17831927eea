"""Success/failure container returned by every public codec operation."""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from .errors import CodecError

T = TypeVar('T')


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of a codec operation: either a value or a CodecError.

    Example:
        >>> result = codec.decompress(payload)
        >>> if result.is_failure:
        ...     print(result.error.kind)
    """

    value: Optional[T] = None
    error: Optional[CodecError] = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    def unwrap(self) -> T:
        """Returns the value, raising the stored error on failure."""
        if self.error is not None:
            raise self.error
        return self.value

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: CodecError) -> "Result[T]":
        return cls(error=error)
