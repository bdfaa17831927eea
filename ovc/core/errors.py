"""
Error types raised by the codec internals.

Compressors and the envelope reader raise these exceptions; the public
VectorCodec catches them at its boundary and hands them back inside a Result.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Category of a codec failure."""

    INVALID_FORMAT = "invalid_format"
    DIMENSION_MISMATCH = "dimension_mismatch"
    DEGENERATE_INPUT = "degenerate_input"
    UNSUPPORTED_METHOD_COMBINATION = "unsupported_method_combination"
    INVALID_INPUT = "invalid_input"


class CodecError(Exception):
    """
    Base class for all codec failures.

    Args:
        kind: Failure category
        message: Human readable description
    """

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class InvalidFormatError(CodecError):
    """Bad magic bytes, truncated buffer or unknown tag."""

    def __init__(self, message: str):
        super().__init__(ErrorKind.INVALID_FORMAT, message)


class DimensionMismatchError(CodecError):
    """Payload contents disagree with the declared dimension."""

    def __init__(self, message: str):
        super().__init__(ErrorKind.DIMENSION_MISMATCH, message)


class DegenerateInputError(CodecError):
    """Input has nothing to work on (empty vector, empty coefficient set)."""

    def __init__(self, message: str):
        super().__init__(ErrorKind.DEGENERATE_INPUT, message)


class UnsupportedMethodCombinationError(CodecError):
    """Two payloads could not be compared, even after full decompression."""

    def __init__(self, message: str, cause: Optional[CodecError] = None):
        super().__init__(ErrorKind.UNSUPPORTED_METHOD_COMBINATION, message)
        self.cause = cause
