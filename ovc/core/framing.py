"""
Self-describing binary envelope for compressed payloads.

Layout (little-endian):
    [ 'O' 'V' 'C' ] [ version:u8 ] [ method:u8 ] [ length:u32 ] [ payload ]

The header is 9 bytes. Envelopes can be concatenated into a stream and read
back one at a time with iter_envelopes().
"""

import struct
from enum import IntEnum
from typing import Iterator, Tuple

from .errors import InvalidFormatError

MAGIC = b'OVC'
FORMAT_VERSION = ord('1')

_HEADER = struct.Struct('<3sBBI')
HEADER_SIZE = _HEADER.size


class CompressionMethod(IntEnum):
    """Compression method; the integer value is the envelope tag."""

    DCT = 0
    FFT = 1
    QUANTIZED_DCT = 2
    ADAPTIVE = 3

    @property
    def label(self) -> str:
        return {
            CompressionMethod.DCT: 'DCT',
            CompressionMethod.FFT: 'FFT',
            CompressionMethod.QUANTIZED_DCT: 'QuantizedDCT',
            CompressionMethod.ADAPTIVE: 'Adaptive',
        }[self]

    @property
    def is_concrete(self) -> bool:
        """Whether payloads of this method can appear on the wire."""
        return self != CompressionMethod.ADAPTIVE

    @classmethod
    def parse(cls, value) -> "CompressionMethod":
        """Accepts a member, its tag, its label or a case-insensitive name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().upper().replace('-', '_').replace(' ', '_')
            if key == 'QUANTIZEDDCT':
                key = 'QUANTIZED_DCT'
            if key in cls.__members__:
                return cls[key]
            raise ValueError(f"Unknown compression method: {value!r}")
        return cls(int(value))


def wrap(method: CompressionMethod, payload: bytes) -> bytes:
    """
    Prefixes a payload with the envelope header.

    Args:
        method: Concrete method that produced the payload
        payload: Method-specific serialized bytes

    Returns:
        Envelope bytes
    """
    method = CompressionMethod(method)
    if not method.is_concrete:
        raise ValueError("Adaptive must be resolved to a concrete method before framing")
    return _HEADER.pack(MAGIC, FORMAT_VERSION, int(method), len(payload)) + bytes(payload)


def read_envelope(data: bytes, offset: int = 0) -> Tuple[CompressionMethod, bytes, int]:
    """
    Reads one envelope starting at offset.

    The header is validated before the payload is touched.

    Args:
        data: Buffer holding one or more envelopes
        offset: Position of the envelope's first byte

    Returns:
        Tuple of (method, payload, offset just past the envelope)

    Raises:
        InvalidFormatError: Bad magic, unknown version or method tag, or truncation
    """
    view = memoryview(data)
    if len(view) - offset < HEADER_SIZE:
        raise InvalidFormatError(
            f"Buffer holds {max(0, len(view) - offset)} bytes, header needs {HEADER_SIZE}"
        )

    magic, version, tag, length = _HEADER.unpack_from(view, offset)
    if magic != MAGIC:
        raise InvalidFormatError(f"Bad magic bytes {magic!r}")
    if version != FORMAT_VERSION:
        raise InvalidFormatError(f"Unsupported format version {version}")
    try:
        method = CompressionMethod(tag)
    except ValueError:
        raise InvalidFormatError(f"Unknown method tag {tag}")
    if not method.is_concrete:
        raise InvalidFormatError("Adaptive is not a wire method")

    start = offset + HEADER_SIZE
    end = start + length
    if end > len(view):
        raise InvalidFormatError(
            f"Header declares {length} payload bytes, only {len(view) - start} present"
        )

    return method, bytes(view[start:end]), end


def unwrap(data: bytes) -> Tuple[CompressionMethod, bytes]:
    """
    Splits a single envelope into (method, payload).

    Raises:
        InvalidFormatError: If the buffer is not exactly one valid envelope
    """
    method, payload, end = read_envelope(data, 0)
    if end != len(data):
        raise InvalidFormatError(f"{len(data) - end} trailing bytes after envelope")
    return method, payload


def iter_envelopes(data: bytes) -> Iterator[Tuple[CompressionMethod, bytes]]:
    """Yields (method, payload) for each envelope in a concatenated stream."""
    offset = 0
    while offset < len(data):
        method, payload, offset = read_envelope(data, offset)
        yield method, payload


def peek_method(data: bytes) -> CompressionMethod:
    """Returns the method tag of an envelope without copying its payload."""
    return read_envelope(data, 0)[0]
