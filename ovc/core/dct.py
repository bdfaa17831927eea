"""
DCT compression of embedding vectors.

The orthonormal DCT-II concentrates the energy of smooth real signals in its
low-index coefficients, so truncating the coefficient tail keeps most of the
signal. Coefficients can additionally be quantized to 8 or 16 bits.
"""

import struct
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from .errors import DegenerateInputError, DimensionMismatchError, InvalidFormatError
from .transforms import dct_ii, dct_iii
from .vectors import VectorLike, as_vector

SUPPORTED_BITS = (8, 16)

_DCT_HEADER = struct.Struct('<ii')
_QUANTIZED_HEADER = struct.Struct('<iiffi')


@dataclass(frozen=True, eq=False)
class DCTCompressedVector:
    """
    Truncated DCT-II coefficients, low frequency first.

    Attributes:
        coefficients: float32 array; position 0 is the DC term
        original_length: Dimension of the source vector
        energy_retained: Kept squared-coefficient sum over the total, in [0, 1]
        compression_ratio: original_length / len(coefficients)
    """

    coefficients: np.ndarray
    original_length: int
    energy_retained: float = 1.0
    compression_ratio: float = 1.0

    def __post_init__(self):
        coefficients = np.array(self.coefficients, dtype=np.float32)
        coefficients.setflags(write=False)
        object.__setattr__(self, 'coefficients', coefficients)

        if coefficients.ndim != 1:
            raise DimensionMismatchError("Coefficients must be 1-D")
        if self.original_length < 1:
            raise DimensionMismatchError(f"Invalid original length {self.original_length}")
        if coefficients.size > self.original_length:
            raise DimensionMismatchError(
                f"{coefficients.size} coefficients exceed original length {self.original_length}"
            )

    @property
    def compressed_size_bytes(self) -> int:
        return self.coefficients.size * 4 + 4

    @property
    def original_size_bytes(self) -> int:
        return self.original_length * 4

    def to_bytes(self) -> bytes:
        header = _DCT_HEADER.pack(self.original_length, self.coefficients.size)
        return header + self.coefficients.astype('<f4').tobytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> "DCTCompressedVector":
        """
        Parses a DCT payload.

        Energy retained is not part of the payload and reads back as 1.0.
        """
        if len(data) < _DCT_HEADER.size:
            raise InvalidFormatError("DCT payload is too short")

        original_length, count = _DCT_HEADER.unpack_from(data, 0)
        if count < 0:
            raise InvalidFormatError(f"Negative coefficient count {count}")
        if original_length < 1 or count > original_length:
            raise DimensionMismatchError(
                f"{count} coefficients declared for original length {original_length}"
            )

        expected = _DCT_HEADER.size + count * 4
        if len(data) != expected:
            raise InvalidFormatError(
                f"DCT payload holds {len(data)} bytes, expected {expected}"
            )

        coefficients = np.frombuffer(data, dtype='<f4', count=count, offset=_DCT_HEADER.size)
        return cls(
            coefficients=coefficients,
            original_length=original_length,
            energy_retained=1.0,
            compression_ratio=original_length / count if count else 1.0,
        )


@dataclass(frozen=True, eq=False)
class QuantizedDCTVector:
    """
    DCT coefficients quantized to a fixed bit depth.

    Attributes:
        quantized: Packed levels, 1 byte (8-bit) or 2 little-endian bytes (16-bit) each
        min_value: Smallest coefficient before quantization
        max_value: Largest coefficient before quantization
        original_length: Dimension of the source vector
        bits_per_coefficient: 8 or 16
    """

    quantized: bytes
    min_value: float
    max_value: float
    original_length: int
    bits_per_coefficient: int = 8

    def __post_init__(self):
        object.__setattr__(self, 'quantized', bytes(self.quantized))
        object.__setattr__(self, 'min_value', float(np.float32(self.min_value)))
        object.__setattr__(self, 'max_value', float(np.float32(self.max_value)))

        if self.bits_per_coefficient not in SUPPORTED_BITS:
            raise InvalidFormatError(f"Unsupported bit depth {self.bits_per_coefficient}")
        if self.min_value > self.max_value:
            raise InvalidFormatError(f"min {self.min_value} is greater than max {self.max_value}")
        if len(self.quantized) % self.bytes_per_coefficient:
            raise DimensionMismatchError(
                f"{len(self.quantized)} bytes is not a whole number of "
                f"{self.bits_per_coefficient}-bit coefficients"
            )
        if self.original_length < 1 or self.coefficient_count > self.original_length:
            raise DimensionMismatchError(
                f"{self.coefficient_count} coefficients declared for original length "
                f"{self.original_length}"
            )

    @property
    def bytes_per_coefficient(self) -> int:
        return 2 if self.bits_per_coefficient > 8 else 1

    @property
    def coefficient_count(self) -> int:
        return len(self.quantized) // self.bytes_per_coefficient

    @property
    def levels(self) -> np.ndarray:
        """Unpacked integer levels."""
        dtype = '<u2' if self.bits_per_coefficient > 8 else np.uint8
        return np.frombuffer(self.quantized, dtype=dtype).astype(np.int64)

    @property
    def compressed_size_bytes(self) -> int:
        return len(self.quantized) + 4 * 2 + 4 * 2

    @property
    def original_size_bytes(self) -> int:
        return self.original_length * 4

    def to_bytes(self) -> bytes:
        header = _QUANTIZED_HEADER.pack(
            self.original_length,
            self.bits_per_coefficient,
            self.min_value,
            self.max_value,
            len(self.quantized),
        )
        return header + self.quantized

    @classmethod
    def from_bytes(cls, data: bytes) -> "QuantizedDCTVector":
        if len(data) < _QUANTIZED_HEADER.size:
            raise InvalidFormatError("Quantized DCT payload is too short")

        original_length, bits, min_value, max_value, q_len = _QUANTIZED_HEADER.unpack_from(data, 0)
        if q_len < 0:
            raise InvalidFormatError(f"Negative quantized length {q_len}")
        if len(data) != _QUANTIZED_HEADER.size + q_len:
            raise InvalidFormatError(
                f"Quantized payload holds {len(data) - _QUANTIZED_HEADER.size} bytes, "
                f"header declares {q_len}"
            )
        if not (np.isfinite(min_value) and np.isfinite(max_value)):
            raise InvalidFormatError("Quantization range is not finite")

        return cls(
            quantized=bytes(data[_QUANTIZED_HEADER.size:]),
            min_value=min_value,
            max_value=max_value,
            original_length=original_length,
            bits_per_coefficient=bits,
        )


def determine_coefficient_count(coefficients: np.ndarray, threshold: float) -> int:
    """
    Smallest prefix length whose squared sum reaches threshold * total energy.

    Returns at least 1, and 1 for a zero-energy signal.
    """
    power = np.asarray(coefficients, dtype=np.float64) ** 2
    total = power.sum()
    if total < np.finfo(np.float64).tiny:
        return 1

    cumulative = np.cumsum(power)
    count = int(np.searchsorted(cumulative, total * threshold, side='left')) + 1
    return max(1, min(count, power.shape[0]))


class DCTVectorCompressor:
    """
    Compresses embedding vectors by truncating their DCT-II spectrum.

    Args:
        keep_coefficients: Number of leading coefficients to keep; 0 or less
            selects adaptive mode
        energy_threshold: Fraction of energy to retain in adaptive mode

    Example:
        >>> compressor = DCTVectorCompressor(keep_coefficients=0, energy_threshold=0.95)
        >>> compressed = compressor.compress(embedding)
        >>> compressed.energy_retained >= 0.95
        True
    """

    def __init__(self, keep_coefficients: int = 128, energy_threshold: float = 0.95):
        if not 0.0 < energy_threshold <= 1.0:
            raise ValueError(f"energy_threshold must be in (0, 1], got {energy_threshold}")
        self.keep_coefficients = keep_coefficients
        self.energy_threshold = energy_threshold

    @property
    def adaptive(self) -> bool:
        return self.keep_coefficients <= 0

    def compress(self, vector: VectorLike) -> DCTCompressedVector:
        """
        Applies the DCT-II and keeps the leading coefficients.

        Args:
            vector: Input embedding

        Returns:
            DCTCompressedVector with its measured energy retention
        """
        vector = as_vector(vector)
        n = vector.shape[0]
        spectrum = dct_ii(vector)

        if self.adaptive:
            keep = determine_coefficient_count(spectrum, self.energy_threshold)
        else:
            keep = min(self.keep_coefficients, n)

        coefficients = spectrum[:keep].astype(np.float32)

        total_energy = float(np.sum(spectrum ** 2))
        retained_energy = float(np.sum(coefficients.astype(np.float64) ** 2))
        if total_energy > 0:
            energy_retained = min(1.0, retained_energy / total_energy)
        else:
            energy_retained = 1.0

        return DCTCompressedVector(
            coefficients=coefficients,
            original_length=n,
            energy_retained=energy_retained,
            compression_ratio=n / keep,
        )

    def decompress(self, compressed: DCTCompressedVector) -> np.ndarray:
        """Zero-pads the coefficients to the original length and applies the DCT-III."""
        spectrum = np.zeros(compressed.original_length, dtype=np.float64)
        spectrum[:compressed.coefficients.size] = compressed.coefficients
        return dct_iii(spectrum).astype(np.float32)

    @staticmethod
    def compressed_similarity(a: DCTCompressedVector, b: DCTCompressedVector) -> float:
        """
        Approximate cosine similarity in the DCT domain.

        The transform is orthonormal, so by Parseval's theorem inner products
        carry over. The dot product runs over the shared coefficient prefix;
        the longer side's extra coefficients only enlarge its norm.
        """
        a_coef = a.coefficients.astype(np.float64)
        b_coef = b.coefficients.astype(np.float64)
        overlap = min(a_coef.size, b_coef.size)

        dot = float(np.dot(a_coef[:overlap], b_coef[:overlap]))
        norm_a = float(np.dot(a_coef, a_coef))
        norm_b = float(np.dot(b_coef, b_coef))

        if norm_a == 0 or norm_b == 0:
            return 0.0
        return dot / (np.sqrt(norm_a) * np.sqrt(norm_b))

    def batch_compress(self, vectors: Sequence[VectorLike]) -> List[DCTCompressedVector]:
        return [self.compress(v) for v in vectors]

    def quantize(self, compressed: DCTCompressedVector, bits: int = 8) -> QuantizedDCTVector:
        """
        Uniform scalar quantization of the kept coefficients.

        Each coefficient maps to round((c - min) / (max - min) * (2^bits - 1)),
        clamped to the level range. A zero range (every coefficient equal, up to
        the smallest normal float32) quantizes to all zeros.

        Args:
            compressed: DCT-compressed vector
            bits: 8 or 16

        Raises:
            DegenerateInputError: If there are no coefficients
            ValueError: If bits is not supported
        """
        if bits not in SUPPORTED_BITS:
            raise ValueError(f"bits must be one of {SUPPORTED_BITS}, got {bits}")

        coefficients = compressed.coefficients
        if coefficients.size == 0:
            raise DegenerateInputError("Cannot quantize an empty coefficient set")

        low = float(coefficients.min())
        high = float(coefficients.max())
        span = high - low
        dtype = np.dtype('<u2') if bits > 8 else np.dtype(np.uint8)

        if span < np.finfo(np.float32).tiny:
            levels = np.zeros(coefficients.size, dtype=dtype)
        else:
            max_level = (1 << bits) - 1
            normalized = (coefficients.astype(np.float64) - low) / span
            levels = np.clip(np.rint(normalized * max_level), 0, max_level).astype(dtype)

        return QuantizedDCTVector(
            quantized=levels.tobytes(),
            min_value=low,
            max_value=high,
            original_length=compressed.original_length,
            bits_per_coefficient=bits,
        )

    def dequantize(self, quantized: QuantizedDCTVector) -> DCTCompressedVector:
        """Inverts the affine quantization map, returning the recovered coefficients."""
        max_level = (1 << quantized.bits_per_coefficient) - 1
        span = quantized.max_value - quantized.min_value
        coefficients = quantized.min_value + (quantized.levels / max_level) * span

        count = coefficients.size
        return DCTCompressedVector(
            coefficients=coefficients,
            original_length=quantized.original_length,
            energy_retained=1.0,
            compression_ratio=quantized.original_length / count if count else 1.0,
        )

    def decompress_quantized(self, quantized: QuantizedDCTVector) -> np.ndarray:
        return self.decompress(self.dequantize(quantized))
