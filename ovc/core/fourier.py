"""
Fourier-domain compression of embedding vectors.

Vectors are zero-padded to a power of two, transformed with the FFT kernel,
and only a subset of frequency bins is kept. Reconstruction restores the
conjugate-symmetric half of the spectrum so the inverse transform is real.
"""

import logging
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import List, Sequence

import numpy as np

from .errors import DimensionMismatchError, InvalidFormatError
from .transforms import fft_inplace, next_power_of_two, padded_spectrum
from .vectors import VectorLike, as_vector

logger = logging.getLogger(__name__)

ADAPTIVE_ENERGY_TARGET = 0.95

_FFT_HEADER = struct.Struct('<iii')


class CompressionStrategy(IntEnum):
    """Rule for choosing which frequency bins to keep."""

    LOW_FREQUENCY = 0
    HIGHEST_MAGNITUDE = 1
    HIGHEST_VARIANCE = 2
    ADAPTIVE = 3

    @classmethod
    def parse(cls, value) -> "CompressionStrategy":
        """Accepts a member, its integer tag or a case-insensitive name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().upper().replace('-', '_').replace(' ', '_')
            aliases = {
                'LOWFREQUENCY': 'LOW_FREQUENCY',
                'HIGHESTMAGNITUDE': 'HIGHEST_MAGNITUDE',
                'HIGHESTVARIANCE': 'HIGHEST_VARIANCE',
            }
            key = aliases.get(key, key)
            if key in cls.__members__:
                return cls[key]
            raise ValueError(f"Unknown compression strategy: {value!r}")
        return cls(int(value))


@dataclass(frozen=True, eq=False)
class CompressedVector:
    """
    Fourier-compressed embedding.

    Attributes:
        components: Flat float32 array of (real, imag) pairs, one per kept bin
        indices: Ascending, unique int32 bin positions in [0, padded_length)
        original_length: Dimension of the source vector
        strategy: Selection strategy that produced the bins
        compression_ratio: original_size_bytes / compressed_size_bytes
            (1.0 when the vector was stored without reduction)
        energy_retained: Fraction of spectral energy that survives
            reconstruction; not serialised, 1.0 after from_bytes()
    """

    components: np.ndarray
    indices: np.ndarray
    original_length: int
    strategy: CompressionStrategy
    compression_ratio: float = 1.0
    energy_retained: float = 1.0

    def __post_init__(self):
        components = np.array(self.components, dtype=np.float32)
        indices = np.array(self.indices, dtype=np.int32)
        components.setflags(write=False)
        indices.setflags(write=False)
        object.__setattr__(self, 'components', components)
        object.__setattr__(self, 'indices', indices)
        object.__setattr__(self, 'strategy', CompressionStrategy(self.strategy))

        if components.ndim != 1 or indices.ndim != 1:
            raise DimensionMismatchError("Components and indices must be 1-D")
        if components.shape[0] != 2 * indices.shape[0]:
            raise DimensionMismatchError(
                f"{components.shape[0]} components for {indices.shape[0]} indices"
            )
        if self.original_length < 1:
            raise DimensionMismatchError(f"Invalid original length {self.original_length}")
        if indices.size:
            if indices[0] < 0 or indices[-1] >= self.padded_length:
                raise DimensionMismatchError(
                    f"Indices must lie in [0, {self.padded_length})"
                )
            if np.any(np.diff(indices) <= 0):
                raise DimensionMismatchError("Indices must be unique and ascending")

    @property
    def padded_length(self) -> int:
        return next_power_of_two(self.original_length)

    @property
    def compressed_size_bytes(self) -> int:
        return self.components.size * 4 + self.indices.size * 4

    @property
    def original_size_bytes(self) -> int:
        return self.original_length * 4

    def spectrum_values(self) -> np.ndarray:
        """Kept bins as complex numbers, aligned with indices."""
        pairs = self.components.astype(np.float64).reshape(-1, 2)
        return pairs[:, 0] + 1j * pairs[:, 1]

    def to_bytes(self) -> bytes:
        """Serialises as [originalLength][strategy][count][indices...][pairs...]."""
        header = _FFT_HEADER.pack(self.original_length, int(self.strategy), self.indices.size)
        return (
            header
            + self.indices.astype('<i4').tobytes()
            + self.components.astype('<f4').tobytes()
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "CompressedVector":
        """
        Parses an FFT payload.

        Raises:
            InvalidFormatError: Truncated or oversized payload, unknown strategy
            DimensionMismatchError: Indices inconsistent with the original length
        """
        if len(data) < _FFT_HEADER.size:
            raise InvalidFormatError("FFT payload is too short")

        original_length, strategy_tag, count = _FFT_HEADER.unpack_from(data, 0)
        if count < 0:
            raise InvalidFormatError(f"Negative index count {count}")
        try:
            strategy = CompressionStrategy(strategy_tag)
        except ValueError:
            raise InvalidFormatError(f"Unknown FFT strategy tag {strategy_tag}")

        expected = _FFT_HEADER.size + count * 4 + count * 8
        if len(data) != expected:
            raise InvalidFormatError(
                f"FFT payload holds {len(data)} bytes, expected {expected} for {count} bins"
            )

        offset = _FFT_HEADER.size
        indices = np.frombuffer(data, dtype='<i4', count=count, offset=offset)
        components = np.frombuffer(data, dtype='<f4', count=count * 2, offset=offset + count * 4)

        if original_length < 1:
            raise DimensionMismatchError(f"Invalid original length {original_length}")
        if count > next_power_of_two(original_length):
            raise DimensionMismatchError(
                f"{count} bins exceed padded length of a {original_length}-dim vector"
            )

        return cls(
            components=components,
            indices=indices,
            original_length=original_length,
            strategy=strategy,
            compression_ratio=_ratio(original_length, count),
        )


def _ratio(original_length: int, bin_count: int) -> float:
    """Size ratio for a vector keeping bin_count bins (1.0 when nothing was dropped)."""
    if bin_count == 0 or bin_count >= next_power_of_two(original_length):
        return 1.0
    return (original_length * 4) / (bin_count * 12)


def _retained_energy(spectrum: np.ndarray, indices: np.ndarray) -> float:
    """Energy fraction of the kept bins together with their conjugate mirrors."""
    power = np.abs(spectrum) ** 2
    total = power.sum()
    if total < np.finfo(np.float64).tiny:
        return 1.0

    n = spectrum.shape[0]
    kept = np.zeros(n, dtype=bool)
    kept[indices] = True
    kept[n - indices[indices > 0]] = True
    return float(min(1.0, power[kept].sum() / total))


class FourierVectorCompressor:
    """
    Compresses embedding vectors by keeping a subset of FFT bins.

    Args:
        target_dimension: Maximum number of frequency bins to keep
        strategy: Rule used to pick the bins

    Example:
        >>> compressor = FourierVectorCompressor(64, CompressionStrategy.HIGHEST_MAGNITUDE)
        >>> compressed = compressor.compress(embedding)
        >>> approx = compressor.decompress(compressed)
    """

    def __init__(
        self,
        target_dimension: int = 256,
        strategy: CompressionStrategy = CompressionStrategy.HIGHEST_MAGNITUDE
    ):
        if target_dimension < 1:
            raise ValueError(f"target_dimension must be >= 1, got {target_dimension}")
        self.target_dimension = target_dimension
        self.strategy = CompressionStrategy.parse(strategy)

    def compress(self, vector: VectorLike) -> CompressedVector:
        """
        Compresses a vector, keeping the bins chosen by the strategy.

        Vectors no longer than target_dimension are stored without reduction:
        every bin of the padded spectrum is kept and the ratio is reported as
        1.0, even though the stored bins take more bytes than the input.

        Args:
            vector: Input embedding

        Returns:
            CompressedVector with ascending indices
        """
        vector = as_vector(vector)
        spectrum = padded_spectrum(vector)

        if vector.shape[0] <= self.target_dimension:
            every_bin = np.arange(spectrum.shape[0])
            return self._build(spectrum, every_bin, vector.shape[0])

        indices = self._select_indices(spectrum)
        return self._build(spectrum, indices, vector.shape[0])

    def decompress(self, compressed: CompressedVector) -> np.ndarray:
        """
        Reconstructs an approximation of the original vector.

        Kept bins are placed at their positions and mirrored to
        padded_length - idx as complex conjugates before the inverse FFT.

        Args:
            compressed: Output of compress()

        Returns:
            float32 array of length original_length
        """
        padded_length = compressed.padded_length
        spectrum = np.zeros(padded_length, dtype=np.complex128)

        for idx, value in zip(compressed.indices.tolist(), compressed.spectrum_values()):
            spectrum[idx] = value
            mirror = padded_length - idx
            if mirror < padded_length and mirror != idx:
                spectrum[mirror] = np.conj(value)

        fft_inplace(spectrum, inverse=True)
        return spectrum.real[:compressed.original_length].astype(np.float32)

    @staticmethod
    def compressed_similarity(a: CompressedVector, b: CompressedVector) -> float:
        """
        Approximate cosine similarity computed on shared bins only.

        For every index kept by both vectors the bins contribute
        |A||B|cos(phase_A - phase_B) to the dot product and |A|^2, |B|^2 to
        the norms. Bins kept by only one side contribute nothing.

        Returns:
            Similarity in [-1, 1], or 0.0 with no overlap or a zero norm
        """
        _, a_pos, b_pos = np.intersect1d(
            a.indices, b.indices, assume_unique=True, return_indices=True
        )
        if a_pos.size == 0:
            return 0.0

        a_values = a.spectrum_values()[a_pos]
        b_values = b.spectrum_values()[b_pos]

        a_mag = np.abs(a_values)
        b_mag = np.abs(b_values)
        dot = np.sum(a_mag * b_mag * np.cos(np.angle(a_values) - np.angle(b_values)))
        norm_a = np.sum(a_mag ** 2)
        norm_b = np.sum(b_mag ** 2)

        if norm_a == 0 or norm_b == 0:
            return 0.0
        return float(dot / (np.sqrt(norm_a) * np.sqrt(norm_b)))

    def learn_indices(self, vectors: Sequence[VectorLike]) -> np.ndarray:
        """
        Learns a shared index set from a sample of vectors.

        Picks the target_dimension bins whose magnitude varies most across the
        sample, so every vector compressed with them can be compared bin for bin.

        Args:
            vectors: Sample of equally sized embeddings

        Returns:
            Ascending int32 array of bin positions

        Raises:
            DimensionMismatchError: If the sample mixes dimensions
        """
        arrays = [as_vector(v) for v in vectors]
        if not arrays:
            return np.zeros(0, dtype=np.int32)

        dimension = arrays[0].shape[0]
        for array in arrays[1:]:
            if array.shape[0] != dimension:
                raise DimensionMismatchError(
                    f"Cannot learn indices from mixed dimensions {dimension} and {array.shape[0]}"
                )

        magnitudes = np.stack([np.abs(padded_spectrum(a)) for a in arrays])
        variances = magnitudes.var(axis=0)

        order = np.argsort(-variances, kind='stable')
        keep = min(self.target_dimension, variances.shape[0])
        indices = np.sort(order[:keep]).astype(np.int32)

        logger.debug("Learned %d shared bins from %d vectors", indices.size, len(arrays))
        return indices

    def compress_with_indices(self, vector: VectorLike, indices) -> CompressedVector:
        """
        Compresses a vector keeping exactly the given bins.

        Args:
            vector: Input embedding
            indices: Bin positions, typically from learn_indices()

        Raises:
            DimensionMismatchError: If an index falls outside the padded spectrum
        """
        vector = as_vector(vector)
        spectrum = padded_spectrum(vector)

        indices = np.unique(np.asarray(indices, dtype=np.int64))
        if indices.size and (indices[0] < 0 or indices[-1] >= spectrum.shape[0]):
            raise DimensionMismatchError(
                f"Indices must lie in [0, {spectrum.shape[0]}) for a {vector.shape[0]}-dim vector"
            )
        return self._build(spectrum, indices, vector.shape[0])

    def batch_compress(self, vectors: Sequence[VectorLike]) -> List[CompressedVector]:
        """
        Compresses many vectors.

        Under HIGHEST_VARIANCE the index set is learned from the batch first
        and shared by every result.
        """
        vectors = list(vectors)
        if not vectors:
            return []

        if self.strategy == CompressionStrategy.HIGHEST_VARIANCE:
            indices = self.learn_indices(vectors)
            return [self.compress_with_indices(v, indices) for v in vectors]

        return [self.compress(v) for v in vectors]

    def _select_indices(self, spectrum: np.ndarray) -> np.ndarray:
        n = spectrum.shape[0]
        magnitudes = np.abs(spectrum)

        if self.strategy == CompressionStrategy.LOW_FREQUENCY:
            return np.arange(min(self.target_dimension, n // 2))

        if self.strategy == CompressionStrategy.HIGHEST_MAGNITUDE:
            order = np.argsort(-magnitudes, kind='stable')
            return np.sort(order[:self.target_dimension])

        if self.strategy == CompressionStrategy.ADAPTIVE:
            order = np.argsort(-magnitudes, kind='stable')
            power = magnitudes[order] ** 2
            target_energy = power.sum() * ADAPTIVE_ENERGY_TARGET
            cumulative = np.cumsum(power)
            reached = int(np.searchsorted(cumulative, target_energy, side='left')) + 1
            keep = max(1, min(reached, self.target_dimension, n))
            return np.sort(order[:keep])

        # A single vector has no dataset variance to rank by.
        logger.warning(
            "HIGHEST_VARIANCE needs a batch; keeping the first %d bins instead",
            min(self.target_dimension, n)
        )
        return np.arange(min(self.target_dimension, n))

    def _build(self, spectrum, indices, original_length) -> CompressedVector:
        indices = np.asarray(indices, dtype=np.int64)
        kept = spectrum[indices]

        components = np.empty(indices.size * 2, dtype=np.float32)
        components[0::2] = kept.real
        components[1::2] = kept.imag

        return CompressedVector(
            components=components,
            indices=indices,
            original_length=original_length,
            strategy=self.strategy,
            compression_ratio=_ratio(original_length, indices.size),
            energy_retained=_retained_energy(spectrum, indices),
        )
