"""
High-level compression and decompression interface for embedding vectors.

This module provides the VectorCodec class that orchestrates the complete
pipeline: method selection (explicit or adaptive), spectral compression via
the DCT or FFT compressors, framing of the payload in the OVC envelope, and
the reverse path. Similarity can be computed directly on framed payloads.

Every public operation returns a Result instead of raising, so callers can
retry with a different method. Statistics are folded from the events that
compress() hands back; the codec itself keeps no counters and no references
to the vectors it processes.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import torch
from torch.utils.data import DataLoader
from tqdm import tqdm

from .config import CompressionConfig
from .dct import DCTCompressedVector, DCTVectorCompressor, QuantizedDCTVector
from .errors import (
    CodecError,
    DimensionMismatchError,
    ErrorKind,
    UnsupportedMethodCombinationError,
)
from .events import VectorCompressionEvent, VectorCompressionStats, get_stats
from .fourier import CompressedVector, CompressionStrategy, FourierVectorCompressor
from .framing import CompressionMethod, iter_envelopes, unwrap, wrap
from .result import Result
from .vectors import VectorLike, as_vector
from ovc.io.dataset import EmbeddingDataset
from ovc.utils.metrics import compression_factor, cosine_similarity

logger = logging.getLogger(__name__)

PERIODICITY_THRESHOLD = 0.7
MIN_PERIODICITY_LENGTH = 16

CompressedItem = Tuple[bytes, VectorCompressionEvent]


def periodicity_score(vector: VectorLike) -> float:
    """
    Single-lag autocorrelation at lag n/4, normalised by the variance.

    Vectors shorter than 16 elements and constant vectors score 0. Constancy
    is judged relative to the vector's own magnitude, so tiny-scale vectors
    are scored like any other.

    Args:
        vector: Input embedding

    Returns:
        Absolute normalised autocorrelation
    """
    values = as_vector(vector).astype(np.float64)
    n = values.shape[0]
    if n < MIN_PERIODICITY_LENGTH:
        return 0.0

    lag = n // 4
    centered = values - values.mean()
    variance = float(np.mean(centered ** 2))
    # Spread at the level of float32 rounding is a constant vector.
    noise_floor = (np.finfo(np.float32).eps * float(np.max(np.abs(values)))) ** 2
    if variance <= noise_floor:
        return 0.0

    autocorr = float(np.dot(centered[:n - lag], centered[lag:]))
    autocorr /= (n - lag) * variance
    return abs(autocorr)


def select_method(vector: VectorLike) -> CompressionMethod:
    """Picks FFT for strongly periodic vectors and DCT for everything else."""
    score = periodicity_score(vector)
    method = CompressionMethod.FFT if score > PERIODICITY_THRESHOLD else CompressionMethod.DCT
    logger.debug("Periodicity score %.3f selects %s", score, method.label)
    return method


@dataclass(frozen=True)
class CompressionPreview:
    """
    Side-by-side sizes of the available methods for one vector.

    Sizes are payload sizes without the 9-byte envelope header.
    """

    original_dimension: int
    original_size_bytes: int
    dct_compressed_size: int
    dct_energy_retained: float
    fft_compressed_size: int
    fft_compression_ratio: float
    fft_energy_retained: float
    quantized_dct_size: int

    @property
    def best_compression_ratio(self) -> float:
        smallest = min(self.dct_compressed_size, self.fft_compressed_size, self.quantized_dct_size)
        return self.original_size_bytes / smallest

    @property
    def recommended_method(self) -> CompressionMethod:
        if self.quantized_dct_size < self.dct_compressed_size / 2 and self.dct_energy_retained > 0.9:
            return CompressionMethod.QUANTIZED_DCT
        if self.dct_compressed_size <= self.fft_compressed_size:
            return CompressionMethod.DCT
        return CompressionMethod.FFT


class VectorCodec:
    """
    Spectral codec for embedding vectors.

    Chooses a compression method, runs the matching compressor and frames the
    payload as [ 'OVC' | version | method | length | payload ]. Decompression
    and compressed-domain similarity route on the method tag.

    Args:
        config: Codec parameters (defaults to CompressionConfig())

    Example:
        >>> codec = VectorCodec(CompressionConfig(target_dimension=0))
        >>> data, event = codec.compress(embedding).unwrap()
        >>> restored = codec.decompress(data).unwrap()
        >>> score = codec.compressed_similarity(data, other_data).unwrap()
    """

    def __init__(self, config: Optional[CompressionConfig] = None):
        self.config = config or CompressionConfig()

    def fourier_compressor(
        self,
        strategy: Optional[CompressionStrategy] = None
    ) -> FourierVectorCompressor:
        return FourierVectorCompressor(
            self.config.fft_target_dimension,
            strategy if strategy is not None else self.config.fft_strategy
        )

    def dct_compressor(self) -> DCTVectorCompressor:
        return DCTVectorCompressor(self.config.target_dimension, self.config.energy_threshold)

    # -----------------------------------------------------------
    # Compression
    # -----------------------------------------------------------
    def compress(
        self,
        vector: VectorLike,
        method: Optional[CompressionMethod] = None
    ) -> Result[CompressedItem]:
        """
        Compresses one vector and records the operation as an event.

        Args:
            vector: Embedding as a sequence, NumPy array or torch tensor
            method: Method to use (defaults to config.default_method);
                ADAPTIVE picks FFT or DCT from the vector's periodicity

        Returns:
            Result holding (envelope bytes, VectorCompressionEvent)
        """
        return self._guard("Compression", lambda: self._compress(vector, method))

    def compress_with_indices(self, vector: VectorLike, indices) -> Result[CompressedItem]:
        """
        FFT-compresses a vector keeping exactly the given shared bins.

        Second phase of the two-phase HIGHEST_VARIANCE workflow; the first
        phase is learn_indices().
        """
        return self._guard(
            "Compression",
            lambda: self._compress(vector, CompressionMethod.FFT, indices=indices)
        )

    def learn_indices(self, vectors: Sequence[VectorLike]) -> Result[np.ndarray]:
        """Learns a shared FFT bin set from a sample (first phase of HIGHEST_VARIANCE)."""
        compressor = self.fourier_compressor(CompressionStrategy.HIGHEST_VARIANCE)
        return self._guard("Index learning", lambda: compressor.learn_indices(list(vectors)))

    def batch_compress(
        self,
        vectors: Iterable[VectorLike],
        method: Optional[CompressionMethod] = None,
        indices=None,
        show_progress: bool = False
    ) -> Result[List[CompressedItem]]:
        """
        Compresses many vectors in parallel.

        Each vector is compressed independently on a thread pool; results come
        back in input order. With the FFT method and the HIGHEST_VARIANCE
        strategy a shared bin set is learned from the batch first, unless one
        is passed in through `indices`.

        Args:
            vectors: Embeddings to compress
            method: Method for every vector (defaults to config.default_method)
            indices: Optional shared FFT bins for FFT-compressed vectors
            show_progress: Whether to show a progress bar

        Returns:
            Result holding a list of (envelope bytes, event). The first vector
            to fail fails the whole batch and cancels the vectors still queued
        """
        return self._guard(
            "Batch compression",
            lambda: self._batch_compress(vectors, method, indices, show_progress)
        )

    def _compress(self, vector, method=None, indices=None) -> CompressedItem:
        vector = as_vector(vector)
        method = CompressionMethod.parse(method if method is not None else self.config.default_method)
        if method == CompressionMethod.ADAPTIVE:
            method = select_method(vector)

        metadata = {'dimension': int(vector.shape[0])}

        if method == CompressionMethod.DCT:
            dct = self.dct_compressor().compress(vector)
            payload = dct.to_bytes()
            energy = dct.energy_retained
            metadata['coefficients'] = int(dct.coefficients.size)

        elif method == CompressionMethod.QUANTIZED_DCT:
            compressor = self.dct_compressor()
            dct = compressor.compress(vector)
            quantized = compressor.quantize(dct, self.config.quantization_bits)
            payload = quantized.to_bytes()
            energy = dct.energy_retained
            metadata['coefficients'] = quantized.coefficient_count
            metadata['bits'] = quantized.bits_per_coefficient

        elif method == CompressionMethod.FFT:
            if indices is not None:
                compressor = self.fourier_compressor(CompressionStrategy.HIGHEST_VARIANCE)
                fft = compressor.compress_with_indices(vector, indices)
            else:
                fft = self.fourier_compressor().compress(vector)
            payload = fft.to_bytes()
            energy = fft.energy_retained
            metadata['bins'] = int(fft.indices.size)
            metadata['strategy'] = fft.strategy.name.lower()

        else:
            raise CodecError(ErrorKind.INVALID_INPUT, f"Unknown compression method: {method!r}")

        data = wrap(method, payload)
        event = VectorCompressionEvent.create(
            method=method.label,
            original_bytes=int(vector.shape[0]) * 4,
            compressed_bytes=len(data),
            energy_retained=energy,
            metadata=metadata,
        )
        return data, event

    def _batch_compress(self, vectors, method, indices, show_progress) -> List[CompressedItem]:
        arrays = [as_vector(v) for v in vectors]
        if not arrays:
            return []

        method = CompressionMethod.parse(method if method is not None else self.config.default_method)
        if method == CompressionMethod.ADAPTIVE:
            methods = [select_method(a) for a in arrays]
        else:
            methods = [method] * len(arrays)

        if indices is None and self.config.fft_strategy == CompressionStrategy.HIGHEST_VARIANCE:
            sample = [a for a, m in zip(arrays, methods) if m == CompressionMethod.FFT]
            if sample:
                compressor = self.fourier_compressor(CompressionStrategy.HIGHEST_VARIANCE)
                indices = compressor.learn_indices(sample)

        def compress_one(item):
            array, item_method = item
            item_indices = indices if item_method == CompressionMethod.FFT else None
            return self._compress(array, item_method, indices=item_indices)

        results: list = [None] * len(arrays)
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            futures = {
                executor.submit(compress_one, item): position
                for position, item in enumerate(zip(arrays, methods))
            }
            try:
                for future in tqdm(as_completed(futures), total=len(arrays), desc="Compressing",
                                   disable=not show_progress):
                    results[futures[future]] = future.result()
            except Exception:
                # Stop queued work; vectors already running finish before the pool exits.
                for future in futures:
                    future.cancel()
                raise

        return results

    # -----------------------------------------------------------
    # Decompression
    # -----------------------------------------------------------
    def decompress(self, data: bytes) -> Result[np.ndarray]:
        """
        Restores an approximate float32 vector from an envelope.

        Args:
            data: Envelope produced by compress()

        Returns:
            Result holding the reconstructed vector
        """
        return self._guard("Decompression", lambda: self._decompress(data))

    def _decompress(self, data: bytes) -> np.ndarray:
        return self._decompress_payload(*unwrap(data))

    def _decompress_payload(self, method: CompressionMethod, payload: bytes) -> np.ndarray:
        if method == CompressionMethod.DCT:
            return self.dct_compressor().decompress(DCTCompressedVector.from_bytes(payload))
        if method == CompressionMethod.QUANTIZED_DCT:
            return self.dct_compressor().decompress_quantized(QuantizedDCTVector.from_bytes(payload))
        if method == CompressionMethod.FFT:
            return self.fourier_compressor().decompress(CompressedVector.from_bytes(payload))

        raise CodecError(ErrorKind.INVALID_FORMAT, f"Cannot decompress method {method.label}")

    # -----------------------------------------------------------
    # Similarity
    # -----------------------------------------------------------
    def compressed_similarity(self, a: bytes, b: bytes) -> Result[float]:
        """
        Approximate cosine similarity of two envelopes.

        Payloads of the same method are compared in the compressed domain.
        Payloads of different methods are fully decompressed and compared with
        plain cosine similarity.

        Returns:
            Result holding the similarity
        """
        return self._guard("Compressed similarity", lambda: self._compressed_similarity(a, b))

    def _compressed_similarity(self, a: bytes, b: bytes) -> float:
        method_a, payload_a = unwrap(a)
        method_b, payload_b = unwrap(b)

        if method_a != method_b:
            logger.debug(
                "Mixed methods %s/%s, comparing full reconstructions",
                method_a.label, method_b.label
            )
            try:
                vector_a = self._decompress_payload(method_a, payload_a)
                vector_b = self._decompress_payload(method_b, payload_b)
            except CodecError as e:
                raise UnsupportedMethodCombinationError(
                    f"Cannot compare {method_a.label} with {method_b.label}", cause=e
                )
            return cosine_similarity(vector_a, vector_b)

        if method_a == CompressionMethod.DCT:
            return DCTVectorCompressor.compressed_similarity(
                DCTCompressedVector.from_bytes(payload_a),
                DCTCompressedVector.from_bytes(payload_b)
            )
        if method_a == CompressionMethod.QUANTIZED_DCT:
            compressor = self.dct_compressor()
            return DCTVectorCompressor.compressed_similarity(
                compressor.dequantize(QuantizedDCTVector.from_bytes(payload_a)),
                compressor.dequantize(QuantizedDCTVector.from_bytes(payload_b))
            )
        if method_a == CompressionMethod.FFT:
            return FourierVectorCompressor.compressed_similarity(
                CompressedVector.from_bytes(payload_a),
                CompressedVector.from_bytes(payload_b)
            )

        raise UnsupportedMethodCombinationError(
            f"Compressed similarity not supported for {method_a.label}"
        )

    # -----------------------------------------------------------
    # Preview / stats
    # -----------------------------------------------------------
    def preview(self, vector: VectorLike) -> Result[CompressionPreview]:
        """
        Reports what each method would produce for a vector.

        Nothing is framed and no event is created.
        """
        return self._guard("Preview", lambda: self._preview(vector))

    def _preview(self, vector) -> CompressionPreview:
        vector = as_vector(vector)
        dct_compressor = self.dct_compressor()

        dct = dct_compressor.compress(vector)
        fft = self.fourier_compressor().compress(vector)
        quantized = dct_compressor.quantize(dct, self.config.quantization_bits)

        return CompressionPreview(
            original_dimension=int(vector.shape[0]),
            original_size_bytes=int(vector.shape[0]) * 4,
            dct_compressed_size=len(dct.to_bytes()),
            dct_energy_retained=dct.energy_retained,
            fft_compressed_size=len(fft.to_bytes()),
            fft_compression_ratio=fft.compression_ratio,
            fft_energy_retained=fft.energy_retained,
            quantized_dct_size=len(quantized.to_bytes()),
        )

    @staticmethod
    def get_stats(events: Iterable[VectorCompressionEvent]) -> VectorCompressionStats:
        """Folds compression events into statistics (see ovc.core.events.get_stats)."""
        return get_stats(events)

    # -----------------------------------------------------------
    # Files
    # -----------------------------------------------------------
    def compress_file(
        self,
        input_path: Union[str, Path],
        output_path: Union[str, Path],
        method: Optional[CompressionMethod] = None,
        dimension: Optional[int] = None,
        max_vectors: Optional[int] = None,
        batch_size: int = 256,
        show_progress: bool = False
    ) -> Result[dict]:
        """
        Compresses an embedding file into a stream of envelopes.

        Under HIGHEST_VARIANCE with the FFT or ADAPTIVE method the shared bins
        are learned once, from the first batch holding FFT vectors, and reused
        for the whole file.

        Args:
            input_path: .npy, .npz or raw float32 embedding file
            output_path: Destination for the concatenated envelopes
            method: Method for every vector (defaults to config.default_method)
            dimension: Vector dimension for raw float32 files
            max_vectors: Optional limit on vectors to compress
            batch_size: Vectors handed to batch_compress() at a time
            show_progress: Whether to show a progress bar

        Returns:
            Result holding a dictionary with sizes, timings and 'stats'
        """
        return self._guard(
            "File compression",
            lambda: self._compress_file(
                input_path, output_path, method, dimension, max_vectors, batch_size, show_progress
            ),
            extra=(OSError,)
        )

    def _compress_file(self, input_path, output_path, method, dimension,
                       max_vectors, batch_size, show_progress) -> dict:
        dataset = EmbeddingDataset(input_path, dimension=dimension, max_vectors=max_vectors)
        loader = DataLoader(dataset, batch_size=batch_size, shuffle=False)

        start_time = time.time()
        events: List[VectorCompressionEvent] = []
        indices = None

        resolved = CompressionMethod.parse(method if method is not None else self.config.default_method)
        shared_bins = (
            resolved in (CompressionMethod.FFT, CompressionMethod.ADAPTIVE)
            and self.config.fft_strategy == CompressionStrategy.HIGHEST_VARIANCE
        )

        with open(output_path, 'wb') as f:
            for batch in tqdm(loader, desc="Compressing", disable=not show_progress):
                rows = list(torch.unbind(batch, dim=0))
                if shared_bins and indices is None:
                    # Bins are learned once, from the first batch with FFT rows.
                    if resolved == CompressionMethod.FFT:
                        sample = rows
                    else:
                        sample = [r for r in rows if select_method(r) == CompressionMethod.FFT]
                    if sample:
                        compressor = self.fourier_compressor(CompressionStrategy.HIGHEST_VARIANCE)
                        indices = compressor.learn_indices(sample)

                for data, event in self._batch_compress(rows, resolved, indices, False):
                    f.write(data)
                    events.append(event)

        compress_time = time.time() - start_time
        stats = get_stats(events)

        return {
            'vectors': stats.vectors_compressed,
            'dimension': dataset.dimension,
            'original_size': stats.total_original_bytes,
            'compressed_size': stats.total_compressed_bytes,
            'ratio': stats.total_compressed_bytes / max(1, stats.total_original_bytes),
            'factor': stats.average_compression_ratio,
            'savings_pct': stats.percent_savings,
            'average_energy_retained': stats.average_energy_retained,
            'method_breakdown': dict(stats.method_breakdown),
            'compress_time': compress_time,
            'stats': stats,
        }

    def decompress_file(
        self,
        input_path: Union[str, Path],
        output_path: Optional[Union[str, Path]] = None
    ) -> Result[dict]:
        """
        Decompresses a stream of envelopes into a [num_vectors, dim] matrix.

        The matrix is saved with np.save when output_path is given.

        Returns:
            Result holding a dictionary with sizes, timings and 'vectors'
        """
        return self._guard(
            "File decompression",
            lambda: self._decompress_file(input_path, output_path),
            extra=(OSError,)
        )

    def _decompress_file(self, input_path, output_path) -> dict:
        with open(input_path, 'rb') as f:
            data = f.read()

        start_time = time.time()
        vectors = []
        for method, payload in iter_envelopes(data):
            vectors.append(self._decompress_payload(method, payload))

        dimensions = {v.shape[0] for v in vectors}
        if len(dimensions) > 1:
            raise DimensionMismatchError(
                f"Stream mixes vector dimensions {sorted(dimensions)}"
            )
        matrix = np.stack(vectors) if vectors else np.zeros((0, 0), dtype=np.float32)
        decompress_time = time.time() - start_time

        if output_path is not None:
            np.save(output_path, matrix)

        return {
            'num_vectors': matrix.shape[0],
            'compressed_size': len(data),
            'decompressed_size': matrix.size * 4,
            'factor': compression_factor(matrix.size * 4, len(data)),
            'decompress_time': decompress_time,
            'vectors': matrix,
        }

    # -----------------------------------------------------------
    # Error boundary
    # -----------------------------------------------------------
    @staticmethod
    def _guard(operation: str, fn: Callable, extra: tuple = ()) -> Result:
        try:
            return Result.success(fn())
        except CodecError as e:
            logger.debug("%s failed: %s", operation, e)
            return Result.failure(e)
        except (ValueError, TypeError) + extra as e:
            logger.debug("%s failed: %s", operation, e)
            return Result.failure(CodecError(ErrorKind.INVALID_INPUT, f"{operation} failed: {e}"))
