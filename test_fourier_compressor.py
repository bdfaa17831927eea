"""
Tests for Fourier-domain compression.

This verifies:
1. Bin selection for every strategy (low frequency, magnitude, adaptive, variance)
2. Reconstruction through conjugate mirroring
3. Similarity on shared bins only
4. Strict parsing of serialized payloads
"""

import struct

import numpy as np
import pytest
import torch

from ovc.core.errors import DimensionMismatchError, InvalidFormatError
from ovc.core.fourier import CompressedVector, CompressionStrategy, FourierVectorCompressor


def sinusoid(n=256, cycles=10):
    t = np.arange(n)
    return np.sin(2 * np.pi * cycles * t / n).astype(np.float32)


def test_highest_magnitude_sinusoid():
    compressor = FourierVectorCompressor(8, CompressionStrategy.HIGHEST_MAGNITUDE)
    compressed = compressor.compress(sinusoid())

    assert compressed.indices.size == 8
    assert compressed.components.size == 16
    assert 10 in compressed.indices
    assert 256 - 10 in compressed.indices
    assert compressed.energy_retained > 0.999
    assert np.all(np.diff(compressed.indices) > 0)


def test_sinusoid_reconstruction():
    compressor = FourierVectorCompressor(8, CompressionStrategy.HIGHEST_MAGNITUDE)
    original = sinusoid()

    restored = compressor.decompress(compressor.compress(original))

    assert restored.dtype == np.float32
    assert restored.shape == original.shape
    np.testing.assert_allclose(restored, original, atol=1e-4)


def test_low_frequency_keeps_leading_bins():
    compressor = FourierVectorCompressor(16, CompressionStrategy.LOW_FREQUENCY)
    compressed = compressor.compress(np.random.default_rng(0).normal(size=100))

    assert compressed.indices.tolist() == list(range(16))
    assert compressed.padded_length == 128


def test_low_frequency_is_capped_at_half_spectrum():
    compressor = FourierVectorCompressor(35, CompressionStrategy.LOW_FREQUENCY)
    compressed = compressor.compress(np.random.default_rng(0).normal(size=40))

    assert compressed.indices.tolist() == list(range(32))


def test_adaptive_keeps_energy_bins():
    compressor = FourierVectorCompressor(64, CompressionStrategy.ADAPTIVE)
    compressed = compressor.compress(sinusoid())

    assert compressed.indices.tolist() == [10, 246]
    assert compressed.energy_retained > 0.999


def test_short_vector_is_stored_without_reduction():
    compressor = FourierVectorCompressor(128)
    original = np.random.default_rng(1).normal(size=100).astype(np.float32)

    compressed = compressor.compress(original)

    assert compressed.indices.tolist() == list(range(128))
    assert compressed.compression_ratio == 1.0
    # every padded bin is stored, so the payload outgrows the input
    assert compressed.compressed_size_bytes == 128 * 12
    assert compressed.compressed_size_bytes > compressed.original_size_bytes
    assert compressed.energy_retained == pytest.approx(1.0)
    np.testing.assert_allclose(compressor.decompress(compressed), original, atol=1e-4)


def test_single_element_vector():
    compressor = FourierVectorCompressor(4)

    compressed = compressor.compress([2.5])

    assert compressed.indices.tolist() == [0]
    assert compressed.compression_ratio == 1.0
    np.testing.assert_allclose(compressor.decompress(compressed), [2.5])


def test_compression_ratio_matches_sizes():
    compressor = FourierVectorCompressor(32, CompressionStrategy.HIGHEST_MAGNITUDE)
    compressed = compressor.compress(np.random.default_rng(2).normal(size=512))

    assert compressed.compression_ratio == pytest.approx(512 * 4 / (32 * 12))
    assert compressed.compressed_size_bytes == pytest.approx(
        compressed.original_size_bytes / compressed.compression_ratio
    )


def test_single_vector_highest_variance_falls_back_to_leading_bins():
    compressor = FourierVectorCompressor(8, CompressionStrategy.HIGHEST_VARIANCE)
    compressed = compressor.compress(np.random.default_rng(3).normal(size=64))

    assert compressed.indices.tolist() == list(range(8))


def test_learn_indices_and_compress_with_indices():
    rng = np.random.default_rng(4)
    t = np.arange(64)
    # Bin 5 varies in amplitude across the sample, everything else is small noise.
    sample = [a * np.cos(2 * np.pi * 5 * t / 64) + 0.01 * rng.normal(size=64)
              for a in (0.5, 1.0, 2.0, 4.0)]

    compressor = FourierVectorCompressor(2, CompressionStrategy.HIGHEST_VARIANCE)
    indices = compressor.learn_indices(sample)

    assert indices.tolist() == [5, 59]

    compressed = compressor.compress_with_indices(sample[0], indices)
    assert compressed.indices.tolist() == [5, 59]
    assert compressed.strategy == CompressionStrategy.HIGHEST_VARIANCE


def test_batch_compress_shares_learned_indices():
    rng = np.random.default_rng(5)
    vectors = [rng.normal(size=128) for _ in range(6)]

    compressor = FourierVectorCompressor(16, CompressionStrategy.HIGHEST_VARIANCE)
    batch = compressor.batch_compress(vectors)

    assert len(batch) == 6
    for compressed in batch[1:]:
        assert compressed.indices.tolist() == batch[0].indices.tolist()


def test_learn_indices_rejects_mixed_dimensions():
    compressor = FourierVectorCompressor(4, CompressionStrategy.HIGHEST_VARIANCE)

    with pytest.raises(DimensionMismatchError):
        compressor.learn_indices([np.ones(32), np.ones(48)])


def test_compress_with_indices_rejects_out_of_range():
    compressor = FourierVectorCompressor(4)

    with pytest.raises(DimensionMismatchError):
        compressor.compress_with_indices(np.ones(30), [0, 32])


def test_self_similarity():
    compressor = FourierVectorCompressor(16)
    compressed = compressor.compress(np.random.default_rng(6).normal(size=200))

    assert FourierVectorCompressor.compressed_similarity(compressed, compressed) == pytest.approx(1.0)


def test_similarity_without_shared_bins_is_zero():
    a = CompressedVector([1.0, 0.0], [1], original_length=8,
                         strategy=CompressionStrategy.LOW_FREQUENCY)
    b = CompressedVector([1.0, 0.0], [2], original_length=8,
                         strategy=CompressionStrategy.LOW_FREQUENCY)

    assert FourierVectorCompressor.compressed_similarity(a, b) == 0.0


def test_opposite_phase_similarity():
    a = CompressedVector([1.0, 0.0], [3], original_length=8,
                         strategy=CompressionStrategy.HIGHEST_MAGNITUDE)
    b = CompressedVector([-2.0, 0.0], [3], original_length=8,
                         strategy=CompressionStrategy.HIGHEST_MAGNITUDE)

    assert FourierVectorCompressor.compressed_similarity(a, b) == pytest.approx(-1.0)


def test_accepts_torch_tensors():
    compressor = FourierVectorCompressor(8)
    tensor = torch.from_numpy(sinusoid())

    compressed = compressor.compress(tensor)

    assert 10 in compressed.indices


def test_invariants_are_enforced():
    with pytest.raises(DimensionMismatchError):
        CompressedVector([1.0, 0.0, 2.0], [1], original_length=8,
                         strategy=CompressionStrategy.ADAPTIVE)
    with pytest.raises(DimensionMismatchError):
        CompressedVector([1.0, 0.0, 2.0, 0.0], [3, 1], original_length=8,
                         strategy=CompressionStrategy.ADAPTIVE)
    with pytest.raises(DimensionMismatchError):
        CompressedVector([1.0, 0.0], [8], original_length=8,
                         strategy=CompressionStrategy.ADAPTIVE)


def test_serialization_round_trip():
    compressor = FourierVectorCompressor(16, CompressionStrategy.ADAPTIVE)
    compressed = compressor.compress(np.random.default_rng(7).normal(size=300))

    parsed = CompressedVector.from_bytes(compressed.to_bytes())

    assert parsed.original_length == 300
    assert parsed.strategy == CompressionStrategy.ADAPTIVE
    assert parsed.indices.tolist() == compressed.indices.tolist()
    np.testing.assert_array_equal(parsed.components, compressed.components)
    assert parsed.compression_ratio == pytest.approx(compressed.compression_ratio)


def test_from_bytes_is_strict():
    payload = FourierVectorCompressor(4).compress(np.arange(16.0)).to_bytes()

    with pytest.raises(InvalidFormatError):
        CompressedVector.from_bytes(payload[:8])
    with pytest.raises(InvalidFormatError):
        CompressedVector.from_bytes(payload[:-1])
    with pytest.raises(InvalidFormatError):
        CompressedVector.from_bytes(payload + b'\x00')
    with pytest.raises(InvalidFormatError):
        CompressedVector.from_bytes(struct.pack('<iii', 16, 9, 0))
    with pytest.raises(DimensionMismatchError):
        CompressedVector.from_bytes(struct.pack('<iii', 2, 0, 3) + bytes(3 * 12))


def test_invalid_target_dimension():
    with pytest.raises(ValueError):
        FourierVectorCompressor(0)


def test_strategy_parse():
    assert CompressionStrategy.parse('highest_variance') == CompressionStrategy.HIGHEST_VARIANCE
    assert CompressionStrategy.parse('LowFrequency') == CompressionStrategy.LOW_FREQUENCY
    assert CompressionStrategy.parse(3) == CompressionStrategy.ADAPTIVE

    with pytest.raises(ValueError):
        CompressionStrategy.parse('loudest')
