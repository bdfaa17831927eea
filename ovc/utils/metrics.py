"""
Metrics and evaluation utilities for compression performance.

This module provides standard metrics for evaluating lossy vector compression
including compression ratio, storage savings, energy retention and the
similarity between an embedding and its reconstruction.
"""

import numpy as np
import torch
from typing import Union

ArrayLike = Union[np.ndarray, torch.Tensor, list]


def _as_array(data: ArrayLike) -> np.ndarray:
    if isinstance(data, torch.Tensor):
        data = data.detach().cpu().numpy()
    return np.asarray(data, dtype=np.float64).ravel()


def compression_ratio(
    original_size: int,
    compressed_size: int
) -> float:
    """
    Computes compression ratio as fraction of original size.

    Args:
        original_size: Size of uncompressed data in bytes
        compressed_size: Size of compressed data in bytes

    Returns:
        Compression ratio (e.g., 0.25 means 4:1 compression)

    Example:
        >>> ratio = compression_ratio(original_size=3072, compressed_size=768)
        >>> print(f"Stored at {ratio:.2%} of the original size")
    """
    if original_size == 0:
        return 0.0

    return compressed_size / original_size


def compression_factor(
    original_size: int,
    compressed_size: int
) -> float:
    """
    Computes compression factor (inverse of ratio).

    Args:
        original_size: Size of uncompressed data in bytes
        compressed_size: Size of compressed data in bytes

    Returns:
        Compression factor (e.g., 4.0 means 4x size reduction)
    """
    if compressed_size == 0:
        return float('inf')

    return original_size / compressed_size


def percent_savings(
    original_size: int,
    compressed_size: int
) -> float:
    """
    Computes storage savings as percentage.

    Args:
        original_size: Size of uncompressed data in bytes
        compressed_size: Size of compressed data in bytes

    Returns:
        Percentage savings (e.g., 75.0 means 75% reduction in size)
    """
    if original_size == 0:
        return 0.0

    savings = (original_size - compressed_size) / original_size * 100
    return savings


def cosine_similarity(a: ArrayLike, b: ArrayLike) -> float:
    """
    Plain cosine similarity over the common prefix of two vectors.

    Returns 0.0 when either vector has zero norm.
    """
    a = _as_array(a)
    b = _as_array(b)
    length = min(a.size, b.size)
    a = a[:length]
    b = b[:length]

    norm_a = float(np.dot(a, a))
    norm_b = float(np.dot(b, b))
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(a, b) / (np.sqrt(norm_a) * np.sqrt(norm_b)))


def energy_retained(original: ArrayLike, kept: ArrayLike) -> float:
    """Fraction of squared magnitude in kept relative to original (1.0 for zero energy)."""
    total = float(np.sum(_as_array(original) ** 2))
    if total == 0:
        return 1.0
    return float(np.sum(_as_array(kept) ** 2)) / total


def reconstruction_error(original: ArrayLike, reconstructed: ArrayLike) -> dict:
    """
    Element-wise error statistics between a vector and its reconstruction.

    Returns:
        Dictionary with 'mse', 'rmse', 'max_abs' and 'relative_l2'
    """
    original = _as_array(original)
    reconstructed = _as_array(reconstructed)
    diff = original - reconstructed

    mse = float(np.mean(diff ** 2))
    norm = float(np.linalg.norm(original))

    return {
        'mse': mse,
        'rmse': float(np.sqrt(mse)),
        'max_abs': float(np.max(np.abs(diff))),
        'relative_l2': float(np.linalg.norm(diff) / norm) if norm > 0 else 0.0
    }


def evaluate_compression_performance(
    original_vector: ArrayLike,
    compressed_data: bytes,
    reconstructed_vector: ArrayLike
) -> dict:
    """
    Computes comprehensive compression performance metrics.

    Args:
        original_vector: Uncompressed embedding
        compressed_data: Framed compressed bytes
        reconstructed_vector: Output of decompression

    Returns:
        Dictionary containing multiple metrics:
        - original_size_bytes: Size of the float32 vector
        - compressed_size_bytes: Size of the envelope
        - compression_ratio: Fraction of original
        - compression_factor: Inverse of ratio
        - percent_savings: Percentage reduction
        - cosine_similarity: Similarity of reconstruction to original
        - rmse / max_abs_error: Element-wise reconstruction error
        - energy_retained: Squared norm of the reconstruction over that of the original
    """
    original = _as_array(original_vector)

    original_size = original.size * 4
    compressed_size = len(compressed_data)
    errors = reconstruction_error(original, reconstructed_vector)

    return {
        'original_size_bytes': original_size,
        'compressed_size_bytes': compressed_size,
        'compression_ratio': compression_ratio(original_size, compressed_size),
        'compression_factor': compression_factor(original_size, compressed_size),
        'percent_savings': percent_savings(original_size, compressed_size),
        'cosine_similarity': cosine_similarity(original, reconstructed_vector),
        'rmse': errors['rmse'],
        'max_abs_error': errors['max_abs'],
        'energy_retained': energy_retained(original, reconstructed_vector)
    }
