"""Utilities for metrics calculation."""

from .metrics import (
    compression_ratio,
    compression_factor,
    percent_savings,
    cosine_similarity,
    energy_retained,
    reconstruction_error,
    evaluate_compression_performance
)

__all__ = [
    "compression_ratio",
    "compression_factor",
    "percent_savings",
    "cosine_similarity",
    "energy_retained",
    "reconstruction_error",
    "evaluate_compression_performance"
]
