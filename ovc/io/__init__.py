"""Loading of embedding files."""

from .dataset import EmbeddingDataset

__all__ = ["EmbeddingDataset"]
