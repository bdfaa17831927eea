"""
Embedding dataset loader for batch compression.

This module loads matrices of embedding vectors produced by an upstream model
and exposes them row by row as float32 tensors, so they can be fed through a
torch DataLoader into the codec.
"""

import torch
from torch.utils.data import Dataset
import numpy as np
from pathlib import Path
from typing import Union, Optional


class EmbeddingDataset(Dataset):
    """
    Dataset of embedding vectors stored on disk.

    Supported formats:
        - .npy: 1-D (single vector) or 2-D [num_vectors, dim] array
        - .npz: array stored under `key`, or the first array in the archive
        - anything else: raw little-endian float32 values, requires `dimension`

    Args:
        file_path: Path to the embedding file
        dimension: Vector dimension for raw float32 files
        key: Array name inside an .npz archive
        max_vectors: Optional limit on the number of vectors to load

    Example:
        >>> dataset = EmbeddingDataset("embeddings.npy", max_vectors=1000)
        >>> vector = dataset[0]  # float32 tensor of shape [dim]
    """

    def __init__(
        self,
        file_path: Union[str, Path],
        dimension: Optional[int] = None,
        key: Optional[str] = None,
        max_vectors: Optional[int] = None
    ):
        self.file_path = Path(file_path)

        if not self.file_path.exists():
            raise FileNotFoundError(f"Embedding file not found: {self.file_path}")

        suffix = self.file_path.suffix.lower()
        if suffix == '.npy':
            data = np.load(self.file_path, allow_pickle=False)
        elif suffix == '.npz':
            with np.load(self.file_path, allow_pickle=False) as archive:
                names = list(archive.keys())
                if not names:
                    raise ValueError(f"No arrays stored in {self.file_path}")
                if key is not None and key not in names:
                    raise ValueError(f"Array '{key}' not found in {self.file_path}")
                data = archive[key if key is not None else names[0]]
        else:
            if dimension is None or dimension < 1:
                raise ValueError("Raw float32 files need a positive `dimension`")
            raw = np.fromfile(self.file_path, dtype='<f4')
            if raw.size % dimension:
                raise ValueError(
                    f"File holds {raw.size} floats, not a multiple of dimension={dimension}"
                )
            data = raw.reshape(-1, dimension)

        data = np.asarray(data, dtype=np.float32)
        if data.ndim == 1:
            data = data.reshape(1, -1)
        if data.ndim != 2 or data.shape[1] == 0:
            raise ValueError(f"Expected a [num_vectors, dim] matrix, got shape {data.shape}")
        if dimension is not None and data.shape[1] != dimension:
            raise ValueError(f"File holds {data.shape[1]}-dim vectors, expected {dimension}")

        if max_vectors is not None:
            data = data[:max_vectors]

        self.data = np.ascontiguousarray(data)

    def __len__(self) -> int:
        """Returns the number of vectors available."""
        return self.data.shape[0]

    def __getitem__(self, idx: int) -> torch.Tensor:
        """
        Retrieves a single embedding.

        Args:
            idx: Row index

        Returns:
            float32 tensor of shape [dim]
        """
        if idx < 0 or idx >= len(self):
            raise IndexError(f"Index {idx} out of range for dataset with {len(self)} vectors")

        return torch.from_numpy(self.data[idx].copy())

    def get_matrix(self) -> np.ndarray:
        """Returns the full [num_vectors, dim] matrix for direct access."""
        return self.data

    @property
    def dimension(self) -> int:
        return self.data.shape[1]

    @property
    def total_bytes(self) -> int:
        """Returns the raw float32 size of all loaded vectors."""
        return self.data.size * 4
