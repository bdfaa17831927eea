"""Coercion of caller-supplied embeddings into float32 vectors."""

from typing import Sequence, Union

import numpy as np
import torch

from .errors import CodecError, DegenerateInputError, ErrorKind

VectorLike = Union[Sequence[float], np.ndarray, torch.Tensor]


def as_vector(data: VectorLike) -> np.ndarray:
    """
    Converts an embedding into a contiguous 1-D float32 array.

    Accepts Python sequences, NumPy arrays and torch tensors (any device).
    Singleton axes are squeezed, so a [1, dim] batch of one is accepted.

    Args:
        data: Embedding produced by an upstream model

    Returns:
        New float32 array of shape [dim]

    Raises:
        DegenerateInputError: If the embedding has no elements
        CodecError: If the input is not a finite numeric vector
    """
    if isinstance(data, torch.Tensor):
        data = data.detach().to(device='cpu', dtype=torch.float32).numpy()

    try:
        array = np.array(data, dtype=np.float32)
    except (TypeError, ValueError) as e:
        raise CodecError(ErrorKind.INVALID_INPUT, f"Not a numeric vector: {e}")

    if array.ndim > 1:
        array = np.squeeze(array)
    if array.ndim == 0 and array.size == 1 and np.ndim(data) > 0:
        array = array.reshape(1)
    if array.ndim != 1:
        raise CodecError(
            ErrorKind.INVALID_INPUT,
            f"Expected a 1-D vector, got shape {np.shape(data)}"
        )
    if array.size == 0:
        raise DegenerateInputError("Vector must have at least one element")
    if not np.all(np.isfinite(array)):
        raise CodecError(ErrorKind.INVALID_INPUT, "Vector contains NaN or infinite values")

    return np.ascontiguousarray(array)
