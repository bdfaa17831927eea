"""
Generate synthetic embedding datasets for compression benchmarking.

Creates matrices of float32 vectors that simulate:
- Sentence embeddings (unit-norm, correlated dimensions)
- Smooth embeddings (energy concentrated in low frequencies)
- Periodic signals (strong autocorrelation, favour the FFT path)
- White noise (worst case for spectral compression)
"""

import numpy as np
import argparse
from pathlib import Path
import json


def generate_sentence_embeddings(num_vectors: int = 1000, dim: int = 768,
                                 topics: int = 16, seed: int = 0) -> np.ndarray:
    """
    Unit-norm vectors clustered around a handful of topic centroids.

    Dimensions are mixed with a random low-rank projection so neighbouring
    coordinates are correlated, as in real transformer embeddings.
    """
    rng = np.random.default_rng(seed)
    rank = max(8, dim // 12)
    projection = rng.normal(size=(rank, dim)) / np.sqrt(rank)
    centroids = rng.normal(size=(topics, rank))

    labels = rng.integers(0, topics, size=num_vectors)
    latent = centroids[labels] + 0.35 * rng.normal(size=(num_vectors, rank))
    vectors = latent @ projection
    vectors /= np.linalg.norm(vectors, axis=1, keepdims=True)
    return vectors.astype(np.float32)


def generate_smooth_embeddings(num_vectors: int = 1000, dim: int = 512,
                               seed: int = 1) -> np.ndarray:
    """Random walks smoothed with a moving average (DCT-friendly)."""
    rng = np.random.default_rng(seed)
    steps = rng.normal(scale=0.1, size=(num_vectors, dim))
    walks = np.cumsum(steps, axis=1)
    kernel = np.ones(9) / 9
    smooth = np.stack([np.convolve(w, kernel, mode='same') for w in walks])
    return smooth.astype(np.float32)


def generate_periodic_signals(num_vectors: int = 1000, dim: int = 256,
                              seed: int = 2) -> np.ndarray:
    """Sums of a few sinusoids with integer cycle counts plus light noise."""
    rng = np.random.default_rng(seed)
    t = np.arange(dim)
    vectors = np.zeros((num_vectors, dim))
    for row in vectors:
        for _ in range(rng.integers(1, 4)):
            cycles = rng.choice([4, 8, 12, 16])
            row += rng.uniform(0.5, 1.5) * np.sin(2 * np.pi * cycles * t / dim + rng.uniform(0, np.pi))
    vectors += 0.01 * rng.normal(size=vectors.shape)
    return vectors.astype(np.float32)


def generate_white_noise(num_vectors: int = 1000, dim: int = 384,
                         seed: int = 3) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.normal(size=(num_vectors, dim)).astype(np.float32)


def generate_all_test_datasets(output_dir: str = "data", num_vectors: int = 1000):
    """Generates every dataset and writes a manifest."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    datasets = {
        'sentence_embeddings.npy': generate_sentence_embeddings(num_vectors),
        'smooth_embeddings.npy': generate_smooth_embeddings(num_vectors),
        'periodic_signals.npy': generate_periodic_signals(num_vectors),
        'white_noise.npy': generate_white_noise(num_vectors),
    }

    manifest = {}
    for name, matrix in datasets.items():
        path = output_dir / name
        np.save(path, matrix)
        manifest[name] = {'vectors': int(matrix.shape[0]), 'dimension': int(matrix.shape[1])}
        print(f"Created {path}: {matrix.shape[0]:,} x {matrix.shape[1]} "
              f"({matrix.nbytes/1024/1024:.2f} MB)")

    with open(output_dir / 'manifest.json', 'w') as f:
        json.dump(manifest, f, indent=2)

    return manifest


def main():
    parser = argparse.ArgumentParser(description="Generate embedding datasets for compression")
    parser.add_argument('--output-dir', type=str, default='data',
                        help='Directory to write datasets to')
    parser.add_argument('--num-vectors', type=int, default=1000,
                        help='Vectors per dataset')

    args = parser.parse_args()
    generate_all_test_datasets(args.output_dir, args.num_vectors)


if __name__ == "__main__":
    main()
