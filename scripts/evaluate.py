"""
Evaluation and benchmarking script for OVC.

Compares the DCT, FFT and quantized DCT methods on a file of embeddings:
payload sizes, energy retained, reconstruction quality, and how closely
compressed-domain similarity tracks the true cosine similarity.
"""

import argparse
import json
import time
from pathlib import Path

import numpy as np
from tqdm import tqdm

from ovc.core import CompressionConfig, CompressionMethod, VectorCodec
from ovc.io import EmbeddingDataset
from ovc.utils.metrics import cosine_similarity, evaluate_compression_performance


def benchmark_method(codec: VectorCodec, matrix: np.ndarray, method: CompressionMethod,
                     pairs: int = 200, seed: int = 0) -> dict:
    """Benchmark one compression method over a matrix of embeddings."""
    start = time.time()
    compressed = codec.batch_compress(matrix, method=method).unwrap()
    compress_time = time.time() - start

    start = time.time()
    restored = [codec.decompress(data).unwrap() for data, _ in compressed]
    decompress_time = time.time() - start

    metrics = [
        evaluate_compression_performance(original, data, approx)
        for original, (data, _), approx in zip(matrix, compressed, restored)
    ]
    stats = codec.get_stats(event for _, event in compressed)

    rng = np.random.default_rng(seed)
    errors = []
    if len(matrix) > 1:
        for _ in range(pairs):
            i, j = rng.choice(len(matrix), size=2, replace=False)
            exact = cosine_similarity(matrix[i], matrix[j])
            approx = codec.compressed_similarity(compressed[i][0], compressed[j][0]).unwrap()
            errors.append(abs(exact - approx))

    return {
        'name': method.label,
        'original_size': stats.total_original_bytes,
        'compressed_size': stats.total_compressed_bytes,
        'ratio': stats.total_compressed_bytes / stats.total_original_bytes,
        'factor': stats.average_compression_ratio,
        'savings_pct': stats.percent_savings,
        'energy_retained': stats.average_energy_retained,
        'reconstruction_cosine': float(np.mean([m['cosine_similarity'] for m in metrics])),
        'reconstruction_energy': float(np.mean([m['energy_retained'] for m in metrics])),
        'rmse': float(np.mean([m['rmse'] for m in metrics])),
        'similarity_mae': float(np.mean(errors)) if errors else 0.0,
        'compress_time': compress_time,
        'decompress_time': decompress_time,
        'vectors_per_s': len(matrix) / compress_time if compress_time > 0 else float('inf')
    }


def run_benchmark(args):
    """Run complete benchmark suite."""
    print("=" * 70)
    print("OVC Compression Benchmark")
    print("=" * 70)

    data_path = Path(args.data)
    if not data_path.exists():
        print(f"Error: Data file not found: {data_path}")
        return

    dataset = EmbeddingDataset(data_path, dimension=args.dimension, max_vectors=args.max_vectors)
    matrix = dataset.get_matrix()

    print(f"\nDataset: {data_path.name}")
    print(f"Vectors: {len(dataset):,} x {dataset.dimension} ({dataset.total_bytes/1024/1024:.2f} MB)")

    if args.config:
        config = CompressionConfig.from_yaml(args.config)
    else:
        config = CompressionConfig(target_dimension=args.target_dimension)
    codec = VectorCodec(config)

    print("\n" + "=" * 70)
    print("Preview (first vector)")
    print("=" * 70)
    preview = codec.preview(matrix[0]).unwrap()
    print(f"  DCT:          {preview.dct_compressed_size:,} bytes "
          f"(energy {preview.dct_energy_retained:.4f})")
    print(f"  FFT:          {preview.fft_compressed_size:,} bytes "
          f"(energy {preview.fft_energy_retained:.4f})")
    print(f"  QuantizedDCT: {preview.quantized_dct_size:,} bytes")
    print(f"  Recommended:  {preview.recommended_method.label}")

    results = {}
    methods = [CompressionMethod.DCT, CompressionMethod.FFT, CompressionMethod.QUANTIZED_DCT]

    print("\n" + "=" * 70)
    print("Method Benchmarks")
    print("=" * 70)

    for method in tqdm(methods, desc="Benchmarking"):
        results[method.label] = benchmark_method(codec, matrix, method, pairs=args.pairs)

    print("\n" + "=" * 70)
    print("Summary")
    print("=" * 70)

    print(f"\n{'Method':<14} {'Factor':<9} {'Energy':<9} {'Recon E':<9} {'Recon cos':<11} "
          f"{'Sim MAE':<9} {'Vec/s':<10}")
    print("-" * 70)

    for r in results.values():
        print(f"{r['name']:<14} {r['factor']:<9.2f} {r['energy_retained']:<9.4f} "
              f"{r['reconstruction_energy']:<9.4f} "
              f"{r['reconstruction_cosine']:<11.4f} {r['similarity_mae']:<9.4f} "
              f"{r['vectors_per_s']:<10.1f}")

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w') as f:
            json.dump(results, f, indent=2)
        print(f"\nResults saved to: {output_path}")

    print("\n" + "=" * 70)


def main():
    parser = argparse.ArgumentParser(description="Evaluate and benchmark OVC")
    parser.add_argument('--data', type=str, required=True,
                        help='Path to embedding file (.npy, .npz or raw float32)')
    parser.add_argument('--dimension', type=int, default=None,
                        help='Vector dimension for raw float32 files')
    parser.add_argument('--config', type=str, default=None,
                        help='Path to YAML codec config')
    parser.add_argument('--target-dimension', type=int, default=128,
                        help='Coefficients/bins to keep when no config is given')
    parser.add_argument('--max-vectors', type=int, default=1000,
                        help='Maximum vectors to evaluate')
    parser.add_argument('--pairs', type=int, default=200,
                        help='Random pairs used to measure similarity error')
    parser.add_argument('--output', type=str, default=None,
                        help='Output path for JSON results')

    args = parser.parse_args()
    run_benchmark(args)


if __name__ == "__main__":
    main()
