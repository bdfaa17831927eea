"""Quick demo of embedding compression."""

import numpy as np
import torch

from ovc.core import CompressionConfig, CompressionMethod, VectorCodec
from ovc.utils.metrics import cosine_similarity, evaluate_compression_performance


def create_sample_embedding(dim=768, seed=0):
    """Make a smooth fake embedding with a little noise."""
    rng = np.random.default_rng(seed)
    walk = np.cumsum(rng.normal(scale=0.05, size=dim))
    return (walk + 0.01 * rng.normal(size=dim)).astype(np.float32)


def demo_compression():
    print("=" * 70)
    print("OVC Compression Demo")
    print("=" * 70)

    codec = VectorCodec(CompressionConfig(target_dimension=0, energy_threshold=0.95))
    embedding = create_sample_embedding()
    print(f"Embedding: {embedding.shape[0]} dims, {embedding.nbytes} bytes\n")

    for method in (CompressionMethod.DCT, CompressionMethod.QUANTIZED_DCT,
                   CompressionMethod.FFT, CompressionMethod.ADAPTIVE):
        data, event = codec.compress(embedding, method).unwrap()
        restored = codec.decompress(data).unwrap()
        metrics = evaluate_compression_performance(embedding, data, restored)

        print(f"{method.label:<13} -> {event.method:<13} "
              f"{metrics['compressed_size_bytes']:>6} bytes "
              f"({metrics['compression_factor']:.2f}x), "
              f"energy {event.energy_retained:.4f}, "
              f"cosine {metrics['cosine_similarity']:.4f}")

    print()


def demo_similarity():
    print("=" * 70)
    print("Compressed-Domain Similarity")
    print("=" * 70)

    codec = VectorCodec(CompressionConfig(target_dimension=64))
    a = create_sample_embedding(seed=1)
    b = a + 0.02 * create_sample_embedding(seed=2)

    data_a, _ = codec.compress(torch.from_numpy(a)).unwrap()
    data_b, _ = codec.compress(torch.from_numpy(b)).unwrap()

    print(f"Exact cosine:      {cosine_similarity(a, b):.4f}")
    print(f"Compressed cosine: {codec.compressed_similarity(data_a, data_b).unwrap():.4f}")

    preview = codec.preview(a).unwrap()
    print(f"\nPreview recommends {preview.recommended_method.label} "
          f"(best ratio {preview.best_compression_ratio:.2f}x)")

    events = [event for _, event in codec.batch_compress([a, b]).unwrap()]
    stats = codec.get_stats(events)
    print(f"Batch of {stats.vectors_compressed}: {stats.total_original_bytes} -> "
          f"{stats.total_compressed_bytes} bytes ({stats.percent_savings:.1f}% saved)")

    print("\n" + "=" * 70)


if __name__ == "__main__":
    demo_compression()
    demo_similarity()
