"""Compress embedding files with OVC."""

import argparse
import sys
from pathlib import Path

try:
    from ovc.core import CompressionConfig, CompressionMethod, VectorCodec
except ImportError as e:
    print(f"Error: Required packages not installed: {e}")
    print("Install with: pip install -r requirements.txt")
    sys.exit(1)


def build_config(args) -> CompressionConfig:
    """Merges the optional YAML config with command-line overrides."""
    if args.config:
        config = CompressionConfig.from_yaml(args.config).to_dict()
    else:
        config = CompressionConfig().to_dict()

    overrides = {
        'target_dimension': args.target_dimension,
        'energy_threshold': args.energy_threshold,
        'fft_strategy': args.strategy,
        'quantization_bits': args.bits,
    }
    for key, value in overrides.items():
        if value is not None:
            config['compression'][key] = value
    if args.workers is not None:
        config['batch']['max_workers'] = args.workers

    return CompressionConfig.from_dict(config)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Compress embedding vectors using OVC spectral compression",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Compress a matrix of embeddings with the default DCT settings
  python -m bin.compress embeddings.npy -o embeddings.ovc

  # Adaptive DCT keeping 95% of the energy
  python -m bin.compress embeddings.npy -o embeddings.ovc --target-dimension 0

  # FFT with bins shared across the whole file
  python -m bin.compress embeddings.npy -o embeddings.ovc --method fft --strategy highest_variance

  # Raw float32 dump of 768-dim vectors
  python -m bin.compress vectors.f32 -o vectors.ovc --dimension 768
"""
    )

    parser.add_argument(
        "input",
        type=str,
        help="Path to embedding file (.npy, .npz or raw float32)"
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        required=True,
        help="Path to output compressed file (.ovc)"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file (see configs/default.yaml)"
    )
    parser.add_argument(
        "-m", "--method",
        type=str,
        default=None,
        help="dct, fft, quantized_dct or adaptive (default: from config)"
    )
    parser.add_argument(
        "--target-dimension",
        type=int,
        default=None,
        help="Coefficients/bins to keep; 0 selects adaptive DCT"
    )
    parser.add_argument(
        "--energy-threshold",
        type=float,
        default=None,
        help="Energy fraction kept by adaptive DCT"
    )
    parser.add_argument(
        "--strategy",
        type=str,
        default=None,
        help="FFT bin selection: low_frequency, highest_magnitude, highest_variance, adaptive"
    )
    parser.add_argument(
        "--bits",
        type=int,
        choices=[8, 16],
        default=None,
        help="Bit depth for quantized_dct"
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Thread pool size for batch compression"
    )
    parser.add_argument(
        "--dimension",
        type=int,
        default=None,
        help="Vector dimension (required for raw float32 input)"
    )
    parser.add_argument(
        "--max-vectors",
        type=int,
        default=None,
        help="Maximum vectors to compress (for testing on large files)"
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=256,
        help="Vectors compressed per batch (default: 256)"
    )

    args = parser.parse_args(argv)

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}")
        sys.exit(1)

    try:
        config = build_config(args)
        method = CompressionMethod.parse(args.method) if args.method else None
    except (OSError, ValueError) as e:
        print(f"Error: Invalid configuration: {e}")
        sys.exit(1)

    print("=" * 70)
    print("OVC Compression")
    print("=" * 70)
    print(f"Input: {input_path}")
    print(f"Output: {args.output}")
    print(f"Method: {(method or config.default_method).label}")
    print(f"Target dimension: {config.target_dimension or 'adaptive'}")
    print()

    codec = VectorCodec(config)
    result = codec.compress_file(
        input_path=input_path,
        output_path=args.output,
        method=method,
        dimension=args.dimension,
        max_vectors=args.max_vectors,
        batch_size=args.batch_size,
        show_progress=True
    )

    if result.is_failure:
        print(f"\nError during compression: {result.error}")
        sys.exit(1)

    stats = result.value

    print()
    print("=" * 70)
    print("Compression Complete")
    print("=" * 70)
    print(f"Vectors:           {stats['vectors']:,} x {stats['dimension']}")
    print(f"Original size:     {stats['original_size']:,} bytes")
    print(f"Compressed size:   {stats['compressed_size']:,} bytes")
    print(f"Compression ratio: {stats['ratio']:.4f} ({stats['factor']:.2f}x)")
    print(f"Space savings:     {stats['savings_pct']:.2f}%")
    print(f"Energy retained:   {stats['average_energy_retained']:.4f} (average)")
    for name, count in sorted(stats['method_breakdown'].items()):
        print(f"  {name:<16} {count:,} vectors")
    print(f"Time:              {stats['compress_time']:.2f} seconds")
    print()
    print(f"Compressed file saved to: {args.output}")


if __name__ == "__main__":
    main()
