"""
CLI entry point for OVC decompression.

Usage:
    python -m bin.decompress input.ovc -o output.npy
"""

import argparse
import sys
from pathlib import Path

try:
    from ovc.core import CompressionConfig, VectorCodec
except ImportError as e:
    print(f"Error: Required packages not installed: {e}")
    print("Install with: pip install -r requirements.txt")
    sys.exit(1)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Decompress OVC-encoded embeddings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Decompress to a [num_vectors, dim] float32 matrix
  python -m bin.decompress embeddings.ovc -o embeddings.npy

Note: Every envelope carries its own method and parameters, so no
configuration is needed to decompress.
"""
    )

    parser.add_argument(
        "input",
        type=str,
        help="Path to compressed .ovc file"
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        required=True,
        help="Path to output .npy file"
    )

    args = parser.parse_args(argv)

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}")
        sys.exit(1)

    print("=" * 70)
    print("OVC Decompression")
    print("=" * 70)
    print(f"Input: {input_path}")
    print(f"Output: {args.output}")
    print()

    codec = VectorCodec(CompressionConfig())
    result = codec.decompress_file(input_path=input_path, output_path=args.output)

    if result.is_failure:
        print(f"\nError during decompression: {result.error}")
        sys.exit(1)

    stats = result.value

    print("=" * 70)
    print("Decompression Complete")
    print("=" * 70)
    print(f"Vectors:            {stats['num_vectors']:,}")
    print(f"Compressed size:    {stats['compressed_size']:,} bytes")
    print(f"Decompressed size:  {stats['decompressed_size']:,} bytes")
    print(f"Compression factor: {stats['factor']:.2f}x")
    print(f"Time:               {stats['decompress_time']:.2f} seconds")
    print()
    print(f"Decompressed vectors saved to: {args.output}")


if __name__ == "__main__":
    main()
