"""Core codec: transforms, compressors, framing and the VectorCodec service."""

from .codec import CompressionPreview, VectorCodec, periodicity_score, select_method
from .config import CompressionConfig
from .dct import DCTCompressedVector, DCTVectorCompressor, QuantizedDCTVector
from .errors import (
    CodecError,
    DegenerateInputError,
    DimensionMismatchError,
    ErrorKind,
    InvalidFormatError,
    UnsupportedMethodCombinationError,
)
from .events import VectorCompressionEvent, VectorCompressionStats, get_stats
from .fourier import CompressedVector, CompressionStrategy, FourierVectorCompressor
from .framing import CompressionMethod, iter_envelopes, unwrap, wrap
from .result import Result
from .vectors import as_vector

__all__ = [
    "VectorCodec",
    "CompressionPreview",
    "periodicity_score",
    "select_method",
    "CompressionConfig",
    "DCTCompressedVector",
    "DCTVectorCompressor",
    "QuantizedDCTVector",
    "CodecError",
    "DegenerateInputError",
    "DimensionMismatchError",
    "ErrorKind",
    "InvalidFormatError",
    "UnsupportedMethodCombinationError",
    "VectorCompressionEvent",
    "VectorCompressionStats",
    "get_stats",
    "CompressedVector",
    "CompressionStrategy",
    "FourierVectorCompressor",
    "CompressionMethod",
    "iter_envelopes",
    "unwrap",
    "wrap",
    "Result",
    "as_vector",
]
