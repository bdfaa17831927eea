"""
Compression events and the statistics folded from them.

Every compression produces an immutable VectorCompressionEvent. Statistics
are never accumulated in place: get_stats() recomputes them from whatever
sequence of events the caller supplies, so any stored log can be replayed.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional

from ovc.utils.metrics import percent_savings


@dataclass(frozen=True)
class VectorCompressionEvent:
    """
    Record of one compression operation.

    Attributes:
        method: Method label ('DCT', 'FFT' or 'QuantizedDCT')
        original_bytes: Size of the raw float32 vector
        compressed_bytes: Size of the framed envelope
        energy_retained: Fraction of energy kept, in [0, 1]
        timestamp: UTC time of the operation
        metadata: Read-only extra details (dimension, coefficient count, ...)
    """

    method: str
    original_bytes: int
    compressed_bytes: int
    energy_retained: float
    timestamp: datetime
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'metadata', MappingProxyType(dict(self.metadata)))

    @property
    def compression_ratio(self) -> float:
        if self.original_bytes <= 0 or self.compressed_bytes <= 0:
            return 1.0
        return self.original_bytes / self.compressed_bytes

    @classmethod
    def create(
        cls,
        method: str,
        original_bytes: int,
        compressed_bytes: int,
        energy_retained: float,
        metadata: Optional[Dict[str, Any]] = None
    ) -> "VectorCompressionEvent":
        """Builds an event stamped with the current UTC time."""
        return cls(
            method=method,
            original_bytes=original_bytes,
            compressed_bytes=compressed_bytes,
            energy_retained=energy_retained,
            timestamp=datetime.now(timezone.utc),
            metadata=metadata or {},
        )


@dataclass(frozen=True)
class VectorCompressionStats:
    """Aggregate view of a sequence of compression events."""

    vectors_compressed: int = 0
    total_original_bytes: int = 0
    total_compressed_bytes: int = 0
    average_energy_retained: float = 0.0
    method_breakdown: Mapping[str, int] = field(default_factory=dict)
    first_compression_at: Optional[datetime] = None
    last_compression_at: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, 'method_breakdown', MappingProxyType(dict(self.method_breakdown)))

    @property
    def average_compression_ratio(self) -> float:
        if self.total_compressed_bytes == 0:
            return 1.0
        return self.total_original_bytes / self.total_compressed_bytes

    @property
    def space_saved_bytes(self) -> int:
        return self.total_original_bytes - self.total_compressed_bytes

    @property
    def percent_savings(self) -> float:
        return percent_savings(self.total_original_bytes, self.total_compressed_bytes)


def get_stats(events: Iterable[VectorCompressionEvent]) -> VectorCompressionStats:
    """
    Folds a sequence of events into statistics.

    Pure: the same events always give the same result, and no state is
    kept between calls.

    Args:
        events: Events in any order

    Returns:
        VectorCompressionStats (all zeros for an empty sequence)
    """
    count = 0
    total_original = 0
    total_compressed = 0
    energy_sum = 0.0
    breakdown: Dict[str, int] = {}
    first = None
    last = None

    for event in events:
        count += 1
        total_original += event.original_bytes
        total_compressed += event.compressed_bytes
        energy_sum += event.energy_retained
        breakdown[event.method] = breakdown.get(event.method, 0) + 1
        if first is None or event.timestamp < first:
            first = event.timestamp
        if last is None or event.timestamp > last:
            last = event.timestamp

    if count == 0:
        return VectorCompressionStats()

    return VectorCompressionStats(
        vectors_compressed=count,
        total_original_bytes=total_original,
        total_compressed_bytes=total_compressed,
        average_energy_retained=energy_sum / count,
        method_breakdown=breakdown,
        first_compression_at=first,
        last_compression_at=last,
    )
