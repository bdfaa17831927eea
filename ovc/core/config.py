"""
Codec configuration.

Configurations are immutable and can be loaded from YAML files shaped like
configs/default.yaml:

    compression:
      target_dimension: 128
      energy_threshold: 0.95
      default_method: dct
      fft_strategy: highest_magnitude
      quantization_bits: 8
    batch:
      max_workers: 4
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .dct import SUPPORTED_BITS
from .fourier import CompressionStrategy
from .framing import CompressionMethod

DEFAULT_FFT_TARGET_DIMENSION = 128


@dataclass(frozen=True)
class CompressionConfig:
    """
    Parameters shared by every codec operation.

    Args:
        target_dimension: DCT coefficients / FFT bins to keep; 0 makes the DCT
            adaptive (the FFT then keeps DEFAULT_FFT_TARGET_DIMENSION bins)
        energy_threshold: Energy fraction targeted by adaptive DCT
        default_method: Method used when compress() is not given one
        fft_strategy: Bin selection strategy for the FFT method
        quantization_bits: Bit depth for QuantizedDCT (8 or 16)
        max_workers: Thread pool size for batch compression (None = default)
    """

    target_dimension: int = 128
    energy_threshold: float = 0.95
    default_method: CompressionMethod = CompressionMethod.DCT
    fft_strategy: CompressionStrategy = CompressionStrategy.HIGHEST_MAGNITUDE
    quantization_bits: int = 8
    max_workers: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, 'default_method', CompressionMethod.parse(self.default_method))
        object.__setattr__(self, 'fft_strategy', CompressionStrategy.parse(self.fft_strategy))

        if self.target_dimension < 0:
            raise ValueError(f"target_dimension must be >= 0, got {self.target_dimension}")
        if not 0.0 < self.energy_threshold <= 1.0:
            raise ValueError(f"energy_threshold must be in (0, 1], got {self.energy_threshold}")
        if self.quantization_bits not in SUPPORTED_BITS:
            raise ValueError(
                f"quantization_bits must be one of {SUPPORTED_BITS}, got {self.quantization_bits}"
            )
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")

    @property
    def fft_target_dimension(self) -> int:
        return self.target_dimension or DEFAULT_FFT_TARGET_DIMENSION

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "CompressionConfig":
        """
        Builds a config from a nested dictionary.

        Accepts the sectioned layout ('compression' and 'batch') or a flat
        mapping of field names. Unknown keys raise ValueError.
        """
        config = dict(config or {})
        flat: Dict[str, Any] = {}
        for section in ('compression', 'batch'):
            flat.update(config.pop(section, None) or {})
        flat.update(config)

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(flat) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

        return cls(**flat)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "CompressionConfig":
        with open(path) as f:
            return cls.from_dict(yaml.safe_load(f) or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            'compression': {
                'target_dimension': self.target_dimension,
                'energy_threshold': self.energy_threshold,
                'default_method': self.default_method.name.lower(),
                'fft_strategy': self.fft_strategy.name.lower(),
                'quantization_bits': self.quantization_bits,
            },
            'batch': {
                'max_workers': self.max_workers,
            },
        }
