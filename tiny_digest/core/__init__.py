"""
Core functionality for TinyDigest.

The centroid codec lives in ``tiny_digest.core.codec`` and is imported from
there directly, since it depends on the algorithm types.
"""

from tiny_digest.core.base import QuantileEstimator, StreamSummary
from tiny_digest.core.config import DigestConfig
from tiny_digest.core.errors import (
    CodecError,
    CompressionOverflowError,
    EmptyDigestError,
    InvalidConfigurationError,
    TDigestError,
)
from tiny_digest.core.scale import (
    K0Scale,
    K1Scale,
    K2Scale,
    ScaleFunction,
    get_scale_function,
)

__all__ = [
    # Base classes
    "StreamSummary",
    "QuantileEstimator",
    # Configuration
    "DigestConfig",
    # Scale functions
    "ScaleFunction",
    "K0Scale",
    "K1Scale",
    "K2Scale",
    "get_scale_function",
    # Errors
    "TDigestError",
    "InvalidConfigurationError",
    "EmptyDigestError",
    "CompressionOverflowError",
    "CodecError",
]
