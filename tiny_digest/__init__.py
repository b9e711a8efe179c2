"""
tiny-digest - Streaming quantile estimation with t-digests

tiny-digest summarizes unbounded streams of numbers in a small, mergeable
t-digest from which any quantile can be estimated.
"""

__version__ = "0.1.0"

# Import main classes to make them available at the top level
from tiny_digest.algorithms.centroid import Centroid, CentroidList
from tiny_digest.algorithms.tdigest import TDigest
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
    # Core base classes
    "StreamSummary",
    "QuantileEstimator",
    "DigestConfig",
    # Errors
    "TDigestError",
    "InvalidConfigurationError",
    "EmptyDigestError",
    "CompressionOverflowError",
    "CodecError",
    # Algorithm implementations
    "Centroid",
    "CentroidList",
    "ScaleFunction",
    "K0Scale",
    "K1Scale",
    "K2Scale",
    "get_scale_function",
    "TDigest",
]
