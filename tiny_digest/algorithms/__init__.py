"""
Algorithm implementations for TinyDigest.
"""

from tiny_digest.algorithms.centroid import Centroid, CentroidList
from tiny_digest.algorithms.tdigest import TDigest

__all__ = [
    "Centroid",
    "CentroidList",
    "TDigest",
]
