"""
Binary codec for centroid lists.

The wire format is a msgpack map with one key, ``Centroids``, holding an
array of ``{"Size": int, "Mean": float64}`` maps in ascending mean order.
Only the centroids are persisted; digest configuration and buffered values
are not part of the format.
"""

import logging
import math
from typing import Any, Iterable, List

import msgpack

from tiny_digest.algorithms.centroid import Centroid
from tiny_digest.core.errors import CodecError

logger = logging.getLogger(__name__)

CENTROIDS_KEY = "Centroids"
SIZE_KEY = "Size"
MEAN_KEY = "Mean"


def encode_centroids(centroids: Iterable[Centroid]) -> bytes:
    """
    Encode centroids into msgpack bytes.

    Means are always written as float64 so they survive a round trip
    bit for bit.
    """
    payload = {
        CENTROIDS_KEY: [
            {SIZE_KEY: c.count, MEAN_KEY: float(c.mean)} for c in centroids
        ]
    }
    data = msgpack.packb(payload, use_bin_type=True, use_single_float=False)
    logger.debug(
        "Encoded %d centroids into %d bytes", len(payload[CENTROIDS_KEY]), len(data)
    )
    return data


def decode_centroids(data: bytes) -> List[Centroid]:
    """
    Decode msgpack bytes produced by ``encode_centroids``.

    Args:
        data: The encoded bytes.

    Returns:
        The centroids in encoded order.

    Raises:
        CodecError: If the bytes are truncated, not msgpack, or do not have
            the expected layout.
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise CodecError(f"Expected bytes, got {type(data).__name__}")

    try:
        payload = msgpack.unpackb(bytes(data), raw=False)
    except (msgpack.exceptions.UnpackException, ValueError, TypeError) as e:
        raise CodecError(f"Malformed centroid payload: {e}") from e

    if not isinstance(payload, dict) or CENTROIDS_KEY not in payload:
        raise CodecError(f"Payload is not a map with a '{CENTROIDS_KEY}' key")

    entries = payload[CENTROIDS_KEY]
    # A nil array is how an empty list is encoded by some writers
    if entries is None:
        entries = []
    if not isinstance(entries, list):
        raise CodecError(f"'{CENTROIDS_KEY}' must be an array")

    centroids = [_decode_entry(index, entry) for index, entry in enumerate(entries)]
    for index in range(len(centroids) - 1):
        if centroids[index].mean > centroids[index + 1].mean:
            raise CodecError(f"Centroid {index + 1} is out of order")

    logger.debug("Decoded %d centroids from %d bytes", len(centroids), len(data))
    return centroids


def _decode_entry(index: int, entry: Any) -> Centroid:
    if not isinstance(entry, dict) or SIZE_KEY not in entry or MEAN_KEY not in entry:
        raise CodecError(
            f"Centroid {index} must be a map with '{SIZE_KEY}' and '{MEAN_KEY}'"
        )

    size = entry[SIZE_KEY]
    mean = entry[MEAN_KEY]
    if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
        raise CodecError(f"Centroid {index} has invalid size {size!r}")
    if isinstance(mean, bool) or not isinstance(mean, (int, float)):
        raise CodecError(f"Centroid {index} has invalid mean {mean!r}")
    if not math.isfinite(mean):
        raise CodecError(f"Centroid {index} has non-finite mean {mean!r}")

    return Centroid(size, mean)
