# tiny_digest/algorithms/tdigest.py

import logging
import math
import sys
import time
from typing import Any, Dict, Iterable, Optional, Tuple, Type, TypeVar, Union

from tiny_digest.algorithms.centroid import Centroid, CentroidList
from tiny_digest.core.base import QuantileEstimator
from tiny_digest.core.codec import decode_centroids, encode_centroids
from tiny_digest.core.config import (
    DEFAULT_BUFFER_SIZE,
    DEFAULT_DELTA,
    DigestConfig,
)
from tiny_digest.core.errors import EmptyDigestError, InvalidConfigurationError
from tiny_digest.core.scale import (
    DEFAULT_SCALE,
    K0Scale,
    K1Scale,
    K2Scale,
    ScaleFunction,
    get_scale_function,
)

logger = logging.getLogger(__name__)

# Type variable for the class itself (for from_dict)
TDigestType = TypeVar("TDigestType", bound="TDigest")


class TDigest(QuantileEstimator):
    """
    T-Digest for quantile estimation over data streams.

    The digest summarizes the stream as a list of centroids sorted by mean.
    After every merge of new data the list is compressed with a scale
    function: a run of neighbouring centroids is folded into one as long as
    the potential it covers stays within one unit. With the default arcsine
    scale (k1) the potential range is delta / 2, so the digest holds fewer
    than ceil(delta) centroids, and centroids near the tails stay small.

    Key properties:

    1. Memory is bounded by delta, not by the stream length
    2. Digests are mergeable, so streams can be summarized separately
    3. Values may be ingested one by one or batched through a buffer

    Instances are not thread-safe. Callers that share a digest between
    threads must serialize access themselves.
    """

    DEFAULT_DELTA: float = DEFAULT_DELTA
    DEFAULT_BUFFER_SIZE: int = DEFAULT_BUFFER_SIZE

    def __init__(
        self,
        delta: float = DEFAULT_DELTA,
        buffered: bool = False,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        scale: Union[str, ScaleFunction, None] = None,
        use_normalized_scale: bool = False,
    ):
        """
        Initialize an empty TDigest.

        Args:
            delta: Compression factor. Must be positive. Larger values keep
                more centroids and give more accurate estimates.
            buffered: If True, values are collected in a buffer and merged
                in sorted batches of ``buffer_size``.
            buffer_size: Buffer capacity, must be positive when buffering.
            scale: Scale function used by compression, by name ("k0", "k1",
                "k2") or as a ScaleFunction instance, which is used as given.
                Defaults to k1.
            use_normalized_scale: Shorthand for ``scale="k2"``.

        Raises:
            InvalidConfigurationError: If any parameter is invalid.
        """
        super().__init__()
        if use_normalized_scale:
            if scale is None:
                scale = "k2"
            elif not isinstance(get_scale_function(scale), K2Scale):
                raise InvalidConfigurationError(
                    f"use_normalized_scale selects k2 but scale={scale!r} was given"
                )
        if scale is None:
            scale = DEFAULT_SCALE

        self._config = DigestConfig(
            delta=delta, buffered=buffered, buffer_size=buffer_size, scale=scale
        )
        self._scale: ScaleFunction = get_scale_function(scale)
        self._centroids = CentroidList()
        self._buffer: list = []

    @classmethod
    def from_config(
        cls: Type[TDigestType], config: Optional[DigestConfig] = None
    ) -> TDigestType:
        """Create an empty digest from a DigestConfig (defaults if None)."""
        if config is None:
            config = DigestConfig()
        return cls(
            delta=config.delta,
            buffered=config.buffered,
            buffer_size=config.buffer_size,
            scale=config.scale,
        )

    @classmethod
    def from_values(
        cls: Type[TDigestType], values: Iterable[float], **kwargs: Any
    ) -> TDigestType:
        """
        Create a digest holding one weight-1 centroid per value.

        The seed centroids are sorted by value, so the digest can be queried
        and merged right away. They are not compressed until the next
        ingestion or merge.

        Args:
            values: Seed values. Non-finite values are skipped.
            **kwargs: Configuration passed to the constructor.
        """
        digest = cls(**kwargs)
        seeds = [float(v) for v in values if _is_finite_number(v)]
        digest._centroids = CentroidList.from_values(seeds)
        digest._items_processed = len(seeds)
        return digest

    @property
    def config(self) -> DigestConfig:
        return self._config

    @property
    def delta(self) -> float:
        return self._config.delta

    @property
    def buffered(self) -> bool:
        return self._config.buffered

    @property
    def buffer_size(self) -> int:
        return self._config.buffer_size

    @property
    def scale(self) -> ScaleFunction:
        return self._scale

    @property
    def centroids(self) -> Tuple[Centroid, ...]:
        """Snapshot of the centroids. Values still in the buffer are not included."""
        return tuple(self._centroids)

    @property
    def buffered_values(self) -> Tuple[float, ...]:
        """Values waiting in the buffer, in insertion order."""
        return tuple(self._buffer)

    def reconfigure(self, config: DigestConfig) -> None:
        """
        Install a new configuration.

        Used after decoding a digest from bytes, which carries no
        configuration. Pending buffered values are flushed if the new
        configuration would not take them, and are compressed with the new
        delta and scale.
        """
        config.validate()
        overflowing = bool(self._buffer) and (
            not config.buffered or len(self._buffer) >= config.buffer_size
        )
        self._config = config
        self._scale = get_scale_function(config.scale)
        if overflowing:
            self.flush()

    def update(self, item: float) -> None:
        """
        Add a value to the digest.

        Unbuffered digests merge the value and recompress immediately.
        Buffered digests hold it until the buffer is full.

        Args:
            item: Numeric value to add. Non-finite values (NaN, +/-Inf) are ignored.
        """
        if not _is_finite_number(item):
            logger.debug("Ignoring non-finite value %r", item)
            return

        started_at = time.perf_counter()
        super().update(item)
        item = float(item)

        if self._config.buffered:
            self._buffer.append(item)
            if len(self._buffer) >= self._config.buffer_size:
                self.flush()
        else:
            single = CentroidList([Centroid.from_value(item)])
            self._centroids = self._centroids.merge(single)
            self._compress()

        self._record_update_time(started_at)

    def ingest(self, value: float) -> None:
        """Alias for ``update``."""
        self.update(value)

    def flush(self) -> None:
        """
        Merge buffered values into the centroids and compress.

        Does nothing when the buffer is empty.
        """
        if not self._buffer:
            return

        batch = CentroidList.from_values(self._buffer)
        self._centroids = self._centroids.merge(batch)
        self._buffer = []
        logger.debug("Flushed %d buffered values", len(batch))
        self._compress()

    def _compress(self) -> None:
        self._centroids = self._centroids.compress(self._config.delta, self._scale)

    def merge_with(self: TDigestType, other: TDigestType, compress: bool = True) -> TDigestType:
        """
        Merge another digest into this one, in place.

        ``other`` is left unchanged; its pending buffered values are included
        without flushing it. This digest keeps its own configuration.

        Args:
            other: Digest to merge in. May be this digest itself.
            compress: Whether to compress after merging. Without compression
                the result holds every centroid of both digests.

        Returns:
            This digest, for chaining.

        Raises:
            TypeError: If ``other`` is not a TDigest.
        """
        self._check_same_type(other)
        self.flush()

        incoming = other._centroids
        if other._buffer:
            incoming = incoming.merge(CentroidList.from_values(other._buffer))

        self._centroids = self._centroids.merge(incoming)
        self._items_processed += other._items_processed
        logger.debug(
            "Merged %d centroids into digest, now %d",
            len(incoming),
            len(self._centroids),
        )

        if compress:
            self._compress()
        return self

    def merge(self: TDigestType, other: TDigestType) -> TDigestType:
        """
        Return a new digest combining this digest and ``other``.

        Neither input is modified. The result uses this digest's configuration.

        Raises:
            TypeError: If ``other`` is not a TDigest.
        """
        self._check_same_type(other)
        merged = self.copy()
        merged.merge_with(other)
        return merged

    def copy(self: TDigestType) -> TDigestType:
        """Return an independent copy of this digest."""
        clone = self.from_config(self._config)
        clone._centroids = CentroidList(list(self._centroids))
        clone._buffer = list(self._buffer)
        clone._items_processed = self._items_processed
        return clone

    def quantile(self, q: float) -> float:
        """
        Estimate the value at the given quantile.

        The first centroid covers ranks up to half its count and the last
        centroid everything past the final midpoint; in between, the estimate
        is interpolated linearly between the means of the two centroids whose
        midpoints bracket the target rank.

        Args:
            q: Target quantile between 0.0 and 1.0.

        Returns:
            Estimated value at the quantile.

        Raises:
            ValueError: If q is not between 0.0 and 1.0.
            EmptyDigestError: If the digest holds no values.
        """
        if isinstance(q, bool) or not isinstance(q, (int, float)) or not (0.0 <= q <= 1.0):
            raise ValueError(f"Quantile must be between 0.0 and 1.0, got {q!r}")

        self.flush()
        if not self._centroids:
            raise EmptyDigestError("Cannot estimate a quantile of an empty digest")

        centroids = self._centroids
        target_rank = q * centroids.total_count()

        boundary = centroids[0].count / 2.0
        if target_rank <= boundary:
            return centroids[0].mean

        for i in range(len(centroids) - 1):
            c1 = centroids[i]
            c2 = centroids[i + 1]

            interval = (c1.count + c2.count) / 2.0
            if target_rank <= boundary + interval:
                k = (target_rank - boundary) / interval
                return c1.mean * (1.0 - k) + c2.mean * k
            boundary += interval

        # Rounding can leave the target just past the last midpoint
        return centroids.last().mean

    def count(self) -> int:
        """Return the number of values summarized, flushing the buffer first."""
        self.flush()
        return self._centroids.total_count()

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize the digest to a dictionary.

        Includes the configuration and any values still in the buffer.
        """
        state = self._base_dict()
        state.update(
            {
                "config": self._config.to_dict(),
                "centroids": self._centroids.to_list(),
                "buffer": list(self._buffer),
            }
        )
        return state

    @classmethod
    def from_dict(cls: Type[TDigestType], data: Dict[str, Any]) -> TDigestType:
        """
        Deserialize a digest from a dictionary produced by ``to_dict``.

        Raises:
            ValueError: If the dictionary is missing keys or holds invalid data.
        """
        if "type" not in data:
            raise ValueError("Invalid dictionary format for TDigest. Missing 'type'")

        if data.get("type") != cls.__name__:
            raise ValueError(
                f"Dictionary represents class '{data.get('type')}' but expected '{cls.__name__}'"
            )

        required_keys = {"config", "centroids", "items_processed"}
        missing_keys = required_keys - data.keys()
        if missing_keys:
            raise ValueError(
                f"Invalid dictionary format for TDigest. Missing keys: {missing_keys}"
            )

        instance = cls.from_config(DigestConfig.from_dict(data["config"]))
        instance._items_processed = data["items_processed"]

        try:
            instance._centroids = CentroidList.from_list(data["centroids"])
        except (ValueError, KeyError, TypeError) as e:
            raise ValueError(f"Error deserializing centroids: {e}") from e

        buffer = data.get("buffer") or []
        if not all(_is_finite_number(v) for v in buffer):
            raise ValueError("Buffered values must be finite numbers")
        instance._buffer = [float(v) for v in buffer]

        return instance

    def to_bytes(self) -> bytes:
        """
        Encode the centroids with the msgpack codec.

        The buffer is flushed first. Configuration is not encoded.
        """
        self.flush()
        return encode_centroids(self._centroids)

    @classmethod
    def from_bytes(
        cls: Type[TDigestType], data: bytes, config: Optional[DigestConfig] = None
    ) -> TDigestType:
        """
        Decode a digest from bytes produced by ``to_bytes``.

        Args:
            data: Encoded centroids.
            config: Configuration for the decoded digest. Defaults are used
                when omitted, since the bytes carry none.

        Raises:
            CodecError: If the bytes are malformed.
        """
        centroids = decode_centroids(data)
        instance = cls.from_config(config)
        instance._centroids = CentroidList(centroids)
        instance._items_processed = instance._centroids.total_count()
        return instance

    def estimate_size(self) -> int:
        """Estimate the memory footprint of the digest in bytes."""
        size = super().estimate_size()

        size += sys.getsizeof(self._config)
        size += sys.getsizeof(self._centroids)
        size += sum(
            sys.getsizeof(c) + sys.getsizeof(c.mean) + sys.getsizeof(c.count)
            for c in self._centroids
        )

        size += sys.getsizeof(self._buffer)
        size += sum(sys.getsizeof(v) for v in self._buffer)

        return size

    def __len__(self) -> int:
        """Return the number of values processed by the digest."""
        return self.items_processed

    @property
    def is_empty(self) -> bool:
        """Check if the digest contains any data."""
        return self.items_processed == 0

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the current state of the digest.

        Flushes the buffer so the numbers describe every value seen.
        """
        self.flush()
        stats = super().get_stats()

        stats.update(
            {
                "delta": self._config.delta,
                "scale": self._scale.name,
                "buffered": self._config.buffered,
                "buffer_size": self._config.buffer_size,
                "num_centroids": len(self._centroids),
            }
        )

        if self._centroids:
            counts = [c.count for c in self._centroids]
            stats.update(
                {
                    "min_centroid_count": min(counts),
                    "max_centroid_count": max(counts),
                    "avg_centroid_count": sum(counts) / len(counts),
                    "min_mean": self._centroids.first().mean,
                    "max_mean": self._centroids.last().mean,
                }
            )

        return stats

    def error_bounds(self) -> Dict[str, Any]:
        """
        Report the size bound and the centroid usage of the digest.

        The k0 and k1 scales span delta / 2 units of potential, which keeps
        the number of centroids below ceil(delta). The k2 bound grows with the
        stream size and custom scales have no known bound, so for those only
        the actual number of centroids is reported.
        """
        bounds: Dict[str, Any] = {"actual_centroids": len(self._centroids)}
        if type(self._scale) not in (K0Scale, K1Scale):
            return bounds

        max_centroids = math.ceil(self._config.delta)
        bounds["max_centroids"] = max_centroids
        if self._centroids:
            bounds["centroid_utilization"] = len(self._centroids) / max_centroids
        return bounds

    def clear(self) -> None:
        """Reset the digest to its empty state, keeping the configuration."""
        super().clear()
        self._centroids = CentroidList()
        self._buffer = []


def _is_finite_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )
