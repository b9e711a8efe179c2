"""
Base classes and interfaces for TinyDigest summaries.

This module defines the abstract base classes that streaming summaries
implement so they share one interface for updating, querying, merging and
serialization. It also provides the benchmarking hooks used to measure
update cost.
"""

import abc
import json
import sys
import time
from collections import deque
from typing import Any, Dict, Generic, List, Optional, Sequence, TypeVar, Union

from tiny_digest.core.errors import CodecError

T = TypeVar("T")  # Type for the items being processed
R = TypeVar("R")  # Type for the result of queries


class StreamSummary(Generic[T, R], abc.ABC):
    """
    Abstract base class for streaming summaries.

    Subclasses implement updating with new items, querying, merging and
    dictionary conversion. Serialization to JSON or binary, memory estimation
    and performance statistics are provided here.
    """

    def __init__(self) -> None:
        self._items_processed = 0

        # Performance tracking attributes
        self._last_update_time: float = 0.0
        self._total_update_time: float = 0.0
        self._update_count: int = 0

        self._track_recent_updates: bool = False
        self._recent_update_times: Optional[deque] = None
        self._max_update_history: int = 100

    @abc.abstractmethod
    def update(self, item: T) -> None:
        """
        Update the summary with a new item from the stream.

        Subclasses call this once per accepted item to keep the processed
        count in step.
        """
        self._items_processed += 1

    def _record_update_time(self, started_at: float) -> None:
        """Record the duration of an update that began at ``started_at``."""
        if not self._track_recent_updates:
            return

        self._last_update_time = time.perf_counter() - started_at
        self._total_update_time += self._last_update_time
        self._update_count += 1
        if self._recent_update_times is not None:
            self._recent_update_times.append(self._last_update_time)

    @abc.abstractmethod
    def query(self, *args: Any, **kwargs: Any) -> R:
        """Query the current state of the summary."""
        pass

    @abc.abstractmethod
    def merge(self, other: "StreamSummary[T, R]") -> "StreamSummary[T, R]":
        """
        Return a new summary combining this one with ``other``.

        Raises:
            TypeError: If other is not of the same type.
        """
        pass

    def _check_same_type(self, other: "StreamSummary[T, R]") -> None:
        """
        Check that another summary is of the same type.

        Raises:
            TypeError: If other is not of the same type.
        """
        if not isinstance(other, self.__class__):
            raise TypeError(f"Cannot merge with {other.__class__.__name__}")

    @abc.abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """Convert the summary to a dictionary for serialization."""
        pass

    def _base_dict(self) -> Dict[str, Any]:
        """Return the attributes common to all summaries."""
        return {
            "type": self.__class__.__name__,
            "items_processed": self._items_processed,
        }

    @classmethod
    @abc.abstractmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StreamSummary[T, R]":
        """Create a summary from a dictionary representation."""
        pass

    @abc.abstractmethod
    def to_bytes(self) -> bytes:
        """Encode the summary in its binary wire format."""
        pass

    @classmethod
    @abc.abstractmethod
    def from_bytes(cls, data: bytes) -> "StreamSummary[T, R]":
        """
        Decode a summary produced by ``to_bytes``.

        Raises:
            CodecError: If the bytes cannot be decoded.
        """
        pass

    def serialize(self, format: str = "json") -> Union[str, bytes]:
        """
        Serialize the summary to a string or bytes.

        Args:
            format: 'json' for a JSON string of ``to_dict()``, 'binary' for
                the bytes of ``to_bytes()``.

        Raises:
            ValueError: If the format is not supported.
        """
        if format == "json":
            return json.dumps(self.to_dict())
        elif format == "binary":
            return self.to_bytes()
        else:
            raise ValueError(f"Unsupported serialization format: {format}")

    @classmethod
    def deserialize(
        cls, data: Union[str, bytes], format: str = "json"
    ) -> "StreamSummary[T, R]":
        """
        Deserialize a summary from a string or bytes.

        Raises:
            ValueError: If the format is not supported.
        """
        if format == "json":
            if isinstance(data, bytes):
                data = data.decode("utf-8")
            return cls.from_dict(json.loads(data))
        elif format == "binary":
            if isinstance(data, str):
                raise CodecError("Binary format expects bytes, got str")
            return cls.from_bytes(data)
        else:
            raise ValueError(f"Unsupported serialization format: {format}")

    def estimate_size(self) -> int:
        """
        Estimate the current memory usage of this summary in bytes.

        Covers the object itself and the tracking structures. Subclasses add
        the size of their own data.
        """
        size = sys.getsizeof(self)

        if hasattr(self, "__dict__"):
            size += sys.getsizeof(self.__dict__)

        if self._recent_update_times is not None:
            size += sys.getsizeof(self._recent_update_times)
            size += len(self._recent_update_times) * sys.getsizeof(0.0)

        return size

    def clear(self) -> None:
        """
        Reset the summary to its initial empty state.

        Subclasses clear their own data and call ``super().clear()``.
        """
        self._items_processed = 0
        self._total_update_time = 0.0
        self._update_count = 0
        self._last_update_time = 0.0

        if self._recent_update_times is not None:
            self._recent_update_times.clear()

    def enable_performance_tracking(
        self, track_recent_updates: bool = True, max_history: int = 100
    ) -> None:
        """
        Enable timing of updates for benchmarking.

        Args:
            track_recent_updates: Whether to keep the timings of recent updates.
            max_history: Maximum number of recent updates to keep.
        """
        self._track_recent_updates = track_recent_updates
        self._max_update_history = max(1, max_history)

        if track_recent_updates and self._recent_update_times is None:
            self._recent_update_times = deque(maxlen=self._max_update_history)

    def disable_performance_tracking(self) -> None:
        """Disable performance tracking to reduce overhead."""
        self._track_recent_updates = False
        self._recent_update_times = None

    def get_performance_stats(self) -> Dict[str, Any]:
        """Return update timing statistics and memory usage."""
        stats: Dict[str, Any] = {
            "items_processed": self._items_processed,
            "memory_bytes": self.estimate_size(),
        }

        if self._update_count > 0:
            stats["avg_update_time_ns"] = (
                self._total_update_time / self._update_count
            ) * 1e9
            stats["last_update_time_ns"] = self._last_update_time * 1e9

        if self._recent_update_times:
            recent_times_ns = [t * 1e9 for t in self._recent_update_times]
            stats["recent_update_times_ns"] = recent_times_ns
            stats["min_update_time_ns"] = min(recent_times_ns)
            stats["max_update_time_ns"] = max(recent_times_ns)

        return stats

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the current state of the summary.

        Subclasses extend the dictionary with their own fields.
        """
        stats: Dict[str, Any] = {
            "type": self.__class__.__name__,
            "items_processed": self._items_processed,
            "memory_bytes": self.estimate_size(),
        }

        if self._update_count > 0:
            stats["avg_update_time_ns"] = (
                self._total_update_time / self._update_count
            ) * 1e9

        error_bounds = self.error_bounds()
        if error_bounds:
            stats.update(error_bounds)

        return stats

    def error_bounds(self) -> Dict[str, Any]:
        """Return the theoretical error characteristics of the summary."""
        return {}

    @property
    def items_processed(self) -> int:
        """Get the total number of items processed by this summary."""
        return self._items_processed


class QuantileEstimator(StreamSummary[float, float], abc.ABC):
    """
    Abstract base class for summaries that estimate quantiles of numeric streams.
    """

    REPORTED_QUANTILES = (0.5, 0.9, 0.99)

    @abc.abstractmethod
    def quantile(self, q: float) -> float:
        """
        Estimate the value below which a fraction ``q`` of the stream lies.

        Args:
            q: Quantile between 0.0 and 1.0.
        """
        pass

    @abc.abstractmethod
    def count(self) -> int:
        """Return the number of values summarized."""
        pass

    def query(self, q: float) -> float:
        """Alias for ``quantile``."""
        return self.quantile(q)

    def quantiles(self, qs: Sequence[float]) -> List[float]:
        """Estimate several quantiles at once."""
        return [self.quantile(q) for q in qs]

    def median(self) -> float:
        """Estimate the median."""
        return self.quantile(0.5)

    def get_stats(self) -> Dict[str, Any]:
        """Add the count and a few reference quantiles to the base statistics."""
        stats = super().get_stats()

        count = self.count()
        stats["count"] = count
        if count > 0:
            for q in self.REPORTED_QUANTILES:
                stats[f"p{q * 100:g}"] = self.quantile(q)

        return stats
