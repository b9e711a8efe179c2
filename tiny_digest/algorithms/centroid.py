# tiny_digest/algorithms/centroid.py

import logging
import math
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union, overload

from tiny_digest.core.errors import CompressionOverflowError, EmptyDigestError
from tiny_digest.core.scale import ScaleFunction, get_scale_function

logger = logging.getLogger(__name__)


class Centroid:
    """A cluster of ``count`` samples summarized by their mean."""

    __slots__ = ["_count", "_mean"]

    def __init__(self, count: int, mean: float):
        """
        Initialize a centroid.

        Raises:
            ValueError: If count is not a positive integer.
        """
        if isinstance(count, bool) or not isinstance(count, int):
            raise ValueError(f"Centroid count must be an integer, got {count!r}")
        if count <= 0:
            raise ValueError(f"Centroid count must be positive, got {count}")
        self._count = count
        self._mean = float(mean)

    @classmethod
    def from_value(cls, value: float) -> "Centroid":
        """Wrap a single sample as a weight-1 centroid."""
        return cls(1, value)

    @property
    def count(self) -> int:
        return self._count

    @property
    def mean(self) -> float:
        return self._mean

    def weight(self) -> float:
        """Return the sum of the samples in the centroid (mean * count)."""
        return self._mean * self._count

    def merge_with(self, other: "Centroid") -> "Centroid":
        """
        Return the centroid summarizing the samples of both centroids.

        The mean is moved toward ``other`` by its share of the combined count,
        so large means do not overflow the way a sum of weights would.
        """
        count = self._count + other._count
        mean = self._mean + (other._mean - self._mean) * other._count / count
        if not math.isfinite(mean):
            # The difference overflows for huge means of opposite sign
            mean = self._mean * (self._count / count) + other._mean * (
                other._count / count
            )
        return Centroid(count, mean)

    def __lt__(self, other: "Centroid") -> bool:
        """Allow centroids to be sorted by mean value."""
        return self._mean < other._mean

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Centroid):
            return NotImplemented
        return self._count == other._count and self._mean == other._mean

    def __hash__(self) -> int:
        return hash((self._count, self._mean))

    def __repr__(self) -> str:
        return f"Centroid(count={self._count}, mean={self._mean:.4g})"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the centroid to a dictionary."""
        return {"count": self._count, "mean": self._mean}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Centroid":
        """Deserialize a centroid from a dictionary."""
        if "count" not in data or "mean" not in data:
            raise ValueError("Centroid dictionary missing 'count' or 'mean'")
        return cls(data["count"], data["mean"])


class CentroidList:
    """
    Centroids kept in ascending order of mean.

    Instances are never modified after construction: merge and compress
    return new lists. The constructor does not sort; use ``from_unsorted``
    for arbitrary input.
    """

    __slots__ = ["_items"]

    def __init__(self, centroids: Optional[Iterable[Centroid]] = None):
        self._items: List[Centroid] = list(centroids) if centroids is not None else []

    @classmethod
    def from_unsorted(cls, centroids: Iterable[Centroid]) -> "CentroidList":
        """Build a list from centroids in any order (stable sort by mean)."""
        return cls(sorted(centroids, key=lambda c: c.mean))

    @classmethod
    def from_values(cls, values: Iterable[float]) -> "CentroidList":
        """Build a list of weight-1 centroids, one per value, sorted by value."""
        return cls(Centroid.from_value(v) for v in sorted(values))

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Centroid]:
        return iter(self._items)

    @overload
    def __getitem__(self, index: int) -> Centroid: ...

    @overload
    def __getitem__(self, index: slice) -> List[Centroid]: ...

    def __getitem__(self, index: Union[int, slice]) -> Union[Centroid, List[Centroid]]:
        return self._items[index]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CentroidList):
            return self._items == other._items
        if isinstance(other, (list, tuple)):
            return self._items == list(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"CentroidList({self._items!r})"

    def first(self) -> Centroid:
        """
        Return the centroid with the smallest mean.

        Raises:
            EmptyDigestError: If the list is empty.
        """
        if not self._items:
            raise EmptyDigestError("Centroid list is empty")
        return self._items[0]

    def last(self) -> Centroid:
        """
        Return the centroid with the largest mean.

        Raises:
            EmptyDigestError: If the list is empty.
        """
        if not self._items:
            raise EmptyDigestError("Centroid list is empty")
        return self._items[-1]

    def total_count(self) -> int:
        """Return the number of samples summarized by the list."""
        return sum(c.count for c in self._items)

    def is_sorted(self) -> bool:
        """Check that means are non-decreasing."""
        items = self._items
        return all(items[i].mean <= items[i + 1].mean for i in range(len(items) - 1))

    def merge(self, other: "CentroidList") -> "CentroidList":
        """
        Interleave two sorted lists into one sorted list.

        No centroids are combined, so the result holds every centroid of both
        inputs. On equal means the centroid from ``other`` comes first.
        """
        mine = self._items
        theirs = other._items
        merged: List[Centroid] = []

        i = j = 0
        while i < len(mine) and j < len(theirs):
            if mine[i].mean < theirs[j].mean:
                merged.append(mine[i])
                i += 1
            else:
                merged.append(theirs[j])
                j += 1

        merged.extend(mine[i:])
        merged.extend(theirs[j:])
        return CentroidList(merged)

    def compress(
        self, delta: float, scale: Optional[ScaleFunction] = None
    ) -> "CentroidList":
        """
        Fold adjacent centroids together so the list size stays bounded.

        A single pass from the lowest mean upward. A centroid is absorbed into
        the previous output centroid while the potential spanned since the
        last boundary stays within one unit; otherwise it starts a new output
        centroid.

        Args:
            delta: Compression factor. The output holds roughly delta / 2
                centroids with the k1 scale.
            scale: Scale function; k1 when omitted.

        Returns:
            A new, compressed CentroidList.

        Raises:
            CompressionOverflowError: If the cumulative quantile exceeds 1.0,
                meaning the list is corrupted.
        """
        if not self._items:
            return self

        if scale is None:
            scale = get_scale_function()

        total_size = self.total_count()
        compressed: List[Centroid] = [self._items[0]]
        accumulated_size = self._items[0].count
        min_potential = scale(0.0, delta, total_size)

        for centroid in self._items[1:]:
            quotient_index = (accumulated_size + centroid.count) / total_size
            if quotient_index > 1.0:
                raise CompressionOverflowError(
                    f"Cumulative quantile {quotient_index} exceeds 1.0 "
                    f"(accumulated={accumulated_size}, total={total_size})"
                )

            if scale(quotient_index, delta, total_size) - min_potential <= 1:
                compressed[-1] = compressed[-1].merge_with(centroid)
            else:
                compressed.append(centroid)
                min_potential = scale(
                    accumulated_size / total_size, delta, total_size
                )

            accumulated_size += centroid.count

        logger.debug(
            "Compressed %d centroids into %d (delta=%s, scale=%s)",
            len(self._items),
            len(compressed),
            delta,
            scale.name,
        )
        return CentroidList(compressed)

    def to_list(self) -> List[Dict[str, Any]]:
        """Serialize the centroids to a list of dictionaries."""
        return [c.to_dict() for c in self._items]

    @classmethod
    def from_list(cls, data: Iterable[Dict[str, Any]]) -> "CentroidList":
        """Deserialize centroids produced by ``to_list``, sorting them by mean."""
        return cls.from_unsorted(Centroid.from_dict(c) for c in data)
