# tiny_digest/core/scale.py
"""
Scale functions for T-Digest compression.

A scale function maps a quantile q in [0, 1] to a "potential" value. During
compression a run of centroids may be folded into one as long as the potential
it spans stays within one unit, so the shape of the function decides where the
digest keeps fine resolution.
"""

import abc
import math
from typing import Dict, Union

from tiny_digest.core.errors import InvalidConfigurationError

# Clamp bounds for k2, which diverges at q = 0 and q = 1
K2_EPSILON = 1e-9

DEFAULT_SCALE = "k1"


def k0(quantile: float, delta: float) -> float:
    """Linear scale: uniform resolution over the whole quantile range."""
    return (delta / 2.0) * quantile


def k1(quantile: float, delta: float) -> float:
    """
    Arcsine scale: finer resolution near the tails.

    Ranges from -delta/4 at q=0 to delta/4 at q=1 and is 0 at the median.
    """
    return (delta / (2.0 * math.pi)) * math.asin(2.0 * quantile - 1.0)


def k2(quantile: float, delta: float, n: int) -> float:
    """
    Logit scale normalized by the number of samples ``n``.

    The quantile is clamped into [1e-9, 1 - 1e-9]. The ratio n/delta is
    floored at 1 so the normalizer stays positive and the function stays
    increasing for streams shorter than delta.
    """
    quantile = min(max(quantile, K2_EPSILON), 1.0 - K2_EPSILON)
    ratio = max(n / delta, 1.0)
    normalizer = delta / (4.0 * math.log(ratio) + 24.0)
    return normalizer * math.log(quantile / (1.0 - quantile))


class ScaleFunction(abc.ABC):
    """
    Strategy interface for the potential function used by compression.

    Implementations must be strictly increasing in ``quantile`` over (0, 1)
    and set a non-empty ``name``, which identifies the scale in statistics
    and serialized configurations.
    """

    name: str = ""

    @abc.abstractmethod
    def potential(self, quantile: float, delta: float, n: int) -> float:
        """
        Map a quantile to its potential.

        Args:
            quantile: Quantile in [0, 1].
            delta: Compression factor of the digest.
            n: Total number of samples summarized by the centroid list.
        """
        pass

    def __call__(self, quantile: float, delta: float, n: int) -> float:
        return self.potential(quantile, delta, n)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)


class K0Scale(ScaleFunction):
    """Linear scale function, mostly useful as a reference."""

    name = "k0"

    def potential(self, quantile: float, delta: float, n: int) -> float:
        return k0(quantile, delta)


class K1Scale(ScaleFunction):
    """Arcsine scale function, the default for compression."""

    name = "k1"

    def potential(self, quantile: float, delta: float, n: int) -> float:
        return k1(quantile, delta)


class K2Scale(ScaleFunction):
    """Size-normalized logit scale function for large streams."""

    name = "k2"

    def potential(self, quantile: float, delta: float, n: int) -> float:
        return k2(quantile, delta, n)


SCALE_FUNCTIONS: Dict[str, ScaleFunction] = {
    "k0": K0Scale(),
    "k1": K1Scale(),
    "k2": K2Scale(),
}


def get_scale_function(scale: Union[str, ScaleFunction, None] = None) -> ScaleFunction:
    """
    Resolve a scale function.

    Args:
        scale: A ScaleFunction instance, which is returned unchanged, or the
            name of a built-in one ("k0", "k1", "k2"). None selects k1.

    Raises:
        InvalidConfigurationError: If the name is unknown.
    """
    if isinstance(scale, ScaleFunction):
        return scale
    if scale is None:
        scale = DEFAULT_SCALE
    try:
        return SCALE_FUNCTIONS[scale]
    except (KeyError, TypeError):
        raise InvalidConfigurationError(
            f"Unknown scale function {scale!r}, expected one of {sorted(SCALE_FUNCTIONS)}"
        ) from None
