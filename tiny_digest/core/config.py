"""
Configuration for TDigest instances.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Union

from tiny_digest.core.errors import InvalidConfigurationError
from tiny_digest.core.scale import DEFAULT_SCALE, SCALE_FUNCTIONS, ScaleFunction

DEFAULT_DELTA = 100.0
DEFAULT_BUFFER_SIZE = 500


@dataclass(frozen=True)
class DigestConfig:
    """
    Settings that control how a TDigest ingests and compresses values.

    None of these fields are part of the binary wire format; a digest decoded
    from bytes starts with the defaults unless a config is passed explicitly.

    Attributes:
        delta: Compression factor. Larger values keep more centroids and give
            more accurate quantiles.
        buffered: If True, values are batched in a buffer of ``buffer_size``
            before being merged into the centroid list.
        buffer_size: Buffer capacity. Only used when ``buffered`` is True.
        scale: Scale function used by compression, either the name of a
            built-in one ("k0", "k1" or "k2") or a ScaleFunction instance.
    """

    delta: float = DEFAULT_DELTA
    buffered: bool = False
    buffer_size: int = DEFAULT_BUFFER_SIZE
    scale: Union[str, ScaleFunction] = DEFAULT_SCALE

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """
        Check the configuration.

        Raises:
            InvalidConfigurationError: If any field is out of range.
        """
        if isinstance(self.delta, bool) or not isinstance(self.delta, (int, float)):
            raise InvalidConfigurationError(
                f"delta must be a number, got {type(self.delta).__name__}"
            )
        if not math.isfinite(self.delta) or self.delta <= 0:
            raise InvalidConfigurationError(
                f"delta must be a positive finite number, got {self.delta}"
            )
        if isinstance(self.buffer_size, bool) or not isinstance(self.buffer_size, int):
            raise InvalidConfigurationError(
                f"buffer_size must be an integer, got {type(self.buffer_size).__name__}"
            )
        if self.buffer_size < 0:
            raise InvalidConfigurationError(
                f"buffer_size cannot be negative, got {self.buffer_size}"
            )
        if self.buffered and self.buffer_size <= 0:
            raise InvalidConfigurationError(
                "buffer_size must be positive when buffering is enabled"
            )
        if isinstance(self.scale, ScaleFunction):
            if not isinstance(self.scale.name, str) or not self.scale.name:
                raise InvalidConfigurationError(
                    f"{type(self.scale).__name__} must define a non-empty name"
                )
        elif not isinstance(self.scale, str) or self.scale not in SCALE_FUNCTIONS:
            raise InvalidConfigurationError(
                f"Unknown scale function {self.scale!r}, "
                f"expected one of {sorted(SCALE_FUNCTIONS)}"
            )

    @property
    def scale_name(self) -> str:
        """Name of the configured scale function."""
        if isinstance(self.scale, ScaleFunction):
            return self.scale.name
        return self.scale

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the configuration to a dictionary.

        The scale is written by name. A custom ScaleFunction cannot be
        restored by ``from_dict`` and has to be passed in again.
        """
        return {
            "delta": self.delta,
            "buffered": self.buffered,
            "buffer_size": self.buffer_size,
            "scale": self.scale_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DigestConfig":
        """
        Create a configuration from a dictionary, using defaults for missing keys.

        Raises:
            InvalidConfigurationError: If the dictionary has unknown keys or
                invalid values.
        """
        unknown = set(data) - {"delta", "buffered", "buffer_size", "scale"}
        if unknown:
            raise InvalidConfigurationError(f"Unknown configuration keys: {unknown}")
        return cls(**data)
