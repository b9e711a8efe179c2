"""
Exception types raised by TinyDigest.

Every error derives from TDigestError so callers can catch the whole family,
while each one also derives from the closest builtin so code written against
plain ValueError / IndexError keeps working.
"""


class TDigestError(Exception):
    """Base class for all TinyDigest errors."""


class InvalidConfigurationError(TDigestError, ValueError):
    """Raised when a digest is configured with invalid parameters."""


class EmptyDigestError(TDigestError, IndexError):
    """Raised when a query needs at least one centroid but the digest has none."""


class CompressionOverflowError(TDigestError, ArithmeticError):
    """
    Raised when the cumulative quantile exceeds 1.0 during compression.

    This means the centroid counts do not add up or the list was not sorted.
    It signals a bug upstream and is never caught inside the library.
    """


class CodecError(TDigestError, ValueError):
    """Raised when a byte sequence cannot be decoded into centroids."""
