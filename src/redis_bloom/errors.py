"""
Exception types raised by the Redis-backed Bloom filter.
"""


class BloomFilterError(Exception):
    """Base class for all Bloom filter errors."""


class InvalidParameterError(BloomFilterError, ValueError):
    """Raised when filter parameters are out of range."""


class NotInitializedError(BloomFilterError, LookupError):
    """Raised when the filter configuration is missing from the store."""

    def __init__(self, name: str):
        super().__init__(f"Bloom filter '{name}' is not initialized")
        self.name = name


class BatchFailureError(BloomFilterError, RuntimeError):
    """Raised when the store returns no result set for a batch."""
