"""
Redis Bloom Filter - a Bloom filter whose bits live in Redis.

This package provides a shared, probabilistic set-membership structure:
- Optimal sizing from expected insertions and false positive probability
- One XXH3-128 hash per item with extended double hashing
- Atomic, race-free initialization through a Lua script
- Batched add/contains in a single round trip
- Cardinality estimation from the bit population
- Optional expiry for the whole filter
"""

__version__ = "0.2.0"

from redis_bloom.bloom_filter import RedisBloomFilter
from redis_bloom.config import FilterConfig, FilterSettings
from redis_bloom.errors import (
    BloomFilterError,
    InvalidParameterError,
    NotInitializedError,
    BatchFailureError,
)

__all__ = [
    "RedisBloomFilter",
    "FilterConfig",
    "FilterSettings",
    "BloomFilterError",
    "InvalidParameterError",
    "NotInitializedError",
    "BatchFailureError",
]
