"""
Redis-backed Bloom filter.

A Bloom filter is a space-efficient probabilistic data structure used to test
whether an element is a member of a set. False positive matches are possible,
but false negatives are not. This implementation keeps its bits and sizing in
Redis, so any number of processes can share one logical filter by name.
"""
import math
from typing import Any, Dict, Generic, List, Optional, Sequence, TypeVar

import redis.asyncio as aioredis

from redis_bloom.config import FilterConfig, FilterSettings
from redis_bloom.hashing import get_all_indexes
from redis_bloom.store import FilterStore


T = TypeVar("T")


class RedisBloomFilter(Generic[T]):
    """
    Probabilistic set membership backed by a Redis bitmap.

    Sizing (bit count and hash iterations) is written once by `try_init` and
    cached locally the first time it is needed. Items are mapped to bit
    positions by hashing their canonical msgpack encoding.
    """

    def __init__(self, redis_client, name: str, ttl_seconds: int = 0):
        """
        Initialize a filter handle. No remote call is made.

        Args:
            redis_client: `redis.asyncio.Redis` client
            name: Filter name; keys are `<name>` and `<name>:config`
            ttl_seconds: Expiry applied to both keys when this handle
                creates the filter (0 = no expiry)
        """
        self.name = name
        self.store = FilterStore(redis_client, name, ttl_seconds)

        self._config: Optional[FilterConfig] = None
        self._owns_client = False

    @classmethod
    def from_url(cls, url: str, name: str, ttl_seconds: int = 0) -> "RedisBloomFilter":
        """Create a filter with its own Redis connection."""
        bloom = cls(aioredis.from_url(url), name, ttl_seconds)
        bloom._owns_client = True
        return bloom

    @classmethod
    def from_settings(cls, settings: FilterSettings) -> "RedisBloomFilter":
        """Create a filter from a settings object."""
        settings.validate()
        return cls.from_url(settings.redis_url, settings.name, settings.ttl_seconds)

    async def close(self):
        """Close the Redis connection if this filter created it."""
        if self._owns_client:
            await self.store.redis.aclose()

    async def __aenter__(self) -> "RedisBloomFilter":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def _ensure_config_loaded(self) -> FilterConfig:
        if self._config is None:
            self._config = await self.store.read_config()
        return self._config

    async def try_init(self, expected_insertions: int, false_probability: float) -> bool:
        """
        Initialize the filter if it does not exist yet.

        Args:
            expected_insertions: Expected number of elements
            false_probability: Desired false positive probability in (0, 1]

        Returns:
            True if this call created the filter, False if it already
            existed (its stored sizing is loaded instead)

        Raises:
            InvalidParameterError: If parameters are invalid
        """
        performed, config = await self.store.initialize(expected_insertions, false_probability)
        self._config = config
        return performed

    async def add(self, item: T) -> bool:
        """
        Add an item.

        Returns:
            True if at least one of the item's bits was previously unset
        """
        return await self.add_all([item]) > 0

    async def add_all(self, items: Sequence[T]) -> int:
        """
        Add items in a single round trip.

        An item counts as newly added when any of its bits flips from 0 to 1.
        An item whose bits were all set already (by itself or by a collision
        with other items) is not counted, and two items hashing to the same
        bit positions look like duplicates of each other.

        Returns:
            Number of items considered newly added, in [0, len(items)]
        """
        items = list(items)
        if not items:
            return 0

        config = await self._ensure_config_loaded()
        indexes = get_all_indexes(items, config.hash_iterations, config.size)
        return await self.store.set_bits(indexes, config.hash_iterations)

    async def contains(self, item: T) -> bool:
        """
        Check if an item might be in the set.

        Returns:
            True if the item might be in the set (possible false positive),
            False if the item is definitely not in the set
        """
        return await self.contains_all([item]) > 0

    async def contains_all(self, items: Sequence[T]) -> int:
        """Count how many of the items might be in the set."""
        items = list(items)
        if not items:
            return 0

        config = await self._ensure_config_loaded()
        indexes = get_all_indexes(items, config.hash_iterations, config.size)
        return await self.store.get_bits(indexes, config.hash_iterations)

    async def contains_each(self, items: Sequence[T]) -> List[bool]:
        """
        Check several items in a single round trip.

        Returns:
            One flag per item, in order; True means the item might be present
        """
        items = list(items)
        if not items:
            return []

        config = await self._ensure_config_loaded()
        indexes = get_all_indexes(items, config.hash_iterations, config.size)
        return await self.store.read_membership(indexes, config.hash_iterations)

    async def count(self) -> int:
        """
        Approximate number of inserted items.

        Uses n* = -(m / k) * ln(1 - X / m), where X is the number of set bits.
        A completely full bitmap is treated as having m - 1 bits set.
        """
        config = await self._ensure_config_loaded()
        bit_count = await self.store.bit_count()
        return self._estimate(config, bit_count)

    @staticmethod
    def _estimate(config: FilterConfig, bit_count: int) -> int:
        size = config.size
        bit_count = min(bit_count, size - 1)
        estimate = -(size / config.hash_iterations) * math.log(1 - bit_count / size)
        return int(math.floor(estimate + 0.5))

    async def delete(self) -> bool:
        """
        Delete the filter from Redis.

        Returns:
            True if anything was removed
        """
        removed = await self.store.delete()
        self._config = None
        return removed

    async def exists(self) -> bool:
        """Whether the filter's configuration exists in Redis."""
        return await self.store.exists()

    async def get_config(self) -> FilterConfig:
        """Read the full configuration from Redis."""
        return await self.store.read_config()

    async def get_expected_insertions(self) -> int:
        return (await self.store.read_config()).expected_insertions

    async def get_false_probability(self) -> float:
        return (await self.store.read_config()).false_probability

    def get_size(self) -> int:
        """Cached bit array size, 0 if not loaded."""
        return self._config.size if self._config else 0

    def get_hash_iterations(self) -> int:
        """Cached hash iteration count, 0 if not loaded."""
        return self._config.hash_iterations if self._config else 0

    async def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the Bloom filter.

        Returns:
            Dictionary with filter statistics
        """
        config = await self.store.read_config()
        if self._config is None:
            self._config = config
        bit_count = await self.store.bit_count()
        fill_ratio = bit_count / config.size

        return {
            'name': self.name,
            'size': config.size,
            'hash_iterations': config.hash_iterations,
            'expected_insertions': config.expected_insertions,
            'false_probability': config.false_probability,
            'bit_count': bit_count,
            'fill_ratio': fill_ratio,
            'estimated_count': self._estimate(config, bit_count),
            'current_false_positive_rate': fill_ratio ** config.hash_iterations,
            'ttl': await self.store.ttl(),
        }

    def __repr__(self) -> str:
        """String representation."""
        return (f"RedisBloomFilter(name={self.name!r}, "
                f"size={self.get_size()} bits, "
                f"hashes={self.get_hash_iterations()})")
