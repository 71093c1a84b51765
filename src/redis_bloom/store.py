"""
Redis protocol for a named Bloom filter.

Two keys back each filter: `<name>` holds the bit array and `<name>:config`
holds the sizing hash. Initialization runs as one Lua script so that
concurrent callers agree on a single winner. Bit reads and writes for a call
are sent as one MULTI/EXEC pipeline.
"""
from typing import Any, List, Sequence, Tuple

import structlog

from redis_bloom.config import FilterConfig
from redis_bloom.errors import BatchFailureError, NotInitializedError
from redis_bloom.params import calculate_parameters


INIT_SCRIPT = """
if redis.call('exists', KEYS[1]) == 1 then
  return 0
end
redis.call('del', KEYS[2])
redis.call('hset', KEYS[1],
  'size', ARGV[1],
  'hashIterations', ARGV[2],
  'expectedInsertions', ARGV[3],
  'falseProbability', ARGV[4])
redis.call('setbit', KEYS[2], 0, 0)
local ttl = tonumber(ARGV[5])
if ttl > 0 then
  redis.call('expire', KEYS[1], ttl)
  redis.call('expire', KEYS[2], ttl)
end
return 1
"""


def config_key_for(name: str) -> str:
    """Key of the configuration hash for a filter name."""
    return f"{name}:config"


class FilterStore:
    """Reads and writes one filter's keys in Redis."""

    def __init__(self, redis_client, name: str, ttl_seconds: int = 0):
        """
        Initialize the store adapter.

        Args:
            redis_client: `redis.asyncio.Redis` (or compatible) client
            name: Filter name, used as the bit array key
            ttl_seconds: Expiry applied to both keys at creation (0 = none)
        """
        self.redis = redis_client
        self.name = name
        self.key = name
        self.config_key = config_key_for(name)
        self.ttl_seconds = int(ttl_seconds or 0)
        self.logger = structlog.get_logger()
        self._init_script = self.redis.register_script(INIT_SCRIPT)

    async def initialize(
        self, expected_insertions: int, false_probability: float
    ) -> Tuple[bool, FilterConfig]:
        """
        Create the filter unless it already exists.

        Returns:
            Tuple of (performed, config). `performed` is True only for the
            call that wrote the configuration; otherwise the stored
            configuration is returned.

        Raises:
            InvalidParameterError: Before any remote call, if parameters
                are out of range
        """
        size, hash_iterations = calculate_parameters(expected_insertions, false_probability)
        config = FilterConfig(
            size=size,
            hash_iterations=hash_iterations,
            expected_insertions=expected_insertions,
            false_probability=false_probability,
        )
        fields = config.to_mapping()

        result = await self._init_script(
            keys=[self.config_key, self.key],
            args=[
                fields["size"],
                fields["hashIterations"],
                fields["expectedInsertions"],
                fields["falseProbability"],
                self.ttl_seconds,
            ],
        )

        if int(result) == 1:
            self.logger.info(
                "bloom_filter_initialized",
                name=self.name,
                size=size,
                hash_iterations=hash_iterations,
                ttl=self.ttl_seconds,
            )
            return True, config

        existing = await self.read_config()
        self.logger.info(
            "bloom_filter_already_initialized",
            name=self.name,
            size=existing.size,
            hash_iterations=existing.hash_iterations,
        )
        return False, existing

    async def read_config(self) -> FilterConfig:
        """Read the configuration hash, raising NotInitializedError if absent."""
        data = await self.redis.hgetall(self.config_key)
        try:
            return FilterConfig.from_mapping(self.name, data)
        except NotInitializedError:
            self.logger.warning("bloom_filter_not_initialized", name=self.name)
            raise

    def _new_batch(self):
        pipe = self.redis.pipeline(transaction=True)
        pipe.exists(self.config_key)
        return pipe

    async def _run_batch(self, pipe, expected: int) -> List[Any]:
        """
        Execute a batch and return the results after the existence check.

        Raises:
            BatchFailureError: If no (or a short) result set comes back
            NotInitializedError: If the configuration key is gone
            redis.exceptions.RedisError: The first per-command error
        """
        results = await pipe.execute(raise_on_error=False)
        if not results or len(results) != expected + 1:
            self.logger.warning(
                "bloom_filter_batch_failed",
                name=self.name,
                expected=expected + 1,
                received=len(results) if results else 0,
            )
            raise BatchFailureError(
                f"Failed to execute pipeline for bloom filter '{self.name}'"
            )

        for result in results:
            if isinstance(result, Exception):
                raise result

        if not results[0]:
            self.logger.warning("bloom_filter_not_initialized", name=self.name)
            raise NotInitializedError(self.name)

        return results[1:]

    async def set_bits(self, indexes: Sequence[int], per_item: int) -> int:
        """
        Set every bit and count items that flipped at least one bit 0 -> 1.

        Args:
            indexes: Flat index list, `per_item` entries per item
            per_item: Number of hash iterations (k)

        Returns:
            Number of items considered newly added
        """
        pipe = self._new_batch()
        for index in indexes:
            pipe.setbit(self.key, index, 1)
        previous = await self._run_batch(pipe, len(indexes))

        added = 0
        for start in range(0, len(previous), per_item):
            if any(int(bit) == 0 for bit in previous[start:start + per_item]):
                added += 1

        self.logger.debug(
            "bloom_filter_bits_set",
            name=self.name,
            items=len(indexes) // per_item,
            added=added,
        )
        return added

    async def read_membership(self, indexes: Sequence[int], per_item: int) -> List[bool]:
        """Per-item flags, True where all of the item's bits are set."""
        pipe = self._new_batch()
        for index in indexes:
            pipe.getbit(self.key, index)
        bits = await self._run_batch(pipe, len(indexes))

        membership = [
            all(int(bit) == 1 for bit in bits[start:start + per_item])
            for start in range(0, len(bits), per_item)
        ]

        self.logger.debug(
            "bloom_filter_bits_read",
            name=self.name,
            items=len(membership),
            present=sum(membership),
        )
        return membership

    async def get_bits(self, indexes: Sequence[int], per_item: int) -> int:
        """Count items whose bits are all set."""
        return sum(await self.read_membership(indexes, per_item))

    async def bit_count(self) -> int:
        """Population count of the bit array."""
        pipe = self._new_batch()
        pipe.bitcount(self.key)
        (count,) = await self._run_batch(pipe, 1)
        return int(count)

    async def delete(self) -> bool:
        """Remove both keys. True if at least one existed."""
        removed = await self.redis.delete(self.key, self.config_key)
        self.logger.info("bloom_filter_deleted", name=self.name, removed=removed)
        return removed > 0

    async def exists(self) -> bool:
        return await self.redis.exists(self.config_key) == 1

    async def ttl(self) -> int:
        """Remaining TTL of the configuration key in seconds (-1 none, -2 missing)."""
        return int(await self.redis.ttl(self.config_key))
