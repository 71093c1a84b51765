"""
Example: two handles sharing one Redis-backed Bloom filter.
"""
import asyncio

import redis.asyncio as redis

from redis_bloom import RedisBloomFilter, FilterSettings


async def main():
    """Add from one handle and query from another."""
    settings = FilterSettings(name="example-visitors", ttl_seconds=600)

    writer = RedisBloomFilter.from_settings(settings)
    reader = RedisBloomFilter(redis.from_url(settings.redis_url), settings.name)

    async with writer:
        created = await writer.try_init(10_000, 0.01)
        print(f"Created: {created} ({writer!r})")

        visitors = [f"visitor-{i}" for i in range(100)]
        added = await writer.add_all(visitors)
        print(f"Newly added: {added}")

        print(f"visitor-7 seen: {await reader.contains('visitor-7')}")
        print(f"stranger seen: {await reader.contains('stranger')}")
        print(f"Estimated visitors: {await reader.count()}")

        await writer.delete()

    await reader.store.redis.aclose()


if __name__ == "__main__":
    asyncio.run(main())
