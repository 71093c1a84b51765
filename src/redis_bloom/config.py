"""
Configuration records for the Redis-backed Bloom filter.
"""
from dataclasses import dataclass, asdict
from typing import Any, Dict, Mapping, Optional
import json
import os

from redis_bloom.errors import NotInitializedError


CONFIG_FIELDS = ("size", "hashIterations", "expectedInsertions", "falseProbability")


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


@dataclass(frozen=True)
class FilterConfig:
    """Immutable sizing of a filter, stored as a hash under `<name>:config`."""

    size: int
    hash_iterations: int
    expected_insertions: int
    false_probability: float

    def to_mapping(self) -> Dict[str, str]:
        """Convert to the field map written to the store."""
        return {
            "size": str(self.size),
            "hashIterations": str(self.hash_iterations),
            "expectedInsertions": str(self.expected_insertions),
            "falseProbability": repr(float(self.false_probability)),
        }

    @classmethod
    def from_mapping(cls, name: str, data: Optional[Mapping[Any, Any]]) -> "FilterConfig":
        """
        Parse a field map read from the store.

        Raises:
            NotInitializedError: If the map is empty or a field is missing
        """
        fields = {_text(k): _text(v) for k, v in (data or {}).items()}
        if any(not fields.get(field_name) for field_name in CONFIG_FIELDS):
            raise NotInitializedError(name)

        return cls(
            size=int(fields["size"]),
            hash_iterations=int(fields["hashIterations"]),
            expected_insertions=int(fields["expectedInsertions"]),
            false_probability=float(fields["falseProbability"]),
        )


@dataclass
class FilterSettings:
    """Client-side settings for connecting to and creating a filter."""

    # Filter identity
    name: str = "bloom-filter"

    # Store connection
    redis_url: str = "redis://localhost:6379/0"

    # Creation parameters
    expected_insertions: int = 1000
    false_probability: float = 0.01
    ttl_seconds: int = 0  # 0 means no expiry

    # Logging
    log_level: str = "INFO"

    @classmethod
    def from_file(cls, path: str) -> "FilterSettings":
        """Load settings from a JSON file."""
        with open(path, "r") as f:
            data = json.load(f)
        return cls(**data)

    @classmethod
    def from_env(cls, **overrides) -> "FilterSettings":
        """Build settings from REDIS_BLOOM_* environment variables."""
        defaults = cls()
        data = {
            "name": os.getenv("REDIS_BLOOM_NAME", defaults.name),
            "redis_url": os.getenv("REDIS_BLOOM_URL", defaults.redis_url),
            "ttl_seconds": int(os.getenv("REDIS_BLOOM_TTL", str(defaults.ttl_seconds))),
            "log_level": os.getenv("REDIS_BLOOM_LOG_LEVEL", defaults.log_level),
        }
        data.update(overrides)
        return cls(**data)

    def to_file(self, path: str):
        """Save settings to a JSON file."""
        with open(path, "w") as f:
            json.dump(asdict(self), f, indent=2)

    def validate(self) -> bool:
        """Validate settings."""
        if not self.name:
            raise ValueError("name must not be empty")

        if self.expected_insertions <= 0:
            raise ValueError("expected_insertions must be positive")

        if not (0.0 < self.false_probability <= 1.0):
            raise ValueError("false_probability must be between 0 and 1")

        if self.ttl_seconds < 0:
            raise ValueError("ttl_seconds must not be negative")

        return True
