"""
Item hashing and bit index generation.

Each item is serialized to a canonical msgpack encoding and hashed once with
XXH3-128. The two 64-bit halves of the digest seed an extended double hashing
scheme that yields the k bit positions of the item.
"""
import dataclasses
import math
from typing import Any, Iterable, List, Tuple

import msgpack
import xxhash


MASK_64 = (1 << 64) - 1
MASK_63 = (1 << 63) - 1

# msgpack ext type carrying ints outside the native 64-bit range
BIGINT_EXT_CODE = 1

_MIN_NATIVE_INT = -(1 << 63)
_MAX_NATIVE_INT = (1 << 64) - 1

_packer = msgpack.Packer(use_bin_type=True)


def _encode_int(value: int) -> bytes:
    if _MIN_NATIVE_INT <= value <= _MAX_NATIVE_INT:
        return _packer.pack(value)
    length = (value.bit_length() + 8) // 8
    data = value.to_bytes(length, "big", signed=True)
    return _packer.pack(msgpack.ExtType(BIGINT_EXT_CODE, data))


def _encode(value: Any) -> bytes:
    """Encode an item so that equal items always produce the same bytes."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)

    if isinstance(value, bool) or value is None:
        return _packer.pack(value)
    if isinstance(value, int):
        return _encode_int(value)
    if isinstance(value, float):
        # 1.0 == 1, so integral floats share the int encoding
        if math.isfinite(value) and value.is_integer():
            return _encode_int(int(value))
        return _packer.pack(value)
    if isinstance(value, dict):
        # Pairs are written directly so keys that encode alike are all kept
        pairs = sorted((_encode(k), _encode(v)) for k, v in value.items())
        return _packer.pack_map_header(len(pairs)) + b"".join(k + v for k, v in pairs)
    if isinstance(value, (set, frozenset)):
        members = sorted(_encode(member) for member in value)
        return _packer.pack_array_header(len(members)) + b"".join(members)
    if isinstance(value, (list, tuple)):
        members = [_encode(member) for member in value]
        return _packer.pack_array_header(len(members)) + b"".join(members)
    return _packer.pack(value)


def canonical_bytes(item: Any) -> bytes:
    """
    Serialize an item deterministically.

    Mapping keys and set members are ordered by their encoded bytes, tuples
    encode as lists and dataclasses as mappings of their fields. Integral
    floats encode as ints (so 1 and 1.0 are the same item) while bools stay
    distinct from ints. Ints outside the 64-bit range use a msgpack ext type.

    Args:
        item: str, bytes, int, float, bool, None, or a list/tuple/dict/set/
            dataclass built from those

    Returns:
        Canonical msgpack bytes

    Raises:
        TypeError: If the item contains a type msgpack cannot encode
    """
    return _encode(item)


def hash_item(item: Any) -> Tuple[int, int]:
    """Return (hash1, hash2): the high and low 64 bits of XXH3-128."""
    digest = xxhash.xxh3_128_intdigest(canonical_bytes(item))
    return digest >> 64, digest & MASK_64


def compute_indexes(hash1: int, hash2: int, iterations: int, size: int) -> List[int]:
    """
    Expand two seeds into bit positions using extended double hashing.

    The addend alternates between hash2 (even steps) and hash1 (odd steps).
    The accumulator wraps at 64 bits and its top bit is cleared before the
    modulo.
    """
    indexes = [0] * iterations
    value = hash1
    for i in range(iterations):
        indexes[i] = (value & MASK_63) % size
        if i % 2 == 0:
            value = (value + hash2) & MASK_64
        else:
            value = (value + hash1) & MASK_64
    return indexes


def get_all_indexes(items: Iterable[Any], iterations: int, size: int) -> List[int]:
    """Flat index list, `iterations` consecutive entries per item in order."""
    all_indexes: List[int] = []
    for item in items:
        hash1, hash2 = hash_item(item)
        all_indexes.extend(compute_indexes(hash1, hash2, iterations, size))
    return all_indexes
