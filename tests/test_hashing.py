"""
Tests for item hashing and index generation.
"""
from dataclasses import dataclass

import pytest
import xxhash

from redis_bloom.hashing import (
    MASK_64,
    canonical_bytes,
    compute_indexes,
    get_all_indexes,
    hash_item,
)


@dataclass
class Point:
    x: int
    y: int


class TestCanonicalBytes:
    """Test cases for canonical item serialization."""
    
    def test_strings_are_stable(self):
        """Test that the same string always encodes identically."""
        assert canonical_bytes("item") == canonical_bytes("item")
        assert canonical_bytes("item") != canonical_bytes("item2")
    
    def test_dict_key_order_ignored(self):
        """Test that mapping insertion order does not matter."""
        first = {"a": 1, "b": [1, 2], "c": {"x": True, "y": None}}
        second = {"c": {"y": None, "x": True}, "b": [1, 2], "a": 1}
        
        assert canonical_bytes(first) == canonical_bytes(second)
    
    def test_set_order_ignored(self):
        """Test that sets encode independently of iteration order."""
        assert canonical_bytes({3, 1, 2}) == canonical_bytes(frozenset([2, 3, 1]))
    
    def test_tuple_encodes_as_list(self):
        """Test that tuples and lists share an encoding."""
        assert canonical_bytes((1, "a")) == canonical_bytes([1, "a"])
    
    def test_dataclass_encodes_as_mapping(self):
        """Test that dataclasses are encoded by their fields."""
        assert canonical_bytes(Point(1, 2)) == canonical_bytes({"y": 2, "x": 1})
    
    def test_types_are_distinguished(self):
        """Test that values of different types do not collide."""
        assert canonical_bytes("1") != canonical_bytes(1)
        assert canonical_bytes(1) != canonical_bytes(True)
        assert canonical_bytes("a") != canonical_bytes(b"a")
    
    def test_tuple_keys(self):
        """Test mappings keyed by tuples."""
        assert canonical_bytes({(1, 2): "a", (0, 1): "b"}) == \
            canonical_bytes({(0, 1): "b", (1, 2): "a"})
    
    def test_big_ints(self):
        """Test ints outside the 64-bit range."""
        big = canonical_bytes(2 ** 70)

        assert big == canonical_bytes(2 ** 70)
        assert big != canonical_bytes(2 ** 70 + 1)
        assert big != canonical_bytes(-(2 ** 70))
        assert canonical_bytes(-(2 ** 63) - 1) != canonical_bytes(2 ** 64)
        assert canonical_bytes([2 ** 100, {"k": -(2 ** 90)}]) == \
            canonical_bytes((2 ** 100, {"k": -(2 ** 90)}))

    def test_native_int_range_edges(self):
        """Test that the largest native ints keep the plain encoding."""
        assert canonical_bytes(2 ** 64 - 1) == b"\xcf" + b"\xff" * 8
        assert canonical_bytes(-(2 ** 63)) == b"\xd3\x80" + b"\x00" * 7

    def test_integral_floats_match_ints(self):
        """Test that equal numbers share one encoding."""
        assert canonical_bytes(1.0) == canonical_bytes(1)
        assert canonical_bytes(-3.0) == canonical_bytes(-3)
        assert canonical_bytes(2.0 ** 70) == canonical_bytes(2 ** 70)
        assert canonical_bytes({"n": 2.0}) == canonical_bytes({"n": 2})
        assert canonical_bytes(1.5) != canonical_bytes(1)
        assert canonical_bytes(float("inf")) != canonical_bytes(float("-inf"))

    def test_colliding_keys_are_all_kept(self):
        """Test that keys with the same encoding do not overwrite each other."""
        mixed = canonical_bytes({(1,): "a", frozenset({1}): "b"})

        assert mixed != canonical_bytes({(1,): "b"})
        assert mixed != canonical_bytes({(1,): "a"})
        assert mixed == canonical_bytes({frozenset({1}): "b", (1,): "a"})

    def test_unsupported_type(self):
        """Test that unserializable items raise TypeError."""
        with pytest.raises(TypeError):
            canonical_bytes(object())


class TestHashItem:
    """Test cases for the 128-bit item hash."""
    
    def test_split_digest(self):
        """Test that the seeds are the two halves of one XXH3-128 digest."""
        digest = xxhash.xxh3_128_intdigest(canonical_bytes("hello"))
        hash1, hash2 = hash_item("hello")
        
        assert hash1 == digest >> 64
        assert hash2 == digest & MASK_64
        assert (hash1 << 64) | hash2 == digest
    
    def test_seeds_are_64_bit(self):
        """Test seed ranges."""
        for item in ["", "a", 42, {"k": "v"}]:
            hash1, hash2 = hash_item(item)
            assert 0 <= hash1 <= MASK_64
            assert 0 <= hash2 <= MASK_64


class TestComputeIndexes:
    """Test cases for extended double hashing."""
    
    def test_alternating_addends(self):
        """Test the index sequence on small seeds."""
        # 10, 13 (+3), 23 (+10), 26 (+3)
        assert compute_indexes(10, 3, 4, 7) == [3, 6, 2, 5]
    
    def test_top_bit_cleared_and_wraps(self):
        """Test that the accumulator wraps at 64 bits."""
        assert compute_indexes(MASK_64, 1, 2, 1000) == [807, 0]
    
    def test_indexes_in_range(self):
        """Test that all indexes fall inside the bit array."""
        for i in range(200):
            hash1, hash2 = hash_item(f"item_{i}")
            indexes = compute_indexes(hash1, hash2, 7, 9585)
            
            assert len(indexes) == 7
            assert all(0 <= index < 9585 for index in indexes)
    
    def test_single_iteration(self):
        """Test k == 1 uses only the first seed."""
        assert compute_indexes(12345, 999, 1, 100) == [45]


class TestGetAllIndexes:
    """Test cases for batch index generation."""
    
    def test_grouped_by_item(self):
        """Test that indexes are laid out k per item in call order."""
        items = ["a", "b", "c"]
        flat = get_all_indexes(items, 5, 729)
        
        assert len(flat) == 15
        for position, item in enumerate(items):
            hash1, hash2 = hash_item(item)
            assert flat[position * 5:(position + 1) * 5] == compute_indexes(hash1, hash2, 5, 729)
    
    def test_empty(self):
        """Test that no items produce no indexes."""
        assert get_all_indexes([], 5, 729) == []
