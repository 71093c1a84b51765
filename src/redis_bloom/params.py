"""
Optimal Bloom filter sizing.

    m = -n * ln(p) / (ln(2)^2)
    k = (m / n) * ln(2)
"""
import math
import sys

from redis_bloom.errors import InvalidParameterError


# Redis strings are capped at 512 MiB, so a bitmap addresses at most 2^32 bits.
MAX_SIZE = 2 ** 32

# Smallest positive double, used in place of p == 0 to avoid ln(0).
_MIN_PROBABILITY = sys.float_info.min * sys.float_info.epsilon


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def optimal_num_of_bits(n: int, p: float) -> int:
    """Calculate optimal bit array size for n insertions at probability p."""
    if p == 0:
        p = _MIN_PROBABILITY
    return int(math.floor(-n * math.log(p) / (math.log(2) ** 2)))


def optimal_num_of_hash_functions(n: int, m: int) -> int:
    """Calculate optimal number of hash iterations."""
    return max(1, _round_half_up((m / n) * math.log(2)))


def validate_false_probability(p: float) -> None:
    if not 0 < p <= 1:
        raise InvalidParameterError(
            f"Bloom filter false probability must be between 0 and 1, got {p}"
        )


def calculate_parameters(expected_insertions: int, false_probability: float):
    """
    Validate inputs and derive (size, hash_iterations).

    Args:
        expected_insertions: Expected number of elements (n)
        false_probability: Target false positive probability (p)

    Returns:
        Tuple of (size, hash_iterations)

    Raises:
        InvalidParameterError: If n or p is out of range, or the computed
            size is 0 or larger than MAX_SIZE
    """
    if isinstance(expected_insertions, bool) or not isinstance(expected_insertions, int):
        raise InvalidParameterError("expected_insertions must be an integer")
    if expected_insertions <= 0:
        raise InvalidParameterError("expected_insertions must be positive")
    validate_false_probability(false_probability)

    size = optimal_num_of_bits(expected_insertions, false_probability)
    if size == 0:
        raise InvalidParameterError(f"Bloom filter calculated size is {size}")
    if size > MAX_SIZE:
        raise InvalidParameterError(
            f"Bloom filter size can't be greater than {MAX_SIZE}. "
            f"But calculated size is {size}"
        )

    return size, optimal_num_of_hash_functions(expected_insertions, size)
