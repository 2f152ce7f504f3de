"""Helper functions for deterministic user assignment.

Rolling 31-multiplier hash over "<user_id>:<experiment_name>", then
hash % number_of_variants picks a variant from the key-sorted list.
Stored assignments were produced with 32-bit signed wraparound, so the
arithmetic here has to wrap the same way or old users would land in
different buckets.
"""
from operator import attrgetter
from typing import Sequence, TypeVar

MASK_32 = 0xFFFFFFFF
INT32_MIN = -(2 ** 31)

T = TypeVar("T")


def _utf16_units(value: str):
    """Yield UTF-16 code units (what charCodeAt-style loops walk over)."""
    data = value.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(data), 2):
        yield data[i] | (data[i + 1] << 8)


def to_int32(value: int) -> int:
    """Wrap an arbitrary int to a signed 32-bit int (two's complement)."""
    value &= MASK_32
    if value > 0x7FFFFFFF:
        value -= 0x100000000
    return value


def rolling_hash32(value: str) -> int:
    """Signed 32-bit rolling hash: h = h * 31 + unit, wrapped every step."""
    h = 0
    for unit in _utf16_units(value):
        h = to_int32(h * 31 + unit)
    return h


def hash_string(value: str) -> int:
    """
    Non-negative bucket hash for a string.

    abs(INT32_MIN) has no 32-bit counterpart; Python ints don't overflow so
    it comes out as 2**31, which is still a valid non-negative modulus input.
    """
    return abs(rolling_hash32(value))


def hash_input(user_id: str, experiment_name: str) -> str:
    """Keyed on the experiment *name*, so renaming reshuffles every bucket."""
    return f"{user_id}:{experiment_name}"


def variant_index(user_id: str, experiment_name: str, variant_count: int) -> int:
    if variant_count <= 0:
        raise ValueError("variant_count must be positive")
    return hash_string(hash_input(user_id, experiment_name)) % variant_count


def select_variant(user_id: str, experiment_name: str, variants: Sequence[T], key=attrgetter("key")) -> T:
    """
    Pick a variant for a user.

    Args:
        variants: candidate variants, in any order
        key: returns the sort key of a variant (defaults to its ``key`` attribute)

    Variants are sorted by key first so the index space doesn't depend on
    the order the database returned them in.
    """
    ordered = sorted(variants, key=key)
    return ordered[variant_index(user_id, experiment_name, len(ordered))]
