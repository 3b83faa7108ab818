"""Deterministic user bucketing.

32-bit polynomial rolling hash (h * 31 + unit) over UTF-16 code units,
wrapped to a signed 32-bit integer after every step, then abs(h) % 100.
Kept bit-for-bit so users bucketed by earlier clients keep their bucket.
"""

from __future__ import annotations

BUCKETS = 100

_MASK = 0xFFFFFFFF
_SIGN = 0x80000000


def _code_units(identifier: str):
    data = identifier.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(data), 2):
        yield int.from_bytes(data[i:i + 2], "little")


def hash_identifier(identifier: str) -> int:
    value = 0
    for unit in _code_units(identifier):
        value = (value * 31 + unit) & _MASK
    if value & _SIGN:
        value -= 1 << 32
    return value


def bucket(identifier: str) -> int:
    """Map an identifier to a stable percentile in [0, 100)."""
    return abs(hash_identifier(identifier)) % BUCKETS


def salted_bucket(identifier: str, salt: str) -> int:
    """Independent draw for the same user, e.g. one per cohort."""
    return bucket(f"{identifier}:{salt}")


def in_rollout(identifier: str, percentage: float) -> bool:
    return bucket(identifier) < percentage
