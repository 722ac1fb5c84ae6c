"""
Identifier generation for records.

Ids are opaque: a base36 millisecond timestamp followed by a random base36
suffix. Only uniqueness within a collection matters.
"""
import secrets
import time

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


def generate_id() -> str:
    """Return a new collision-resistant record id."""
    timestamp = _base36(time.time_ns() // 1_000_000)
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(12))
    return timestamp + suffix
