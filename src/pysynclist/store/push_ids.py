"""Chronologically sortable push identities.

Same shape as Firebase push ids: 8 characters of millisecond timestamp
followed by 12 random characters, all drawn from an alphabet whose ASCII
order matches its numeric order.  Ids generated within the same millisecond
increment the random tail so they keep sorting in creation order.
"""

from __future__ import annotations

import secrets
import time

PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"

_last_push_ms = 0
_last_random: list[int] = [0] * 12


def generate_push_id(now_ms: int | None = None) -> str:
    """Return a new 20-character push id."""
    global _last_push_ms

    if now_ms is None:
        now_ms = int(time.time() * 1000)
    duplicate_time = now_ms == _last_push_ms
    _last_push_ms = now_ms

    timestamp_chars: list[str] = []
    remaining = now_ms
    for _ in range(8):
        timestamp_chars.append(PUSH_CHARS[remaining % 64])
        remaining //= 64
    timestamp_chars.reverse()

    if not duplicate_time:
        for i in range(12):
            _last_random[i] = secrets.randbelow(64)
    else:
        i = 11
        while i >= 0 and _last_random[i] == 63:
            _last_random[i] = 0
            i -= 1
        if i >= 0:
            _last_random[i] += 1

    return "".join(timestamp_chars) + "".join(PUSH_CHARS[n] for n in _last_random)
