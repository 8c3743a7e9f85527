# temporal_facts/temporal/validity.py

from __future__ import annotations

import time

from ..models import TemporalFact  # noqa: TC001


def now_ms() -> int:
    return int(time.time() * 1000)


def is_expired(fact: TemporalFact, now: int | None = None) -> bool:
    """Hard TTL check. A fact is already expired at valid_from + ttl."""
    if fact.ttl_seconds is None:
        return False
    now = now_ms() if now is None else now
    return now >= fact.valid_from + fact.ttl_seconds * 1000


def is_invalidated(fact: TemporalFact, now: int | None = None) -> bool:
    """valid_to is exclusive: the fact stops holding exactly at valid_to."""
    if fact.valid_to is None:
        return False
    now = now_ms() if now is None else now
    return now >= fact.valid_to


def is_valid(fact: TemporalFact, now: int | None = None) -> bool:
    now = now_ms() if now is None else now
    return not is_expired(fact, now) and not is_invalidated(fact, now)
