# temporal_facts/temporal/__init__.py

from .policies import (
    FACT_TYPE_HALF_LIVES,
    is_ephemeral_fact_type,
    is_stable_fact_type,
)
from .validity import is_expired, is_invalidated, is_valid, now_ms

__all__ = [
    "FACT_TYPE_HALF_LIVES",
    "is_ephemeral_fact_type",
    "is_expired",
    "is_invalidated",
    "is_stable_fact_type",
    "is_valid",
    "now_ms",
]
