# temporal_facts/temporal/policies.py

from ..models import FactType

# Soft-decay half-lives by fact type, in seconds.
FACT_TYPE_HALF_LIVES: dict[FactType, int] = {
    FactType.ERROR: 3600,             # 1 hour
    FactType.STATE: 14400,            # 4 hours
    FactType.PLAN: 86400,             # 24 hours
    FactType.DECISION: 86400,         # 24 hours
    FactType.OBSERVATION: 604800,     # 7 days
    FactType.PREFERENCE: 2592000,     # 30 days
    FactType.IDENTITY: 7776000,       # 90 days
}

EPHEMERAL_FACT_TYPES = frozenset(
    {FactType.ERROR, FactType.STATE, FactType.PLAN, FactType.DECISION}
)
STABLE_FACT_TYPES = frozenset({FactType.PREFERENCE, FactType.IDENTITY})

# Confidence added when an identical SPO triple is seen again.
CONFIRMATION_BOOST = 0.05


def default_half_life(fact_type: FactType) -> int:
    return FACT_TYPE_HALF_LIVES[FactType(fact_type)]


def is_ephemeral_fact_type(fact_type: FactType | None) -> bool:
    return fact_type in EPHEMERAL_FACT_TYPES


def is_stable_fact_type(fact_type: FactType | None) -> bool:
    return fact_type in STABLE_FACT_TYPES


def clamp_confidence(value: float) -> float:
    return max(0.0, min(1.0, value))
