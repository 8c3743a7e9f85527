# temporal_facts/scoring/weights.py

from ..models import FactType, QueryType

# How strongly each fact type is boosted for a given query type.
FACT_TYPE_BOOST_MATRIX: dict[FactType, dict[QueryType, float]] = {
    FactType.ERROR: {
        QueryType.STATEFUL: 1.0, QueryType.PREFERENCE: 0.2, QueryType.IDENTITY: 0.1, QueryType.GENERAL: 0.5,
    },
    FactType.STATE: {
        QueryType.STATEFUL: 1.0, QueryType.PREFERENCE: 0.3, QueryType.IDENTITY: 0.2, QueryType.GENERAL: 0.6,
    },
    FactType.PLAN: {
        QueryType.STATEFUL: 0.8, QueryType.PREFERENCE: 0.4, QueryType.IDENTITY: 0.3, QueryType.GENERAL: 0.5,
    },
    FactType.DECISION: {
        QueryType.STATEFUL: 0.9, QueryType.PREFERENCE: 0.4, QueryType.IDENTITY: 0.3, QueryType.GENERAL: 0.5,
    },
    FactType.OBSERVATION: {
        QueryType.STATEFUL: 0.6, QueryType.PREFERENCE: 0.5, QueryType.IDENTITY: 0.4, QueryType.GENERAL: 0.5,
    },
    FactType.PREFERENCE: {
        QueryType.STATEFUL: 0.3, QueryType.PREFERENCE: 1.0, QueryType.IDENTITY: 0.6, QueryType.GENERAL: 0.6,
    },
    FactType.IDENTITY: {
        QueryType.STATEFUL: 0.2, QueryType.PREFERENCE: 0.7, QueryType.IDENTITY: 1.0, QueryType.GENERAL: 0.5,
    },
}

# Pool weights applied after per-pool normalization in merge_and_rank.
QUERY_TYPE_WEIGHTS: dict[QueryType, dict[str, float]] = {
    QueryType.STATEFUL: {"fact_weight": 1.2, "memory_weight": 0.8},
    QueryType.PREFERENCE: {"fact_weight": 0.7, "memory_weight": 1.3},
    QueryType.IDENTITY: {"fact_weight": 0.6, "memory_weight": 1.4},
    QueryType.GENERAL: {"fact_weight": 1.0, "memory_weight": 1.0},
}

FACT_SCORING_WEIGHTS = {
    "similarity": 0.4,
    "recency": 0.3,
    "type": 0.2,
    "confidence": 0.1,
}

MEMORY_SCORING_WEIGHTS = {
    "similarity": 0.5,
    "salience": 0.3,
    "recency": 0.2,
}

MEMORY_HALF_LIFE_SECONDS = 7 * 24 * 3600
