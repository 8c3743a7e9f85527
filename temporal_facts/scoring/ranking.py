# temporal_facts/scoring/ranking.py

from __future__ import annotations

from collections.abc import Sequence

from ..models import (
    CandidateKind,
    CandidateMetadata,
    FactType,
    Memory,
    QueryType,
    RankedCandidate,
    TemporalFact,
)
from ..temporal.validity import is_valid, now_ms
from .query_type import resolve_query_type
from .weights import (
    FACT_SCORING_WEIGHTS,
    FACT_TYPE_BOOST_MATRIX,
    MEMORY_HALF_LIFE_SECONDS,
    MEMORY_SCORING_WEIGHTS,
    QUERY_TYPE_WEIGHTS,
)

ScoredFact = tuple[TemporalFact, float]
ScoredMemory = tuple[Memory, float]


def recency_boost(age_seconds: float, half_life_seconds: float) -> float:
    """Exponential half-life decay: 1.0 when fresh, 0.5 after one half-life."""
    return 0.5 ** (age_seconds / half_life_seconds)


def type_boost(fact_type: FactType, query_type: QueryType) -> float:
    return FACT_TYPE_BOOST_MATRIX[FactType(fact_type)][QueryType(query_type)]


def score_fact(
    fact: TemporalFact,
    similarity: float,
    query_type: QueryType,
    now: int | None = None,
) -> float:
    """
    sim * 0.4 + recency * 0.3 + type_boost * 0.2 + confidence * 0.1
    """
    now = now_ms() if now is None else now
    age_seconds = (now - fact.last_confirmed_at) / 1000
    w = FACT_SCORING_WEIGHTS
    return (
        similarity * w["similarity"]
        + recency_boost(age_seconds, fact.decay_half_life) * w["recency"]
        + type_boost(fact.type, query_type) * w["type"]
        + fact.confidence * w["confidence"]
    )


def score_memory(memory: Memory, similarity: float, now: int | None = None) -> float:
    now = now_ms() if now is None else now
    age_seconds = (now - memory.last_seen_at) / 1000
    w = MEMORY_SCORING_WEIGHTS
    return (
        similarity * w["similarity"]
        + memory.salience * w["salience"]
        + recency_boost(age_seconds, MEMORY_HALF_LIFE_SECONDS) * w["recency"]
    )


def rank_facts(
    facts: Sequence[TemporalFact],
    similarities: Sequence[float],
    query_or_type: str | QueryType,
    now: int | None = None,
) -> list[ScoredFact]:
    """
    Drop expired / invalidated facts and score the rest, best first.

    similarities[i] belongs to facts[i]; a missing entry counts as 0.0.
    """
    now = now_ms() if now is None else now
    query_type = resolve_query_type(query_or_type)

    scored: list[ScoredFact] = []
    for i, fact in enumerate(facts):
        if not is_valid(fact, now):
            continue
        similarity = similarities[i] if i < len(similarities) else 0.0
        scored.append((fact, score_fact(fact, similarity, query_type, now)))

    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored


def normalize_scores(scores: Sequence[float]) -> list[float]:
    """Min-max normalize to [0, 1]; a flat pool maps to 0.5 everywhere."""
    if not scores:
        return []
    lo = min(scores)
    hi = max(scores)
    if hi == lo:
        return [0.5 for _ in scores]
    return [(s - lo) / (hi - lo) for s in scores]


def fact_to_candidate(
    fact: TemporalFact,
    normalized_score: float,
    now: int | None = None,
) -> RankedCandidate:
    now = now_ms() if now is None else now
    return RankedCandidate(
        kind=CandidateKind.FACT,
        content=f"{fact.subject} {fact.predicate} {fact.object}",
        normalized_score=normalized_score,
        metadata=CandidateMetadata(
            fact_type=fact.type,
            confidence=fact.confidence,
            age_seconds=(now - fact.last_confirmed_at) / 1000,
        ),
    )


def memory_to_candidate(
    memory: Memory,
    normalized_score: float,
    now: int | None = None,
) -> RankedCandidate:
    now = now_ms() if now is None else now
    return RankedCandidate(
        kind=CandidateKind.MEMORY,
        content=memory.content,
        normalized_score=normalized_score,
        metadata=CandidateMetadata(
            sector=memory.sector,
            confidence=memory.salience,
            age_seconds=(now - memory.last_seen_at) / 1000,
        ),
    )


def merge_and_rank(
    scored_facts: Sequence[ScoredFact],
    scored_memories: Sequence[ScoredMemory],
    query_type: str | QueryType,
    limit: int = 10,
    now: int | None = None,
) -> list[RankedCandidate]:
    """
    Normalize each pool on its own, weight it by query type, then interleave.
    """
    now = now_ms() if now is None else now
    weights = QUERY_TYPE_WEIGHTS[resolve_query_type(query_type)]

    fact_scores = normalize_scores([score for _, score in scored_facts])
    memory_scores = normalize_scores([score for _, score in scored_memories])

    candidates = [
        fact_to_candidate(fact, norm * weights["fact_weight"], now)
        for (fact, _), norm in zip(scored_facts, fact_scores)
    ]
    candidates.extend(
        memory_to_candidate(memory, norm * weights["memory_weight"], now)
        for (memory, _), norm in zip(scored_memories, memory_scores)
    )

    candidates.sort(key=lambda c: c.normalized_score, reverse=True)
    return candidates[:limit]
