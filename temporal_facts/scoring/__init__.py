# temporal_facts/scoring/__init__.py

from .conflicts import detect_conflict, resolve_conflict, resolve_conflicts
from .context import format_for_llm, get_relevant_context
from .query_type import detect_query_type, resolve_query_type
from .ranking import (
    fact_to_candidate,
    memory_to_candidate,
    merge_and_rank,
    normalize_scores,
    rank_facts,
    recency_boost,
    score_fact,
    score_memory,
    type_boost,
)

__all__ = [
    "detect_conflict",
    "detect_query_type",
    "fact_to_candidate",
    "format_for_llm",
    "get_relevant_context",
    "memory_to_candidate",
    "merge_and_rank",
    "normalize_scores",
    "rank_facts",
    "recency_boost",
    "resolve_conflict",
    "resolve_conflicts",
    "resolve_query_type",
    "score_fact",
    "score_memory",
    "type_boost",
]
