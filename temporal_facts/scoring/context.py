# temporal_facts/scoring/context.py

from __future__ import annotations

from collections.abc import Sequence

from ..models import CandidateKind, QueryType, RankedCandidate
from .conflicts import resolve_conflicts
from .query_type import resolve_query_type
from .ranking import ScoredFact, ScoredMemory, merge_and_rank

FACTS_HEADER = "## Current Session Facts"
MEMORIES_HEADER = "## Long-term Memories"


def get_relevant_context(
    scored_facts: Sequence[ScoredFact],
    scored_memories: Sequence[ScoredMemory],
    query_or_type: str | QueryType,
    limit: int = 10,
    now: int | None = None,
) -> list[RankedCandidate]:
    """
    Merge both pools, drop conflict losers, keep the top `limit`.

    Twice the limit is merged first so that dropped losers can be backfilled.
    """
    query_type = resolve_query_type(query_or_type)
    merged = merge_and_rank(scored_facts, scored_memories, query_type, limit * 2, now=now)
    return resolve_conflicts(merged, query_type)[:limit]


def format_for_llm(candidates: Sequence[RankedCandidate]) -> str:
    if not candidates:
        return ""

    fact_lines = [f"- {c.content}" for c in candidates if c.kind == CandidateKind.FACT]
    memory_lines = [f"- {c.content}" for c in candidates if c.kind == CandidateKind.MEMORY]

    sections = []
    if fact_lines:
        sections.append("\n".join([FACTS_HEADER, *fact_lines]))
    if memory_lines:
        sections.append("\n".join([MEMORIES_HEADER, *memory_lines]))
    return "\n\n".join(sections)
