# temporal_facts/scoring/conflicts.py

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from ..models import (
    CandidateKind,
    ConflictAction,
    ConflictResolution,
    QueryType,
    RankedCandidate,
)
from ..temporal.policies import is_ephemeral_fact_type
from .query_type import resolve_query_type

logger = logging.getLogger(__name__)

# Jaccard overlap of content tokens above which two candidates compete.
CONFLICT_OVERLAP_THRESHOLD = 0.3
# Tokens of this length or shorter ("I", "am", "the") are ignored.
MIN_TOKEN_LENGTH = 3
# Score gap under which a decision is flagged as ambiguous.
AMBIGUITY_MARGIN = 0.1

Decision = tuple[RankedCandidate, RankedCandidate, str]
ConflictRule = Callable[[RankedCandidate, RankedCandidate], "Decision | None"]


def _tokens(content: str) -> set[str]:
    return {t for t in content.lower().split() if len(t) > MIN_TOKEN_LENGTH}


def detect_conflict(a: RankedCandidate, b: RankedCandidate) -> bool:
    """Heuristic: two candidates talk about the same thing if their key terms overlap."""
    a_terms = _tokens(a.content)
    b_terms = _tokens(b.content)
    union = a_terms | b_terms
    if not union:
        return False
    return len(a_terms & b_terms) / len(union) > CONFLICT_OVERLAP_THRESHOLD


# ---------------------------------------------------------------------- #
# Rules: each returns (winner, loser, reason) or None to fall through
# ---------------------------------------------------------------------- #


def _is_ephemeral(c: RankedCandidate) -> bool:
    return c.kind == CandidateKind.FACT and is_ephemeral_fact_type(c.metadata.fact_type)


def _ephemeral_first(a: RankedCandidate, b: RankedCandidate) -> Decision | None:
    a_eph, b_eph = _is_ephemeral(a), _is_ephemeral(b)
    if a_eph and not b_eph:
        return a, b, "Ephemeral fact preferred for stateful query"
    if b_eph and not a_eph:
        return b, a, "Ephemeral fact preferred for stateful query"
    return None


def _more_recent(a: RankedCandidate, b: RankedCandidate) -> Decision | None:
    if a.metadata.age_seconds < b.metadata.age_seconds:
        return a, b, "More recent candidate preferred"
    return b, a, "More recent candidate preferred"


def _memory_first(a: RankedCandidate, b: RankedCandidate) -> Decision | None:
    if a.kind == CandidateKind.MEMORY and b.kind != CandidateKind.MEMORY:
        return a, b, "Memory preferred for preference/identity query"
    if b.kind == CandidateKind.MEMORY and a.kind != CandidateKind.MEMORY:
        return b, a, "Memory preferred for preference/identity query"
    return None


def _memory_confidence(a: RankedCandidate, b: RankedCandidate) -> Decision | None:
    if a.kind != CandidateKind.MEMORY or b.kind != CandidateKind.MEMORY:
        return None
    if a.metadata.confidence > b.metadata.confidence:
        return a, b, "Higher confidence preferred"
    if b.metadata.confidence > a.metadata.confidence:
        return b, a, "Higher confidence preferred"
    return None


def _higher_score(a: RankedCandidate, b: RankedCandidate) -> Decision | None:
    if a.normalized_score > b.normalized_score:
        return a, b, "Higher score preferred"
    return b, a, "Higher score preferred"


CONFLICT_RULES: dict[QueryType, tuple[ConflictRule, ...]] = {
    QueryType.STATEFUL: (_ephemeral_first, _more_recent),
    QueryType.PREFERENCE: (_memory_first, _memory_confidence, _higher_score),
    QueryType.IDENTITY: (_memory_first, _memory_confidence, _higher_score),
    QueryType.GENERAL: (_higher_score,),
}


def resolve_conflict(
    a: RankedCandidate,
    b: RankedCandidate,
    query_type: str | QueryType,
) -> ConflictResolution:
    decision: Decision | None = None
    for rule in CONFLICT_RULES[resolve_query_type(query_type)]:
        decision = rule(a, b)
        if decision is not None:
            break
    if decision is None:
        decision = _higher_score(a, b)

    winner, loser, reason = decision
    if abs(a.normalized_score - b.normalized_score) < AMBIGUITY_MARGIN:
        action = ConflictAction.FLAG_AMBIGUOUS
    else:
        action = ConflictAction.DROP_LOSER
    return ConflictResolution(winner=winner, loser=loser, reason=reason, action=action)


def resolve_conflicts(
    candidates: Sequence[RankedCandidate],
    query_type: str | QueryType,
) -> list[RankedCandidate]:
    """
    Pairwise scan; the loser of every conflicting pair is dropped.
    Ambiguous decisions still drop the loser and are only logged.
    """
    if len(candidates) <= 1:
        return list(candidates)

    query_type = resolve_query_type(query_type)
    dropped: set[int] = set()
    resolved: list[RankedCandidate] = []

    for i, current in enumerate(candidates):
        if i in dropped:
            continue

        keep = True
        for j in range(i + 1, len(candidates)):
            if j in dropped:
                continue
            other = candidates[j]
            if not detect_conflict(current, other):
                continue

            resolution = resolve_conflict(current, other, query_type)
            if resolution.action == ConflictAction.FLAG_AMBIGUOUS:
                logger.debug(
                    "[Scoring] Ambiguous conflict (%s): %r vs %r",
                    resolution.reason,
                    current.content,
                    other.content,
                )

            if resolution.loser is current:
                keep = False
                break
            dropped.add(j)

        if keep:
            resolved.append(current)

    return resolved
