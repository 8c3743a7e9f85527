# temporal_facts/temporal/engine.py

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel

from ..models import (
    ExtractedFactCandidate,
    FactScope,
    FactSource,
    FactType,
    NewFact,
    TemporalFact,
)
from ..storage.sqlite_store import FactStore  # noqa: TC001
from .policies import default_half_life
from .validity import now_ms

logger = logging.getLogger(__name__)


class IngestResult(BaseModel):
    facts: list[TemporalFact] = []
    created: int = 0
    deduplicated: int = 0
    skipped: int = 0


class TemporalEngine:
    """
    Responsible for:
    - Mapping ExtractedFactCandidate / manual input -> NewFact (type, scope, decay)
    - Writing batches through FactStore.upsert (dedup + superseding old facts)
    """

    def __init__(
        self,
        fact_store: FactStore,
        min_candidate_confidence: float = 0.0,
        extracted_scope: FactScope = FactScope.SESSION,
        manual_scope: FactScope = FactScope.ACCOUNT,
    ) -> None:
        self.fact_store = fact_store
        self.min_candidate_confidence = min_candidate_confidence
        self.extracted_scope = FactScope(extracted_scope)
        self.manual_scope = FactScope(manual_scope)

    # ------------------------------------------------------------------ #
    # Mapping
    # ------------------------------------------------------------------ #

    def from_candidate(
        self,
        candidate: ExtractedFactCandidate,
        source_id: str | None = None,
        now: int | None = None,
    ) -> NewFact:
        """
        Candidate fields are stored as given; only scope, validity window
        and decay_half_life are filled in here.
        """
        now = now_ms() if now is None else now
        return NewFact(
            subject=candidate.subject,
            predicate=candidate.predicate,
            object=candidate.object,
            valid_from=now,
            valid_to=None,
            last_confirmed_at=now,
            type=candidate.type,
            confidence=candidate.confidence,
            source=candidate.source,
            scope=self.extracted_scope,
            ttl_seconds=None,  # soft decay only
            decay_half_life=default_half_life(candidate.type),
            entities=list(candidate.entities),
            source_id=source_id,
        )

    def manual_fact(
        self,
        subject: str,
        predicate: str,
        object: str,
        confidence: float = 1.0,
        type: FactType = FactType.PREFERENCE,
        source: FactSource = FactSource.USER,
        scope: FactScope | None = None,
        entities: list[str] | None = None,
        ttl_seconds: int | None = None,
        session_id: str | None = None,
        metadata: dict[str, Any] | None = None,
        now: int | None = None,
    ) -> NewFact:
        """
        Defaults for facts typed in by hand rather than extracted.
        Entities default to the object's words longer than two characters.
        """
        now = now_ms() if now is None else now
        if entities is None:
            entities = [w for w in object.lower().split() if len(w) > 2]
        if session_id:
            metadata = {**(metadata or {}), "sessionId": session_id}

        return NewFact(
            subject=subject,
            predicate=predicate,
            object=object,
            valid_from=now,
            valid_to=None,
            last_confirmed_at=now,
            type=type,
            confidence=confidence,
            source=source,
            scope=scope or self.manual_scope,
            ttl_seconds=ttl_seconds,
            decay_half_life=default_half_life(type),
            entities=entities,
            metadata=metadata,
        )

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def process_write_batch(
        self,
        key: str,
        candidates: list[ExtractedFactCandidate],
        source_id: str | None = None,
    ) -> IngestResult:
        """
        Upsert each candidate.

        - candidates under min_candidate_confidence are skipped
        - a candidate whose write fails is logged and skipped; the rest proceed
        """
        result = IngestResult()
        now = now_ms()

        for candidate in candidates:
            if candidate.confidence < self.min_candidate_confidence:
                result.skipped += 1
                continue

            new_fact = self.from_candidate(candidate, source_id=source_id, now=now)
            try:
                fact_id, created = await self.fact_store.upsert(key, new_fact)
                stored = await self.fact_store.get(key, fact_id)
            except Exception as e:
                logger.warning(
                    "[TemporalEngine] Failed to store %s %s: %s",
                    candidate.subject,
                    candidate.predicate,
                    e,
                )
                result.skipped += 1
                continue

            if created:
                result.created += 1
            else:
                result.deduplicated += 1
            if stored is not None:
                result.facts.append(stored)

        logger.info(
            "[TemporalEngine] Facts: %d created, %d deduplicated, %d skipped",
            result.created,
            result.deduplicated,
            result.skipped,
        )
        return result
