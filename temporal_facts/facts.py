# temporal_facts/facts.py

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

from .config import resolve_config
from .crypto.aesgcm import AesGcmCipher
from .crypto.base import Cipher  # noqa: TC001
from .embedding.similarity import Embedder, cosine_similarity
from .models import (
    CandidateKind,
    ExtractedFactCandidate,
    FactQuery,
    FactStoreStats,
    FactUpdate,
    Memory,
    RankedCandidate,
    TemporalFact,
    TimelineEntry,
)
from .scoring.context import format_for_llm, get_relevant_context
from .scoring.query_type import detect_query_type
from .scoring.ranking import ScoredFact, ScoredMemory, rank_facts, score_memory
from .storage.sqlite_store import FactStore
from .temporal.engine import IngestResult, TemporalEngine
from .temporal.validity import now_ms

logger = logging.getLogger(__name__)


class ContextResult(BaseModel):
    candidates: list[RankedCandidate] = []
    formatted: str = ""


class TemporalFacts:
    """
    Public facade.

    - ingest() runs extracted candidates through TemporalEngine + FactStore.upsert
    - search_relevant_facts() ranks the subject's active facts for a query
    - get_relevant_context_for_llm() merges facts with caller-supplied memories,
      resolves conflicts and renders the prompt block

    Similarities come from the caller (keyed by fact / memory id) or, when an
    embedder is configured, from cosine similarity of its vectors.
    """

    def __init__(
        self,
        fact_store: FactStore,
        config: dict[str, Any] | None = None,
        embedder: Embedder | None = None,
    ) -> None:
        config = resolve_config(config)

        self.fact_store = fact_store
        self.embedder = embedder
        self.default_subject: str = config["default_subject"]
        self.context_limit: int = config["context_limit"]
        self.temporal_engine = TemporalEngine(
            fact_store=fact_store,
            min_candidate_confidence=config["min_candidate_confidence"],
            extracted_scope=config["extracted_scope"],
            manual_scope=config["manual_scope"],
        )

    @classmethod
    async def open(
        cls,
        config: dict[str, Any] | None = None,
        cipher: Cipher | None = None,
        embedder: Embedder | None = None,
    ) -> TemporalFacts:
        resolved = resolve_config(config)
        cipher = cipher or AesGcmCipher(iterations=resolved["kdf_iterations"])
        store = await FactStore.open(resolved["sqlite_path"], cipher=cipher)
        return cls(store, config=resolved, embedder=embedder)

    async def close(self) -> None:
        await self.fact_store.close()

    async def __aenter__(self) -> TemporalFacts:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------ #
    # ADD
    # ------------------------------------------------------------------ #

    async def ingest(
        self,
        key: str,
        candidates: Sequence[ExtractedFactCandidate],
        source_id: str | None = None,
    ) -> IngestResult:
        """Store extracted candidates with deduplication."""
        if not candidates:
            return IngestResult()
        logger.info("[TemporalFacts] Ingesting %d fact candidates", len(candidates))
        return await self.temporal_engine.process_write_batch(
            key, list(candidates), source_id=source_id
        )

    async def add_fact(self, key: str, subject: str, predicate: str, object: str, **kwargs: Any) -> str:
        """
        Insert a manually entered fact. Keyword arguments are those of
        TemporalEngine.manual_fact (confidence, type, source, scope, ...).
        """
        new_fact = self.temporal_engine.manual_fact(subject, predicate, object, **kwargs)
        return await self.fact_store.insert(key, new_fact)

    # ------------------------------------------------------------------ #
    # SEARCH
    # ------------------------------------------------------------------ #

    def _similarities(
        self,
        query: str,
        items: Sequence[tuple[str, str]],
        given: Mapping[str, float] | None,
    ) -> list[float]:
        """items are (id, text) pairs; returns one similarity per item."""
        if given is not None:
            return [given.get(item_id, 0.0) for item_id, _ in items]
        if self.embedder is None or not items:
            return [0.0] * len(items)

        query_vec = self.embedder.embed(query)
        vectors = self.embedder.embed_many([text for _, text in items])
        return [cosine_similarity(query_vec, v) for v in vectors]

    async def search_relevant_facts(
        self,
        key: str,
        query: str,
        similarities: Mapping[str, float] | None = None,
        limit: int | None = None,
        subject: str | None = None,
    ) -> list[ScoredFact]:
        facts = await self.fact_store.get_by_subject(key, subject or self.default_subject)
        if not facts:
            return []

        sims = self._similarities(
            query,
            [(f.id, f"{f.subject} {f.predicate} {f.object}") for f in facts],
            similarities,
        )
        ranked = rank_facts(facts, sims, query)
        return ranked[: limit or self.context_limit]

    def score_memories(
        self,
        query: str,
        memories: Sequence[Memory],
        similarities: Mapping[str, float] | None = None,
        now: int | None = None,
    ) -> list[ScoredMemory]:
        now = now_ms() if now is None else now
        sims = self._similarities(query, [(m.id, m.content) for m in memories], similarities)
        return [(m, score_memory(m, sim, now)) for m, sim in zip(memories, sims)]

    async def get_relevant_context_for_llm(
        self,
        key: str,
        query: str,
        memories: Sequence[Memory] = (),
        fact_similarities: Mapping[str, float] | None = None,
        memory_similarities: Mapping[str, float] | None = None,
        limit: int | None = None,
    ) -> ContextResult:
        limit = limit or self.context_limit
        query_type = detect_query_type(query)

        scored_facts = await self.search_relevant_facts(
            key, query, similarities=fact_similarities, limit=limit
        )
        scored_memories = self.score_memories(query, memories, memory_similarities)

        candidates = get_relevant_context(scored_facts, scored_memories, query_type, limit)

        # content -> ids, to count which facts actually reached the prompt
        ids_by_content: dict[str, list[str]] = {}
        for fact, _ in scored_facts:
            ids_by_content.setdefault(f"{fact.subject} {fact.predicate} {fact.object}", []).append(
                fact.id
            )
        injected = [
            fact_id
            for c in candidates
            if c.kind == CandidateKind.FACT
            for fact_id in ids_by_content.get(c.content, [])
        ]
        if injected:
            await self.fact_store.record_retrieval(injected)

        logger.debug(
            "[TemporalFacts] %s query -> %d candidates (%d facts)",
            query_type.value,
            len(candidates),
            len(injected),
        )
        return ContextResult(candidates=candidates, formatted=format_for_llm(candidates))

    # ------------------------------------------------------------------ #
    # Store pass-throughs
    # ------------------------------------------------------------------ #

    async def get(self, key: str, fact_id: str) -> TemporalFact | None:
        return await self.fact_store.get(key, fact_id)

    async def get_current(self, key: str, subject: str, predicate: str) -> TemporalFact | None:
        return await self.fact_store.get_current(key, subject, predicate)

    async def query(self, key: str, query: FactQuery | None = None) -> list[TemporalFact]:
        return await self.fact_store.query(key, query)

    async def update(self, key: str, fact_id: str, updates: FactUpdate) -> None:
        await self.fact_store.update(key, fact_id, updates)

    async def invalidate(self, fact_id: str, at: int | None = None) -> None:
        await self.fact_store.invalidate(fact_id, at)

    async def delete(self, fact_id: str) -> None:
        await self.fact_store.delete(fact_id)

    async def timeline(self, key: str, subject: str, predicate: str | None = None) -> list[TimelineEntry]:
        return await self.fact_store.timeline(key, subject, predicate)

    async def stats(self) -> FactStoreStats:
        return await self.fact_store.stats()

    async def clear_all(self) -> int:
        return await self.fact_store.clear_all()
