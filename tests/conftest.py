"""
Pytest fixtures for temporal_facts tests.
"""

from typing import Any

import pytest
import pytest_asyncio

from temporal_facts.crypto import AesGcmCipher
from temporal_facts.models import (
    CandidateKind,
    CandidateMetadata,
    FactType,
    Memory,
    NewFact,
    RankedCandidate,
    TemporalFact,
)
from temporal_facts.storage import FactStore
from temporal_facts.temporal.validity import now_ms

TEST_KEY = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"
OTHER_KEY = "ff" * 32

HOUR_MS = 3600 * 1000


@pytest.fixture
def key() -> str:
    return TEST_KEY


@pytest.fixture
def cipher() -> AesGcmCipher:
    # low iteration count keeps the suite fast; the derivation path is the same
    return AesGcmCipher(iterations=1000)


@pytest_asyncio.fixture
async def store(cipher):
    fact_store = await FactStore.open(":memory:", cipher=cipher)
    yield fact_store
    await fact_store.close()


@pytest.fixture
def new_fact():
    """Factory for NewFact inputs (user prefers TypeScript, valid from now)."""

    def _make(**overrides: Any) -> NewFact:
        now = now_ms()
        data: dict[str, Any] = {
            "subject": "user",
            "predicate": "prefers",
            "object": "TypeScript",
            "valid_from": now,
            "valid_to": None,
            "last_confirmed_at": now,
            "type": FactType.PREFERENCE,
            "confidence": 0.8,
            "entities": ["typescript"],
        }
        data.update(overrides)
        return NewFact(**data)

    return _make


@pytest.fixture
def temporal_fact():
    """Factory for already-stored TemporalFact values used by the scoring tests."""

    def _make(**overrides: Any) -> TemporalFact:
        now = now_ms()
        data: dict[str, Any] = {
            "id": "fact-1",
            "subject": "user",
            "predicate": "prefers",
            "object": "TypeScript",
            "valid_from": now - HOUR_MS,
            "valid_to": None,
            "last_confirmed_at": now - HOUR_MS // 2,
            "last_updated": now - HOUR_MS // 2,
            "type": FactType.PREFERENCE,
            "confidence": 0.8,
            "ttl_seconds": None,
            "decay_half_life": 2592000,
            "entities": ["typescript"],
        }
        data.update(overrides)
        return TemporalFact(**data)

    return _make


@pytest.fixture
def memory():
    def _make(**overrides: Any) -> Memory:
        now = now_ms()
        data: dict[str, Any] = {
            "id": "mem-1",
            "content": "User works at a tech company",
            "sector": "semantic",
            "confidence": 0.8,
            "created_at": now - 24 * HOUR_MS,
            "last_seen_at": now - HOUR_MS,
            "salience": 0.7,
        }
        data.update(overrides)
        return Memory(**data)

    return _make


@pytest.fixture
def candidate():
    def _make(
        content: str = "user prefers TypeScript",
        kind: CandidateKind = CandidateKind.FACT,
        normalized_score: float = 0.8,
        fact_type: FactType | None = FactType.PREFERENCE,
        sector: str | None = None,
        confidence: float = 0.8,
        age_seconds: float = 1800,
    ) -> RankedCandidate:
        if kind == CandidateKind.MEMORY:
            fact_type = None
            sector = sector or "semantic"
        return RankedCandidate(
            kind=kind,
            content=content,
            normalized_score=normalized_score,
            metadata=CandidateMetadata(
                fact_type=fact_type,
                sector=sector,
                confidence=confidence,
                age_seconds=age_seconds,
            ),
        )

    return _make
