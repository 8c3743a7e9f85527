"""Tests for the TemporalFacts facade and its configuration."""

from typing import List

import pytest
import pytest_asyncio

from temporal_facts import TemporalFacts
from temporal_facts.config import DB_PATH_ENV, DEFAULT_CONFIG, resolve_config
from temporal_facts.embedding import cosine_similarity
from temporal_facts.models import (
    ExtractedFactCandidate,
    FactQuery,
    FactScope,
    FactType,
    FactUpdate,
)
from temporal_facts.temporal.validity import now_ms

from .conftest import TEST_KEY

CONFIG = {"sqlite_path": ":memory:", "kdf_iterations": 1000}


class KeywordEmbedder:
    """Two-dimensional embedding: (mentions TypeScript, mentions Berlin)."""

    def embed(self, text: str) -> List[float]:
        lowered = text.lower()
        return [
            1.0 if "typescript" in lowered else 0.0,
            1.0 if "berlin" in lowered else 0.0,
        ]

    def embed_many(self, texts: List[str]) -> List[List[float]]:
        return [self.embed(t) for t in texts]


@pytest_asyncio.fixture
async def facts():
    tf = await TemporalFacts.open(CONFIG)
    yield tf
    await tf.close()


class TestConfig:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv(DB_PATH_ENV, raising=False)
        assert resolve_config() == DEFAULT_CONFIG
        assert DEFAULT_CONFIG["sqlite_path"] == "~/.temporal_facts/facts.db"
        assert DEFAULT_CONFIG["kdf_iterations"] == 100_000

    def test_env_override(self, monkeypatch, tmp_path):
        path = str(tmp_path / "env.db")
        monkeypatch.setenv(DB_PATH_ENV, path)

        assert resolve_config()["sqlite_path"] == path
        assert resolve_config({"sqlite_path": ":memory:"})["sqlite_path"] == ":memory:"
        assert resolve_config({"sqlite_path": None})["sqlite_path"] == path

    def test_casts(self):
        config = resolve_config({"context_limit": "5", "min_candidate_confidence": "0.4"})
        assert config["context_limit"] == 5
        assert config["min_candidate_confidence"] == 0.4


class TestCosineSimilarity:
    def test_identical_and_orthogonal(self):
        assert cosine_similarity([1.0, 2.0], [1.0, 2.0]) == pytest.approx(1.0)
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0

    def test_mismatched_or_empty(self):
        assert cosine_similarity([1.0], [1.0, 0.0]) == 0.0
        assert cosine_similarity([], []) == 0.0

    def test_zero_vector(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0


class TestWrites:
    @pytest.mark.asyncio
    async def test_ingest(self, facts):
        result = await facts.ingest(
            TEST_KEY,
            [
                ExtractedFactCandidate(
                    subject="user", predicate="is_debugging", object="login", type=FactType.STATE
                ),
                ExtractedFactCandidate(
                    subject="user", predicate="is_debugging", object="login", type=FactType.STATE
                ),
            ],
            source_id="msg-1",
        )

        assert result.created == 1
        assert result.deduplicated == 1
        assert result.facts[0].scope == FactScope.SESSION
        assert result.facts[0].source_id == "msg-1"

    @pytest.mark.asyncio
    async def test_ingest_nothing(self, facts):
        result = await facts.ingest(TEST_KEY, [])
        assert result.created == 0
        assert result.facts == []

    @pytest.mark.asyncio
    async def test_add_fact(self, facts):
        fact_id = await facts.add_fact(
            TEST_KEY, "user", "prefers", "TypeScript", confidence=0.9, session_id="s-1"
        )

        fact = await facts.get(TEST_KEY, fact_id)
        assert fact.object == "TypeScript"
        assert fact.confidence == pytest.approx(0.9)
        assert fact.scope == FactScope.ACCOUNT
        assert fact.type == FactType.PREFERENCE
        assert fact.metadata == {"sessionId": "s-1"}
        assert fact.entities == ["typescript"]

    @pytest.mark.asyncio
    async def test_add_fact_supersedes(self, facts):
        await facts.add_fact(TEST_KEY, "user", "prefers", "JavaScript")
        await facts.add_fact(TEST_KEY, "user", "prefers", "TypeScript")

        current = await facts.get_current(TEST_KEY, "user", "prefers")
        assert current.object == "TypeScript"
        history = await facts.query(
            TEST_KEY, FactQuery(subject="user", predicate="prefers", include_historical=True)
        )
        assert len(history) == 2


class TestSearch:
    @pytest.mark.asyncio
    async def test_caller_similarities(self, facts):
        ts_id = await facts.add_fact(TEST_KEY, "user", "prefers", "TypeScript")
        city_id = await facts.add_fact(
            TEST_KEY, "user", "lives_in", "Berlin", type=FactType.IDENTITY
        )

        ranked = await facts.search_relevant_facts(
            TEST_KEY, "Where do I live?", similarities={city_id: 1.0, ts_id: 0.0}
        )

        assert [f.id for f, _ in ranked] == [city_id, ts_id]

    @pytest.mark.asyncio
    async def test_embedder_similarities(self):
        async with await TemporalFacts.open(CONFIG, embedder=KeywordEmbedder()) as tf:
            ts_id = await tf.add_fact(
                TEST_KEY, "user", "lives_in", "TypeScript land", type=FactType.IDENTITY
            )
            await tf.add_fact(TEST_KEY, "user", "works_at", "Berlin", type=FactType.IDENTITY)

            ranked = await tf.search_relevant_facts(TEST_KEY, "tell me about typescript")

        assert ranked[0][0].id == ts_id

    @pytest.mark.asyncio
    async def test_other_subject_and_limit(self, facts):
        await facts.add_fact(TEST_KEY, "user", "prefers", "TypeScript")
        await facts.add_fact(TEST_KEY, "user", "uses", "Vim")
        await facts.add_fact(TEST_KEY, "team", "uses", "GitHub")

        assert len(await facts.search_relevant_facts(TEST_KEY, "anything", limit=1)) == 1
        team = await facts.search_relevant_facts(TEST_KEY, "anything", subject="team")
        assert [f.object for f, _ in team] == ["GitHub"]

    @pytest.mark.asyncio
    async def test_no_facts(self, facts):
        assert await facts.search_relevant_facts(TEST_KEY, "anything") == []

    @pytest.mark.asyncio
    async def test_score_memories_with_given_similarities(self, facts, memory):
        now = now_ms()
        a = memory(id="a", salience=0.5, last_seen_at=now)
        b = memory(id="b", salience=0.5, last_seen_at=now)

        scored = dict((m.id, s) for m, s in facts.score_memories("q", [a, b], {"a": 1.0}, now=now))

        assert scored["a"] - scored["b"] == pytest.approx(0.5)


class TestContextForLlm:
    @pytest.mark.asyncio
    async def test_stateful_context_records_retrieval(self, facts, memory):
        fact_id = await facts.add_fact(
            TEST_KEY, "user", "is_working_on", "billing API", type=FactType.STATE
        )

        result = await facts.get_relevant_context_for_llm(
            TEST_KEY,
            "What am I working on right now?",
            memories=[memory(content="Lives in Berlin")],
        )

        assert result.formatted == (
            "## Current Session Facts\n"
            "- user is_working_on billing API\n"
            "\n"
            "## Long-term Memories\n"
            "- Lives in Berlin"
        )
        fact = await facts.get(TEST_KEY, fact_id)
        assert fact.retrieval_count == 1
        assert fact.last_retrieved_at is not None

    @pytest.mark.asyncio
    async def test_memory_wins_preference_conflict(self, facts, memory):
        fact_id = await facts.add_fact(TEST_KEY, "user", "prefers", "TypeScript")

        result = await facts.get_relevant_context_for_llm(
            TEST_KEY,
            "Which language do I prefer?",
            memories=[memory(content="User prefers JavaScript for scripting")],
        )

        assert [c.content for c in result.candidates] == [
            "User prefers JavaScript for scripting"
        ]
        assert result.formatted == (
            "## Long-term Memories\n- User prefers JavaScript for scripting"
        )
        assert (await facts.get(TEST_KEY, fact_id)).retrieval_count == 0

    @pytest.mark.asyncio
    async def test_empty_context(self, facts):
        result = await facts.get_relevant_context_for_llm(TEST_KEY, "hello")
        assert result.candidates == []
        assert result.formatted == ""


class TestPassThroughs:
    @pytest.mark.asyncio
    async def test_update_invalidate_delete(self, facts):
        fact_id = await facts.add_fact(TEST_KEY, "user", "prefers", "TypeScript")

        await facts.update(TEST_KEY, fact_id, FactUpdate(confidence=0.2))
        assert (await facts.get(TEST_KEY, fact_id)).confidence == pytest.approx(0.2)

        created = await facts.get(TEST_KEY, fact_id)
        await facts.invalidate(fact_id, at=created.valid_from + 1)
        assert await facts.get_current(TEST_KEY, "user", "prefers") is None

        entries = await facts.timeline(TEST_KEY, "user")
        assert [e.change_type for e in entries] == ["created", "invalidated"]

        await facts.delete(fact_id)
        assert await facts.get(TEST_KEY, fact_id) is None

    @pytest.mark.asyncio
    async def test_stats_and_clear(self, facts):
        await facts.add_fact(TEST_KEY, "user", "prefers", "TypeScript")
        await facts.add_fact(TEST_KEY, "user", "lives_in", "Berlin")

        stats = await facts.stats()
        assert stats.total_facts == 2
        assert stats.active_facts == 2

        assert await facts.clear_all() == 2


class TestPersistence:
    @pytest.mark.asyncio
    async def test_reopen_file_store(self, tmp_path):
        config = {"sqlite_path": str(tmp_path / "facts.db"), "kdf_iterations": 1000}

        async with await TemporalFacts.open(config) as tf:
            await tf.add_fact(TEST_KEY, "user", "lives_in", "Berlin")

        async with await TemporalFacts.open(config) as tf:
            current = await tf.get_current(TEST_KEY, "user", "lives_in")

        assert current.object == "Berlin"

    @pytest.mark.asyncio
    async def test_env_path_used(self, tmp_path, monkeypatch):
        path = tmp_path / "from-env" / "facts.db"
        monkeypatch.setenv(DB_PATH_ENV, str(path))

        async with await TemporalFacts.open({"kdf_iterations": 1000}) as tf:
            await tf.add_fact(TEST_KEY, "user", "prefers", "TypeScript")

        assert path.exists()
