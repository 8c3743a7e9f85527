# temporal_facts/storage/sqlite_store.py

from __future__ import annotations

import asyncio
import json
import logging
import os
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import aiosqlite

from ..crypto.aesgcm import AesGcmCipher
from ..crypto.base import Cipher, EncryptedBlob
from ..errors import DecryptionError, FactNotFoundError, StoreClosedError
from ..models import (
    FactQuery,
    FactStoreStats,
    FactUpdate,
    NewFact,
    TemporalFact,
    TimelineEntry,
)
from ..temporal.policies import CONFIRMATION_BOOST, clamp_confidence, default_half_life
from ..temporal.validity import now_ms

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "~/.temporal_facts/facts.db"

_COLUMNS = (
    "id",
    "subject",
    "predicate",
    "encrypted_object",
    "iv",
    "auth_tag",
    "valid_from",
    "valid_to",
    "last_confirmed_at",
    "last_updated",
    "type",
    "confidence",
    "source",
    "scope",
    "ttl_seconds",
    "decay_half_life",
    "entities",
    "retrieval_count",
    "last_retrieved_at",
    "encrypted_metadata",
    "metadata_iv",
    "metadata_auth_tag",
    "source_id",
)


class FactStore:
    """
    SQLite-backed store of encrypted temporal facts.

    - subject / predicate / type / timestamps stay in plaintext for indexing
    - object and metadata are encrypted with the caller's key handle
    - writes are serialized and each runs in one transaction, so the
      "invalidate old active fact + insert new one" step is atomic

    Create with `await FactStore.open(...)` and release with `await store.close()`.
    """

    def __init__(self, conn: aiosqlite.Connection, cipher: Cipher) -> None:
        self._conn: aiosqlite.Connection | None = conn
        self.cipher = cipher
        self._write_lock = asyncio.Lock()

    @classmethod
    async def open(
        cls,
        path: str = DEFAULT_DB_PATH,
        cipher: Cipher | None = None,
    ) -> FactStore:
        if path != ":memory:":
            path = os.path.expanduser(path)
            parent = os.path.dirname(path)
            if parent:
                os.makedirs(parent, exist_ok=True)
        # autocommit mode; transactions are opened explicitly in _transaction()
        conn = await aiosqlite.connect(path, isolation_level=None)
        conn.row_factory = aiosqlite.Row
        store = cls(conn, cipher or AesGcmCipher())
        await store._init_schema()
        logger.debug("[FactStore] Opened %s", path)
        return store

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.debug("[FactStore] Closed")

    @property
    def closed(self) -> bool:
        return self._conn is None

    async def __aenter__(self) -> FactStore:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------ #
    # Schema & plumbing
    # ------------------------------------------------------------------ #

    def _db(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StoreClosedError("FactStore is closed")
        return self._conn

    async def _init_schema(self) -> None:
        db = self._db()
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS facts (
                id TEXT PRIMARY KEY,
                subject TEXT NOT NULL,
                predicate TEXT NOT NULL,
                encrypted_object TEXT NOT NULL,
                iv TEXT NOT NULL,
                auth_tag TEXT NOT NULL,
                valid_from INTEGER NOT NULL,
                valid_to INTEGER,
                last_confirmed_at INTEGER NOT NULL,
                last_updated INTEGER NOT NULL,
                type TEXT NOT NULL,
                confidence REAL NOT NULL,
                source TEXT NOT NULL,
                scope TEXT NOT NULL,
                ttl_seconds INTEGER,
                decay_half_life REAL NOT NULL,
                entities TEXT NOT NULL DEFAULT '[]',
                retrieval_count INTEGER NOT NULL DEFAULT 0,
                last_retrieved_at INTEGER,
                encrypted_metadata TEXT,
                metadata_iv TEXT,
                metadata_auth_tag TEXT,
                source_id TEXT
            );
            """
        )
        await db.execute("CREATE INDEX IF NOT EXISTS idx_facts_subject ON facts(subject);")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_facts_predicate ON facts(predicate);")
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_facts_subject_predicate ON facts(subject, predicate);"
        )
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_facts_validity ON facts(valid_from, valid_to);"
        )
        await db.execute("CREATE INDEX IF NOT EXISTS idx_facts_updated ON facts(last_updated);")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_facts_type ON facts(type);")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_facts_scope ON facts(scope);")
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_facts_confirmed ON facts(last_confirmed_at);"
        )

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Run the block as one write transaction. Caller must hold _write_lock."""
        db = self._db()
        await db.execute("BEGIN IMMEDIATE;")
        try:
            yield db
        except BaseException:
            await db.execute("ROLLBACK;")
            raise
        await db.execute("COMMIT;")

    async def _fetch(self, sql: str, params: Iterable[Any] = ()) -> list[aiosqlite.Row]:
        async with self._db().execute(sql, tuple(params)) as cur:
            return list(await cur.fetchall())

    async def _fetch_one(self, sql: str, params: Iterable[Any] = ()) -> aiosqlite.Row | None:
        async with self._db().execute(sql, tuple(params)) as cur:
            return await cur.fetchone()

    async def _rows_for_pair(self, subject: str, predicate: str) -> list[aiosqlite.Row]:
        return await self._fetch(
            "SELECT * FROM facts WHERE subject = ? AND predicate = ?;",
            (subject, predicate),
        )

    # ------------------------------------------------------------------ #
    # Encryption helpers
    # ------------------------------------------------------------------ #

    def _decrypt_object(self, key: str, row: aiosqlite.Row) -> str:
        return self.cipher.decrypt(
            key,
            EncryptedBlob(ciphertext=row["encrypted_object"], iv=row["iv"], auth_tag=row["auth_tag"]),
        )

    def _encrypt_metadata(self, key: str, metadata: dict[str, Any] | None) -> tuple[Any, Any, Any]:
        if metadata is None:
            return None, None, None
        blob = self.cipher.encrypt(key, json.dumps(metadata))
        return blob.ciphertext, blob.iv, blob.auth_tag

    def _row_to_fact(self, key: str, row: aiosqlite.Row) -> TemporalFact:
        obj = self._decrypt_object(key, row)

        metadata = None
        if row["encrypted_metadata"] and row["metadata_iv"] and row["metadata_auth_tag"]:
            meta_json = self.cipher.decrypt(
                key,
                EncryptedBlob(
                    ciphertext=row["encrypted_metadata"],
                    iv=row["metadata_iv"],
                    auth_tag=row["metadata_auth_tag"],
                ),
            )
            try:
                metadata = json.loads(meta_json)
            except ValueError as e:
                raise DecryptionError(f"Corrupted metadata for fact {row['id']}") from e

        return TemporalFact(
            id=row["id"],
            subject=row["subject"],
            predicate=row["predicate"],
            object=obj,
            valid_from=row["valid_from"],
            valid_to=row["valid_to"],
            last_confirmed_at=row["last_confirmed_at"],
            last_updated=row["last_updated"],
            type=row["type"],
            confidence=row["confidence"],
            source=row["source"],
            scope=row["scope"],
            ttl_seconds=row["ttl_seconds"],
            decay_half_life=row["decay_half_life"],
            entities=json.loads(row["entities"]) if row["entities"] else [],
            retrieval_count=row["retrieval_count"],
            last_retrieved_at=row["last_retrieved_at"],
            metadata=metadata,
            source_id=row["source_id"],
        )

    def _decrypt_rows(self, key: str, rows: Iterable[aiosqlite.Row]) -> list[TemporalFact]:
        """Bulk decrypt; rows that fail are logged and left out."""
        facts: list[TemporalFact] = []
        for row in rows:
            try:
                facts.append(self._row_to_fact(key, row))
            except DecryptionError as e:
                logger.warning("[FactStore] Failed to decrypt fact %s: %s", row["id"], e)
        return facts

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    async def insert(self, key: str, fact: NewFact) -> str:
        """
        Insert a new fact, invalidating the active fact for the same
        (subject, predicate) at the new fact's valid_from.
        """
        record = self._encrypt_record(key, fact)
        async with self._write_lock:
            return await self._insert_locked(fact, record)

    async def upsert(self, key: str, fact: NewFact) -> tuple[str, bool]:
        """
        Insert with deduplication.

        - same active (subject, predicate, object): confirm it, boost confidence,
          return (existing_id, False)
        - otherwise: insert() semantics, return (new_id, True)
        """
        async with self._write_lock:
            rows = await self._fetch(
                "SELECT * FROM facts WHERE subject = ? AND predicate = ? AND valid_to IS NULL;",
                (fact.subject, fact.predicate),
            )
            for active in rows:
                try:
                    existing_object = self._decrypt_object(key, active)
                except DecryptionError as e:
                    logger.warning(
                        "[FactStore] Failed to decrypt %s for dedup check: %s", active["id"], e
                    )
                    continue

                if existing_object != fact.object:
                    continue

                now = now_ms()
                new_confidence = clamp_confidence(active["confidence"] + CONFIRMATION_BOOST)
                async with self._transaction() as db:
                    await db.execute(
                        """
                        UPDATE facts
                        SET confidence = ?, last_confirmed_at = ?, last_updated = ?
                        WHERE id = ?;
                        """,
                        (new_confidence, now, now, active["id"]),
                    )
                logger.info(
                    "[FactStore] Deduplicated: %s %s *** - confidence %.2f -> %.2f",
                    fact.subject,
                    fact.predicate,
                    active["confidence"],
                    new_confidence,
                )
                return active["id"], False

            record = self._encrypt_record(key, fact)
            fact_id = await self._insert_locked(fact, record)
            return fact_id, True

    def _encrypt_record(self, key: str, fact: NewFact) -> dict[str, Any]:
        blob = self.cipher.encrypt(key, fact.object)
        meta_ct, meta_iv, meta_tag = self._encrypt_metadata(key, fact.metadata)
        decay_half_life = (
            fact.decay_half_life
            if fact.decay_half_life is not None
            else default_half_life(fact.type)
        )
        return {
            "id": str(uuid4()),
            "subject": fact.subject,
            "predicate": fact.predicate,
            "encrypted_object": blob.ciphertext,
            "iv": blob.iv,
            "auth_tag": blob.auth_tag,
            "valid_from": fact.valid_from,
            "valid_to": fact.valid_to,
            "last_confirmed_at": fact.last_confirmed_at,
            "last_updated": now_ms(),
            "type": fact.type.value,
            "confidence": fact.confidence,
            "source": fact.source.value,
            "scope": fact.scope.value,
            "ttl_seconds": fact.ttl_seconds,
            "decay_half_life": decay_half_life,
            "entities": json.dumps(fact.entities or []),
            "retrieval_count": fact.retrieval_count,
            "last_retrieved_at": fact.last_retrieved_at,
            "encrypted_metadata": meta_ct,
            "metadata_iv": meta_iv,
            "metadata_auth_tag": meta_tag,
            "source_id": fact.source_id,
        }

    async def _insert_locked(self, fact: NewFact, record: dict[str, Any]) -> str:
        now = record["last_updated"]
        async with self._transaction() as db:
            existing = await self._rows_for_pair(fact.subject, fact.predicate)
            later_starts: list[int] = []
            for old in existing:
                if old["valid_to"] is not None:
                    continue
                if old["valid_from"] <= fact.valid_from:
                    await db.execute(
                        "UPDATE facts SET valid_to = ?, last_updated = ? WHERE id = ?;",
                        (fact.valid_from, now, old["id"]),
                    )
                else:
                    later_starts.append(old["valid_from"])

            if later_starts and record["valid_to"] is None:
                # backdated insert: a later fact already holds the slot
                record["valid_to"] = min(later_starts)

            placeholders = ", ".join("?" for _ in _COLUMNS)
            await db.execute(
                f"INSERT INTO facts ({', '.join(_COLUMNS)}) VALUES ({placeholders});",
                tuple(record[c] for c in _COLUMNS),
            )

        logger.info(
            "[FactStore] Inserted fact: %s %s [%s] *** (encrypted)",
            fact.subject,
            fact.predicate,
            record["type"],
        )
        return record["id"]

    async def update(self, key: str, fact_id: str, updates: FactUpdate) -> None:
        meta_ct, meta_iv, meta_tag = self._encrypt_metadata(key, updates.metadata)
        async with self._write_lock:
            async with self._transaction() as db:
                row = await self._fetch_one("SELECT id FROM facts WHERE id = ?;", (fact_id,))
                if row is None:
                    raise FactNotFoundError(fact_id)

                assignments = ["last_updated = ?"]
                params: list[Any] = [now_ms()]
                if updates.confidence is not None:
                    assignments.append("confidence = ?")
                    params.append(updates.confidence)
                if updates.metadata is not None:
                    assignments.extend(
                        ["encrypted_metadata = ?", "metadata_iv = ?", "metadata_auth_tag = ?"]
                    )
                    params.extend([meta_ct, meta_iv, meta_tag])

                await db.execute(
                    f"UPDATE facts SET {', '.join(assignments)} WHERE id = ?;",
                    (*params, fact_id),
                )
        logger.info("[FactStore] Updated fact %s", fact_id)

    async def invalidate(self, fact_id: str, at: int | None = None) -> None:
        at = now_ms() if at is None else at
        async with self._write_lock:
            async with self._transaction() as db:
                cur = await db.execute(
                    "UPDATE facts SET valid_to = ?, last_updated = ? WHERE id = ?;",
                    (at, now_ms(), fact_id),
                )
                if cur.rowcount == 0:
                    raise FactNotFoundError(fact_id)
        logger.info("[FactStore] Invalidated fact %s", fact_id)

    async def delete(self, fact_id: str) -> None:
        async with self._write_lock:
            async with self._transaction() as db:
                await db.execute("DELETE FROM facts WHERE id = ?;", (fact_id,))
        logger.info("[FactStore] Deleted fact %s", fact_id)

    async def record_retrieval(self, fact_ids: Iterable[str], at: int | None = None) -> int:
        ids = list(dict.fromkeys(fact_ids))
        if not ids:
            return 0
        at = now_ms() if at is None else at
        placeholders = ",".join("?" for _ in ids)
        async with self._write_lock:
            async with self._transaction() as db:
                cur = await db.execute(
                    f"""
                    UPDATE facts
                    SET retrieval_count = retrieval_count + 1, last_retrieved_at = ?
                    WHERE id IN ({placeholders});
                    """,
                    (at, *ids),
                )
                touched = cur.rowcount
        return touched

    async def clear_all(self) -> int:
        async with self._write_lock:
            async with self._transaction() as db:
                row = await self._fetch_one("SELECT COUNT(*) AS n FROM facts;")
                count = row["n"] if row else 0
                await db.execute("DELETE FROM facts;")
        logger.info("[FactStore] Cleared %d facts", count)
        return count

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    async def get(self, key: str, fact_id: str) -> TemporalFact | None:
        row = await self._fetch_one("SELECT * FROM facts WHERE id = ? LIMIT 1;", (fact_id,))
        if row is None:
            return None
        return self._row_to_fact(key, row)

    async def get_current(self, key: str, subject: str, predicate: str) -> TemporalFact | None:
        row = await self._fetch_one(
            """
            SELECT * FROM facts
            WHERE subject = ?
              AND predicate = ?
              AND valid_to IS NULL
            ORDER BY valid_from DESC
            LIMIT 1;
            """,
            (subject, predicate),
        )
        if row is None:
            return None
        return self._row_to_fact(key, row)

    async def query(self, key: str, query: FactQuery | None = None) -> list[TemporalFact]:
        query = query or FactQuery()

        if query.subject and query.predicate:
            rows = await self._rows_for_pair(query.subject, query.predicate)
        elif query.subject:
            rows = await self._fetch("SELECT * FROM facts WHERE subject = ?;", (query.subject,))
        elif query.predicate:
            rows = await self._fetch(
                "SELECT * FROM facts WHERE predicate = ?;", (query.predicate,)
            )
        else:
            rows = await self._fetch("SELECT * FROM facts;")

        at = now_ms() if query.at is None else query.at
        kept = []
        for row in rows:
            if not query.include_historical:
                # valid_to is exclusive
                if row["valid_to"] is not None and row["valid_to"] <= at:
                    continue
                if row["valid_from"] > at:
                    continue
            if query.from_ is not None and row["valid_from"] < query.from_:
                continue
            if query.to is not None and row["valid_from"] > query.to:
                continue
            if query.min_confidence is not None and row["confidence"] < query.min_confidence:
                continue
            kept.append(row)

        kept.sort(key=lambda r: r["confidence"], reverse=True)

        facts = self._decrypt_rows(key, kept)
        if query.object is not None:
            # objects are only comparable after decryption
            facts = [f for f in facts if f.object == query.object]

        if query.limit:
            facts = facts[: query.limit]
        return facts

    async def get_by_subject(
        self,
        key: str,
        subject: str,
        include_historical: bool = False,
    ) -> list[TemporalFact]:
        return await self.query(
            key, FactQuery(subject=subject, include_historical=include_historical)
        )

    async def timeline(
        self,
        key: str,
        subject: str,
        predicate: str | None = None,
    ) -> list[TimelineEntry]:
        """Creation and invalidation events for a subject, oldest first."""
        facts = await self.query(
            key,
            FactQuery(subject=subject, predicate=predicate, include_historical=True),
        )
        entries: list[TimelineEntry] = []
        for fact in facts:
            entries.append(
                TimelineEntry(
                    timestamp=fact.valid_from,
                    subject=fact.subject,
                    predicate=fact.predicate,
                    object=fact.object,
                    confidence=fact.confidence,
                    change_type="created",
                )
            )
            if fact.valid_to is not None:
                entries.append(
                    TimelineEntry(
                        timestamp=fact.valid_to,
                        subject=fact.subject,
                        predicate=fact.predicate,
                        object=fact.object,
                        confidence=fact.confidence,
                        change_type="invalidated",
                    )
                )
        # invalidations sort before creations at the same instant
        entries.sort(key=lambda e: (e.timestamp, e.change_type != "invalidated"))
        return entries

    async def stats(self) -> FactStoreStats:
        rows = await self._fetch("SELECT predicate, valid_from, valid_to FROM facts;")

        now = now_ms()
        active = 0
        historical = 0
        predicate_counts: dict[str, int] = {}
        oldest: int | None = None
        newest: int | None = None

        for row in rows:
            if row["valid_to"] is None or row["valid_to"] > now:
                active += 1
            else:
                historical += 1

            predicate_counts[row["predicate"]] = predicate_counts.get(row["predicate"], 0) + 1

            if oldest is None or row["valid_from"] < oldest:
                oldest = row["valid_from"]
            if newest is None or row["valid_from"] > newest:
                newest = row["valid_from"]

        return FactStoreStats(
            total_facts=len(rows),
            active_facts=active,
            historical_facts=historical,
            predicate_counts=predicate_counts,
            oldest_fact=oldest,
            newest_fact=newest,
        )
