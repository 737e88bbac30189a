"""SQLite + FTS5 record store."""

from __future__ import annotations

import logging
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Sequence

from recollect.models import Category, ChunkRecord, FileRecord, MemoryEntry
from recollect.utils.files import compute_fingerprint

LOGGER = logging.getLogger(__name__)


def memory_fingerprint(text: str, category: Category | str) -> str:
    """Fingerprint used to deduplicate memory entries."""
    return compute_fingerprint(f"{text}\n{Category(category).value}")


class SQLiteStore:
    """Persistence layer for memories, knowledge chunks and their FTS projections.

    A single connection is shared by every caller and guarded by a re-entrant
    lock: writes happen inside :meth:`transaction`, reads take the same lock, so
    a reader never observes a half-applied transaction.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        # SQLite lower() and LIKE only fold ASCII.
        self._conn.create_function("py_lower", 1, str.lower, deterministic=True)
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._ensure_schema()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self._conn
                self._conn.commit()
            except Exception:
                self._conn.rollback()
                raise

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS memories (
                    id TEXT PRIMARY KEY,
                    text TEXT NOT NULL,
                    category TEXT NOT NULL,
                    created_at INTEGER NOT NULL,
                    fingerprint TEXT
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_memories_category ON memories(category)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_memories_created_at ON memories(created_at)"
            )
            conn.execute(
                """
                CREATE VIRTUAL TABLE IF NOT EXISTS memories_fts
                USING fts5(text, id UNINDEXED, tokenize='unicode61')
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS knowledge_files (
                    path TEXT PRIMARY KEY,
                    hash TEXT NOT NULL,
                    mtime INTEGER NOT NULL,
                    size INTEGER NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS knowledge_chunks (
                    id TEXT PRIMARY KEY,
                    file_path TEXT NOT NULL,
                    text TEXT NOT NULL,
                    start_line INTEGER NOT NULL,
                    end_line INTEGER NOT NULL,
                    hash TEXT NOT NULL,
                    updated_at INTEGER NOT NULL
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_kc_file_path ON knowledge_chunks(file_path)"
            )
            conn.execute(
                """
                CREATE VIRTUAL TABLE IF NOT EXISTS knowledge_chunks_fts
                USING fts5(text, id UNINDEXED, file_path UNINDEXED, tokenize='unicode61')
                """
            )
            self._migrate_memories(conn)

    def _migrate_memories(self, conn: sqlite3.Connection) -> None:
        """Upgrade memory tables written before fingerprints and FTS existed."""
        columns = {row["name"] for row in conn.execute("PRAGMA table_info(memories)")}
        if "fingerprint" not in columns:
            conn.execute("ALTER TABLE memories ADD COLUMN fingerprint TEXT")

        pending = conn.execute(
            "SELECT id, text, category FROM memories WHERE fingerprint IS NULL"
        ).fetchall()
        for row in pending:
            try:
                fingerprint = memory_fingerprint(row["text"], row["category"])
            except ValueError:
                fingerprint = compute_fingerprint(f"{row['text']}\n{row['category']}")
            conn.execute(
                "UPDATE memories SET fingerprint = ? WHERE id = ?", (fingerprint, row["id"])
            )
        if pending:
            # Keep the oldest row of each duplicate group.
            removed = conn.execute(
                """
                DELETE FROM memories WHERE rowid NOT IN (
                    SELECT rowid FROM (
                        SELECT rowid, ROW_NUMBER() OVER (
                            PARTITION BY fingerprint ORDER BY created_at, rowid
                        ) AS position
                        FROM memories
                    ) WHERE position = 1
                )
                """
            ).rowcount
            LOGGER.info(
                "Backfilled %d memory fingerprints, dropped %d duplicates",
                len(pending),
                removed,
            )

        conn.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_memories_fingerprint ON memories(fingerprint)"
        )

        memory_count = conn.execute("SELECT COUNT(*) FROM memories").fetchone()[0]
        fts_count = conn.execute("SELECT COUNT(*) FROM memories_fts").fetchone()[0]
        if memory_count != fts_count:
            LOGGER.info("Rebuilding memory full-text index (%d rows)", memory_count)
            conn.execute("DELETE FROM memories_fts")
            conn.execute("INSERT INTO memories_fts (text, id) SELECT text, id FROM memories")

    def insert_memory(
        self, text: str, category: Category, created_at: int
    ) -> tuple[MemoryEntry, bool]:
        """Insert a memory unless its fingerprint already exists.

        Returns the stored entry and whether a new row was created. On a
        duplicate the pre-existing entry is returned unchanged.
        """
        fingerprint = memory_fingerprint(text, category)
        with self.transaction() as conn:
            memory_id = uuid.uuid4().hex
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO memories(id, text, category, created_at, fingerprint)
                VALUES (?, ?, ?, ?, ?)
                """,
                (memory_id, text, category.value, created_at, fingerprint),
            )
            if cursor.rowcount:
                conn.execute(
                    "INSERT INTO memories_fts (text, id) VALUES (?, ?)", (text, memory_id)
                )
                return (
                    MemoryEntry(memory_id, text, category, created_at, fingerprint),
                    True,
                )

            row = conn.execute(
                "SELECT * FROM memories WHERE fingerprint = ?", (fingerprint,)
            ).fetchone()
            return self._row_to_memory(row), False

    def delete_memory(self, memory_id: str) -> bool:
        with self.transaction() as conn:
            deleted = conn.execute("DELETE FROM memories WHERE id = ?", (memory_id,)).rowcount
            conn.execute("DELETE FROM memories_fts WHERE id = ?", (memory_id,))
        return deleted > 0

    def get_memory(self, memory_id: str) -> MemoryEntry | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM memories WHERE id = ?", (memory_id,)
            ).fetchone()
        return self._row_to_memory(row) if row else None

    def search_memories(self, match_query: str, limit: int) -> List[sqlite3.Row]:
        """Rank memories against an FTS5 MATCH expression (lower rank is better)."""
        with self._lock:
            return self._conn.execute(
                """
                SELECT m.id, m.text, m.category, m.created_at,
                       bm25(memories_fts) AS rank
                FROM memories_fts fts
                JOIN memories m ON fts.id = m.id
                WHERE memories_fts MATCH ?
                ORDER BY rank
                LIMIT ?
                """,
                (match_query, limit),
            ).fetchall()

    def find_memories_containing(self, needle: str) -> List[sqlite3.Row]:
        """Case-insensitive substring scan over memory text, using Python case folding."""
        with self._lock:
            return self._conn.execute(
                """
                SELECT id, text, category, created_at
                FROM memories
                WHERE instr(py_lower(text), ?) > 0
                """,
                (needle.lower(),),
            ).fetchall()

    @staticmethod
    def _row_to_memory(row: sqlite3.Row) -> MemoryEntry:
        return MemoryEntry(
            id=row["id"],
            text=row["text"],
            category=Category(row["category"]),
            created_at=row["created_at"],
            fingerprint=row["fingerprint"],
        )

    def list_file_records(self) -> Dict[str, FileRecord]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT path, hash, mtime, size FROM knowledge_files"
            ).fetchall()
        return {
            row["path"]: FileRecord(
                path=row["path"], fingerprint=row["hash"], mtime=row["mtime"], size=row["size"]
            )
            for row in rows
        }

    def upsert_file_record(self, record: FileRecord) -> None:
        """Write a file record. Must be called inside :meth:`transaction`."""
        self._conn.execute(
            "INSERT OR REPLACE INTO knowledge_files (path, hash, mtime, size) VALUES (?, ?, ?, ?)",
            (record.path, record.fingerprint, record.mtime, record.size),
        )

    def delete_document_chunks(self, path: str) -> int:
        """Drop a document's chunks from both tables. Must run inside :meth:`transaction`."""
        removed = self._conn.execute(
            "DELETE FROM knowledge_chunks WHERE file_path = ?", (path,)
        ).rowcount
        self._conn.execute("DELETE FROM knowledge_chunks_fts WHERE file_path = ?", (path,))
        return removed

    def insert_chunks(self, path: str, chunks: Sequence[ChunkRecord], updated_at: int) -> List[str]:
        """Insert freshly generated chunks. Must run inside :meth:`transaction`."""
        ids: List[str] = []
        for chunk in chunks:
            chunk_id = uuid.uuid4().hex
            self._conn.execute(
                """
                INSERT INTO knowledge_chunks
                    (id, file_path, text, start_line, end_line, hash, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    chunk_id,
                    path,
                    chunk.text,
                    chunk.start_line,
                    chunk.end_line,
                    chunk.fingerprint,
                    updated_at,
                ),
            )
            self._conn.execute(
                "INSERT INTO knowledge_chunks_fts (text, id, file_path) VALUES (?, ?, ?)",
                (chunk.text, chunk_id, path),
            )
            ids.append(chunk_id)
        return ids

    def delete_document(self, path: str) -> None:
        """Remove a document's record and chunks. Must run inside :meth:`transaction`."""
        self.delete_document_chunks(path)
        self._conn.execute("DELETE FROM knowledge_files WHERE path = ?", (path,))

    def list_chunks(self, path: str) -> List[dict]:
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT id, file_path, text, start_line, end_line, hash, updated_at
                FROM knowledge_chunks
                WHERE file_path = ?
                ORDER BY start_line
                """,
                (path,),
            ).fetchall()
        return [dict(row) for row in rows]

    def search_chunks(self, match_query: str, limit: int) -> List[sqlite3.Row]:
        """Rank knowledge chunks against an FTS5 MATCH expression (lower rank is better)."""
        with self._lock:
            return self._conn.execute(
                """
                SELECT c.id, c.file_path, c.text, c.start_line, c.end_line, c.updated_at,
                       bm25(knowledge_chunks_fts) AS rank
                FROM knowledge_chunks_fts fts
                JOIN knowledge_chunks c ON fts.id = c.id
                WHERE knowledge_chunks_fts MATCH ?
                ORDER BY rank
                LIMIT ?
                """,
                (match_query, limit),
            ).fetchall()

    def get_stats(self) -> dict:
        with self._lock:
            memory_count = self._conn.execute("SELECT COUNT(*) FROM memories").fetchone()[0]
            file_row = self._conn.execute(
                "SELECT COUNT(*) AS count, COALESCE(SUM(size), 0) AS total FROM knowledge_files"
            ).fetchone()
            chunk_count = self._conn.execute(
                "SELECT COUNT(*) FROM knowledge_chunks"
            ).fetchone()[0]
        return {
            "memory_count": memory_count,
            "document_count": file_row["count"],
            "chunk_count": chunk_count,
            "total_size_bytes": file_row["total"],
        }
