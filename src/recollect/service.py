"""Public memory operations: store, search and forget."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, List, Sequence

from recollect.config import AppConfig
from recollect.index.indexer import IndexStats, KnowledgeIndexer
from recollect.index.search import (
    OVERFETCH_FACTOR,
    SOURCE_HISTORY,
    SOURCE_KNOWLEDGE,
    IndexRankScorer,
    RelevanceScorer,
    SearchResult,
    SubstringScorer,
    build_match_query,
    merge_results,
)
from recollect.index.storage import SQLiteStore
from recollect.ingestion.history_loader import read_history_entries
from recollect.models import Category, HistoryEntry
from recollect.validators import ForgetRequest, SearchRequest, StoreRequest, parse_request

LOGGER = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def format_chunk_excerpt(path: str, start_line: int, end_line: int, text: str) -> str:
    return f"{path}#L{start_line}-L{end_line}\n{text}"


def history_result_id(entry: HistoryEntry) -> str:
    timestamp = entry.timestamp if entry.timestamp is not None else "unknown"
    if entry.session_id:
        return f"history:{entry.session_id}:{timestamp}"
    return f"history:{timestamp}"


class MemoryService:
    """Coordinates the memory store, the knowledge index and session history.

    Storing an existing (text, category) pair is a no-op that returns the
    original entry's id and creation time with ``created`` set to False.
    """

    def __init__(
        self,
        store: SQLiteStore,
        config: AppConfig,
        *,
        indexer: KnowledgeIndexer | None = None,
        history_loader: Callable[[Path | None], Sequence[HistoryEntry]] = read_history_entries,
        index_scorer: RelevanceScorer | None = None,
        fallback_scorer: RelevanceScorer | None = None,
    ) -> None:
        self.store = store
        self.config = config
        self.indexer = indexer or KnowledgeIndexer(
            store,
            config.knowledge_path,
            chunk_chars=config.chunk_chars,
            overlap=config.overlap,
            cooldown=config.sync_cooldown,
        )
        self.history_loader = history_loader
        self.index_scorer = index_scorer or IndexRankScorer()
        self.fallback_scorer = fallback_scorer or SubstringScorer()

    @classmethod
    def open(cls, config: AppConfig, base_dir: Path | None = None) -> "MemoryService":
        db_path = config.resolve_db_path(base_dir)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return cls(SQLiteStore(db_path), config)

    def close(self) -> None:
        self.store.close()

    def store_memory(self, text: str, category: Category | str = Category.OTHER) -> dict:
        request = parse_request(StoreRequest, {"text": text, "category": category})
        entry, created = self.store.insert_memory(request.text, request.category, _now_ms())
        if created:
            LOGGER.info("Stored memory %s (%s)", entry.id, entry.category.value)
        else:
            LOGGER.info("Memory already stored as %s", entry.id)
        return {"id": entry.id, "created_at": entry.created_at, "created": created}

    def forget(self, memory_id: str) -> dict:
        request = parse_request(ForgetRequest, {"id": memory_id})
        deleted = self.store.delete_memory(request.id)
        if deleted:
            LOGGER.info("Forgot memory %s", request.id)
        return {"deleted": deleted}

    def search(self, query: str, limit: int | None = None) -> dict:
        request = parse_request(
            SearchRequest,
            {"query": query, "limit": limit},
            default_limit=self.config.default_limit,
            max_limit=self.config.max_limit,
        )
        self.indexer.sync_if_needed()

        results = merge_results(
            [
                self._search_memories(request.query, request.limit),
                self._search_knowledge(request.query, request.limit),
                self._search_history(request.query),
            ],
            request.limit,
        )
        return {"results": [result.to_dict() for result in results]}

    def sync(self) -> IndexStats:
        return self.indexer.sync()

    def stats(self) -> dict:
        stats = self.store.get_stats()
        stats["db_path"] = str(self.store.db_path)
        stats["knowledge_path"] = str(self.indexer.root) if self.indexer.root else None
        return stats

    def _search_memories(self, query: str, limit: int) -> List[SearchResult]:
        match_query = build_match_query(query)
        rows = (
            self.store.search_memories(match_query, limit * OVERFETCH_FACTOR)
            if match_query
            else []
        )
        if rows:
            return [
                SearchResult(
                    id=row["id"],
                    text=row["text"],
                    category=row["category"],
                    score=self.index_scorer.score(row["text"], query, rank=row["rank"]),
                    timestamp=row["created_at"],
                )
                for row in rows
            ]

        results = []
        for row in self.store.find_memories_containing(query):
            score = self.fallback_scorer.score(row["text"], query)
            if score > 0:
                results.append(
                    SearchResult(
                        id=row["id"],
                        text=row["text"],
                        category=row["category"],
                        score=score,
                        timestamp=row["created_at"],
                    )
                )
        return results

    def _search_knowledge(self, query: str, limit: int) -> List[SearchResult]:
        if not self.indexer.enabled:
            return []
        match_query = build_match_query(query)
        if match_query is None:
            return []
        return [
            SearchResult(
                id=row["id"],
                text=format_chunk_excerpt(
                    row["file_path"], row["start_line"], row["end_line"], row["text"]
                ),
                category=SOURCE_KNOWLEDGE,
                score=self.index_scorer.score(row["text"], query, rank=row["rank"]),
                timestamp=row["updated_at"],
            )
            for row in self.store.search_chunks(match_query, limit * OVERFETCH_FACTOR)
        ]

    def _search_history(self, query: str) -> List[SearchResult]:
        results = []
        for entry in self.history_loader(self.config.history_path):
            if not entry.display:
                continue
            score = self.fallback_scorer.score(entry.display, query)
            if score > 0:
                results.append(
                    SearchResult(
                        id=history_result_id(entry),
                        text=entry.display,
                        category=SOURCE_HISTORY,
                        score=score,
                        timestamp=entry.timestamp or 0,
                    )
                )
        return results
