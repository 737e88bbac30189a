"""Incremental knowledge-base indexing."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List

from recollect.index.storage import SQLiteStore
from recollect.models import FileRecord
from recollect.utils.files import compute_fingerprint, scan_markdown_files
from recollect.utils.text import DEFAULT_MAX_CHARS, DEFAULT_OVERLAP, chunk_markdown

LOGGER = logging.getLogger(__name__)

DEFAULT_SYNC_COOLDOWN = 5.0


@dataclass(slots=True)
class IndexStats:
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    removed: int = 0
    scan_skipped: int = 0
    chunks_written: int = 0
    processed_files: List[str] = field(default_factory=list)

    def increment(self, status: str, path: str) -> None:
        if status == "inserted":
            self.inserted += 1
        elif status == "updated":
            self.updated += 1
        elif status == "skipped":
            self.skipped += 1
        else:
            self.failed += 1
        self.processed_files.append(path)

    @property
    def changed(self) -> bool:
        return bool(self.inserted or self.updated or self.removed)


class KnowledgeIndexer:
    """Keeps the chunk index in step with the markdown files under ``root``.

    Only documents whose content fingerprint changed are re-chunked. The
    cheaper :meth:`sync_if_needed` compares file counts and modification
    times and runs at most once per ``cooldown`` seconds.
    """

    def __init__(
        self,
        store: SQLiteStore,
        root: Path | None,
        *,
        chunk_chars: int = DEFAULT_MAX_CHARS,
        overlap: int = DEFAULT_OVERLAP,
        cooldown: float = DEFAULT_SYNC_COOLDOWN,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.root = Path(root) if root else None
        self.chunk_chars = chunk_chars
        self.overlap = overlap
        self.cooldown = cooldown
        self.clock = clock
        self.last_sync: float | None = None
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.root is not None

    def sync(self) -> IndexStats:
        """Reconcile stored chunks with the files on disk in one transaction."""
        stats = IndexStats()
        if self.root is None:
            return stats

        scan = scan_markdown_files(self.root)
        stats.scan_skipped = scan.skipped
        if scan.skipped:
            LOGGER.warning("Skipped %d unreadable entries under %s", scan.skipped, self.root)

        on_disk = {document.relative_path for document in scan.files}

        with self.store.transaction():
            records = self.store.list_file_records()
            for document in scan.files:
                try:
                    content = document.path.read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError) as exc:
                    LOGGER.warning("Failed to read %s: %s", document.path, exc)
                    stats.increment("failed", document.relative_path)
                    continue

                fingerprint = compute_fingerprint(content)
                existing = records.get(document.relative_path)
                record = FileRecord(
                    path=document.relative_path,
                    fingerprint=fingerprint,
                    mtime=document.mtime,
                    size=document.size,
                )

                if existing and existing.fingerprint == fingerprint:
                    if (existing.mtime, existing.size) != (document.mtime, document.size):
                        self.store.upsert_file_record(record)
                    stats.increment("skipped", document.relative_path)
                    continue

                self.store.delete_document_chunks(document.relative_path)
                chunks = chunk_markdown(content, max_chars=self.chunk_chars, overlap=self.overlap)
                self.store.insert_chunks(document.relative_path, chunks, int(time.time() * 1000))
                self.store.upsert_file_record(record)
                stats.chunks_written += len(chunks)
                stats.increment("updated" if existing else "inserted", document.relative_path)
                LOGGER.debug("Indexed %s (%d chunks)", document.relative_path, len(chunks))

            for path in records:
                if path not in on_disk:
                    self.store.delete_document(path)
                    stats.removed += 1
                    LOGGER.debug("Removed %s from the knowledge index", path)

        self.last_sync = self.clock()
        if stats.changed or stats.failed:
            LOGGER.info(
                "Knowledge sync: inserted %d, updated %d, removed %d, failed %d",
                stats.inserted,
                stats.updated,
                stats.removed,
                stats.failed,
            )
        return stats

    def has_changes(self) -> bool:
        """Cheap check: file count or any modification time differs from the records."""
        if self.root is None:
            return False
        files = scan_markdown_files(self.root).files
        records = self.store.list_file_records()
        if len(files) != len(records):
            return True
        for document in files:
            record = records.get(document.relative_path)
            if record is None or record.mtime != document.mtime:
                return True
        return False

    def sync_if_needed(self) -> IndexStats | None:
        """Run :meth:`sync` if the cooldown elapsed and the files look changed."""
        if self.root is None:
            return None
        with self._lock:
            now = self.clock()
            if self.last_sync is not None and now - self.last_sync < self.cooldown:
                return None
            self.last_sync = now
            if not self.has_changes():
                return None
            return self.sync()
