"""Core recollect data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List


class Category(str, Enum):
    """Kinds of memory a caller may store."""

    PREFERENCE = "preference"
    FACT = "fact"
    DECISION = "decision"
    ENTITY = "entity"
    OTHER = "other"


@dataclass(slots=True)
class DocumentMetadata:
    """A markdown file discovered under the knowledge root."""

    relative_path: str
    path: Path
    mtime: int
    size: int


@dataclass(slots=True)
class ChunkRecord:
    """Line-addressed slice of a document."""

    text: str
    start_line: int
    end_line: int
    fingerprint: str


@dataclass(slots=True)
class FileRecord:
    """Snapshot of a document as of its last successful index pass."""

    path: str
    fingerprint: str
    mtime: int
    size: int


@dataclass(slots=True)
class MemoryEntry:
    id: str
    text: str
    category: Category
    created_at: int
    fingerprint: str


@dataclass(slots=True)
class HistoryEntry:
    """One line of the assistant's session history log."""

    display: str
    timestamp: int | None = None
    session_id: str | None = None


@dataclass(slots=True)
class ScanResult:
    """Files found by a directory scan plus the entries that could not be read."""

    files: List[DocumentMetadata] = field(default_factory=list)
    skipped: int = 0
