"""Tests for core data models."""

from __future__ import annotations

from pathlib import Path

import pytest

from recollect.models import Category, ChunkRecord, DocumentMetadata, FileRecord, ScanResult


class TestCategory:
    """Test the Category enum."""

    def test_values(self) -> None:
        assert [c.value for c in Category] == [
            "preference",
            "fact",
            "decision",
            "entity",
            "other",
        ]

    def test_lookup_by_value(self) -> None:
        assert Category("fact") is Category.FACT

    def test_unknown_value(self) -> None:
        with pytest.raises(ValueError):
            Category("knowledge")

    def test_is_str(self) -> None:
        assert Category.OTHER == "other"


class TestRecords:
    """Test record dataclasses."""

    def test_document_metadata(self) -> None:
        doc = DocumentMetadata(
            relative_path="notes/a.md", path=Path("/kb/notes/a.md"), mtime=1, size=2
        )

        assert doc.relative_path == "notes/a.md"
        assert doc.path.name == "a.md"

    def test_chunk_equality(self) -> None:
        assert ChunkRecord("t", 1, 2, "h") == ChunkRecord("t", 1, 2, "h")
        assert ChunkRecord("t", 1, 2, "h") != ChunkRecord("t", 1, 3, "h")

    def test_file_record_slots(self) -> None:
        record = FileRecord("a.md", "h", 1, 2)

        with pytest.raises(AttributeError):
            record.extra = 1  # type: ignore[attr-defined]

    def test_scan_result_defaults_not_shared(self) -> None:
        first = ScanResult()
        second = ScanResult()
        first.files.append(DocumentMetadata("a.md", Path("a.md"), 0, 0))

        assert second.files == []
        assert second.skipped == 0
