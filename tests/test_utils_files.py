"""Tests for file utility functions."""

from __future__ import annotations

import hashlib
import os
import sys
from pathlib import Path

import pytest

from recollect.utils.files import compute_fingerprint, scan_markdown_files


class TestComputeFingerprint:
    """Test compute_fingerprint function."""

    def test_matches_sha256(self) -> None:
        """Text is hashed as UTF-8."""
        assert compute_fingerprint("buy milk\nfact") == hashlib.sha256(
            "buy milk\nfact".encode("utf-8")
        ).hexdigest()

    def test_bytes_and_str_agree(self) -> None:
        assert compute_fingerprint("héllo") == compute_fingerprint("héllo".encode("utf-8"))

    def test_fixed_length(self) -> None:
        assert len(compute_fingerprint("")) == 64
        assert len(compute_fingerprint("x" * 10_000)) == 64

    def test_different_content(self) -> None:
        assert compute_fingerprint("a") != compute_fingerprint("b")


class TestScanMarkdownFiles:
    """Test scan_markdown_files function."""

    def test_missing_root(self, tmp_path: Path) -> None:
        """A missing directory is an empty corpus, not an error."""
        result = scan_markdown_files(tmp_path / "nope")

        assert result.files == []
        assert result.skipped == 0

    def test_nested_relative_paths(self, tmp_path: Path) -> None:
        """Paths are relative to the root with forward slashes."""
        (tmp_path / "a" / "b").mkdir(parents=True)
        (tmp_path / "top.md").write_text("top")
        (tmp_path / "a" / "b" / "deep.md").write_text("deep")
        (tmp_path / "a" / "skip.txt").write_text("text")

        result = scan_markdown_files(tmp_path)

        assert [f.relative_path for f in result.files] == ["a/b/deep.md", "top.md"]
        assert result.files[0].path == tmp_path / "a" / "b" / "deep.md"

    def test_metadata(self, tmp_path: Path) -> None:
        """Size is in bytes and mtime in integer milliseconds."""
        doc = tmp_path / "doc.md"
        doc.write_text("12345")
        os.utime(doc, ns=(1_700_000_000_123_456_789, 1_700_000_000_123_456_789))

        (info,) = scan_markdown_files(tmp_path).files

        assert info.size == 5
        assert info.mtime == 1_700_000_000_123
        assert isinstance(info.mtime, int)

    def test_suffix_case_insensitive(self, tmp_path: Path) -> None:
        (tmp_path / "upper.MD").write_text("x")

        result = scan_markdown_files(tmp_path)

        assert [f.relative_path for f in result.files] == ["upper.MD"]

    def test_sorted_output(self, tmp_path: Path) -> None:
        for name in ["c.md", "a.md", "b.md"]:
            (tmp_path / name).write_text(name)

        result = scan_markdown_files(tmp_path)

        assert [f.relative_path for f in result.files] == ["a.md", "b.md", "c.md"]

    @pytest.mark.skipif(
        sys.platform == "win32" or (hasattr(os, "geteuid") and os.geteuid() == 0),
        reason="permission bits are not enforced",
    )
    def test_unreadable_directory_counted(self, tmp_path: Path) -> None:
        """An unreadable subtree is reported in ``skipped`` and the rest still scans."""
        (tmp_path / "ok.md").write_text("ok")
        locked = tmp_path / "locked"
        locked.mkdir()
        (locked / "hidden.md").write_text("hidden")
        locked.chmod(0)
        try:
            result = scan_markdown_files(tmp_path)
        finally:
            locked.chmod(0o755)

        assert [f.relative_path for f in result.files] == ["ok.md"]
        assert result.skipped == 1
