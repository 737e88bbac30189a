"""Utility helpers for working with files."""

from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path

from recollect.models import DocumentMetadata, ScanResult

LOGGER = logging.getLogger(__name__)

MARKDOWN_SUFFIX = ".md"


def compute_fingerprint(content: str | bytes) -> str:
    """Return the SHA256 hex digest of text or raw bytes."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def scan_markdown_files(root: Path, *, suffix: str = MARKDOWN_SUFFIX) -> ScanResult:
    """List files under ``root`` whose name ends with ``suffix``.

    Paths are reported relative to ``root`` with ``/`` separators, in sorted
    order. A missing root is treated as an empty corpus. Directories that
    cannot be listed and files that cannot be stat'ed are counted in
    ``ScanResult.skipped`` instead of raising.
    """
    result = ScanResult()
    root = Path(root)
    if not root.is_dir():
        return result

    def _on_error(exc: OSError) -> None:
        LOGGER.debug("Skipping unreadable directory %s: %s", exc.filename, exc)
        result.skipped += 1

    suffix = suffix.lower()
    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames.sort()
        for name in sorted(filenames):
            if not name.lower().endswith(suffix):
                continue
            absolute = Path(dirpath) / name
            try:
                stat = absolute.stat()
            except OSError as exc:
                LOGGER.debug("Skipping unreadable file %s: %s", absolute, exc)
                result.skipped += 1
                continue
            result.files.append(
                DocumentMetadata(
                    relative_path=absolute.relative_to(root).as_posix(),
                    path=absolute,
                    mtime=stat.st_mtime_ns // 1_000_000,
                    size=stat.st_size,
                )
            )
    result.files.sort(key=lambda document: document.relative_path)
    return result
