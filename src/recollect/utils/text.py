"""Text helpers: line-window chunking and query tokenization."""

from __future__ import annotations

import re
from typing import List

from recollect.models import ChunkRecord
from recollect.utils.files import compute_fingerprint

DEFAULT_MAX_CHARS = 800
DEFAULT_OVERLAP = 160

_NON_WORD = re.compile(r"[\W_]+")


def chunk_markdown(
    content: str, *, max_chars: int = DEFAULT_MAX_CHARS, overlap: int = DEFAULT_OVERLAP
) -> List[ChunkRecord]:
    """Split text into overlapping windows of whole lines.

    A window is flushed once the next line would push it past ``max_chars``
    (each line costs its length plus one for the newline). The tail of the
    flushed window, up to ``overlap`` characters, seeds the next one. Lines
    are never split, so a single oversized line becomes its own chunk.
    """
    if not content:
        return []

    chunks: List[ChunkRecord] = []
    # (line number, text) pairs; the first ``carried`` entries came from the previous chunk
    window: list[tuple[int, str]] = []
    window_chars = 0
    carried = 0

    def flush() -> None:
        text = "\n".join(line for _, line in window)
        chunks.append(
            ChunkRecord(
                text=text,
                start_line=window[0][0],
                end_line=window[-1][0],
                fingerprint=compute_fingerprint(text),
            )
        )

    for line_no, line in enumerate(content.split("\n"), start=1):
        cost = len(line) + 1
        if window and window_chars + cost > max_chars:
            if len(window) > carried:
                flush()
                window, window_chars = _trailing_overlap(window, overlap)
                carried = len(window)
            if window and window_chars + cost > max_chars:
                # Only carried lines left and the next line still does not fit.
                window, window_chars, carried = [], 0, 0
        window.append((line_no, line))
        window_chars += cost

    if len(window) > carried:
        flush()
    return chunks


def _trailing_overlap(
    window: list[tuple[int, str]], overlap: int
) -> tuple[list[tuple[int, str]], int]:
    if overlap <= 0:
        return [], 0
    kept: list[tuple[int, str]] = []
    acc = 0
    # The first line is never carried so every chunk advances.
    for entry in reversed(window[1:]):
        kept.append(entry)
        acc += len(entry[1]) + 1
        if acc >= overlap:
            break
    kept.reverse()
    return kept, acc


def tokenize_query(query: str) -> List[str]:
    """Replace punctuation and symbols with spaces and split into tokens."""
    return [token for token in _NON_WORD.sub(" ", query).split() if token]
