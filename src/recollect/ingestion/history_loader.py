"""Session history loading.

The history log is newline-delimited JSON, one object per prompt, as written by
the assistant's CLI. It is read wholesale on every search.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import List

from recollect.models import HistoryEntry

LOGGER = logging.getLogger(__name__)

_LINE_SPLIT = re.compile(r"\r?\n")


def _as_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    return None


def parse_history_line(line: str) -> HistoryEntry | None:
    """Parse one log line, returning ``None`` for anything that is not a JSON object."""
    try:
        data = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    display = data.get("display")
    session_id = data.get("sessionId")
    return HistoryEntry(
        display=display if isinstance(display, str) else "",
        timestamp=_as_int(data.get("timestamp")),
        session_id=session_id if isinstance(session_id, str) else None,
    )


def read_history_entries(path: Path | None) -> List[HistoryEntry]:
    """Read every well-formed entry from the history log.

    A missing, empty or unreadable log yields no entries. Malformed lines are
    skipped.
    """
    if path is None or not Path(path).is_file():
        return []
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        LOGGER.warning("Failed to read history log %s: %s", path, exc)
        return []

    entries: List[HistoryEntry] = []
    malformed = 0
    for line in _LINE_SPLIT.split(raw):
        if not line.strip():
            continue
        entry = parse_history_line(line)
        if entry is None:
            malformed += 1
            continue
        entries.append(entry)
    if malformed:
        LOGGER.debug("Ignored %d malformed lines in %s", malformed, path)
    return entries
