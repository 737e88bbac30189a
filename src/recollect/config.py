"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from recollect.index.indexer import DEFAULT_SYNC_COOLDOWN
from recollect.utils.text import DEFAULT_MAX_CHARS, DEFAULT_OVERLAP

ENV_PREFIX = "RECOLLECT_"

_DEFAULT_HISTORY_PATH = Path.home() / ".claude" / "history.jsonl"


def _get_default_db_path() -> Path:
    """Prefer a local data/ directory when running from a checkout."""
    local_db = Path("data/recollect.db")
    if local_db.exists():
        return local_db
    return Path.home() / ".recollect" / "recollect.db"


def _optional_path(value: str | None, default: Path | None) -> Path | None:
    if value is None:
        return default
    value = value.strip()
    return Path(value).expanduser() if value else None


@dataclass(slots=True)
class AppConfig:
    db_path: Path | None = None
    knowledge_path: Path | None = None
    history_path: Path | None = _DEFAULT_HISTORY_PATH
    default_limit: int = 5
    max_limit: int = 20
    chunk_chars: int = DEFAULT_MAX_CHARS
    overlap: int = DEFAULT_OVERLAP
    sync_cooldown: float = DEFAULT_SYNC_COOLDOWN

    def __post_init__(self) -> None:
        if self.db_path is None:
            self.db_path = _get_default_db_path()
        if self.max_limit < 1:
            raise ValueError("max_limit must be at least 1")
        if not 1 <= self.default_limit <= self.max_limit:
            raise ValueError(
                f"default_limit must be between 1 and max_limit ({self.max_limit})"
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppConfig":
        """Build a config from ``RECOLLECT_*`` environment variables.

        An empty ``RECOLLECT_KNOWLEDGE_PATH`` or ``RECOLLECT_HISTORY_PATH``
        disables that corpus.
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        db_value = env.get(f"{ENV_PREFIX}DB_PATH", "").strip()
        return cls(
            db_path=Path(db_value).expanduser() if db_value else defaults.db_path,
            knowledge_path=_optional_path(env.get(f"{ENV_PREFIX}KNOWLEDGE_PATH"), None),
            history_path=_optional_path(
                env.get(f"{ENV_PREFIX}HISTORY_PATH"), defaults.history_path
            ),
            default_limit=int(env.get(f"{ENV_PREFIX}DEFAULT_LIMIT", defaults.default_limit)),
            max_limit=int(env.get(f"{ENV_PREFIX}MAX_LIMIT", defaults.max_limit)),
            sync_cooldown=float(env.get(f"{ENV_PREFIX}SYNC_COOLDOWN", defaults.sync_cooldown)),
        )

    def resolve_db_path(self, base_dir: Path | None = None) -> Path:
        if self.db_path is None:
            self.db_path = _get_default_db_path()
        if Path(self.db_path).is_absolute() or base_dir is None:
            return Path(self.db_path)
        return base_dir / self.db_path
