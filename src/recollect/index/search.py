"""Relevance scoring and result merging."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from itertools import chain
from typing import Iterable, List

from recollect.utils.text import tokenize_query

OVERFETCH_FACTOR = 3

SOURCE_KNOWLEDGE = "knowledge"
SOURCE_HISTORY = "history"


@dataclass(slots=True)
class SearchResult:
    id: str
    text: str
    category: str
    score: float
    timestamp: int = 0

    def to_dict(self) -> dict:
        return {"id": self.id, "text": self.text, "category": self.category, "score": self.score}


def build_match_query(query: str) -> str | None:
    """Turn free text into an FTS5 expression of OR-ed prefix terms.

    Returns ``None`` when nothing searchable is left after stripping
    punctuation.
    """
    tokens = tokenize_query(query)
    if not tokens:
        return None
    return " OR ".join(f'"{token}"*' for token in tokens)


class RelevanceScorer(ABC):
    """Produces a relevance score where higher is better and 0 means no match."""

    @abstractmethod
    def score(self, text: str, query: str, *, rank: float | None = None) -> float:
        raise NotImplementedError


class IndexRankScorer(RelevanceScorer):
    """Scores a row by its FTS5 ``bm25()`` rank, which is negative for matches."""

    def score(self, text: str, query: str, *, rank: float | None = None) -> float:
        if rank is None:
            return 0.0
        return -float(rank)


class SubstringScorer(RelevanceScorer):
    """Case-insensitive substring heuristic for unindexed or unmatched text.

    Frequent, early matches in short texts beat rare, late matches in long
    ones. Any match scores at least ``min_score`` so long texts are never
    mistaken for misses.
    """

    def __init__(
        self,
        *,
        base: float = 10.0,
        occurrence_bonus: float = 2.0,
        early_bonus: float = 5.0,
        early_decay: float = 10.0,
        length_penalty: float = 0.02,
        min_score: float = 0.01,
    ) -> None:
        self.base = base
        self.occurrence_bonus = occurrence_bonus
        self.early_bonus = early_bonus
        self.early_decay = early_decay
        self.length_penalty = length_penalty
        self.min_score = min_score

    def score(self, text: str, query: str, *, rank: float | None = None) -> float:
        haystack = text.lower()
        needle = query.lower()
        if not needle:
            return 0.0
        first_index = haystack.find(needle)
        if first_index == -1:
            return 0.0
        count = haystack.count(needle)
        early = max(0.0, self.early_bonus - first_index / self.early_decay)
        score = (
            self.base
            + count * self.occurrence_bonus
            + early
            - len(text) * self.length_penalty
        )
        return max(score, self.min_score)


def merge_results(groups: Iterable[Iterable[SearchResult]], limit: int) -> List[SearchResult]:
    """Combine result lists, best score first, newer first on ties."""
    merged = sorted(chain.from_iterable(groups), key=lambda r: (-r.score, -r.timestamp))
    return merged[:limit]
