"""Bounded quiz history and its summary statistics."""

from dataclasses import dataclass

from termlevel.domain.constants import HISTORY_LIMIT
from termlevel.domain.models import HistoryEntry


@dataclass
class HistorySummary:
    total_questions: int
    average_score: int
    total_terms: int


def record(
    history: list[HistoryEntry], entry: HistoryEntry, limit: int = HISTORY_LIMIT
) -> list[HistoryEntry]:
    """
    Insert ``entry`` at the head of ``history`` and drop anything past ``limit``.

    Mutates and returns the same list.
    """
    history.insert(0, entry)
    del history[limit:]
    return history


def summarize(history: list[HistoryEntry], term_count: int) -> HistorySummary:
    total = len(history)
    average = round(sum(h.score for h in history) / total) if total else 0
    return HistorySummary(total_questions=total, average_score=average, total_terms=term_count)
