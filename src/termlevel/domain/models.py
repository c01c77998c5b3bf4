"""
Domain models for terms, levels and quiz history.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class QuizMode(str, Enum):
    """Quiz flavour. Only LEVELUP outcomes move a term along the level ladder."""

    PRACTICE = "practice"
    LEVELUP = "levelup"


@dataclass(frozen=True)
class LevelConfig:
    """
    Static description of one mastery level.

    Attributes:
        level: Level number (1-7).
        label: Display name.
        min_hours: Lower bound of the review window for this level.
        max_hours: Upper bound; a term left unreviewed longer than this decays.
        color: Display color (hex).
    """

    level: int
    label: str
    min_hours: float
    max_hours: float
    color: str

    @property
    def midpoint_hours(self) -> float:
        return (self.min_hours + self.max_hours) / 2


@dataclass
class Term:
    """
    A learnable unit: a name plus its canonical description.

    ``next_review_date`` only carries meaning while ``level`` is in 1..6.
    """

    name: str
    description: str
    created_at: datetime
    level: int = 0
    last_review_date: datetime | None = None
    next_review_date: datetime | None = None
    correct_count: int = 0
    total_attempts: int = 0


@dataclass(frozen=True)
class GradeResult:
    """Outcome of grading one answer."""

    score: int
    feedback: str
    model_answer: str


@dataclass(frozen=True)
class HistoryEntry:
    """
    A single quiz attempt log entry.

    Attributes:
        date: When the attempt was graded.
        term_name: The term that was quizzed.
        question: Generated question text.
        user_answer: What the user typed.
        score: Grade (0-100).
        feedback: Grader feedback.
        model_answer: Grader's model answer.
        mode: Quiz mode the attempt ran in.
        level_change: Human-readable level transition (e.g. "2 → 3").
    """

    date: datetime
    term_name: str
    question: str
    user_answer: str
    score: int
    feedback: str
    model_answer: str
    mode: QuizMode
    level_change: str
