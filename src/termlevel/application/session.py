"""
Study session — application layer orchestrator.

Owns the term set and quiz history for one user and runs the register, quiz,
grade and decay flows against the store and language-model ports.
"""

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from termlevel.application import history as history_log
from termlevel.application.leveling import (
    LevelChange,
    apply_grade,
    is_ready_for_review,
    sweep_expired,
    utcnow,
)
from termlevel.domain.errors import (
    NoEligibleTermsError,
    ServiceError,
    TermNotFoundError,
    ValidationError,
)
from termlevel.domain.models import GradeResult, HistoryEntry, QuizMode, Term
from termlevel.domain.ports import GradingService, QuestionService, TermStore

logger = logging.getLogger(__name__)


class RequestStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class RequestState:
    """Tracks one outbound service call: idle -> pending -> success | failure."""

    status: RequestStatus = RequestStatus.IDLE
    error: str | None = None

    def begin(self) -> None:
        self.status = RequestStatus.PENDING
        self.error = None

    def succeed(self) -> None:
        self.status = RequestStatus.SUCCESS

    def fail(self, error: Exception) -> None:
        self.status = RequestStatus.FAILURE
        self.error = str(error)


@dataclass
class ActiveQuiz:
    term_name: str
    mode: QuizMode
    question: str


@dataclass
class QuizOutcome:
    term: Term
    result: GradeResult
    change: LevelChange
    entry: HistoryEntry


@dataclass
class StudySession:
    """
    Explicitly owned session state for one user.

    Every mutating operation persists the whole term set and history through
    the store before returning.
    """

    store: TermStore
    question_service: QuestionService | None = None
    grading_service: GradingService | None = None
    clock: Callable[[], datetime] = utcnow
    rng: random.Random = field(default_factory=random.Random)

    terms: list[Term] = field(default_factory=list)
    history: list[HistoryEntry] = field(default_factory=list)
    active_quiz: ActiveQuiz | None = None
    question_request: RequestState = field(default_factory=RequestState)
    grading_request: RequestState = field(default_factory=RequestState)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self, sweep: bool = True) -> "StudySession":
        """Load from the store and, unless told otherwise, apply any pending decay."""
        self.terms, self.history = self.store.load()
        logger.debug(f"Loaded {len(self.terms)} terms, {len(self.history)} history entries")
        if sweep and self.sweep():
            logger.info("Decay applied on load")
        return self

    def save(self) -> None:
        self.store.save(self.terms, self.history)

    # ------------------------------------------------------------------
    # Terms
    # ------------------------------------------------------------------

    def register_term(self, name: str, description: str) -> Term:
        name = (name or "").strip()
        description = (description or "").strip()
        if not name or not description:
            raise ValidationError("Both a term name and a description are required.")
        if self.find_term(name) is not None:
            raise ValidationError(f"Term '{name}' is already registered.")

        term = Term(name=name, description=description, created_at=self.clock())
        self.terms.append(term)
        self.save()
        logger.info(f"Registered term '{name}'")
        return term

    def delete_term(self, name: str) -> Term:
        term = self.get_term(name)
        self.terms.remove(term)
        if self.active_quiz and self.active_quiz.term_name == term.name:
            self.active_quiz = None
        self.save()
        logger.info(f"Deleted term '{name}'")
        return term

    def find_term(self, name: str) -> Term | None:
        return next((t for t in self.terms if t.name == name), None)

    def get_term(self, name: str) -> Term:
        term = self.find_term(name)
        if term is None:
            raise TermNotFoundError(name)
        return term

    def search_terms(self, query: str) -> list[Term]:
        """Case-insensitive substring match on name or description."""
        needle = (query or "").lower()
        return [
            t for t in self.terms if needle in t.name.lower() or needle in t.description.lower()
        ]

    # ------------------------------------------------------------------
    # Review selection
    # ------------------------------------------------------------------

    def sweep(self) -> list[Term]:
        """Run the decay sweep; persist if anything changed."""
        reset = sweep_expired(self.terms, self.clock())
        if reset:
            self.save()
        return reset

    def reviewable_terms(self) -> list[Term]:
        self.sweep()
        now = self.clock()
        return [t for t in self.terms if is_ready_for_review(t, now)]

    def candidates(self, mode: QuizMode) -> list[Term]:
        if mode is QuizMode.PRACTICE:
            return list(self.terms)
        return self.reviewable_terms()

    # ------------------------------------------------------------------
    # Quiz flow
    # ------------------------------------------------------------------

    async def start_quiz(self, mode: QuizMode) -> ActiveQuiz:
        """
        Pick a random candidate term and fetch a question for it.

        On service failure the session returns to the start state and the
        error propagates.
        """
        if self.question_service is None:
            raise ServiceError("No question service configured.")

        candidates = self.candidates(mode)
        if not candidates:
            if mode is QuizMode.PRACTICE:
                raise NoEligibleTermsError("No terms registered.")
            raise NoEligibleTermsError("No terms are due for review right now. Try again later.")

        term = self.rng.choice(candidates)
        logger.debug(f"Quiz ({mode.value}) selected '{term.name}' (Lv{term.level})")

        self.active_quiz = None
        self.question_request.begin()
        try:
            question = await self.question_service.generate_question(term.name)
        except Exception as e:
            self.question_request.fail(e)
            logger.error(f"Question generation failed for '{term.name}': {e}")
            raise

        self.question_request.succeed()
        self.grading_request = RequestState()
        self.active_quiz = ActiveQuiz(term_name=term.name, mode=mode, question=question)
        return self.active_quiz

    async def submit_answer(self, user_answer: str) -> QuizOutcome:
        """
        Grade the answer to the active question and apply the outcome.

        Nothing is mutated unless grading succeeds; on failure the active
        question is kept so the user can resubmit.
        """
        user_answer = (user_answer or "").strip()
        if not user_answer:
            raise ValidationError("Please enter an answer.")
        if self.active_quiz is None:
            raise ValidationError("No active question. Start a quiz first.")
        if self.grading_service is None:
            raise ServiceError("No grading service configured.")

        quiz = self.active_quiz
        term = self.get_term(quiz.term_name)

        self.grading_request.begin()
        try:
            result = await self.grading_service.grade_answer(
                term.name, term.description, quiz.question, user_answer
            )
        except Exception as e:
            self.grading_request.fail(e)
            logger.error(f"Grading failed for '{term.name}': {e}")
            raise

        now = self.clock()
        change = apply_grade(term, result.score, quiz.mode, now)
        entry = HistoryEntry(
            date=now,
            term_name=term.name,
            question=quiz.question,
            user_answer=user_answer,
            score=result.score,
            feedback=result.feedback,
            model_answer=result.model_answer,
            mode=quiz.mode,
            level_change=change.description,
        )
        history_log.record(self.history, entry)
        self.save()

        self.grading_request.succeed()
        self.active_quiz = None
        return QuizOutcome(term=term, result=result, change=change, entry=entry)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def clear_history(self) -> int:
        count = len(self.history)
        self.history.clear()
        self.save()
        logger.info(f"Cleared {count} history entries")
        return count

    def summary(self) -> history_log.HistorySummary:
        return history_log.summarize(self.history, len(self.terms))
