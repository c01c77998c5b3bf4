"""
Leveling engine: level transitions, review scheduling and decay.

This is a pure computation module with no I/O. Every function takes the
current time as an optional argument so callers (and tests) can pin it.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from termlevel.domain.constants import (
    DECAY_RESET_LEVEL,
    FAIL_RESET_LEVEL,
    LEVEL_CONFIG,
    MAX_LEVEL,
    MIN_LEVEL,
    PASS_THRESHOLD,
)
from termlevel.domain.models import QuizMode, Term

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LevelChange:
    """Result of applying one graded answer to a term."""

    old_level: int
    new_level: int
    passed: bool
    mode: QuizMode
    description: str

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level

    @property
    def was_reset(self) -> bool:
        return self.mode is QuizMode.LEVELUP and not self.passed


def is_passing(score: int) -> bool:
    return score >= PASS_THRESHOLD


def calculate_next_review_date(current_level: int, now: datetime | None = None) -> datetime | None:
    """
    Schedule the next review using the window of the level after ``current_level``.

    The offset is the midpoint of ``LEVEL_CONFIG[current_level + 1]``.

    Returns:
        An absolute timestamp, or None when there is no successor level.
    """
    config = LEVEL_CONFIG.get(current_level + 1)
    if config is None or current_level >= MAX_LEVEL:
        return None

    now = now or utcnow()
    return now + timedelta(hours=config.midpoint_hours)


def needs_reset(level: int, last_review_date: datetime | None, now: datetime | None = None) -> bool:
    """
    True when a term at ``level`` has gone unreviewed longer than the level's maxHours.

    Levels 0 and 7 never decay.
    """
    if level <= MIN_LEVEL or level >= MAX_LEVEL or last_review_date is None:
        return False

    now = now or utcnow()
    elapsed_hours = (now - last_review_date).total_seconds() / 3600
    return elapsed_hours > LEVEL_CONFIG[level].max_hours


def is_ready_for_review(term: Term, now: datetime | None = None) -> bool:
    """
    The single eligibility predicate for quiz selection.

    Level 0 is always due, level 7 never is; levels 1..6 are due once
    ``next_review_date`` has passed (or when it is unset).
    """
    if term.level == MIN_LEVEL:
        return True
    if term.level >= MAX_LEVEL:
        return False
    if term.next_review_date is None:
        return True

    now = now or utcnow()
    return now >= term.next_review_date


def sweep_expired(terms: Iterable[Term], now: datetime | None = None) -> list[Term]:
    """
    Force every overdue term back to level 1.

    Mutates the terms in place and returns the ones that were reset. A reset
    term gets ``last_review_date = now`` so it cannot re-trigger in this pass.
    """
    now = now or utcnow()
    reset: list[Term] = []

    for term in terms:
        if not needs_reset(term.level, term.last_review_date, now):
            continue

        logger.info(
            f"Decay: '{term.name}' overdue at Lv{term.level}, resetting to Lv{DECAY_RESET_LEVEL}"
        )
        term.level = DECAY_RESET_LEVEL
        term.next_review_date = None
        term.last_review_date = now
        reset.append(term)

    return reset


def apply_grade(
    term: Term,
    score: int,
    mode: QuizMode,
    now: datetime | None = None,
) -> LevelChange:
    """
    Apply a graded answer to ``term`` in place.

    Practice mode only touches the counters. Levelup mode also stamps
    ``last_review_date`` and moves the level: up one on a pass, back to 0 on a
    fail.
    """
    now = now or utcnow()
    passed = is_passing(score)
    old_level = term.level

    term.total_attempts += 1
    if passed:
        term.correct_count += 1

    if mode is QuizMode.PRACTICE:
        return LevelChange(
            old_level=old_level,
            new_level=old_level,
            passed=passed,
            mode=mode,
            description=f"practice (Lv{old_level} kept)",
        )

    term.last_review_date = now

    if not passed:
        term.level = FAIL_RESET_LEVEL
        term.next_review_date = None
        logger.info(f"'{term.name}' failed with {score}: Lv{old_level} -> Lv{FAIL_RESET_LEVEL}")
        return LevelChange(
            old_level=old_level,
            new_level=FAIL_RESET_LEVEL,
            passed=False,
            mode=mode,
            description=f"{old_level} → {FAIL_RESET_LEVEL} (reset)",
        )

    if old_level >= MAX_LEVEL:
        return LevelChange(
            old_level=old_level,
            new_level=old_level,
            passed=True,
            mode=mode,
            description=f"{MAX_LEVEL} (max)",
        )

    new_level = old_level + 1
    term.level = new_level
    # Scheduling into level k uses level k's own window, hence the pre-increment level.
    term.next_review_date = (
        None if new_level >= MAX_LEVEL else calculate_next_review_date(old_level, now)
    )
    logger.info(f"'{term.name}' passed with {score}: Lv{old_level} -> Lv{new_level}")

    return LevelChange(
        old_level=old_level,
        new_level=new_level,
        passed=True,
        mode=mode,
        description=f"{old_level} → {new_level}",
    )
