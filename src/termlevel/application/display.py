"""Plain-text presentation helpers for levels and review timing."""

import math
from datetime import datetime

from termlevel.application.leveling import is_ready_for_review, utcnow
from termlevel.domain.constants import (
    LEVEL_CONFIG,
    MAX_LEVEL,
    MIN_LEVEL,
    UNLEARNED_COLOR,
    UNLEARNED_LABEL,
)
from termlevel.domain.models import Term


def level_label(level: int) -> str:
    config = LEVEL_CONFIG.get(level)
    return config.label if config else UNLEARNED_LABEL


def level_color(level: int) -> str:
    config = LEVEL_CONFIG.get(level)
    return config.color if config else UNLEARNED_COLOR


def level_progress(level: int) -> float:
    """Percentage of the ladder climbed (0-100)."""
    if level <= MIN_LEVEL:
        return 0.0
    return min(level, MAX_LEVEL) / MAX_LEVEL * 100


def next_review_text(term: Term, now: datetime | None = None) -> str:
    """
    Describe when ``term`` can next be reviewed.

    Rounds down to whole days, then hours, then minutes.
    """
    if term.level == MIN_LEVEL:
        return "First study"
    if term.level >= MAX_LEVEL:
        return "Mastered!"

    now = now or utcnow()
    if term.next_review_date is None or is_ready_for_review(term, now):
        return "Ready to review"

    remaining = (term.next_review_date - now).total_seconds()
    hours = math.floor(remaining / 3600)
    days = hours // 24

    if days > 0:
        return f"in {days} day{'s' if days != 1 else ''}"
    if hours > 0:
        return f"in {hours} hour{'s' if hours != 1 else ''}"
    minutes = math.floor(remaining / 60)
    return f"in {minutes} minute{'s' if minutes != 1 else ''}"
