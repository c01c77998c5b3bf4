from datetime import timedelta

import pytest

from termlevel.application.display import (
    level_color,
    level_label,
    level_progress,
    next_review_text,
)


def test_level_label_and_color():
    assert level_label(0) == "Unlearned"
    assert level_label(3) == "Lv3 1 day"
    assert level_color(0) == "#cccccc"
    assert level_color(7) == "#ff006e"


@pytest.mark.parametrize("level, pct", [(0, 0.0), (7, 100.0)])
def test_level_progress_bounds(level, pct):
    assert level_progress(level) == pct


def test_level_progress_midway():
    assert level_progress(3) == pytest.approx(42.857, rel=1e-3)


def test_next_review_text_terminal_states(make_term, now):
    assert next_review_text(make_term(level=0), now) == "First study"
    assert next_review_text(make_term(level=7), now) == "Mastered!"


def test_next_review_text_ready(make_term, now):
    assert next_review_text(make_term(level=2), now) == "Ready to review"
    term = make_term(level=2, next_review_date=now - timedelta(minutes=1))
    assert next_review_text(term, now) == "Ready to review"


@pytest.mark.parametrize(
    "delta, expected",
    [
        (timedelta(days=2, hours=5), "in 2 days"),
        (timedelta(hours=25), "in 1 day"),
        (timedelta(hours=3, minutes=30), "in 3 hours"),
        (timedelta(minutes=45), "in 45 minutes"),
    ],
)
def test_next_review_text_countdown(make_term, now, delta, expected):
    term = make_term(level=3, next_review_date=now + delta)
    assert next_review_text(term, now) == expected
