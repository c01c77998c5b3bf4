from datetime import timedelta

import pytest

from termlevel.application.leveling import (
    apply_grade,
    calculate_next_review_date,
    is_passing,
    is_ready_for_review,
    needs_reset,
    sweep_expired,
)
from termlevel.domain.constants import LEVEL_CONFIG
from termlevel.domain.models import QuizMode

# --- Scheduling ---


@pytest.mark.parametrize(
    "current_level, hours",
    [(0, 0), (1, 3.5), (2, 36), (3, 84), (4, 180), (5, 348), (6, 756)],
)
def test_next_review_uses_successor_window_midpoint(now, current_level, hours):
    assert calculate_next_review_date(current_level, now) == now + timedelta(hours=hours)


def test_next_review_none_past_top_level(now):
    assert calculate_next_review_date(7, now) is None
    assert calculate_next_review_date(8, now) is None


def test_pass_threshold():
    assert is_passing(70)
    assert not is_passing(69)


# --- Decay check ---


@pytest.mark.parametrize("level", range(1, 7))
def test_needs_reset_only_past_max_hours(now, level):
    max_hours = LEVEL_CONFIG[level].max_hours
    assert needs_reset(level, now - timedelta(hours=max_hours, seconds=1), now)
    assert not needs_reset(level, now - timedelta(hours=max_hours), now)


@pytest.mark.parametrize("level", [0, 7])
def test_needs_reset_never_for_unlearned_or_mastered(now, level):
    assert not needs_reset(level, now - timedelta(days=3650), now)


def test_needs_reset_requires_last_review(now):
    assert not needs_reset(3, None, now)


# --- Eligibility ---


def test_level_zero_always_eligible(make_term, now):
    term = make_term(level=0, next_review_date=now + timedelta(days=30))
    assert is_ready_for_review(term, now)


def test_level_seven_never_eligible(make_term, now):
    term = make_term(level=7, next_review_date=now - timedelta(days=30))
    assert not is_ready_for_review(term, now)


@pytest.mark.parametrize("level", range(1, 7))
def test_mid_levels_eligible_once_due(make_term, now, level):
    assert is_ready_for_review(make_term(level=level, next_review_date=None), now)
    assert is_ready_for_review(make_term(level=level, next_review_date=now), now)
    assert not is_ready_for_review(
        make_term(level=level, next_review_date=now + timedelta(minutes=1)), now
    )


# --- Transitions ---


@pytest.mark.parametrize("level", range(0, 7))
def test_levelup_pass_advances_one_level(make_term, now, level):
    term = make_term(level=level)
    change = apply_grade(term, 85, QuizMode.LEVELUP, now)

    assert term.level == level + 1
    assert change.old_level == level
    assert change.new_level == level + 1
    assert change.leveled_up
    assert term.last_review_date == now
    assert (term.correct_count, term.total_attempts) == (1, 1)

    if level + 1 == 7:
        assert term.next_review_date is None
    elif level + 1 == 1:
        assert term.next_review_date == now
    else:
        assert term.next_review_date > now


@pytest.mark.parametrize("level", range(0, 7))
def test_levelup_fail_resets_to_zero(make_term, now, level):
    term = make_term(level=level, next_review_date=now + timedelta(hours=5))
    change = apply_grade(term, 40, QuizMode.LEVELUP, now)

    assert term.level == 0
    assert term.next_review_date is None
    assert term.last_review_date == now
    assert change.was_reset
    assert change.description == f"{level} → 0 (reset)"
    assert (term.correct_count, term.total_attempts) == (0, 1)


@pytest.mark.parametrize("score", [0, 69, 70, 100])
def test_practice_only_touches_counters(make_term, now, score):
    last = now - timedelta(hours=3)
    nxt = now + timedelta(hours=2)
    term = make_term(level=3, last_review_date=last, next_review_date=nxt)

    change = apply_grade(term, score, QuizMode.PRACTICE, now)

    assert term.level == 3
    assert term.last_review_date == last
    assert term.next_review_date == nxt
    assert term.total_attempts == 1
    assert term.correct_count == (1 if score >= 70 else 0)
    assert change.description == "practice (Lv3 kept)"


def test_pass_at_max_level_stays_mastered(make_term, now):
    term = make_term(level=7)
    change = apply_grade(term, 100, QuizMode.LEVELUP, now)
    assert term.level == 7
    assert term.next_review_date is None
    assert change.description == "7 (max)"
    assert not change.leveled_up


def test_counters_keep_correct_below_total(make_term, now):
    term = make_term()
    for score in (90, 20, 75, 10):
        apply_grade(term, score, QuizMode.LEVELUP, now)
    assert term.total_attempts == 4
    assert term.correct_count == 2
    assert term.total_attempts >= term.correct_count


# --- Scenarios ---


def test_scenario_level_zero_pass_is_immediately_due(make_term, now):
    term = make_term(level=0)
    apply_grade(term, 85, QuizMode.LEVELUP, now)
    assert term.level == 1
    assert term.next_review_date == now
    assert is_ready_for_review(term, now)


def test_scenario_level_six_pass_masters_term(make_term, now):
    term = make_term(level=6, next_review_date=now)
    change = apply_grade(term, 100, QuizMode.LEVELUP, now)
    assert term.level == 7
    assert term.next_review_date is None
    assert change.description == "6 → 7"
    assert not is_ready_for_review(term, now + timedelta(days=3650))


def test_scenario_level_four_fail_is_eligible(make_term, now):
    term = make_term(level=4, next_review_date=now + timedelta(hours=80))
    apply_grade(term, 40, QuizMode.LEVELUP, now)
    assert term.level == 0
    assert term.next_review_date is None
    assert is_ready_for_review(term, now)


# --- Sweep ---


def test_sweep_resets_overdue_to_level_one(make_term, now):
    overdue = make_term(
        "overdue",
        level=3,
        last_review_date=now - timedelta(hours=100),
        next_review_date=now - timedelta(hours=64),
    )
    fresh = make_term("fresh", level=3, last_review_date=now - timedelta(hours=10))

    reset = sweep_expired([overdue, fresh], now)

    assert reset == [overdue]
    assert overdue.level == 1
    assert overdue.next_review_date is None
    assert overdue.last_review_date == now
    assert fresh.level == 3


def test_sweep_skips_unlearned_and_mastered(make_term, now):
    old = now - timedelta(days=365)
    terms = [make_term("a", level=0, last_review_date=old), make_term("b", level=7, last_review_date=old)]
    assert sweep_expired(terms, now) == []
    assert [t.level for t in terms] == [0, 7]


def test_sweep_does_not_retrigger_at_same_instant(make_term, now):
    term = make_term(level=2, last_review_date=now - timedelta(hours=6))
    assert sweep_expired([term], now) == [term]
    assert sweep_expired([term], now) == []
