from datetime import timedelta

from termlevel.application.history import record, summarize
from termlevel.domain.models import HistoryEntry, QuizMode


def _entry(i, now, score=80):
    return HistoryEntry(
        date=now + timedelta(minutes=i),
        term_name=f"term-{i}",
        question=f"Q{i}",
        user_answer="A",
        score=score,
        feedback="ok",
        model_answer="M",
        mode=QuizMode.LEVELUP,
        level_change="0 → 1",
    )


def test_history_capped_most_recent_first(now):
    history = []
    for i in range(51):
        record(history, _entry(i, now))

    assert len(history) == 50
    assert history[0].term_name == "term-50"
    assert history[-1].term_name == "term-1"
    assert all(e.term_name != "term-0" for e in history)


def test_record_returns_same_list(now):
    history = []
    assert record(history, _entry(0, now)) is history


def test_summarize_rounds_average(now):
    history = [_entry(0, now, 70), _entry(1, now, 85), _entry(2, now, 90)]
    summary = summarize(history, term_count=4)
    assert summary.total_questions == 3
    assert summary.average_score == 82
    assert summary.total_terms == 4


def test_summarize_empty():
    summary = summarize([], term_count=0)
    assert summary.total_questions == 0
    assert summary.average_score == 0
