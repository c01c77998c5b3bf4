import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from termlevel.domain.constants import HISTORY_LIMIT, MAX_LEVEL, MIN_LEVEL
from termlevel.domain.models import HistoryEntry, QuizMode, Term
from termlevel.domain.ports import TermStore

# Keys written by the browser build of the app.
LEGACY_KEYS = {
    "addedDate": "created_at",
    "createdAt": "created_at",
    "lastReviewDate": "last_review_date",
    "nextReviewDate": "next_review_date",
    "correctCount": "correct_count",
    "totalAttempts": "total_attempts",
    "termName": "term_name",
    "userAnswer": "user_answer",
    "modelAnswer": "model_answer",
    "levelChange": "level_change",
}

LEGACY_MODES = {"練習": QuizMode.PRACTICE, "レベルアップ": QuizMode.LEVELUP}


def _parse_dt(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _format_dt(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _rename_legacy(raw: dict[str, Any]) -> dict[str, Any]:
    return {LEGACY_KEYS.get(k, k): v for k, v in raw.items()}


def term_from_dict(raw: dict[str, Any], loaded_at: datetime) -> Term | None:
    """
    Build a Term from a stored record, filling defaults for missing fields.

    Records without a name are unusable and yield None.
    """
    data = _rename_legacy(raw)
    name = str(data.get("name") or "").strip()
    if not name:
        return None

    level = min(max(_as_int(data.get("level")), MIN_LEVEL), MAX_LEVEL)
    total = max(_as_int(data.get("total_attempts")), 0)
    correct = min(max(_as_int(data.get("correct_count")), 0), total)
    next_review = _parse_dt(data.get("next_review_date"))
    if level == MIN_LEVEL or level == MAX_LEVEL:
        next_review = None

    return Term(
        name=name,
        description=str(data.get("description") or ""),
        created_at=_parse_dt(data.get("created_at")) or loaded_at,
        level=level,
        last_review_date=_parse_dt(data.get("last_review_date")),
        next_review_date=next_review,
        correct_count=correct,
        total_attempts=total,
    )


def term_to_dict(term: Term) -> dict[str, Any]:
    return {
        "name": term.name,
        "description": term.description,
        "created_at": _format_dt(term.created_at),
        "level": term.level,
        "last_review_date": _format_dt(term.last_review_date),
        "next_review_date": _format_dt(term.next_review_date),
        "correct_count": term.correct_count,
        "total_attempts": term.total_attempts,
    }


def history_from_dict(raw: dict[str, Any], loaded_at: datetime) -> HistoryEntry:
    data = _rename_legacy(raw)
    mode_raw = data.get("mode")
    mode = LEGACY_MODES.get(mode_raw)
    if mode is None:
        try:
            mode = QuizMode(mode_raw)
        except ValueError:
            mode = QuizMode.PRACTICE

    return HistoryEntry(
        date=_parse_dt(data.get("date")) or loaded_at,
        term_name=str(data.get("term_name") or ""),
        question=str(data.get("question") or ""),
        user_answer=str(data.get("user_answer") or ""),
        score=_as_int(data.get("score")),
        feedback=str(data.get("feedback") or ""),
        model_answer=str(data.get("model_answer") or ""),
        mode=mode,
        level_change=str(data.get("level_change") or ""),
    )


def history_to_dict(entry: HistoryEntry) -> dict[str, Any]:
    return {
        "date": _format_dt(entry.date),
        "term_name": entry.term_name,
        "question": entry.question,
        "user_answer": entry.user_answer,
        "score": entry.score,
        "feedback": entry.feedback,
        "model_answer": entry.model_answer,
        "mode": entry.mode.value,
        "level_change": entry.level_change,
    }


class JsonFileStore(TermStore):
    """
    Stores the term set and history as one JSON document.

    Layout: ``{"version": 1, "terms": [...], "history": [...]}``.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.logger = logging.getLogger(__name__)

    def load(self) -> tuple[list[Term], list[HistoryEntry]]:
        if not self.path.exists():
            self.logger.debug(f"No data file at {self.path}; starting empty")
            return [], []

        doc = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        loaded_at = datetime.now(timezone.utc)

        terms: list[Term] = []
        for raw in doc.get("terms") or []:
            if not isinstance(raw, dict):
                continue
            term = term_from_dict(raw, loaded_at)
            if term is None:
                self.logger.warning(f"Skipping stored term without a name: {raw!r}")
                continue
            terms.append(term)

        history = [
            history_from_dict(raw, loaded_at)
            for raw in doc.get("history") or []
            if isinstance(raw, dict)
        ]
        if len(history) > HISTORY_LIMIT:
            self.logger.info(f"Dropping {len(history) - HISTORY_LIMIT} history entries over the limit")
            history = history[:HISTORY_LIMIT]
        return terms, history

    def save(self, terms: list[Term], history: list[HistoryEntry]) -> None:
        doc = {
            "version": 1,
            "terms": [term_to_dict(t) for t in terms],
            "history": [history_to_dict(h) for h in history],
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)

        # Temp file + atomic replace
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(doc, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        self.logger.debug(f"Saved {len(terms)} terms to {self.path}")
