# Domain Package
from .models import GradeResult, HistoryEntry, LevelConfig, QuizMode, Term

__all__ = ["Term", "LevelConfig", "HistoryEntry", "GradeResult", "QuizMode"]
