"""Centralized constants for termlevel.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

from types import MappingProxyType

from .models import LevelConfig

# ---------- Levels ----------
MIN_LEVEL = 0
MAX_LEVEL = 7
PASS_THRESHOLD = 70  # score >= this counts as a pass
DECAY_RESET_LEVEL = 1
FAIL_RESET_LEVEL = 0

LEVEL_CONFIG: "MappingProxyType[int, LevelConfig]" = MappingProxyType(
    {
        1: LevelConfig(1, "Lv1 First", 0, 0, "#ff6b6b"),
        2: LevelConfig(2, "Lv2 Short", 2, 5, "#ff8c42"),
        3: LevelConfig(3, "Lv3 1 day", 24, 48, "#ffd93d"),
        4: LevelConfig(4, "Lv4 3 days", 72, 96, "#6bcf7f"),
        5: LevelConfig(5, "Lv5 1 week", 168, 192, "#4d96ff"),
        6: LevelConfig(6, "Lv6 2 weeks", 336, 360, "#9d4edd"),
        7: LevelConfig(7, "Lv7 Mastered", 744, 768, "#ff006e"),
    }
)

UNLEARNED_LABEL = "Unlearned"
UNLEARNED_COLOR = "#cccccc"

# ---------- History ----------
HISTORY_LIMIT = 50

# ---------- Grading ----------
SCORE_MIN = 0
SCORE_MAX = 100
FALLBACK_SCORE = 50
FALLBACK_MODEL_ANSWER = "Model answer could not be generated."

# ---------- HTTP ----------
REQUEST_TIMEOUT = 30.0
QUESTION_TEMPERATURE = 0.7
QUESTION_MAX_TOKENS = 500
GRADING_TEMPERATURE = 0.3
GRADING_MAX_TOKENS = 1000
