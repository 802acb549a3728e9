"""Centralized constants for the fidel engine.

All magic numbers and defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Review Scheduler ----------
INITIAL_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6
MAX_INTERVAL_DAYS = 36500  # interval cap, roughly a century
INITIAL_EASE = 2.5
MIN_EASE = 1.3
EASE_BONUS = 0.1
EASE_PENALTY = 0.2
EASE_PRECISION = 4  # decimals kept on the ease factor

# ---------- Progress ----------
WEEKDAY_LABELS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
WEEK_RANGE_DAYS = 7

# ---------- Achievements ----------
CARD_MILESTONES = (1, 5, 10)
STREAK_TARGET_DAYS = 7

# ---------- Learners ----------
DEFAULT_LEARNER_ID = "default"
