# Application Progress Package
from .achievements import AchievementEvaluator, AchievementRule, ProgressSnapshot, default_rules
from .analyzer import DayActivity, ProgressSummary, summarize

__all__ = [
    "AchievementEvaluator",
    "AchievementRule",
    "ProgressSnapshot",
    "default_rules",
    "DayActivity",
    "ProgressSummary",
    "summarize",
]
