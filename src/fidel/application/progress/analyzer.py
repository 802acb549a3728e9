"""
Progress analyzer for deriving study habits from session history.

This is a pure computation module with no I/O. Every function takes the
history (and, where needed, the current time) as arguments.
"""

import calendar
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from fidel.application.numeric import round_half_up
from fidel.domain.constants import WEEK_RANGE_DAYS, WEEKDAY_LABELS
from fidel.domain.models import Session, TimeRange


@dataclass
class DayActivity:
    """Aggregated activity for one day of the week."""

    day: str
    session_count: int = 0
    avg_accuracy: float = 0.0
    total_minutes: int = 0


@dataclass
class ProgressSummary:
    """
    Everything the progress view needs, computed in one pass.

    Streaks and totals cover the whole history; weekly activity only
    covers the selected time range.
    """

    time_range: TimeRange
    total_sessions: int
    total_study_minutes: int
    average_session_minutes: int
    average_accuracy: float
    current_streak: int
    longest_streak: int
    weekly_activity: list[DayActivity]
    categories: dict[str, int] = field(default_factory=dict)


def _study_days(history: Iterable[Session]) -> set[date]:
    return {session.date.date() for session in history}


def current_streak(history: Iterable[Session], today: date) -> int:
    """
    Count consecutive study days ending today.

    Today anchors the streak: without a session today the streak is 0,
    even if yesterday had one.
    """
    days = _study_days(history)
    streak = 0
    cursor = today
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def longest_streak(history: Iterable[Session]) -> int:
    """Longest run of consecutive study days anywhere in the history."""
    days = sorted(_study_days(history))
    if not days:
        return 0

    longest = running = 1
    for previous, current in zip(days, days[1:]):
        if (current - previous).days == 1:
            running += 1
        else:
            running = 1
        longest = max(longest, running)
    return longest


def weekly_activity(history: Iterable[Session]) -> list[DayActivity]:
    """
    Bucket sessions by day of week, Sunday first.

    Accuracy is the mean of per-session accuracy among sessions that had
    answers; a bucket with none reports 0.
    """
    buckets = [DayActivity(day=label) for label in WEEKDAY_LABELS]
    accuracies: list[list[float]] = [[] for _ in WEEKDAY_LABELS]

    for session in history:
        # date.weekday() is Monday=0; shift so Sunday=0
        idx = (session.date.weekday() + 1) % 7
        buckets[idx].session_count += 1
        buckets[idx].total_minutes += session.time_spent_minutes
        if session.accuracy is not None:
            accuracies[idx].append(session.accuracy)

    for bucket, values in zip(buckets, accuracies):
        bucket.avg_accuracy = sum(values) / len(values) if values else 0.0
    return buckets


def aggregate_accuracy(history: Iterable[Session]) -> float:
    """
    Mean per-session accuracy, ignoring sessions without answers.

    Returns 0.0 when no session had answers.
    """
    values = [s.accuracy for s in history if s.accuracy is not None]
    if not values:
        return 0.0
    return sum(values) / len(values)


def total_study_minutes(history: Iterable[Session]) -> int:
    return sum(s.time_spent_minutes for s in history)


def average_session_minutes(history: list[Session]) -> int:
    return round_half_up(total_study_minutes(history) / max(len(history), 1))


def category_breakdown(history: Iterable[Session]) -> dict[str, int]:
    """Number of sessions that touched each category."""
    counts: Counter[str] = Counter()
    for session in history:
        counts.update(session.categories)
    return dict(sorted(counts.items()))


def range_start(time_range: TimeRange, now: datetime) -> datetime | None:
    """
    Earliest session date included in a time range, or None for "all".

    A month reaches back to the same day of the previous month, clamped to
    that month's length (March 31 -> February 28/29).
    """
    if time_range == "week":
        return now - timedelta(days=WEEK_RANGE_DAYS)
    if time_range == "month":
        year, month = (now.year, now.month - 1) if now.month > 1 else (now.year - 1, 12)
        day = min(now.day, calendar.monthrange(year, month)[1])
        return now.replace(year=year, month=month, day=day)
    return None


def filter_by_range(history: Iterable[Session], time_range: TimeRange, now: datetime) -> list[Session]:
    cutoff = range_start(time_range, now)
    if cutoff is None:
        return list(history)
    return [s for s in history if s.date >= cutoff]


def summarize(history: Iterable[Session], now: datetime, time_range: TimeRange = "week") -> ProgressSummary:
    """
    Build the full progress summary for a learner.

    Args:
        history: Completed sessions, any order.
        now: Current time; its calendar day anchors the current streak.
        time_range: Window applied to weekly activity.
    """
    sessions = sorted(history, key=lambda s: s.date)
    return ProgressSummary(
        time_range=time_range,
        total_sessions=len(sessions),
        total_study_minutes=total_study_minutes(sessions),
        average_session_minutes=average_session_minutes(sessions),
        average_accuracy=aggregate_accuracy(sessions),
        current_streak=current_streak(sessions, now.date()),
        longest_streak=longest_streak(sessions),
        weekly_activity=weekly_activity(filter_by_range(sessions, time_range, now)),
        categories=category_breakdown(sessions),
    )
