"""
Review scheduler for phrase cards.

A simplified SM-2: the first two consecutive correct answers fix the interval
at 1 and 6 days, later ones grow it by the ease factor. Grading is boolean and
the ease factor moves by fixed steps.

This is a pure computation module with no I/O.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from fidel.domain.constants import (
    EASE_BONUS,
    EASE_PENALTY,
    EASE_PRECISION,
    INITIAL_EASE,
    INITIAL_INTERVAL_DAYS,
    MAX_INTERVAL_DAYS,
    MIN_EASE,
    SECOND_INTERVAL_DAYS,
)
from fidel.domain.models import ReviewState

from .numeric import round_half_up


@dataclass(frozen=True)
class SchedulerPolicy:
    """
    Step sizes and bounds for the scheduler.

    Attributes:
        initial_ease: Ease factor given to a card on first exposure.
        min_ease: Floor for the ease factor (never below MIN_EASE).
        ease_bonus: Added to the ease factor on a correct answer (>= 0).
        ease_penalty: Subtracted from the ease factor on a miss.
    """

    initial_ease: float = INITIAL_EASE
    min_ease: float = MIN_EASE
    ease_bonus: float = EASE_BONUS
    ease_penalty: float = EASE_PENALTY

    def __post_init__(self):
        if self.min_ease < MIN_EASE:
            raise ValueError(f"min_ease must be at least {MIN_EASE}")
        if self.ease_bonus < 0:
            raise ValueError("ease_bonus must not be negative")
        if self.ease_penalty < 0:
            raise ValueError("ease_penalty must not be negative")
        if self.initial_ease < self.min_ease:
            raise ValueError("initial_ease must be at least min_ease")


class ReviewScheduler:
    """
    Computes the next ReviewState from a graded answer.

    Stateless and side-effect free.
    """

    def __init__(self, policy: SchedulerPolicy | None = None):
        self.policy = policy or SchedulerPolicy()

    def new_state(self, card_id: str, now: datetime) -> ReviewState:
        """State for a card seen for the first time."""
        return ReviewState.first_exposure(card_id, now, initial_ease=self.policy.initial_ease)

    def grade(self, state: ReviewState, correct: bool, now: datetime) -> ReviewState:
        """
        Apply one graded answer.

        Args:
            state: Current state of the card.
            correct: Whether the learner recalled the card.
            now: Time of the grading; becomes last_reviewed.

        Returns:
            A new ReviewState; the input is left untouched.
        """
        if correct:
            repetitions = state.repetitions + 1
            if repetitions == 1:
                interval = INITIAL_INTERVAL_DAYS
            elif repetitions == 2:
                interval = SECOND_INTERVAL_DAYS
            else:
                # Uses the ease held before this answer's bonus
                interval = round_half_up(state.interval * state.ease_factor)
            ease = self._clamp(state.ease_factor + self.policy.ease_bonus)
            ease = max(ease, state.ease_factor)
            updated = replace(
                state,
                correct_count=state.correct_count + 1,
                repetitions=repetitions,
                interval=min(max(INITIAL_INTERVAL_DAYS, interval), MAX_INTERVAL_DAYS),
                ease_factor=ease,
            )
        else:
            updated = replace(
                state,
                incorrect_count=state.incorrect_count + 1,
                repetitions=0,
                interval=INITIAL_INTERVAL_DAYS,
                ease_factor=self._clamp(state.ease_factor - self.policy.ease_penalty),
            )

        return replace(updated, last_reviewed=now, next_review=_add_days(now, updated.interval))

    def _clamp(self, ease: float) -> float:
        return max(self.policy.min_ease, round(ease, EASE_PRECISION))


def _add_days(now: datetime, days: int) -> datetime:
    # Saturate instead of overflowing near the end of the calendar
    if datetime.max - now < timedelta(days=days):
        return datetime.max
    return now + timedelta(days=days)


def is_due(state: ReviewState, now: datetime) -> bool:
    """
    True when the card should be reviewed at `now`.

    A clock reading earlier than the last review is treated as not due
    rather than producing a negative remaining interval.
    """
    if now < state.last_reviewed:
        return False
    return state.next_review <= now

