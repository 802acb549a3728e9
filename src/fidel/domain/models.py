"""
Domain models for the learning engine.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from .constants import INITIAL_EASE, INITIAL_INTERVAL_DAYS

Category = Literal["greetings", "shopping", "emergency", "food"]
Difficulty = Literal["beginner", "intermediate", "advanced"]
StudyMode = Literal["sequential", "random", "spaced"]
TimeRange = Literal["week", "month", "all"]


@dataclass(frozen=True)
class Card:
    """
    An immutable learnable phrase.

    Attributes:
        id: Unique card identifier.
        front: Prompt side (the phrase in the target language).
        back: Answer side (the translation).
        category: Topic the phrase belongs to.
        difficulty: Learner level the phrase targets.
        pronunciation: Optional romanised pronunciation hint.
        cultural_note: Optional usage note shown with the answer.
    """

    id: str
    front: str
    back: str
    category: Category
    difficulty: Difficulty
    pronunciation: str | None = None
    cultural_note: str | None = None


@dataclass(frozen=True)
class CardFilter:
    """Selection criteria for a card source. Unset fields match everything."""

    category: Category | None = None
    difficulty: Difficulty | None = None
    ids: frozenset[str] | None = None

    def matches(self, card: Card) -> bool:
        if self.category is not None and card.category != self.category:
            return False
        if self.difficulty is not None and card.difficulty != self.difficulty:
            return False
        if self.ids is not None and card.id not in self.ids:
            return False
        return True


@dataclass(frozen=True)
class ReviewState:
    """
    Per-learner scheduling state of a single card.

    Attributes:
        card_id: The card this state belongs to.
        correct_count: Total correct gradings.
        incorrect_count: Total incorrect gradings.
        repetitions: Consecutive correct gradings since the last miss.
        interval: Days until the next review (>= 1).
        ease_factor: Interval growth multiplier (>= 1.3).
        last_reviewed: When the card was last graded (or first seen).
        next_review: When the card becomes due again.
    """

    card_id: str
    last_reviewed: datetime
    next_review: datetime
    correct_count: int = 0
    incorrect_count: int = 0
    repetitions: int = 0
    interval: int = INITIAL_INTERVAL_DAYS
    ease_factor: float = INITIAL_EASE

    @classmethod
    def first_exposure(
        cls, card_id: str, now: datetime, initial_ease: float = INITIAL_EASE
    ) -> "ReviewState":
        """State for a card the learner has never seen: due immediately."""
        return cls(card_id=card_id, last_reviewed=now, next_review=now, ease_factor=initial_ease)

    @property
    def is_learned(self) -> bool:
        return self.correct_count >= 1


@dataclass(frozen=True)
class Session:
    """
    A finalized study run.

    Only completed sessions exist as Session records; an abandoned run is
    discarded before it ever becomes one.
    """

    id: str
    learner_id: str
    date: datetime
    ended_at: datetime
    study_mode: StudyMode
    phrases_studied: int = 0
    correct_answers: int = 0
    total_answers: int = 0
    time_spent_minutes: int = 0
    categories: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self):
        if self.correct_answers < 0 or self.total_answers < 0:
            raise ValueError("answer counts must be non-negative")
        if self.correct_answers > self.total_answers:
            raise ValueError(
                f"correct_answers ({self.correct_answers}) exceeds "
                f"total_answers ({self.total_answers})"
            )

    @property
    def incorrect_answers(self) -> int:
        return self.total_answers - self.correct_answers

    @property
    def accuracy(self) -> float | None:
        """Fraction of correct answers, or None for a degenerate (unanswered) session."""
        if self.total_answers == 0:
            return None
        return self.correct_answers / self.total_answers

    @property
    def is_perfect(self) -> bool:
        return self.total_answers > 0 and self.correct_answers == self.total_answers


@dataclass
class Achievement:
    """
    A milestone evaluated against a progress snapshot.

    Attributes:
        id: Stable rule identifier (used as the unlock latch key).
        title: Short display name.
        description: What the learner has to do.
        target: Progress value needed to unlock.
        progress: Current progress, capped at target.
        unlocked_at: First time progress reached target; never cleared.
    """

    id: str
    title: str
    description: str
    target: int
    progress: int = 0
    unlocked_at: datetime | None = None

    @property
    def unlocked(self) -> bool:
        return self.unlocked_at is not None
