"""
Achievement evaluation.

Rules are evaluated against a progress snapshot. Unlocking is a one-way
latch: once an achievement has an unlock time it keeps it, whatever later
snapshots say.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from fidel.domain.constants import CARD_MILESTONES, STREAK_TARGET_DAYS
from fidel.domain.models import Achievement, Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressSnapshot:
    """Inputs to achievement evaluation."""

    completed_card_count: int
    total_card_count: int
    current_streak: int
    session_history: Sequence[Session] = field(default_factory=tuple)


@dataclass(frozen=True)
class AchievementRule:
    """
    A single achievement definition.

    `target` and `measure` are both functions of the snapshot so that rules
    like "complete the whole deck" can depend on its size.
    """

    id: str
    title: str
    description: str
    target: Callable[[ProgressSnapshot], int]
    measure: Callable[[ProgressSnapshot], int]


def _fixed(value: int) -> Callable[[ProgressSnapshot], int]:
    return lambda _snapshot: value


def _completed_cards(snapshot: ProgressSnapshot) -> int:
    return snapshot.completed_card_count


def _has_perfect_session(snapshot: ProgressSnapshot) -> int:
    return 1 if any(s.is_perfect for s in snapshot.session_history) else 0


_MILESTONE_NAMES = {
    1: ("first_phrase", "First Steps", "Complete your first phrase"),
    5: ("five_phrases", "Getting Started", "Complete 5 phrases"),
    10: ("ten_phrases", "Making Progress", "Complete 10 phrases"),
}


def default_rules(
    card_milestones: Sequence[int] = CARD_MILESTONES,
    streak_target: int = STREAK_TARGET_DAYS,
) -> list[AchievementRule]:
    """The standard rule set: card milestones, full deck, streak and perfect session."""
    rules = []
    for milestone in card_milestones:
        rule_id, title, description = _MILESTONE_NAMES.get(
            milestone,
            (f"{milestone}_phrases", f"{milestone} Phrases", f"Complete {milestone} phrases"),
        )
        rules.append(
            AchievementRule(rule_id, title, description, _fixed(milestone), _completed_cards)
        )

    rules.extend(
        [
            AchievementRule(
                "all_phrases",
                "Master Student",
                "Complete all phrases",
                # An empty deck must not unlock on 0 >= 0
                lambda snapshot: max(snapshot.total_card_count, 1),
                _completed_cards,
            ),
            AchievementRule(
                "seven_day_streak" if streak_target == 7 else f"{streak_target}_day_streak",
                "Consistent Learner",
                f"Study for {streak_target} days in a row",
                _fixed(streak_target),
                lambda snapshot: snapshot.current_streak,
            ),
            AchievementRule(
                "perfect_session",
                "Perfect Score",
                "Answer every card correctly in one session",
                _fixed(1),
                _has_perfect_session,
            ),
        ]
    )
    return rules


class AchievementEvaluator:
    """
    Applies a fixed rule set to progress snapshots.

    Stateless; the unlock latch is passed in and the caller persists the
    returned unlock times.
    """

    def __init__(self, rules: Sequence[AchievementRule] | None = None):
        self.rules = list(rules) if rules is not None else default_rules()

    def evaluate(
        self,
        snapshot: ProgressSnapshot,
        previous_unlocks: Mapping[str, datetime] | None = None,
        now: datetime | None = None,
    ) -> list[Achievement]:
        """
        Evaluate every rule.

        Args:
            snapshot: Current progress inputs.
            previous_unlocks: Achievement id -> unlock time already latched.
            now: Unlock time for achievements reached by this snapshot.

        Returns:
            One Achievement per rule, in rule order.
        """
        previous_unlocks = previous_unlocks or {}
        now = now or datetime.now()
        achievements = []

        for rule in self.rules:
            target = rule.target(snapshot)
            progress = min(max(rule.measure(snapshot), 0), target)
            unlocked_at = previous_unlocks.get(rule.id)
            if unlocked_at is None and progress >= target:
                unlocked_at = now
                logger.info(f"[achievements] Unlocked {rule.id}")
            if unlocked_at is not None:
                # Latched achievements stay complete after a streak breaks
                progress = target

            achievements.append(
                Achievement(
                    id=rule.id,
                    title=rule.title,
                    description=rule.description,
                    target=target,
                    progress=progress,
                    unlocked_at=unlocked_at,
                )
            )
        return achievements


def unlock_times(achievements: Sequence[Achievement]) -> dict[str, datetime]:
    """Collect the latch entries from evaluated achievements."""
    return {a.id: a.unlocked_at for a in achievements if a.unlocked_at is not None}
