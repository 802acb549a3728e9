"""
Deck session controller.

Drives one learner through a deck:

    presenting -> revealed -> graded -> presenting (next card) | complete

The next card depends on the study mode:
1. sequential: deck order, complete after the last card
2. random: uniform draw from the whole deck, repeats allowed
3. spaced: the most overdue card, else sequential fallback
"""

import logging
import random
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime
from typing import Literal

from ulid import ULID

from fidel.domain.constants import DEFAULT_LEARNER_ID
from fidel.domain.errors import CardNotFoundError, EmptyDeckError, InvalidTransitionError
from fidel.domain.models import Card, ReviewState, Session, StudyMode
from fidel.domain.ports import Clock

from .numeric import round_half_up
from .scheduler import ReviewScheduler, is_due

logger = logging.getLogger(__name__)

Phase = Literal["presenting", "revealed", "graded", "complete", "abandoned"]

TERMINAL_PHASES = ("complete", "abandoned")


class DeckSession:
    """
    State machine for a single study run over a fixed deck.

    Review states are held in memory and replaced on every grading. The
    finished Session is handed to `on_complete` exactly once, and never for
    an abandoned run; `graded_states` is what the run changed. If
    `on_complete` raises, the run stays open and `complete` can be retried.
    """

    def __init__(
        self,
        cards: Sequence[Card],
        states: Mapping[str, ReviewState] | None = None,
        study_mode: StudyMode = "sequential",
        *,
        learner_id: str = DEFAULT_LEARNER_ID,
        clock: Clock = datetime.now,
        scheduler: ReviewScheduler | None = None,
        rng: random.Random | None = None,
        on_complete: Callable[[Session], None] | None = None,
    ):
        if not cards:
            raise EmptyDeckError("Cannot start a session over an empty deck")

        self.cards = list(cards)
        self.study_mode: StudyMode = study_mode
        self.learner_id = learner_id
        self._clock = clock
        self._scheduler = scheduler or ReviewScheduler()
        self._rng = rng or random.Random()
        self._on_complete = on_complete
        self._positions = {card.id: i for i, card in enumerate(self.cards)}

        self.started_at = clock()
        known = states or {}
        self._states: dict[str, ReviewState] = {
            card.id: known.get(card.id) or self._scheduler.new_state(card.id, self.started_at)
            for card in self.cards
        }

        self.phase: Phase = "presenting"
        self.index = self._initial_index()
        self.correct_answers = 0
        self.total_answers = 0
        self._graded_ids: set[str] = set()
        self._categories: set[str] = set()
        self.session: Session | None = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def current_card(self) -> Card | None:
        if self.phase in TERMINAL_PHASES:
            return None
        return self.cards[self.index]

    @property
    def is_revealed(self) -> bool:
        return self.phase in ("revealed", "graded")

    @property
    def is_finished(self) -> bool:
        return self.phase in TERMINAL_PHASES

    @property
    def accuracy_percentage(self) -> int:
        """Live accuracy of this run as a whole percentage (0 before any answer)."""
        if self.total_answers == 0:
            return 0
        return round_half_up(self.correct_answers / self.total_answers * 100)

    @property
    def states(self) -> dict[str, ReviewState]:
        return dict(self._states)

    @property
    def graded_states(self) -> list[ReviewState]:
        """States of the cards graded in this run, in deck order."""
        return [self._states[c.id] for c in self.cards if c.id in self._graded_ids]

    def state_for(self, card_id: str) -> ReviewState:
        try:
            return self._states[card_id]
        except KeyError:
            raise CardNotFoundError(card_id) from None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def reveal(self) -> Card:
        """Flip the current card to its answer side."""
        self._require("reveal", "presenting")
        self.phase = "revealed"
        return self.cards[self.index]

    def grade(self, correct: bool) -> ReviewState:
        """
        Grade the revealed card and update session counters.

        Returns:
            The card's new ReviewState.

        Raises:
            InvalidTransitionError: If the card has not been revealed.
        """
        self._require("grade", "revealed")
        card = self.cards[self.index]
        now = self._clock()

        updated = self._scheduler.grade(self._states[card.id], correct, now)
        self._states[card.id] = updated

        self.total_answers += 1
        if correct:
            self.correct_answers += 1
        self._graded_ids.add(card.id)
        self._categories.add(card.category)
        self.phase = "graded"

        logger.debug(
            f"[session] {card.id} graded {'correct' if correct else 'incorrect'}: "
            f"interval={updated.interval} ease={updated.ease_factor}"
        )
        return updated

    def advance(self) -> Card | None:
        """
        Move to the next card according to the study mode.

        Returns:
            The card now presented, or None if the session completed.
        """
        self._require("advance", "presenting", "revealed", "graded")

        if self.study_mode == "random":
            next_index: int | None = self._random_index()
        elif self.study_mode == "spaced":
            next_index = self._earliest_due_index(self._clock())
            if next_index is None:
                next_index = self._sequential_index()
        else:
            next_index = self._sequential_index()

        if next_index is None:
            self.complete()
            return None

        self.index = next_index
        self.phase = "presenting"
        return self.cards[self.index]

    def previous(self) -> Card:
        """Step back one card. Grading state is left untouched."""
        self._require("go back", "presenting", "revealed", "graded")
        if self.index > 0:
            self.index -= 1
        self.phase = "presenting"
        return self.cards[self.index]

    def shuffle(self) -> Card:
        """Switch to random mode and jump to a random card."""
        self._require("shuffle", "presenting", "revealed", "graded")
        self.study_mode = "random"
        self.index = self._random_index()
        self.phase = "presenting"
        return self.cards[self.index]

    def complete(self) -> Session:
        """Finalize the run and emit its Session."""
        self._require("complete", "presenting", "revealed", "graded")
        ended_at = self._clock()
        elapsed = max(0.0, (ended_at - self.started_at).total_seconds())

        record = Session(
            id=str(ULID()),
            learner_id=self.learner_id,
            date=self.started_at,
            ended_at=ended_at,
            study_mode=self.study_mode,
            phrases_studied=len(self._graded_ids),
            correct_answers=self.correct_answers,
            total_answers=self.total_answers,
            time_spent_minutes=round_half_up(elapsed / 60),
            categories=frozenset(self._categories),
        )
        if self.total_answers == 0:
            logger.warning(
                f"[session] {record.id} completed without answers; "
                f"it will not count towards accuracy"
            )
        if self._on_complete is not None:
            self._on_complete(record)

        self.session = record
        self.phase = "complete"
        logger.info(
            f"[session] {record.id} complete: "
            f"{self.correct_answers}/{self.total_answers} correct"
        )
        return record

    def abandon(self) -> None:
        """Discard the run. Nothing is emitted or recorded."""
        self._require("abandon", "presenting", "revealed", "graded")
        self.phase = "abandoned"
        logger.info(f"[session] abandoned after {self.total_answers} answers")

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def _initial_index(self) -> int:
        if self.study_mode == "random":
            return self._random_index()
        if self.study_mode == "spaced":
            due = self._earliest_due_index(self.started_at)
            if due is not None:
                return due
        return 0

    def _sequential_index(self) -> int | None:
        if self.index + 1 < len(self.cards):
            return self.index + 1
        return None

    def _random_index(self) -> int:
        return self._rng.randrange(len(self.cards))

    def _earliest_due_index(self, now: datetime) -> int | None:
        due = [
            (state.next_review, self._positions[card_id])
            for card_id, state in self._states.items()
            if is_due(state, now)
        ]
        if not due:
            return None
        return min(due)[1]

    def _require(self, action: str, *allowed: Phase) -> None:
        if self.phase not in allowed:
            raise InvalidTransitionError(action, self.phase)
