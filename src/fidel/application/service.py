"""
Learner Service: Application layer orchestrator.

Coordinates the card source, the state store, the scheduler, deck sessions
and progress analytics for individual learners.
"""

import logging
import random
import threading
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime

from fidel.domain.constants import DEFAULT_LEARNER_ID
from fidel.domain.models import Achievement, CardFilter, ReviewState, Session, StudyMode, TimeRange
from fidel.domain.ports import CardSource, Clock, StateStore

from .deck_session import DeckSession
from .progress import analyzer
from .progress.achievements import AchievementEvaluator, ProgressSnapshot, unlock_times
from .progress.analyzer import ProgressSummary
from .scheduler import ReviewScheduler, is_due

logger = logging.getLogger(__name__)


@dataclass
class DeckOverview:
    """How far a learner has got through the card source."""

    total_cards: int
    learned_cards: int
    due_cards: int


class LearnerService:
    """
    Application service for studying, grading and progress reporting.

    Follows Dependency Inversion: depends on the CardSource and StateStore
    abstractions, not concrete adapter implementations. Grading and session
    completion run under an exclusive per-learner lock.

    A deck session's grades are kept in the session until it completes, so an
    abandoned run leaves no trace in the store. Achievements are re-evaluated
    whenever stored progress changes, so unlock times record when a target
    was first reached.
    """

    def __init__(
        self,
        cards: CardSource,
        store: StateStore,
        *,
        clock: Clock = datetime.now,
        scheduler: ReviewScheduler | None = None,
        evaluator: AchievementEvaluator | None = None,
        rng: random.Random | None = None,
    ):
        """
        Args:
            cards: The read-only card source (port).
            store: The persistence port for states, sessions and unlocks.
            clock: Source of "now"; injected so tests control time.
            scheduler: Optional custom scheduler; uses default if not provided.
            evaluator: Optional custom achievement rules.
            rng: Random source for random-mode sessions.
        """
        self._cards = cards
        self._store = store
        self._clock = clock
        self._scheduler = scheduler or ReviewScheduler()
        self._evaluator = evaluator or AchievementEvaluator()
        self._rng = rng
        self._locks = defaultdict(threading.RLock)
        self._locks_guard = threading.Lock()

    def _lock_for(self, learner_id: str):
        with self._locks_guard:
            return self._locks[learner_id]

    # ------------------------------------------------------------------
    # Studying
    # ------------------------------------------------------------------

    def start_session(
        self,
        learner_id: str = DEFAULT_LEARNER_ID,
        study_mode: StudyMode = "spaced",
        card_filter: CardFilter | None = None,
        limit: int | None = None,
    ) -> DeckSession:
        """
        Open a deck session over the cards matching the filter.

        Raises:
            EmptyDeckError: If no card matches.
        """
        cards = self._cards.list_cards(card_filter)
        if limit is not None:
            cards = cards[:limit]

        states = {s.card_id: s for s in self._store.list_review_states(learner_id)}
        session = DeckSession(
            cards,
            states,
            study_mode,
            learner_id=learner_id,
            clock=self._clock,
            scheduler=self._scheduler,
            rng=self._rng,
            on_complete=lambda record: self._record_session(learner_id, record, session.graded_states),
        )
        logger.info(f"[service] {learner_id} started a {study_mode} session over {len(cards)} cards")
        return session

    def grade(self, session: DeckSession, correct: bool) -> ReviewState:
        """Grade the session's revealed card. The new state is stored when the session completes."""
        with self._lock_for(session.learner_id):
            return session.grade(correct)

    def grade_card(self, learner_id: str, card_id: str, correct: bool) -> ReviewState:
        """
        Grade a card outside of any deck session.

        Raises:
            CardNotFoundError: If the card source has no such card.
        """
        card = self._cards.get(card_id)
        with self._lock_for(learner_id):
            now = self._clock()
            current = self._store.get_review_state(learner_id, card.id)
            if current is None:
                current = self._scheduler.new_state(card.id, now)
            state = self._scheduler.grade(current, correct, now)
            self._store.put_review_state(learner_id, state)
            self._latch_unlocks(learner_id)
            return state

    def complete_session(self, session: DeckSession) -> Session:
        """
        Finalize an open session and record it.

        Store errors propagate and leave the session open, so the call can be retried.
        """
        with self._lock_for(session.learner_id):
            return session.complete()

    def _record_session(self, learner_id: str, record: Session, states: list[ReviewState]) -> None:
        with self._lock_for(learner_id):
            for state in states:
                self._store.put_review_state(learner_id, state)
            self._store.append_session(learner_id, record)
            self._latch_unlocks(learner_id)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def overview(self, learner_id: str = DEFAULT_LEARNER_ID) -> DeckOverview:
        now = self._clock()
        card_ids = {c.id for c in self._cards.list_cards()}
        states = [s for s in self._store.list_review_states(learner_id) if s.card_id in card_ids]
        seen = {s.card_id for s in states}
        return DeckOverview(
            total_cards=len(card_ids),
            learned_cards=sum(1 for s in states if s.is_learned),
            # Unseen cards are due on first exposure
            due_cards=sum(1 for s in states if is_due(s, now)) + len(card_ids - seen),
        )

    def progress(self, learner_id: str = DEFAULT_LEARNER_ID, time_range: TimeRange = "week") -> ProgressSummary:
        history = self._store.list_sessions(learner_id)
        return analyzer.summarize(history, self._clock(), time_range)

    def achievements(self, learner_id: str = DEFAULT_LEARNER_ID) -> list[Achievement]:
        """Evaluate achievements and latch any new unlocks in the store."""
        return self._latch_unlocks(learner_id)

    def _latch_unlocks(self, learner_id: str) -> list[Achievement]:
        with self._lock_for(learner_id):
            now = self._clock()
            history = self._store.list_sessions(learner_id)
            overview = self.overview(learner_id)
            snapshot = ProgressSnapshot(
                completed_card_count=overview.learned_cards,
                total_card_count=overview.total_cards,
                current_streak=analyzer.current_streak(history, now.date()),
                session_history=tuple(history),
            )
            previous = self._store.get_unlocks(learner_id)
            achievements = self._evaluator.evaluate(snapshot, previous, now)

            unlocks = unlock_times(achievements)
            if unlocks != previous:
                self._store.put_unlocks(learner_id, unlocks)
            return achievements
