"""
In-memory state store.

Implements StateStore with plain dictionaries. Used in tests and when the
engine is embedded in a host that manages persistence itself.
"""

from collections import defaultdict
from datetime import datetime

from fidel.domain.models import ReviewState, Session
from fidel.domain.ports import StateStore


class InMemoryStateStore(StateStore):
    """Process-local storage keyed by learner id."""

    def __init__(self):
        self._states: dict[str, dict[str, ReviewState]] = defaultdict(dict)
        self._sessions: dict[str, list[Session]] = defaultdict(list)
        self._unlocks: dict[str, dict[str, datetime]] = defaultdict(dict)

    def get_review_state(self, learner_id: str, card_id: str) -> ReviewState | None:
        return self._states[learner_id].get(card_id)

    def put_review_state(self, learner_id: str, state: ReviewState) -> None:
        self._states[learner_id][state.card_id] = state

    def list_review_states(self, learner_id: str) -> list[ReviewState]:
        return list(self._states[learner_id].values())

    def append_session(self, learner_id: str, session: Session) -> None:
        self._sessions[learner_id].append(session)

    def list_sessions(
        self,
        learner_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Session]:
        sessions = [
            s
            for s in self._sessions[learner_id]
            if (start is None or s.date >= start) and (end is None or s.date < end)
        ]
        return sorted(sessions, key=lambda s: s.date)

    def get_unlocks(self, learner_id: str) -> dict[str, datetime]:
        return dict(self._unlocks[learner_id])

    def put_unlocks(self, learner_id: str, unlocks: dict[str, datetime]) -> None:
        # Merge so an unlock can never be dropped by a partial write
        merged = dict(unlocks)
        merged.update(self._unlocks[learner_id])
        self._unlocks[learner_id] = merged
