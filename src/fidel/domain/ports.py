"""
Ports (interfaces) for cards, learner state and time.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime

from .models import Card, CardFilter, ReviewState, Session

Clock = Callable[[], datetime]


class CardSource(ABC):
    """
    Read-only provider of learnable cards.

    Implementations:
        - InMemoryCardSource: Cards handed in by the caller.
        - YamlCardSource: Cards loaded from a YAML deck file.
    """

    @abstractmethod
    def list_cards(self, card_filter: CardFilter | None = None) -> list[Card]:
        """
        List cards matching the filter, in deck order.

        Args:
            card_filter: Optional selection criteria; None returns every card.

        Returns:
            List of Card objects.
        """
        pass

    @abstractmethod
    def get(self, card_id: str) -> Card:
        """
        Fetch a single card.

        Raises:
            CardNotFoundError: If no card has this id.
        """
        pass


class StateStore(ABC):
    """
    Port for per-learner persistence.

    Holds one ReviewState per (learner, card), an append-only session log
    per learner, and the achievement unlock latch. Errors raised by an
    implementation are surfaced to the caller unmodified.

    Implementations:
        - InMemoryStateStore: Process-local dictionaries.
        - JsonFileStateStore: A single JSON document on disk.
    """

    @abstractmethod
    def get_review_state(self, learner_id: str, card_id: str) -> ReviewState | None:
        pass

    @abstractmethod
    def put_review_state(self, learner_id: str, state: ReviewState) -> None:
        pass

    @abstractmethod
    def list_review_states(self, learner_id: str) -> list[ReviewState]:
        pass

    @abstractmethod
    def append_session(self, learner_id: str, session: Session) -> None:
        pass

    @abstractmethod
    def list_sessions(
        self,
        learner_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Session]:
        """
        List completed sessions for a learner.

        Args:
            learner_id: The learner whose history is read.
            start: Inclusive lower bound on session date.
            end: Exclusive upper bound on session date.

        Returns:
            Sessions sorted by date ascending.
        """
        pass

    @abstractmethod
    def get_unlocks(self, learner_id: str) -> dict[str, datetime]:
        """Achievement id -> unlock time for every achievement already unlocked."""
        pass

    @abstractmethod
    def put_unlocks(self, learner_id: str, unlocks: dict[str, datetime]) -> None:
        pass
