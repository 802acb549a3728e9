"""
Card sources: Infrastructure adapters for the read-only phrase deck.

Cards come either from memory or from a YAML deck file shaped like:

    cards:
      - id: greet_hello
        front: ሰላም
        back: Hello
        category: greetings
        difficulty: beginner
"""

import logging
from collections.abc import Iterable
from importlib import resources
from pathlib import Path

import yaml
from pydantic import TypeAdapter, ValidationError

from fidel.domain.errors import CardNotFoundError, CardSourceError
from fidel.domain.models import Card, CardFilter
from fidel.domain.ports import CardSource

logger = logging.getLogger(__name__)

_CARDS_ADAPTER = TypeAdapter(list[Card])

BUNDLED_DECK = "phrases.yaml"


class InMemoryCardSource(CardSource):
    """Serves a fixed list of cards in the order given."""

    def __init__(self, cards: Iterable[Card]):
        self._cards: dict[str, Card] = {}
        for card in cards:
            if card.id in self._cards:
                raise CardSourceError(f"Duplicate card id: {card.id}")
            self._cards[card.id] = card

    def list_cards(self, card_filter: CardFilter | None = None) -> list[Card]:
        cards = self._cards.values()
        if card_filter is None:
            return list(cards)
        return [c for c in cards if card_filter.matches(c)]

    def get(self, card_id: str) -> Card:
        try:
            return self._cards[card_id]
        except KeyError:
            raise CardNotFoundError(card_id) from None

    def __len__(self) -> int:
        return len(self._cards)


class YamlCardSource(InMemoryCardSource):
    """
    Loads cards from a YAML deck file.

    With no path, the phrase deck bundled with the package is used.
    """

    def __init__(self, path: Path | None = None):
        self.path = path
        if path is None:
            text = resources.files("fidel.data").joinpath(BUNDLED_DECK).read_text(encoding="utf-8")
            origin = f"<bundled {BUNDLED_DECK}>"
        else:
            try:
                text = Path(path).read_text(encoding="utf-8")
            except OSError as e:
                raise CardSourceError(f"Cannot read deck file {path}: {e}") from e
            origin = str(path)

        super().__init__(parse_deck(text, origin))
        logger.debug(f"[cards] Loaded {len(self)} cards from {origin}")


def parse_deck(text: str, origin: str = "<string>") -> list[Card]:
    """
    Parse a YAML deck document into cards.

    Raises:
        CardSourceError: If the YAML is malformed or a card is invalid.
    """
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise CardSourceError(f"{origin}: invalid YAML: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("cards", []), list):
        raise CardSourceError(f"{origin}: expected a mapping with a 'cards' list")

    try:
        return _CARDS_ADAPTER.validate_python(data.get("cards", []))
    except ValidationError as e:
        raise CardSourceError(f"{origin}: invalid card entry: {e}") from e
