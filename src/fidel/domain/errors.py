"""Error taxonomy for the learning engine.

All errors are raised synchronously and leave engine state unchanged.
"""


class FidelError(Exception):
    """Base class for every error raised by the engine."""


class CardNotFoundError(FidelError, KeyError):
    """A card id is absent from the deck or the card source."""

    def __init__(self, card_id: str):
        super().__init__(card_id)
        self.card_id = card_id

    def __str__(self) -> str:
        return f"Unknown card: {self.card_id}"


class InvalidTransitionError(FidelError):
    """A deck session action is not allowed in the current phase."""

    def __init__(self, action: str, phase: str):
        super().__init__(f"Cannot {action} while session is {phase}")
        self.action = action
        self.phase = phase


class CardSourceError(FidelError):
    """A card file could not be parsed into cards."""


class EmptyDeckError(FidelError):
    """A deck session was requested over zero cards."""
