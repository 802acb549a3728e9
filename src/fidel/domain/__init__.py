# Domain Package
from .errors import (
    CardNotFoundError,
    CardSourceError,
    EmptyDeckError,
    FidelError,
    InvalidTransitionError,
)
from .models import Achievement, Card, CardFilter, ReviewState, Session
from .ports import CardSource, Clock, StateStore

__all__ = [
    "Achievement",
    "Card",
    "CardFilter",
    "ReviewState",
    "Session",
    "CardSource",
    "Clock",
    "StateStore",
    "FidelError",
    "CardNotFoundError",
    "CardSourceError",
    "EmptyDeckError",
    "InvalidTransitionError",
]
