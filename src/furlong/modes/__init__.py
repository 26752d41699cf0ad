"""Game-mode controllers feeding the race engine."""

from .button_mash import ButtonMashController
from .random_events import RandomEventController, event_distribution, generate_random_event
from .trivia import TriviaController

__all__ = [
    "ButtonMashController",
    "RandomEventController",
    "TriviaController",
    "event_distribution",
    "generate_random_event",
]
