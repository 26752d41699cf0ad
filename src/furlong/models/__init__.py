"""Data models for the race core."""

from .entity import Modifier, RaceSnapshot, RaceState, RaceStatus, RacingEntity, Ranking
from .event import EventKind, RandomEvent
from .question import AnswerResult, IssuedQuestion, ModifierDirective, TriviaQuestion
from .stamina import Stamina

__all__ = [
    "AnswerResult",
    "EventKind",
    "IssuedQuestion",
    "Modifier",
    "ModifierDirective",
    "RaceSnapshot",
    "RaceState",
    "RaceStatus",
    "RacingEntity",
    "RandomEvent",
    "Ranking",
    "Stamina",
    "TriviaQuestion",
]
