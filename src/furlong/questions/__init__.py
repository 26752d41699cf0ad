"""Trivia question sources."""

from .bank import STATIC_QUESTIONS
from .opentdb import OpenTriviaSource
from .source import QuestionSource, StaticQuestionSource

__all__ = [
    "OpenTriviaSource",
    "QuestionSource",
    "STATIC_QUESTIONS",
    "StaticQuestionSource",
]
