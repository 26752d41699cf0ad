"""Question source protocol and the static implementation."""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

import numpy as np

from furlong.models import TriviaQuestion
from furlong.questions.bank import STATIC_QUESTIONS


@runtime_checkable
class QuestionSource(Protocol):
    """Supplies normalized trivia questions.

    Implementations raise :class:`furlong.errors.QuestionSourceError` and
    nothing else when questions cannot be delivered.
    """

    async def fetch(
        self,
        amount: int,
        difficulty: str | None = None,
        category: int | None = None,
    ) -> list[TriviaQuestion]: ...


class StaticQuestionSource:
    """Serves questions from an in-memory bank, shuffled."""

    def __init__(
        self,
        questions: Sequence[TriviaQuestion] = STATIC_QUESTIONS,
        rng: np.random.Generator | None = None,
    ):
        self.questions = list(questions)
        self.rng = rng if rng is not None else np.random.default_rng()

    async def fetch(
        self,
        amount: int,
        difficulty: str | None = None,
        category: int | None = None,
    ) -> list[TriviaQuestion]:
        # The bank carries no difficulty or numeric category metadata
        order = self.rng.permutation(len(self.questions))
        return [self.questions[int(i)] for i in order[: max(0, amount)]]
