"""Trivia mode: timed questions resolve into boost or slowdown directives."""

import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

import numpy as np

from furlong.config import TriviaConfig
from furlong.errors import ConfigurationError, QuestionSourceError
from furlong.models import AnswerResult, IssuedQuestion, ModifierDirective, TriviaQuestion
from furlong.questions import STATIC_QUESTIONS, QuestionSource
from furlong.simulation.scheduler import AsyncioScheduler, ScheduledTask, Scheduler

if TYPE_CHECKING:
    from furlong.sync import RoomSync

logger = logging.getLogger(__name__)

QuestionListener = Callable[[IssuedQuestion], None]
ResultListener = Callable[[AnswerResult], None]


class TriviaController:
    """Host-side question scheduler.

    Applying the returned directives to the race engine is the caller's
    job; this controller only decides who earned a boost or a slowdown.
    """

    def __init__(
        self,
        on_question: QuestionListener | None = None,
        on_result: ResultListener | None = None,
        question_source: QuestionSource | None = None,
        config: TriviaConfig | None = None,
        scheduler: Scheduler | None = None,
        rng: np.random.Generator | None = None,
        sync: "RoomSync | None" = None,
        fallback_questions: Sequence[TriviaQuestion] = STATIC_QUESTIONS,
    ):
        """Initialize the controller.

        Args:
            on_question: Receives every issued question
            on_result: Receives every accepted answer result
            question_source: Remote source to pre-fetch from; static bank only when None
            config: Mode tuning
            scheduler: Timer source
            rng: Random number generator for fallback picks
            sync: Room sync layer that broadcasts issued questions
            fallback_questions: Static bank used when fetched questions run out

        Raises:
            ConfigurationError: If the static bank is empty
        """
        self.on_question = on_question
        self.on_result = on_result
        self.question_source = question_source
        self.config = config or TriviaConfig()
        self.scheduler = scheduler or AsyncioScheduler()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.sync = sync
        self.fallback_questions = list(fallback_questions)
        if not self.fallback_questions:
            raise ConfigurationError("TriviaController requires at least one fallback question")

        self.fetched_questions: list[TriviaQuestion] = []
        self.used_question_ids: set[str] = set()
        self.current_question: IssuedQuestion | None = None
        self.player_answers: dict[str, int] = {}
        self.questions_asked = 0
        self.is_active = False

        self._interval_task: ScheduledTask | None = None
        self._timeout_task: ScheduledTask | None = None

    async def start(self) -> None:
        """Pre-fetch questions, issue the first one and arm the interval."""
        self._cancel_timers()
        self.is_active = True
        self.used_question_ids = set()
        self.questions_asked = 0
        self.current_question = None
        self.player_answers = {}
        self.fetched_questions = []

        await self._prefetch()
        if not self.is_active:
            # Stopped while the fetch was in flight
            return

        self.ask_question()
        if not self.is_active:
            # Stopped by the question listener
            return
        self._interval_task = self.scheduler.call_every(
            self.config.question_interval_ms, self._on_interval, name="trivia-interval"
        )

    async def _prefetch(self) -> None:
        if self.question_source is None:
            return
        amount = self.config.max_questions + self.config.prefetch_margin
        try:
            self.fetched_questions = list(await self.question_source.fetch(amount))
        except QuestionSourceError as ex:
            logger.warning("Question fetch failed, using the static bank: %s", ex)
            self.fetched_questions = []
        else:
            logger.info("Pre-fetched %d questions", len(self.fetched_questions))

    def stop(self) -> None:
        """Cancel the question interval and the pending answer timeout. Idempotent."""
        self.is_active = False
        self._cancel_timers()
        self.current_question = None

    def _cancel_timers(self) -> None:
        for task in (self._interval_task, self._timeout_task):
            if task is not None:
                task.cancel()
        self._interval_task = self._timeout_task = None

    def _on_interval(self) -> None:
        if not self.is_active:
            return
        if self.questions_asked >= self.config.max_questions:
            if self._interval_task is not None:
                self._interval_task.cancel()
                self._interval_task = None
            return
        self.ask_question()

    def _next_question(self) -> TriviaQuestion:
        """Fetched questions first, then unused static ones, then any repeat."""
        for question in self.fetched_questions:
            if question.id not in self.used_question_ids:
                return question

        unused = [q for q in self.fallback_questions if q.id not in self.used_question_ids]
        if unused:
            return unused[int(self.rng.integers(len(unused)))]

        pool = self.fetched_questions + self.fallback_questions
        return pool[int(self.rng.integers(len(pool)))]

    def ask_question(self) -> IssuedQuestion:
        """Issue the next question and arm its answer timeout."""
        question = self._next_question()
        self.used_question_ids.add(question.id)
        self.questions_asked += 1
        self.player_answers = {}

        issued = IssuedQuestion(
            **question.model_dump(include=set(TriviaQuestion.model_fields)),
            issued_at_ms=self.scheduler.now_ms(),
            timeout_ms=self.config.answer_timeout_ms,
            number=self.questions_asked,
            total=max(self.config.max_questions, self.questions_asked),
        )
        self.current_question = issued

        if self._timeout_task is not None:
            self._timeout_task.cancel()
        self._timeout_task = self.scheduler.call_later(
            self.config.answer_timeout_ms, self._resolve_question, name="trivia-timeout"
        )

        logger.info("Question %d/%d issued: %s", issued.number, issued.total, issued.id)
        if self.on_question is not None:
            self.on_question(issued)
        if self.sync is not None and self.is_active:
            self.sync.publish_question(issued)
        return issued

    def _resolve_question(self) -> None:
        # Unanswered players simply get no modifier
        self._timeout_task = None
        if self.current_question is not None:
            logger.debug("Question %s timed out", self.current_question.id)
        self.current_question = None

    def submit_answer(self, player_id: str, answer_index: int) -> AnswerResult | None:
        """Record one player's answer to the active question.

        Returns:
            The result, or None if no question is active, the player already
            answered, or the index is out of range
        """
        question = self.current_question
        if question is None or player_id in self.player_answers:
            return None
        if not 0 <= answer_index < len(question.options):
            return None

        self.player_answers[player_id] = answer_index
        is_correct = answer_index == question.correct_index
        if is_correct:
            modifier = ModifierDirective(boost=True, duration_ms=self.config.boost_duration_ms)
        else:
            modifier = ModifierDirective(slowdown=True, duration_ms=self.config.slowdown_duration_ms)

        result = AnswerResult(
            player_id=player_id,
            question_id=question.id,
            answer_index=answer_index,
            is_correct=is_correct,
            modifier=modifier,
        )
        if self.on_result is not None:
            self.on_result(result)
        return result

    def get_current_question(self) -> IssuedQuestion | None:
        return self.current_question

    def get_questions_asked(self) -> int:
        return self.questions_asked

    def get_max_questions(self) -> int:
        return self.config.max_questions
