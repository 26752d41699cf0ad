import asyncio

import pytest

from furlong.config import TriviaConfig
from furlong.errors import ConfigurationError, QuestionSourceError
from furlong.models import TriviaQuestion
from furlong.modes import TriviaController
from furlong.questions import StaticQuestionSource
from furlong.sync import RoomSync


class FailingSource:
    async def fetch(self, amount, difficulty=None, category=None):
        raise QuestionSourceError("offline")


class StoppingSource:
    def __init__(self):
        self.controller = None

    async def fetch(self, amount, difficulty=None, category=None):
        self.controller.stop()
        return []


def _fetched(n):
    return [
        TriviaQuestion(id=f"api-test-{i}", text=f"Question {i}?", options=("a", "b", "c", "d"), correct_index=i % 4)
        for i in range(n)
    ]


@pytest.fixture()
def issued():
    return []


@pytest.fixture()
def trivia(scheduler, rng, issued):
    ctrl = TriviaController(on_question=issued.append, scheduler=scheduler, rng=rng)
    asyncio.run(ctrl.start())
    return ctrl


def test_start_issues_first_question(trivia, issued):
    assert len(issued) == 1
    question = trivia.get_current_question()
    assert question == issued[0]
    assert question.number == 1
    assert question.total == 10
    assert question.timeout_ms == 6000
    assert question.id.startswith("static-")


def test_correct_answer_earns_boost(trivia):
    question = trivia.get_current_question()

    result = trivia.submit_answer("p1", question.correct_index)

    assert result.is_correct
    assert result.modifier.boost and not result.modifier.slowdown
    assert result.modifier.duration_ms == 3000
    assert result.question_id == question.id


def test_wrong_answer_earns_slowdown(trivia):
    question = trivia.get_current_question()
    wrong = (question.correct_index + 1) % 4

    result = trivia.submit_answer("p2", wrong)

    assert not result.is_correct
    assert result.modifier.slowdown and not result.modifier.boost
    assert result.modifier.duration_ms == 2000


def test_duplicate_answer_returns_none(trivia):
    question = trivia.get_current_question()

    assert trivia.submit_answer("p1", question.correct_index) is not None
    assert trivia.submit_answer("p1", question.correct_index) is None


def test_out_of_range_answer_records_nothing(trivia):
    question = trivia.get_current_question()

    assert trivia.submit_answer("p1", 4) is None
    assert trivia.submit_answer("p1", -1) is None
    assert trivia.submit_answer("p1", question.correct_index) is not None


def test_question_times_out(trivia, scheduler):
    question = trivia.get_current_question()

    scheduler.advance(6000)

    assert trivia.get_current_question() is None
    assert trivia.submit_answer("p1", question.correct_index) is None


def test_each_answer_round_is_independent(trivia, scheduler):
    trivia.submit_answer("p1", 0)
    scheduler.advance(8000)

    assert trivia.get_current_question().number == 2
    assert trivia.submit_answer("p1", 0) is not None


def test_questions_do_not_repeat_and_stop_at_max(trivia, scheduler, issued):
    scheduler.advance(200_000)

    assert trivia.get_questions_asked() == 10
    assert len(issued) == 10
    assert len({q.id for q in issued}) == 10
    assert [q.number for q in issued] == list(range(1, 11))
    assert scheduler.pending == 0


def test_fetched_questions_are_used_first(scheduler, rng, issued):
    fetched = _fetched(15)
    ctrl = TriviaController(
        on_question=issued.append,
        question_source=StaticQuestionSource(fetched, rng=rng),
        scheduler=scheduler,
        rng=rng,
    )
    asyncio.run(ctrl.start())
    scheduler.advance(100_000)

    fetched_ids = {q.id for q in fetched}
    assert len(issued) == 10
    assert all(q.id in fetched_ids for q in issued)


def test_fetch_failure_falls_back_to_static_bank(scheduler, rng, issued):
    ctrl = TriviaController(on_question=issued.append, question_source=FailingSource(), scheduler=scheduler, rng=rng)

    asyncio.run(ctrl.start())

    assert issued[0].id.startswith("static-")


def test_repeats_once_all_questions_are_used(scheduler, rng, issued):
    bank = _fetched(2)
    ctrl = TriviaController(
        on_question=issued.append,
        config=TriviaConfig(max_questions=4),
        scheduler=scheduler,
        rng=rng,
        fallback_questions=bank,
    )
    asyncio.run(ctrl.start())
    scheduler.advance(100_000)

    assert len(issued) == 4
    assert {q.id for q in issued[:2]} == {"api-test-0", "api-test-1"}
    assert {q.id for q in issued[2:]} <= {"api-test-0", "api-test-1"}


def test_stop_during_fetch_issues_nothing(scheduler, rng, issued):
    source = StoppingSource()
    ctrl = TriviaController(on_question=issued.append, question_source=source, scheduler=scheduler, rng=rng)
    source.controller = ctrl

    asyncio.run(ctrl.start())
    scheduler.advance(20_000)

    assert issued == []
    assert scheduler.pending == 0


def test_stop_inside_question_listener_disarms_everything(scheduler, rng, store, issued):
    sync = RoomSync(store, "ROOM", "p1", is_host=True, scheduler=scheduler)
    def stop_on_first(question):
        issued.append(question)
        ctrl.stop()

    ctrl = TriviaController(
        on_question=stop_on_first,
        scheduler=scheduler,
        rng=rng,
        sync=sync,
    )

    asyncio.run(ctrl.start())
    assert scheduler.pending == 0

    scheduler.advance(100_000)

    assert len(issued) == 1
    assert ctrl.get_current_question() is None
    assert store.read("rooms/ROOM/current_trivia") is None


def test_empty_fallback_bank_is_rejected(scheduler):
    with pytest.raises(ConfigurationError):
        TriviaController(scheduler=scheduler, fallback_questions=[])


def test_stop_is_idempotent(trivia, scheduler, issued):
    trivia.stop()
    trivia.stop()
    scheduler.advance(20_000)

    assert trivia.get_current_question() is None
    assert len(issued) == 1
    assert scheduler.pending == 0


def test_issued_question_is_published_to_room(scheduler, rng, store):
    sync = RoomSync(store, "ROOM", "p1", is_host=True, scheduler=scheduler)
    ctrl = TriviaController(scheduler=scheduler, rng=rng, sync=sync)

    asyncio.run(ctrl.start())

    published = store.read("rooms/ROOM/current_trivia")
    assert published["id"] == ctrl.get_current_question().id
    assert published["number"] == 1
