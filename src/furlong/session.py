"""Host-side race session: one engine plus the controller for the chosen mode."""

import logging
from collections.abc import Callable, Mapping
from enum import Enum
from functools import partial
from typing import TYPE_CHECKING, Any

import numpy as np

from furlong.config import GameConfig, TrackLength
from furlong.models import (
    AnswerResult,
    IssuedQuestion,
    RaceSnapshot,
    RacingEntity,
    RaceStatus,
    RandomEvent,
    Ranking,
    Stamina,
)
from furlong.modes import ButtonMashController, RandomEventController, TriviaController
from furlong.questions import QuestionSource
from furlong.simulation.engine import RaceEngine
from furlong.simulation.scheduler import AsyncioScheduler, ScheduledTask, Scheduler

if TYPE_CHECKING:
    from furlong.sync import RoomSync

logger = logging.getLogger(__name__)

AI_NAMES = [
    "Thunder",
    "Lightning",
    "Storm",
    "Blaze",
    "Shadow",
    "Spirit",
    "Flash",
    "Rocket",
    "Comet",
    "Star",
]


class GameMode(str, Enum):
    """How entity speeds are driven during a race."""

    RANDOM = "random"
    TRIVIA = "trivia"
    BUTTON_MASH = "buttonMash"


def build_local_roster(
    player_name: str = "Player",
    ai_count: int = 3,
    rng: np.random.Generator | None = None,
    player_id: str = "local-player",
) -> dict[str, RacingEntity]:
    """Create a local-mode roster: the human host plus named AI opponents.

    Args:
        player_name: Display name of the human player
        ai_count: Number of AI opponents (clamped to the available names)
        rng: Random number generator used to pick AI names
        player_id: Identifier for the human player

    Returns:
        Roster keyed by entity id, human first
    """
    rng = rng if rng is not None else np.random.default_rng()
    ai_count = max(0, min(ai_count, len(AI_NAMES)))

    roster = {player_id: RacingEntity(id=player_id, name=player_name, is_host=True)}
    for i, idx in enumerate(rng.permutation(len(AI_NAMES))[:ai_count], start=1):
        name = AI_NAMES[int(idx)]
        ai_id = f"ai-{i}-{name.lower()}"
        roster[ai_id] = RacingEntity(id=ai_id, name=name, is_ai=True)
    return roster


class RaceSession:
    """Runs one race on the host.

    Mode controllers feed the engine; engine updates are forwarded to the
    room sync layer (when configured) and to the caller's listeners.
    """

    def __init__(
        self,
        mode: GameMode | str = GameMode.RANDOM,
        roster: Mapping[str, RacingEntity] | None = None,
        config: GameConfig | None = None,
        scheduler: Scheduler | None = None,
        rng: np.random.Generator | None = None,
        sync: "RoomSync | None" = None,
        question_source: QuestionSource | None = None,
        local_player_id: str | None = None,
        track_length: int = TrackLength.SHORT,
        on_update: Callable[[RaceSnapshot], None] | None = None,
        on_finish: Callable[[RacingEntity | None, list[Ranking]], None] | None = None,
        on_question: Callable[[IssuedQuestion], None] | None = None,
        on_event: Callable[[dict[str, RandomEvent]], None] | None = None,
        on_stamina: Callable[[Stamina], None] | None = None,
    ):
        """Initialize the session and its mode controller.

        Args:
            mode: Game mode
            roster: Participants keyed by id (a local roster is built when None)
            config: Game tuning
            scheduler: Timer source shared by the engine and controllers
            rng: Random number generator shared by the controllers
            sync: Room sync layer; the race is local-only when None
            question_source: Remote trivia source (trivia mode only)
            local_player_id: Player whose taps and answers this process reads;
                defaults to the roster's host
            track_length: Track length in furlongs (button-mash mode only)
            on_update: Receives every engine snapshot
            on_finish: Receives the winner and final rankings
            on_question: Receives every issued trivia question
            on_event: Receives every batch of random events
            on_stamina: Receives the local player's stamina changes
        """
        self.mode = GameMode(mode)
        self.config = config or GameConfig()
        self.scheduler = scheduler or AsyncioScheduler()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.sync = sync
        self.on_update = on_update
        self.on_finish = on_finish

        self.roster = dict(roster) if roster is not None else build_local_roster(rng=self.rng)
        self.local_player_id = local_player_id or next(
            (pid for pid, e in self.roster.items() if e.is_host), next(iter(self.roster), None)
        )

        self.engine = RaceEngine(
            on_update=self._on_engine_update,
            on_finish=self._on_engine_finish,
            config=self.config.race,
            scheduler=self.scheduler,
        )
        self.engine.set_players(self.roster)

        self.random_events: RandomEventController | None = None
        self.trivia: TriviaController | None = None
        self.button_mash: ButtonMashController | None = None

        if self.mode == GameMode.RANDOM:
            self.random_events = RandomEventController(
                list(self.roster),
                on_event=on_event,
                on_speed_update=self._apply_speeds,
                config=self.config.random_events,
                scheduler=self.scheduler,
                rng=self.rng,
            )
        elif self.mode == GameMode.TRIVIA:
            self.trivia = TriviaController(
                on_question=on_question,
                on_result=self._apply_trivia_result,
                question_source=question_source,
                config=self.config.trivia,
                scheduler=self.scheduler,
                rng=self.rng,
                sync=sync if sync is not None and sync.is_host else None,
            )
        elif self.local_player_id is not None:
            self.button_mash = ButtonMashController(
                self.local_player_id,
                on_speed_update=self._apply_local_speed,
                on_stamina_update=on_stamina,
                track_length=track_length,
                config=self.config.button_mash,
                scheduler=self.scheduler,
                on_sync=self._publish_taps,
            )

        self.winner: RacingEntity | None = None
        self.rankings: list[Ranking] = []
        self.last_snapshot: RaceSnapshot | None = None
        self._modifier_clears: dict[str, ScheduledTask] = {}
        self._unsubscribe: Callable[[], None] | None = None
        self._started = False
        self._stopped = False

    @property
    def is_finished(self) -> bool:
        return self.engine.status == RaceStatus.FINISHED

    async def start(self) -> None:
        """Publish the roster, start the engine and the mode controller."""
        if self._started:
            return
        self._started = True

        if self.sync is not None and self.sync.is_host:
            self.sync.start_race(self.engine.players)
            self._unsubscribe = self.sync.subscribe(self._on_room_record)

        logger.info("Starting %s race with %d players", self.mode.value, len(self.roster))
        if self.random_events is not None:
            self.random_events.start()
        if self.button_mash is not None:
            self.button_mash.start()

        self.engine.start()

        if self.trivia is not None and not self._stopped:
            await self.trivia.start()

    def stop(self) -> None:
        """Stop the engine, every controller and every pending modifier clear. Idempotent."""
        if self._stopped:
            return
        self._stopped = True

        self.engine.stop()
        for controller in (self.random_events, self.trivia, self.button_mash):
            if controller is not None:
                controller.stop()
        for task in self._modifier_clears.values():
            task.cancel()
        self._modifier_clears.clear()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # ---------- player input ----------

    def tap(self) -> bool:
        """Forward one tap from the local player (button-mash mode)."""
        if self.button_mash is None:
            return False
        return self.button_mash.tap()

    def submit_answer(self, player_id: str, answer_index: int) -> AnswerResult | None:
        """Forward an answer to the trivia controller (trivia mode)."""
        if self.trivia is None:
            return None
        result = self.trivia.submit_answer(player_id, answer_index)
        if result is not None and self.sync is not None and player_id == self.sync.player_id:
            self.sync.send_trivia_answer(result.question_id, result.answer_index, result.is_correct)
        return result

    # ---------- controller -> engine ----------

    def _apply_speeds(self, speeds: Mapping[str, float]) -> None:
        for player_id, speed in speeds.items():
            self.engine.update_player_speed(player_id, speed)

    def _apply_local_speed(self, speed: float, progress: float) -> None:
        self.engine.update_player_speed(self.local_player_id, speed)

    def _publish_taps(self, delta: int, total: int) -> None:
        if self.sync is not None:
            self.sync.send_tap_input(total)

    def _apply_trivia_result(self, result: AnswerResult) -> None:
        directive = result.modifier
        player_id = result.player_id
        expires_at = self.scheduler.now_ms() + directive.duration_ms
        self.engine.set_modifier(
            player_id,
            boost=directive.boost,
            slowdown=directive.slowdown,
            expires_at_ms=expires_at,
        )

        previous = self._modifier_clears.pop(player_id, None)
        if previous is not None:
            previous.cancel()
        self._modifier_clears[player_id] = self.scheduler.call_later(
            directive.duration_ms,
            partial(self._clear_modifier, player_id, expires_at),
            name=f"clear-{player_id}",
        )

    def _clear_modifier(self, player_id: str, expires_at: float) -> None:
        self._modifier_clears.pop(player_id, None)
        current = self.engine.get_modifier(player_id)
        # Only clear the effect this timer was armed for
        if current is not None and current.expires_at_ms == expires_at:
            self.engine.clear_modifiers(player_id)

    # ---------- engine -> sync and listeners ----------

    def _on_engine_update(self, snapshot: RaceSnapshot) -> None:
        self.last_snapshot = snapshot
        if self.sync is not None and self.sync.is_host:
            self.sync.push_snapshot(snapshot)
        if self.on_update is not None:
            self.on_update(snapshot)

    def _on_engine_finish(self, winner: RacingEntity | None, rankings: list[Ranking]) -> None:
        self.winner = winner
        self.rankings = rankings
        self.stop()

        if self.sync is not None and self.sync.is_host:
            self.sync.push_snapshot(self.engine.snapshot(), force=True)
            self.sync.end_race(winner, rankings)
        if self.on_finish is not None:
            self.on_finish(winner, rankings)

    def _on_room_record(self, record: dict[str, Any] | None) -> None:
        """Mirror presence changes written by disconnect hooks into the engine."""
        if not record:
            return
        for player_id, entity in self.sync.roster_from_record(record).items():
            current = self.engine.players.get(player_id)
            if current is not None and current.connected != entity.connected:
                self.engine.set_connected(player_id, entity.connected)
