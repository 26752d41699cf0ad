"""Race engine: owns the roster and integrates progress every tick."""

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from furlong.config import RaceConfig
from furlong.models import Modifier, RaceSnapshot, RaceState, RaceStatus, RacingEntity, Ranking
from furlong.simulation.progress import (
    calculate_speed,
    clamp_speed,
    get_rankings,
    get_winner,
    is_race_finished,
    update_progress,
)
from furlong.simulation.scheduler import AsyncioScheduler, ScheduledTask, Scheduler

logger = logging.getLogger(__name__)

UpdateListener = Callable[[RaceSnapshot], None]
FinishListener = Callable[[RacingEntity | None, list[Ranking]], None]


class RaceEngine:
    """Authoritative race simulation.

    The engine is the only writer of the roster. Mode controllers feed it
    through :meth:`update_player_speed`, :meth:`set_modifier` and (for
    local races) :meth:`set_progress`; whatever they wrote between two
    ticks is applied wholesale at the next tick.
    """

    def __init__(
        self,
        on_update: UpdateListener | None = None,
        on_finish: FinishListener | None = None,
        config: RaceConfig | None = None,
        scheduler: Scheduler | None = None,
    ):
        """Initialize the engine.

        Args:
            on_update: Receives a fresh snapshot after every tick
            on_finish: Receives the winner and final rankings once
            config: Race tuning
            scheduler: Timer source (defaults to the running asyncio loop)
        """
        self.on_update = on_update
        self.on_finish = on_finish
        self.config = config or RaceConfig()
        self.scheduler = scheduler or AsyncioScheduler()

        self.players: dict[str, RacingEntity] = {}
        self.modifiers: dict[str, Modifier] = {}
        self.status = RaceStatus.IDLE
        self.last_tick_ms: float | None = None
        self._tick_task: ScheduledTask | None = None

    @property
    def is_running(self) -> bool:
        return self.status == RaceStatus.RUNNING

    # ---------- roster ----------

    def set_players(self, roster: Mapping[str, RacingEntity] | Iterable[RacingEntity]) -> None:
        """Replace the roster and reset everyone's progress and speed.

        Ignored while a race is running.
        """
        if self.is_running:
            logger.warning("set_players ignored: race already running")
            return

        entities = roster.values() if isinstance(roster, Mapping) else roster
        self.players = {}
        for entity in entities:
            copy = entity.model_copy(deep=True)
            copy.reset_race_state(self.config.base_speed)
            self.players[copy.id] = copy
        self.modifiers = {}
        self.status = RaceStatus.IDLE
        logger.debug("Roster set: %s", ", ".join(self.players))

    def update_player_speed(self, player_id: str, speed: float) -> None:
        """Set the base speed for one entity. Progress changes only on tick."""
        player = self.players.get(player_id)
        if player is None:
            return
        player.speed = clamp_speed(speed, self.config)

    def set_progress(self, player_id: str, progress: float) -> None:
        """Assign progress directly (non-networked local races).

        Progress never moves backwards and never passes the finish line.
        """
        player = self.players.get(player_id)
        if player is None:
            return
        player.progress = max(player.progress, min(self.config.finish_line, progress))

    def set_connected(self, player_id: str, connected: bool) -> None:
        """Mark an entity (dis)connected. Disconnected entities stop advancing."""
        player = self.players.get(player_id)
        if player is None:
            return
        if player.connected != connected:
            logger.info("Player %s %s", player_id, "reconnected" if connected else "disconnected")
        player.connected = connected

    # ---------- modifiers ----------

    def set_modifier(self, player_id: str, partial: Mapping[str, Any] | None = None, **fields: Any) -> None:
        """Merge fields into the entity's modifier set (last write wins per field)."""
        updates = dict(partial or {})
        updates.update(fields)
        current = self.modifiers.get(player_id) or Modifier()
        self.modifiers[player_id] = Modifier.model_validate({**current.model_dump(), **updates})

    def clear_modifiers(self, player_id: str) -> None:
        """Remove every active effect for the entity."""
        self.modifiers.pop(player_id, None)

    def get_modifier(self, player_id: str) -> Modifier | None:
        modifier = self.modifiers.get(player_id)
        return modifier.model_copy() if modifier is not None else None

    # ---------- lifecycle ----------

    def start(self) -> None:
        """Start ticking. The first tick runs immediately."""
        if self.is_running:
            return
        self.status = RaceStatus.RUNNING
        self.last_tick_ms = self.scheduler.now_ms()
        logger.info("Race started with %d players", len(self.players))
        self.tick()

    def stop(self) -> None:
        """Cancel the pending tick. Idempotent; safe inside listeners."""
        if self._tick_task is not None:
            self._tick_task.cancel()
            self._tick_task = None
        if self.is_running:
            self.status = RaceStatus.IDLE
            logger.info("Race stopped")

    def tick(self) -> None:
        """Advance every connected entity by the wall-clock time since the last tick."""
        if not self.is_running:
            return

        if self._tick_task is not None:
            # A manual tick replaces the scheduled one
            self._tick_task.cancel()
            self._tick_task = None

        cfg = self.config
        tick_started = self.scheduler.now_ms()
        delta_ms = tick_started - (self.last_tick_ms if self.last_tick_ms is not None else tick_started)
        self.last_tick_ms = tick_started

        for player_id, player in self.players.items():
            if not player.connected:
                continue
            speed = calculate_speed(player.speed, self.modifiers.get(player_id), cfg)
            player.progress = update_progress(player.progress, speed, delta_ms, cfg.finish_line)

        if self.on_update is not None:
            self.on_update(self.snapshot())

        if not self.is_running:
            # Stopped from inside the update listener
            return

        if is_race_finished(self.players, cfg.finish_line):
            self.status = RaceStatus.FINISHED
            winner = get_winner(self.players, cfg.finish_line)
            rankings = get_rankings(self.players, cfg.finish_line)
            logger.info("Race finished, winner: %s", winner.id if winner else None)
            if self.on_finish is not None:
                self.on_finish(winner.model_copy(deep=True) if winner else None, rankings)
            return

        # Next tick is due one interval after this one began
        elapsed = self.scheduler.now_ms() - tick_started
        self._tick_task = self.scheduler.call_later(
            max(0.0, cfg.tick_interval_ms - elapsed), self.tick, name="race-tick"
        )

    # ---------- observation ----------

    def snapshot(self) -> RaceSnapshot:
        """Copy the live roster into an immutable snapshot."""
        return RaceSnapshot(
            entities={pid: p.model_copy(deep=True) for pid, p in self.players.items()},
            modifiers={pid: m.model_copy() for pid, m in self.modifiers.items()},
            timestamp_ms=self.scheduler.now_ms(),
            status=self.status,
        )

    def get_state(self) -> RaceState:
        """Current entities, run state and standings."""
        return RaceState(
            entities={pid: p.model_copy(deep=True) for pid, p in self.players.items()},
            is_running=self.is_running,
            status=self.status,
            rankings=get_rankings(self.players, self.config.finish_line),
        )
