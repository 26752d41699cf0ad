"""Random-event mode: no player input, periodic boosts and stumbles."""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from functools import partial

import numpy as np

from furlong.config import RandomEventConfig
from furlong.models import EventKind, RandomEvent
from furlong.simulation.scheduler import AsyncioScheduler, ScheduledTask, Scheduler

logger = logging.getLogger(__name__)

EventListener = Callable[[dict[str, RandomEvent]], None]
SpeedsListener = Callable[[dict[str, float]], None]


@dataclass(frozen=True)
class EventSpec:
    """One row of the event distribution table."""

    kind: EventKind
    probability: float
    duration_ms: float
    multiplier: float | None = None  # Fixed multiplier
    multiplier_range: tuple[float, float] | None = None  # Uniform draw bounds


def build_event_table(config: RandomEventConfig) -> list[EventSpec]:
    """Flatten the nested stumble/trip and boost/surge rolls into one table.

    A stumble happens with ``stumble_chance``; ``trip_chance`` of those are
    promoted to trips. A boost happens with ``boost_chance``; ``surge_chance``
    of those are promoted to surges. Anything else is a neutral event.
    """
    trip = config.stumble_chance * config.trip_chance
    surge = config.boost_chance * config.surge_chance
    duration = config.event_duration_ms

    return [
        EventSpec(
            kind=EventKind.TRIP,
            probability=trip,
            duration_ms=duration * config.trip_duration_factor,
            multiplier=config.stumble_min,
        ),
        EventSpec(
            kind=EventKind.STUMBLE,
            probability=config.stumble_chance - trip,
            duration_ms=duration,
            multiplier_range=(config.stumble_min, config.stumble_max),
        ),
        EventSpec(
            kind=EventKind.SURGE,
            probability=surge,
            duration_ms=duration * config.surge_duration_factor,
            multiplier=config.boost_max * config.surge_factor,
        ),
        EventSpec(
            kind=EventKind.BOOST,
            probability=config.boost_chance - surge,
            duration_ms=duration,
            multiplier_range=(config.boost_min, config.boost_max),
        ),
        EventSpec(
            kind=EventKind.NONE,
            probability=max(0.0, 1.0 - config.stumble_chance - config.boost_chance),
            duration_ms=duration,
            multiplier=1.0,
        ),
    ]


def event_distribution(config: RandomEventConfig) -> dict[EventKind, float]:
    """Probability of each event kind for a single draw."""
    return {spec.kind: spec.probability for spec in build_event_table(config)}


def generate_random_event(
    rng: np.random.Generator,
    config: RandomEventConfig | None = None,
    table: list[EventSpec] | None = None,
) -> RandomEvent:
    """Sample one event.

    Args:
        rng: Random number generator (seed it for reproducible draws)
        config: Mode tuning, used when no prebuilt table is passed
        table: Prebuilt distribution table

    Returns:
        The sampled event
    """
    if table is None:
        table = build_event_table(config or RandomEventConfig())

    weights = np.array([spec.probability for spec in table], dtype=float)
    spec = table[int(rng.choice(len(table), p=weights / weights.sum()))]

    if spec.multiplier_range is not None:
        low, high = spec.multiplier_range
        multiplier = float(rng.uniform(low, high))
    else:
        multiplier = float(spec.multiplier if spec.multiplier is not None else 1.0)

    return RandomEvent(kind=spec.kind, multiplier=multiplier, duration_ms=spec.duration_ms)


class RandomEventController:
    """Host-side generator of per-entity transient speed multipliers."""

    def __init__(
        self,
        player_ids: Iterable[str],
        on_event: EventListener | None = None,
        on_speed_update: SpeedsListener | None = None,
        config: RandomEventConfig | None = None,
        scheduler: Scheduler | None = None,
        rng: np.random.Generator | None = None,
    ):
        """Initialize the controller.

        Args:
            player_ids: Entities to generate events for
            on_event: Receives every batch of sampled events
            on_speed_update: Receives all current speeds after any change
            config: Mode tuning
            scheduler: Timer source
            rng: Random number generator
        """
        self.on_event = on_event
        self.on_speed_update = on_speed_update
        self.config = config or RandomEventConfig()
        self.scheduler = scheduler or AsyncioScheduler()
        self.rng = rng if rng is not None else np.random.default_rng()

        self.player_ids: list[str] = []
        self.player_speeds: dict[str, float] = {}
        self.active_events: dict[str, RandomEvent | None] = {}
        self.is_active = False

        self._table = build_event_table(self.config)
        self._event_task: ScheduledTask | None = None
        self._reversions: dict[str, ScheduledTask] = {}

        self.set_player_ids(player_ids)

    def start(self) -> None:
        """Begin generating events every ``event_interval_ms``."""
        if self.is_active:
            return
        self.is_active = True
        self._event_task = self.scheduler.call_every(
            self.config.event_interval_ms, self.generate_events, name="random-events"
        )

    def stop(self) -> None:
        """Stop generating events and drop pending reversions. Idempotent."""
        self.is_active = False
        if self._event_task is not None:
            self._event_task.cancel()
            self._event_task = None
        for task in self._reversions.values():
            task.cancel()
        self._reversions.clear()

    def generate_events(self) -> dict[str, RandomEvent]:
        """Sample and apply one event for every tracked entity.

        Returns:
            The sampled events, empty while the controller is stopped
        """
        if not self.is_active:
            return {}
        events: dict[str, RandomEvent] = {}
        base = self.config.base_speed

        for player_id in self.player_ids:
            event = generate_random_event(self.rng, table=self._table)
            events[player_id] = event
            self.player_speeds[player_id] = base * event.multiplier
            self.active_events[player_id] = event

            previous = self._reversions.pop(player_id, None)
            if previous is not None:
                previous.cancel()
            self._reversions[player_id] = self.scheduler.call_later(
                event.duration_ms, partial(self._revert, player_id), name=f"revert-{player_id}"
            )

        logger.debug(
            "Random events: %s",
            {pid: e.kind.value for pid, e in events.items() if e.kind != EventKind.NONE},
        )

        if self.on_event is not None:
            self.on_event(dict(events))
        if self.is_active:
            self._notify_speeds()
        return events

    def _revert(self, player_id: str) -> None:
        self._reversions.pop(player_id, None)
        if not self.is_active:
            return
        self.player_speeds[player_id] = self.config.base_speed
        self.active_events[player_id] = None
        self._notify_speeds()

    def _notify_speeds(self) -> None:
        if self.on_speed_update is not None:
            self.on_speed_update(dict(self.player_speeds))

    def get_speeds(self) -> dict[str, float]:
        return dict(self.player_speeds)

    def get_active_events(self) -> dict[str, RandomEvent | None]:
        return dict(self.active_events)

    def set_player_ids(self, player_ids: Iterable[str]) -> None:
        """Track a new set of entities, keeping state for known ids."""
        self.player_ids = list(player_ids)
        for player_id in self.player_ids:
            if player_id not in self.player_speeds:
                self.player_speeds[player_id] = self.config.base_speed
                self.active_events[player_id] = None
