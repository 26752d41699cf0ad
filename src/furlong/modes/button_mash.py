"""Tap-frequency mode: taps build momentum, stamina throttles input."""

import logging
from collections.abc import Callable

from furlong.config import ButtonMashConfig, TrackLength
from furlong.models import Stamina
from furlong.simulation.scheduler import AsyncioScheduler, ScheduledTask, Scheduler

logger = logging.getLogger(__name__)

SpeedListener = Callable[[float, float], None]  # (speed, progress)
StaminaListener = Callable[[Stamina], None]
SyncListener = Callable[[int, int], None]  # (taps since last sync, total taps)


class ButtonMashController:
    """Aggregates one local player's taps into speed and stamina.

    Two loops run while active: a decay tick that bleeds momentum and
    recovers stamina, and a sync tick that hands the batched tap delta to
    the sync layer.
    """

    def __init__(
        self,
        player_id: str,
        on_speed_update: SpeedListener | None = None,
        on_stamina_update: StaminaListener | None = None,
        track_length: int = TrackLength.SHORT,
        config: ButtonMashConfig | None = None,
        scheduler: Scheduler | None = None,
        on_sync: SyncListener | None = None,
    ):
        """Initialize the controller.

        Args:
            player_id: Local player this controller reads taps for
            on_speed_update: Receives (speed, progress) on every change
            on_stamina_update: Receives the stamina state on every change
            track_length: Track length in furlongs, selects tap target and stamina toggle
            config: Mode tuning
            scheduler: Timer source
            on_sync: Receives batched tap counts every sync tick
        """
        self.player_id = player_id
        self.on_speed_update = on_speed_update
        self.on_stamina_update = on_stamina_update
        self.on_sync = on_sync
        self.config = config or ButtonMashConfig()
        self.scheduler = scheduler or AsyncioScheduler()

        self.track_length = int(track_length)
        profile = self.config.profile_for(self.track_length)
        self.tap_target = profile.tap_target
        self.stamina_enabled = profile.stamina_enabled

        self.tap_momentum = 0.0
        self.stamina = self.config.max_stamina
        self.is_overheated = False
        self.last_tap_ms: float | None = None
        self.tap_count = 0
        self.pending_taps = 0
        self.is_active = False

        self._decay_task: ScheduledTask | None = None
        self._sync_task: ScheduledTask | None = None
        self._recovery_task: ScheduledTask | None = None

    def start(self) -> None:
        """Reset momentum, stamina and tap count, then start both loops."""
        self._cancel_timers()
        self.is_active = True
        self.tap_momentum = 0.0
        self.stamina = self.config.max_stamina
        self.is_overheated = False
        self.tap_count = 0
        self.pending_taps = 0
        self.last_tap_ms = None

        self._decay_task = self.scheduler.call_every(
            self.config.decay_interval_ms, self._decay_tick, name="mash-decay"
        )
        self._sync_task = self.scheduler.call_every(
            self.config.sync_interval_ms, self._sync_tick, name="mash-sync"
        )

    def stop(self) -> None:
        """Stop both loops and any pending overheat recovery. Idempotent."""
        self.is_active = False
        self._cancel_timers()

    def _cancel_timers(self) -> None:
        for task in (self._decay_task, self._sync_task, self._recovery_task):
            if task is not None:
                task.cancel()
        self._decay_task = self._sync_task = self._recovery_task = None

    def tap(self) -> bool:
        """Register one tap.

        Returns:
            Whether the tap was accepted
        """
        if not self.is_active or self.is_overheated:
            return False

        cfg = self.config
        if self.stamina_enabled:
            if self.stamina <= cfg.overheat_threshold:
                self._overheat()
                return False
            self.stamina = max(0.0, self.stamina - cfg.stamina_drain_per_tap)

        self.tap_momentum = min(cfg.max_tap_speed - cfg.base_tap_speed, self.tap_momentum + cfg.tap_boost)
        self.tap_count += 1
        self.pending_taps += 1
        self.last_tap_ms = self.scheduler.now_ms()

        self._notify_speed()
        self._notify_stamina()
        return True

    def _decay_tick(self) -> None:
        if not self.is_active:
            return

        cfg = self.config
        self.tap_momentum *= cfg.tap_decay
        if self.tap_momentum < cfg.momentum_epsilon:
            self.tap_momentum = 0.0

        if self.stamina_enabled and not self.is_overheated:
            idle_ms = (
                float("inf") if self.last_tap_ms is None else self.scheduler.now_ms() - self.last_tap_ms
            )
            if idle_ms > cfg.recovery_idle_ms and self.stamina < cfg.max_stamina:
                self.stamina = min(cfg.max_stamina, self.stamina + cfg.stamina_recovery_rate)
                self._notify_stamina()

        self._notify_speed()

    def _sync_tick(self) -> None:
        if self.pending_taps <= 0:
            return
        delta, self.pending_taps = self.pending_taps, 0
        if self.on_sync is not None:
            self.on_sync(delta, self.tap_count)

    def _overheat(self) -> None:
        self.is_overheated = True
        self.tap_momentum = 0.0
        logger.info("Player %s overheated", self.player_id)

        self._recovery_task = self.scheduler.call_later(
            self.config.overheat_recovery_ms, self._recover, name="mash-overheat"
        )
        self._notify_speed()
        self._notify_stamina()

    def _recover(self) -> None:
        self._recovery_task = None
        self.is_overheated = False
        self.stamina = self.config.max_stamina * self.config.overheat_recovery_fraction
        logger.debug("Player %s recovered from overheat", self.player_id)
        self._notify_stamina()

    def get_current_speed(self) -> float:
        if self.is_overheated:
            return self.config.base_tap_speed * self.config.overheat_speed_factor
        return self.config.base_tap_speed + self.tap_momentum

    def get_progress(self) -> float:
        """Progress as a percentage of the tap target."""
        return min(100.0, self.tap_count / self.tap_target * 100)

    def get_stamina(self) -> Stamina:
        return Stamina(
            current=self.stamina if self.stamina_enabled else self.config.max_stamina,
            max=self.config.max_stamina,
            is_overheated=self.is_overheated,
            enabled=self.stamina_enabled,
        )

    def get_tap_count(self) -> int:
        return self.tap_count

    def get_tap_target(self) -> int:
        return self.tap_target

    def _notify_speed(self) -> None:
        if self.on_speed_update is not None:
            self.on_speed_update(self.get_current_speed(), self.get_progress())

    def _notify_stamina(self) -> None:
        if self.on_stamina_update is not None:
            self.on_stamina_update(self.get_stamina())
