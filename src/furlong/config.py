"""Game configuration models and loader.

Configuration lives in a single optional YAML file whose top-level keys
mirror :class:`GameConfig` (``race``, ``button_mash``, ``random_events``,
``trivia``, ``sync``, ``question_source``, ``log_level``). Every key is
optional; omitted sections fall back to the defaults below.

The file is located from, in order: the explicit ``path`` argument, the
``FURLONG_CONFIG`` environment variable. With neither, defaults are used.
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from furlong.errors import ConfigurationError

CONFIG_ENV_VAR = "FURLONG_CONFIG"


class RaceConfig(BaseModel):
    """Race engine tuning."""

    base_speed: float = Field(default=0.5, gt=0.0, description="Initial speed (progress % per second)")
    boost_multiplier: float = Field(default=2.0, gt=0.0, description="Factor applied by a boost modifier")
    slowdown_multiplier: float = Field(default=0.3, gt=0.0, description="Factor applied by a slowdown modifier")
    max_speed: float = Field(default=3.0, gt=0.0, description="Upper speed clamp")
    min_speed: float = Field(default=0.1, ge=0.0, description="Lower speed clamp")
    tick_interval_ms: float = Field(default=100.0, gt=0.0, description="Milliseconds between engine ticks")
    finish_line: float = Field(default=100.0, gt=0.0, le=100.0, description="Progress that wins the race")

    @model_validator(mode="after")
    def _check_speed_bounds(self) -> "RaceConfig":
        if self.min_speed > self.max_speed:
            raise ValueError("min_speed must not exceed max_speed")
        return self


class TrackLength(int, Enum):
    """Selectable track lengths, in furlongs."""

    SHORT = 6
    LONG = 10


class TrackProfile(BaseModel):
    """Per-track-length button mash tuning."""

    tap_target: int = Field(..., gt=0, description="Taps needed to cover the whole track")
    stamina_enabled: bool = Field(default=True, description="Whether taps drain stamina")


class ButtonMashConfig(BaseModel):
    """Tap-frequency mode tuning."""

    base_tap_speed: float = Field(default=0.5, gt=0.0)
    max_tap_speed: float = Field(default=3.0, gt=0.0)
    tap_decay: float = Field(default=0.95, gt=0.0, lt=1.0, description="Momentum multiplier per decay tick")
    tap_boost: float = Field(default=0.15, gt=0.0, description="Momentum added per accepted tap")
    momentum_epsilon: float = Field(default=0.01, ge=0.0, description="Momentum below this snaps to zero")
    max_stamina: float = Field(default=100.0, gt=0.0)
    stamina_drain_per_tap: float = Field(default=2.0, ge=0.0)
    stamina_recovery_rate: float = Field(default=1.0, ge=0.0, description="Stamina regained per idle decay tick")
    overheat_threshold: float = Field(default=0.0, ge=0.0)
    overheat_recovery_ms: float = Field(default=2000.0, gt=0.0)
    overheat_recovery_fraction: float = Field(default=0.5, gt=0.0, le=1.0)
    overheat_speed_factor: float = Field(default=0.5, ge=0.0, le=1.0)
    recovery_idle_ms: float = Field(default=200.0, ge=0.0, description="Idle time before stamina recovers")
    decay_interval_ms: float = Field(default=100.0, gt=0.0)
    sync_interval_ms: float = Field(default=200.0, gt=0.0)
    default_tap_target: int = Field(default=300, gt=0, description="Tap target for unknown track lengths")
    tracks: dict[int, TrackProfile] = Field(
        default_factory=lambda: {
            TrackLength.SHORT.value: TrackProfile(tap_target=200, stamina_enabled=False),
            TrackLength.LONG.value: TrackProfile(tap_target=350, stamina_enabled=True),
        },
        description="Track length (furlongs) to profile",
    )

    def profile_for(self, track_length: int) -> TrackProfile:
        """Return the tuning profile for a track length."""
        profile = self.tracks.get(int(track_length))
        if profile is None:
            return TrackProfile(tap_target=self.default_tap_target, stamina_enabled=True)
        return profile


class RandomEventConfig(BaseModel):
    """Random-event mode tuning."""

    event_interval_ms: float = Field(default=1000.0, gt=0.0)
    base_speed: float = Field(default=0.8, gt=0.0)
    stumble_chance: float = Field(default=0.2, ge=0.0, le=1.0)
    boost_chance: float = Field(default=0.3, ge=0.0, le=1.0)
    trip_chance: float = Field(default=0.2, ge=0.0, le=1.0, description="Share of stumbles promoted to trips")
    surge_chance: float = Field(default=0.15, ge=0.0, le=1.0, description="Share of boosts promoted to surges")
    boost_min: float = Field(default=1.2, gt=0.0)
    boost_max: float = Field(default=2.0, gt=0.0)
    stumble_min: float = Field(default=0.3, gt=0.0)
    stumble_max: float = Field(default=0.6, gt=0.0)
    surge_factor: float = Field(default=1.5, gt=0.0, description="Surge multiplier relative to boost_max")
    event_duration_ms: float = Field(default=800.0, gt=0.0)
    trip_duration_factor: float = Field(default=1.5, gt=0.0)
    surge_duration_factor: float = Field(default=0.8, gt=0.0)

    @model_validator(mode="after")
    def _check_ranges(self) -> "RandomEventConfig":
        if self.stumble_chance + self.boost_chance > 1.0:
            raise ValueError("stumble_chance + boost_chance must not exceed 1")
        if self.boost_min > self.boost_max:
            raise ValueError("boost_min must not exceed boost_max")
        if self.stumble_min > self.stumble_max:
            raise ValueError("stumble_min must not exceed stumble_max")
        return self


class TriviaConfig(BaseModel):
    """Trivia mode tuning."""

    question_interval_ms: float = Field(default=8000.0, gt=0.0)
    answer_timeout_ms: float = Field(default=6000.0, gt=0.0)
    boost_duration_ms: float = Field(default=3000.0, gt=0.0)
    slowdown_duration_ms: float = Field(default=2000.0, gt=0.0)
    max_questions: int = Field(default=10, gt=0)
    prefetch_margin: int = Field(default=5, ge=0, description="Extra questions fetched beyond max_questions")


class SyncConfig(BaseModel):
    """Record-store synchronisation tuning."""

    push_interval_ms: float = Field(default=200.0, ge=0.0, description="Minimum gap between progress pushes")
    rooms_root: str = Field(default="rooms", min_length=1)


class QuestionSourceConfig(BaseModel):
    """Remote trivia question source settings."""

    base_url: str = Field(default="https://opentdb.com")
    timeout_s: float = Field(default=5.0, gt=0.0)
    difficulty: str | None = Field(default=None, pattern="^(easy|medium|hard)$")
    category: int | None = Field(default=None, gt=0)


class GameConfig(BaseModel):
    """Root configuration."""

    race: RaceConfig = Field(default_factory=RaceConfig)
    button_mash: ButtonMashConfig = Field(default_factory=ButtonMashConfig)
    random_events: RandomEventConfig = Field(default_factory=RandomEventConfig)
    trivia: TriviaConfig = Field(default_factory=TriviaConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    question_source: QuestionSourceConfig = Field(default_factory=QuestionSourceConfig)
    log_level: str = Field(default="INFO")


def _read_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML mapping from ``path`` with readable errors."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigurationError(f"Missing configuration file: {path.resolve()}") from None
    except OSError as ex:
        raise ConfigurationError(f"Failed to read {path.resolve()}: {type(ex).__name__}: {ex}") from ex

    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as ex:
        raise ConfigurationError(f"Failed to parse YAML {path.resolve()}: {ex}") from ex

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Top-level YAML in {path.resolve()} must be a mapping, got {type(data).__name__}"
        )
    return data


def load_config(path: str | Path | None = None) -> GameConfig:
    """Load and validate the game configuration.

    Args:
        path: YAML file to load. Falls back to ``$FURLONG_CONFIG``.

    Returns:
        Validated configuration (defaults when no file is configured)

    Raises:
        ConfigurationError: If the file is missing, unparsable or invalid
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if not env_path:
            return GameConfig()
        path = env_path

    cfg_path = Path(path)
    data = _read_yaml(cfg_path)
    try:
        return GameConfig.model_validate(data)
    except ValidationError as ex:
        raise ConfigurationError(f"Invalid configuration in {cfg_path.resolve()}:\n{ex}") from ex


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for scripts and demos."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
