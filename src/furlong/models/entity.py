"""Race participant, modifier and snapshot models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class RaceStatus(str, Enum):
    """Race engine lifecycle state."""

    IDLE = "idle"
    RUNNING = "running"
    FINISHED = "finished"


class RacingEntity(BaseModel):
    """A race participant tracked by progress and speed."""

    id: str = Field(..., min_length=1, description="Unique participant identifier")
    name: str = Field(default="", description="Display name")
    avatar_ref: str | None = Field(default=None, description="Opaque avatar reference for renderers")
    is_host: bool = Field(default=False, description="Whether this participant runs the simulation")
    is_ai: bool = Field(default=False, description="Computer-controlled opponent (local races)")

    # Race state (mutable during a race, owned by the engine)
    progress: float = Field(default=0.0, ge=0.0, le=100.0, description="Track progress in percent")
    speed: float = Field(default=0.0, ge=0.0, description="Base speed (progress % per second)")
    connected: bool = Field(default=True, description="False once the participant dropped")

    def reset_race_state(self, base_speed: float) -> None:
        """Reset mutable state for a new race."""
        self.progress = 0.0
        self.speed = base_speed


class Modifier(BaseModel):
    """Transient speed effects active on one entity.

    Fields are merged on write, so a boost and a multiplier may be active
    together. All active effects multiply the base speed.
    """

    boost: bool = False
    slowdown: bool = False
    multiplier: float | None = Field(default=None, ge=0.0)
    expires_at_ms: float | None = Field(
        default=None,
        description="When the caller will clear this modifier (for client countdowns)",
    )


class Ranking(BaseModel):
    """One row of the race standings."""

    model_config = ConfigDict(frozen=True)

    rank: int = Field(..., ge=1)
    player_id: str
    name: str
    avatar_ref: str | None = None
    progress: float
    is_winner: bool = False


class RaceSnapshot(BaseModel):
    """Immutable copy of the roster emitted after every tick."""

    model_config = ConfigDict(frozen=True)

    entities: dict[str, RacingEntity]
    modifiers: dict[str, Modifier] = Field(default_factory=dict)
    timestamp_ms: float
    status: RaceStatus


class RaceState(BaseModel):
    """Point-in-time view returned by ``RaceEngine.get_state``."""

    entities: dict[str, RacingEntity]
    is_running: bool
    status: RaceStatus
    rankings: list[Ranking]
