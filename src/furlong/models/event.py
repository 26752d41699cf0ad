"""Random speed event model."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EventKind(str, Enum):
    """Kinds of random speed events."""

    NONE = "none"
    BOOST = "boost"
    SURGE = "surge"  # Extra strong boost
    STUMBLE = "stumble"
    TRIP = "trip"  # Extra strong stumble

    @property
    def is_positive(self) -> bool:
        return self in (EventKind.BOOST, EventKind.SURGE)

    @property
    def is_negative(self) -> bool:
        return self in (EventKind.STUMBLE, EventKind.TRIP)


class RandomEvent(BaseModel):
    """A sampled per-entity speed event."""

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    multiplier: float = Field(..., ge=0.0)
    duration_ms: float = Field(..., gt=0.0)
