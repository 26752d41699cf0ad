"""Race simulation: progress math, timers and the race engine."""

from .progress import (
    calculate_speed,
    clamp_speed,
    get_rankings,
    get_winner,
    is_race_finished,
    update_progress,
)
from .scheduler import AsyncioScheduler, ScheduledTask, Scheduler, VirtualScheduler
from .engine import RaceEngine

__all__ = [
    "AsyncioScheduler",
    "RaceEngine",
    "ScheduledTask",
    "Scheduler",
    "VirtualScheduler",
    "calculate_speed",
    "clamp_speed",
    "get_rankings",
    "get_winner",
    "is_race_finished",
    "update_progress",
]
