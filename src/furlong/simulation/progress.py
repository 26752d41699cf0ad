"""Speed, progress and ranking arithmetic.

Pure functions shared by the engine, the sync layer and the renderers.
"""

from collections.abc import Mapping

from furlong.config import RaceConfig
from furlong.models import Modifier, RacingEntity, Ranking

DEFAULT_RACE_CONFIG = RaceConfig()


def modifier_factor(modifier: Modifier | None, config: RaceConfig = DEFAULT_RACE_CONFIG) -> float:
    """Combined multiplicative factor of all active effects in ``modifier``."""
    if modifier is None:
        return 1.0

    factor = 1.0
    if modifier.boost:
        factor *= config.boost_multiplier
    if modifier.slowdown:
        factor *= config.slowdown_multiplier
    if modifier.multiplier is not None:
        factor *= modifier.multiplier
    return factor


def clamp_speed(speed: float, config: RaceConfig = DEFAULT_RACE_CONFIG) -> float:
    """Clamp ``speed`` into ``[min_speed, max_speed]``."""
    return max(config.min_speed, min(config.max_speed, speed))


def calculate_speed(
    base_speed: float,
    modifier: Modifier | None = None,
    config: RaceConfig = DEFAULT_RACE_CONFIG,
) -> float:
    """Calculate effective speed with modifiers applied.

    Args:
        base_speed: Entity's base speed
        modifier: Active modifier set, if any
        config: Race tuning (multipliers and clamps)

    Returns:
        Speed within ``[min_speed, max_speed]``
    """
    return clamp_speed(base_speed * modifier_factor(modifier, config), config)


def update_progress(
    current_progress: float,
    speed: float,
    delta_ms: float,
    finish_line: float = DEFAULT_RACE_CONFIG.finish_line,
) -> float:
    """Integrate ``speed`` over ``delta_ms``.

    Negative speeds and deltas count as zero, so the result never goes
    backwards and never passes the finish line.
    """
    advance = max(0.0, speed) * max(0.0, delta_ms) / 1000
    return min(finish_line, current_progress + advance)


def _standing_order(entity: RacingEntity) -> tuple[float, str]:
    # Ties on progress resolve by id so standings are reproducible
    return (-entity.progress, entity.id)


def is_race_finished(
    entities: Mapping[str, RacingEntity],
    finish_line: float = DEFAULT_RACE_CONFIG.finish_line,
) -> bool:
    """Whether any connected entity reached the finish line."""
    return any(e.connected and e.progress >= finish_line for e in entities.values())


def get_rankings(
    entities: Mapping[str, RacingEntity],
    finish_line: float = DEFAULT_RACE_CONFIG.finish_line,
) -> list[Ranking]:
    """Rank connected entities by progress (descending, ties by id).

    Disconnected entities are excluded from the standings.
    """
    ordered = sorted((e for e in entities.values() if e.connected), key=_standing_order)
    return [
        Ranking(
            rank=index,
            player_id=entity.id,
            name=entity.name,
            avatar_ref=entity.avatar_ref,
            progress=entity.progress,
            is_winner=index == 1 and entity.progress >= finish_line,
        )
        for index, entity in enumerate(ordered, 1)
    ]


def get_winner(
    entities: Mapping[str, RacingEntity],
    finish_line: float = DEFAULT_RACE_CONFIG.finish_line,
) -> RacingEntity | None:
    """Return the leading connected entity if it reached the finish line."""
    finishers = [e for e in entities.values() if e.connected and e.progress >= finish_line]
    if not finishers:
        return None
    return min(finishers, key=_standing_order)
