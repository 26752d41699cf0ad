"""Stamina model for the tap-frequency mode."""

from pydantic import BaseModel, ConfigDict, Field, computed_field


class Stamina(BaseModel):
    """UI-facing stamina state.

    When ``enabled`` is False the tap gate is off entirely and ``current``
    simply mirrors ``max``.
    """

    model_config = ConfigDict(frozen=True)

    current: float = Field(..., ge=0.0)
    max: float = Field(..., gt=0.0)
    is_overheated: bool = False
    enabled: bool = True

    @computed_field  # type: ignore[prop-decorator]
    @property
    def percentage(self) -> float:
        """Current stamina as a percentage of max."""
        return self.current / self.max * 100
