"""Trivia question and answer models."""

from pydantic import BaseModel, ConfigDict, Field, model_validator

OPTIONS_PER_QUESTION = 4


class TriviaQuestion(BaseModel):
    """A normalized multiple-choice question."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)
    options: tuple[str, ...] = Field(..., description="Exactly four answer options")
    correct_index: int = Field(..., ge=0)
    category: str = Field(default="General")

    @model_validator(mode="after")
    def _check_options(self) -> "TriviaQuestion":
        if len(self.options) != OPTIONS_PER_QUESTION:
            raise ValueError(f"expected {OPTIONS_PER_QUESTION} options, got {len(self.options)}")
        if self.correct_index >= len(self.options):
            raise ValueError("correct_index out of range")
        return self


class IssuedQuestion(TriviaQuestion):
    """A question as broadcast to players, tagged with issue metadata."""

    issued_at_ms: float
    timeout_ms: float = Field(..., gt=0.0)
    number: int = Field(..., ge=1, description="1-based question number in this race")
    total: int = Field(..., ge=1, description="Questions planned for this race")


class ModifierDirective(BaseModel):
    """Speed effect the caller should apply to the answering player."""

    model_config = ConfigDict(frozen=True)

    boost: bool = False
    slowdown: bool = False
    duration_ms: float = Field(..., gt=0.0)


class AnswerResult(BaseModel):
    """Outcome of one submitted answer."""

    model_config = ConfigDict(frozen=True)

    player_id: str
    question_id: str
    answer_index: int
    is_correct: bool
    modifier: ModifierDirective
