"""Exercise history models."""

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import AfterValidator, Field, TypeAdapter, model_validator

from german_sentence_trainer.models.base import CamelModel
from german_sentence_trainer.models.exercise import Exercise, GradingResult

EARLIEST = datetime.min.replace(tzinfo=UTC)


def as_utc(value: datetime) -> datetime:
    """Normalize to UTC. Naive values are taken as local time."""
    return value.astimezone(UTC)


def utc_now() -> datetime:
    return datetime.now(UTC)


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class QAExchange(CamelModel):
    """One follow-up question and its answer."""

    question: str
    answer: str
    timestamp: UtcDatetime = Field(default_factory=utc_now)


class Attempt(CamelModel):
    """A learner submission for an exercise."""

    attempt_id: int
    exercise_id: str
    user_answer: str
    feedback: GradingResult
    timestamp: UtcDatetime = Field(default_factory=utc_now)
    qa_history: list[QAExchange] = Field(default_factory=list)


class ExerciseRecord(CamelModel):
    """An exercise with every attempt made against it."""

    exercise: Exercise
    attempts: list[Attempt] = Field(default_factory=list)
    is_complete: bool = False

    @model_validator(mode="before")
    @classmethod
    def _backfill_attempt_ids(cls, data: Any) -> Any:
        # Blobs written before attempt IDs existed number attempts by position.
        if not isinstance(data, dict) or not isinstance(data.get("attempts"), list):
            return data
        attempts = []
        for position, attempt in enumerate(data["attempts"], start=1):
            if isinstance(attempt, dict) and not attempt.keys() & {"attemptId", "attempt_id"}:
                attempt = {**attempt, "attemptId": position}
            attempts.append(attempt)
        return {**data, "attempts": attempts}

    @property
    def last_attempt_at(self) -> datetime:
        """Timestamp of the most recent attempt, or the earliest instant if none."""
        if not self.attempts:
            return EARLIEST
        return self.attempts[-1].timestamp


HistoryMap = dict[str, ExerciseRecord]

history_adapter: TypeAdapter[HistoryMap] = TypeAdapter(HistoryMap)
