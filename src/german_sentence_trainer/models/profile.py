"""Learner profile model."""

from pydantic import ConfigDict, Field, field_validator

from german_sentence_trainer.models.base import CamelModel

DEFAULT_PROBLEM_AREAS = ["word-order"]


class LearnerProfile(CamelModel):
    # Unknown keys from older or newer persisted blobs are kept as-is.
    model_config = ConfigDict(extra="allow")

    proficiency_level: str = "A1"  # A1/A2/B1/B2/C1/C2
    problem_areas: list[str] = Field(default_factory=lambda: list(DEFAULT_PROBLEM_AREAS))
    focus_area: str | None = None
    exercises_completed: int = 0
    correct_answers: int = 0

    @field_validator("problem_areas")
    @classmethod
    def _dedupe_problem_areas(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
