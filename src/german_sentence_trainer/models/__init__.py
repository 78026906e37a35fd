"""Data models for exercises, grading, history and the learner profile."""

from german_sentence_trainer.models.exercise import (
    Exercise,
    ExerciseDraft,
    GradingResult,
    GrammarNote,
)
from german_sentence_trainer.models.history import Attempt, ExerciseRecord, QAExchange
from german_sentence_trainer.models.profile import LearnerProfile
from german_sentence_trainer.models.requests import FollowupAnswer

__all__ = [
    "Attempt",
    "Exercise",
    "ExerciseDraft",
    "ExerciseRecord",
    "FollowupAnswer",
    "GradingResult",
    "GrammarNote",
    "LearnerProfile",
    "QAExchange",
]
