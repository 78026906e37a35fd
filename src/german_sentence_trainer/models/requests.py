"""Tagged request payloads accepted by the orchestrator."""

from typing import Annotated, Literal

from pydantic import Field, TypeAdapter

from german_sentence_trainer.models.base import CamelModel
from german_sentence_trainer.models.exercise import Exercise, GradingResult
from german_sentence_trainer.models.profile import LearnerProfile


class GenerateExerciseRequest(CamelModel):
    action: Literal["generateExercise"]
    user_profile: LearnerProfile


class GradeSentenceRequest(CamelModel):
    action: Literal["gradeSentence"]
    exercise: Exercise
    user_answer: str


class AnswerQuestionRequest(CamelModel):
    action: Literal["answerQuestion"]
    exercise: Exercise
    user_answer: str
    feedback: GradingResult
    question: str


ActionRequest = Annotated[
    GenerateExerciseRequest | GradeSentenceRequest | AnswerQuestionRequest,
    Field(discriminator="action"),
]

action_request_adapter: TypeAdapter[ActionRequest] = TypeAdapter(ActionRequest)

# Wire field names each action needs, checked before parsing.
REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    "generateExercise": ("userProfile",),
    "gradeSentence": ("exercise", "userAnswer"),
    "answerQuestion": ("exercise", "userAnswer", "feedback", "question"),
}


class FollowupAnswer(CamelModel):
    answer: str
