"""Stateless dispatcher for the three model-backed actions."""

from typing import Any

import pydantic
import structlog

from german_sentence_trainer.errors import InvalidAction, ValidationError
from german_sentence_trainer.generation.generator import ExerciseGenerator
from german_sentence_trainer.models.exercise import Exercise, GradingResult
from german_sentence_trainer.models.requests import (
    REQUIRED_FIELDS,
    ActionRequest,
    AnswerQuestionRequest,
    FollowupAnswer,
    GenerateExerciseRequest,
    GradeSentenceRequest,
    action_request_adapter,
)

logger = structlog.get_logger()


def parse_request(payload: Any) -> ActionRequest:
    """Validate a raw request body into its tagged request model.

    Raises:
        InvalidAction: ``action`` is missing or not recognized.
        ValidationError: The body is not an object, or required fields are
            missing or malformed.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    action = payload.get("action")
    if not isinstance(action, str) or action not in REQUIRED_FIELDS:
        raise InvalidAction(action)

    missing = [name for name in REQUIRED_FIELDS[action] if payload.get(name) is None]
    if missing:
        raise ValidationError(
            f"{', '.join(missing)} {'is' if len(missing) == 1 else 'are'} "
            f"required for {action}",
            missing=missing,
        )

    try:
        return action_request_adapter.validate_python(payload)
    except pydantic.ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"][1:]) for err in exc.errors()})
        raise ValidationError(f"Invalid {action} request: {', '.join(fields)}") from exc


class RequestOrchestrator:
    """Routes a tagged request to the generator.

    Args:
        generator: Generator used for every action.
    """

    def __init__(self, generator: ExerciseGenerator):
        self.generator = generator

    async def dispatch(
        self, payload: Any
    ) -> Exercise | GradingResult | FollowupAnswer:
        request = parse_request(payload)
        logger.info("action_dispatched", action=request.action)

        match request:
            case GenerateExerciseRequest(user_profile=profile):
                return await self.generator.generate_exercise(profile)
            case GradeSentenceRequest(exercise=exercise, user_answer=answer):
                return await self.generator.grade_sentence(exercise, answer)
            case AnswerQuestionRequest():
                text = await self.generator.answer_followup(
                    request.exercise,
                    request.user_answer,
                    request.feedback,
                    request.question,
                )
                return FollowupAnswer(answer=text)
            case _:
                raise InvalidAction(request.action)
