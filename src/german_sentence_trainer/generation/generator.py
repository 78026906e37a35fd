"""Schema-validated exercise generation, grading and follow-up answers."""

import uuid
from typing import TypeVar

import openai
import pydantic
import structlog
from openai import AsyncOpenAI

from german_sentence_trainer.errors import (
    EmptyResponse,
    GenerationRefused,
    SchemaViolation,
    UpstreamError,
)
from german_sentence_trainer.generation.prompts import (
    FOLLOWUP_SYSTEM_PROMPT,
    GENERATION_SYSTEM_PROMPT,
    GRADING_SYSTEM_PROMPT,
    build_followup_prompt,
    build_generation_prompt,
    build_grading_prompt,
    resolve_focus_target,
)
from german_sentence_trainer.models.exercise import Exercise, ExerciseDraft, GradingResult
from german_sentence_trainer.models.profile import LearnerProfile
from german_sentence_trainer.vocabulary.inspiration import VocabularyInspirationSource

logger = structlog.get_logger()

ParsedT = TypeVar("ParsedT", bound=pydantic.BaseModel)

MAX_INSPIRATION_WORDS = 10


def _upstream_error(exc: openai.APIError) -> UpstreamError:
    return UpstreamError(exc.message, status_code=getattr(exc, "status_code", None))


class ExerciseGenerator:
    """Talks to the chat model under a structural contract.

    Exercise and grading calls pin the reply to a pydantic model; the
    follow-up call is plain text. Nothing is retried.

    Args:
        api_key: OpenAI API key.
        model: Chat model name.
        inspiration: Optional vocabulary source used to vary exercises.
        client: Preconfigured client, mainly for tests.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        inspiration: VocabularyInspirationSource | None = None,
        client: AsyncOpenAI | None = None,
        generation_temperature: float = 0.8,
        grading_temperature: float = 0.5,
        followup_temperature: float = 0.3,
        inspiration_sample_size: int = MAX_INSPIRATION_WORDS,
    ):
        self.client = client or AsyncOpenAI(api_key=api_key, max_retries=0)
        self.model = model
        self.inspiration = inspiration
        self.generation_temperature = generation_temperature
        self.grading_temperature = grading_temperature
        self.followup_temperature = followup_temperature
        self.inspiration_sample_size = min(inspiration_sample_size, MAX_INSPIRATION_WORDS)

    async def _parse(
        self,
        system_prompt: str,
        prompt: str,
        response_format: type[ParsedT],
        temperature: float,
        operation: str,
    ) -> ParsedT:
        """Run a structured completion and classify every failure mode."""
        try:
            completion = await self.client.chat.completions.parse(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                response_format=response_format,
                temperature=temperature,
            )
        except openai.ContentFilterFinishReasonError as exc:
            logger.warning("llm_content_filtered", operation=operation)
            raise GenerationRefused("response blocked by the content filter") from exc
        except openai.LengthFinishReasonError as exc:
            logger.warning("llm_output_truncated", operation=operation)
            raise SchemaViolation(f"{operation}: model output was truncated") from exc
        except pydantic.ValidationError as exc:
            logger.warning("llm_schema_violation", operation=operation, errors=exc.error_count())
            raise SchemaViolation(f"{operation}: model output did not match the schema") from exc
        except openai.APIError as exc:
            logger.exception("llm_request_failed", operation=operation)
            raise _upstream_error(exc) from exc

        message = completion.choices[0].message
        if message.refusal:
            logger.warning("llm_refused", operation=operation, reason=message.refusal)
            raise GenerationRefused(message.refusal)
        if message.parsed is None:
            logger.warning("llm_schema_violation", operation=operation, errors=0)
            raise SchemaViolation(f"{operation}: model returned no structured output")
        return message.parsed

    async def generate_exercise(self, profile: LearnerProfile) -> Exercise:
        """Generate a new exercise tailored to the learner profile."""
        focus = resolve_focus_target(profile)
        inspiration = []
        if self.inspiration is not None:
            inspiration = self.inspiration.sample(self.inspiration_sample_size)
        logger.info(
            "exercise_generation_requested",
            level=profile.proficiency_level,
            focus=focus,
            inspiration_words=len(inspiration),
        )

        draft = await self._parse(
            GENERATION_SYSTEM_PROMPT,
            build_generation_prompt(profile, focus, inspiration),
            ExerciseDraft,
            self.generation_temperature,
            "generate_exercise",
        )
        exercise = Exercise(
            **draft.model_dump(exclude={"problem_area"}),
            problem_area=focus,
            exercise_id=f"gen-{uuid.uuid4()}",
            proficiency_level=profile.proficiency_level,
        )
        logger.info("exercise_generated", exercise_id=exercise.exercise_id, topic=exercise.topic)
        return exercise

    async def grade_sentence(self, exercise: Exercise, answer: str) -> GradingResult:
        """Grade a learner sentence against an exercise."""
        logger.info("grading_requested", exercise_id=exercise.exercise_id)
        result = await self._parse(
            GRADING_SYSTEM_PROMPT,
            build_grading_prompt(exercise, answer),
            GradingResult,
            self.grading_temperature,
            "grade_sentence",
        )
        logger.info(
            "grading_complete",
            exercise_id=exercise.exercise_id,
            is_correct=result.is_correct,
            score=result.score,
        )
        return result

    async def answer_followup(
        self,
        exercise: Exercise,
        answer: str,
        feedback: GradingResult,
        question: str,
    ) -> str:
        """Answer a free-form question about previous feedback."""
        logger.info("followup_requested", exercise_id=exercise.exercise_id)
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": FOLLOWUP_SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": build_followup_prompt(exercise, answer, feedback, question),
                    },
                ],
                temperature=self.followup_temperature,
            )
        except openai.APIError as exc:
            logger.exception("llm_request_failed", operation="answer_followup")
            raise _upstream_error(exc) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            logger.warning("followup_empty_response", exercise_id=exercise.exercise_id)
            raise EmptyResponse("Model returned an empty answer")
        logger.info("followup_complete", exercise_id=exercise.exercise_id)
        return content.strip()
