"""REST API routes: the model RPC endpoint, history and profile."""

from typing import Any

import structlog
from fastapi import APIRouter, Body, Query
from fastapi.responses import JSONResponse
from pydantic import Field

from german_sentence_trainer.api import dependencies
from german_sentence_trainer.errors import RecordNotFound, TrainerError
from german_sentence_trainer.models.base import CamelModel
from german_sentence_trainer.models.exercise import Exercise, GradingResult
from german_sentence_trainer.models.history import QAExchange, UtcDatetime

logger = structlog.get_logger()
router = APIRouter(prefix="/api")


class AttemptIn(CamelModel):
    user_answer: str
    feedback: GradingResult


class QAThreadIn(CamelModel):
    qa_history: list[QAExchange] = Field(default_factory=list)


class TimestampedQAThreadIn(QAThreadIn):
    attempt_timestamp: UtcDatetime


def _error(exc: TrainerError, status_code: int = 500) -> JSONResponse:
    message = str(exc) or "An internal server error occurred"
    return JSONResponse({"error": message}, status_code=status_code)


@router.post("/llm")
async def llm_action(payload: Any = Body(...)) -> JSONResponse:
    """Generate an exercise, grade a sentence or answer a follow-up question."""
    try:
        result = await dependencies.get_orchestrator().dispatch(payload)
    except TrainerError as exc:
        action = payload.get("action") if isinstance(payload, dict) else None
        logger.warning("llm_action_failed", action=action, error=str(exc))
        return _error(exc)
    return JSONResponse(result.to_json_dict())


@router.get("/profile")
async def get_profile() -> dict:
    return dependencies.get_profile_store().load().to_json_dict()


@router.patch("/profile")
async def update_profile(partial: dict[str, Any] = Body(...)) -> JSONResponse:
    try:
        profile = dependencies.get_profile_store().update(partial)
    except TrainerError as exc:
        return _error(exc, status_code=400)
    return JSONResponse(profile.to_json_dict())


@router.put("/history/exercises")
async def upsert_exercise(exercise: Exercise) -> dict:
    return dependencies.get_history_store().upsert_exercise(exercise).to_json_dict()


@router.post("/history/exercises/{exercise_id}/attempts")
async def record_attempt(exercise_id: str, attempt: AttemptIn) -> JSONResponse:
    store = dependencies.get_history_store()
    try:
        recorded = store.record_attempt(exercise_id, attempt.user_answer, attempt.feedback)
    except RecordNotFound as exc:
        return _error(exc, status_code=404)
    return JSONResponse(recorded.to_json_dict())


@router.get("/history/exercises/{exercise_id}/attempts")
async def list_attempts(exercise_id: str) -> list[dict]:
    return [a.to_json_dict() for a in dependencies.get_history_store().list_attempts(exercise_id)]


@router.put("/history/exercises/{exercise_id}/qa")
async def attach_followup(exercise_id: str, thread: TimestampedQAThreadIn) -> dict:
    """Attach Q&A to the attempt identified by its timestamp."""
    dependencies.get_history_store().attach_followup(
        exercise_id, thread.attempt_timestamp, thread.qa_history
    )
    return {"status": "ok"}


@router.put("/history/exercises/{exercise_id}/attempts/{attempt_id}/qa")
async def attach_followup_by_id(exercise_id: str, attempt_id: int, thread: QAThreadIn) -> dict:
    dependencies.get_history_store().attach_followup_by_id(
        exercise_id, attempt_id, thread.qa_history
    )
    return {"status": "ok"}


@router.get("/history/recent")
async def list_recent(limit: int = Query(10, ge=0)) -> list[dict]:
    return [r.to_json_dict() for r in dependencies.get_history_store().list_recent(limit)]


@router.get("/history/incomplete")
async def list_incomplete(limit: int = Query(10, ge=0)) -> list[dict]:
    return [r.to_json_dict() for r in dependencies.get_history_store().list_incomplete(limit)]


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}
