"""Exercise history persistence (JSON + fcntl.flock + atomic write).

The whole history is one JSON object keyed by exercise ID. Every mutation
reads the entire file, changes it in memory and writes it back under an
exclusive lock, so concurrent writers serialize instead of overwriting each
other. A file that cannot be parsed is moved to ``history.json.corrupt``
before the first write replaces it.
"""

import os
from datetime import datetime, timedelta
from pathlib import Path

import pydantic
import structlog

from german_sentence_trainer.errors import RecordNotFound
from german_sentence_trainer.models.exercise import Exercise, GradingResult
from german_sentence_trainer.models.history import (
    Attempt,
    ExerciseRecord,
    HistoryMap,
    QAExchange,
    as_utc,
    history_adapter,
    utc_now,
)
from german_sentence_trainer.storage.files import exclusive_lock, write_json_atomic

logger = structlog.get_logger()

HISTORY_FILENAME = "history.json"


class HistoryStore:
    """Persisted mapping from exercise ID to its attempts.

    Args:
        data_dir: Directory holding the history file.
    """

    def __init__(self, data_dir: Path):
        self.data_dir = data_dir
        self.path = data_dir / HISTORY_FILENAME
        self.corrupt_path = data_dir / (HISTORY_FILENAME + ".corrupt")
        self._lock_path = data_dir / (HISTORY_FILENAME + ".lock")

    def _read(self) -> HistoryMap:
        if not self.path.exists():
            return {}
        return history_adapter.validate_json(self.path.read_bytes())

    def load(self) -> HistoryMap:
        """Read the full history. Missing or unreadable files yield an empty map."""
        try:
            return self._read()
        except (OSError, pydantic.ValidationError):
            logger.exception("history_load_failed", path=str(self.path))
            return {}

    def _load_for_update(self) -> HistoryMap:
        # Called with the lock held. Never write over a file we could not read.
        try:
            return self._read()
        except (OSError, pydantic.ValidationError):
            logger.exception("history_load_failed", path=str(self.path))
            os.replace(self.path, self.corrupt_path)
            logger.warning("history_moved_aside", path=str(self.corrupt_path))
            return {}

    def save(self, history: HistoryMap) -> None:
        """Write the full history atomically."""
        data = {key: record.to_json_dict() for key, record in history.items()}
        write_json_atomic(self.path, data, indent=2)

    def upsert_exercise(self, exercise: Exercise) -> ExerciseRecord:
        """Add an exercise, or refresh its payload keeping attempts and completion."""
        with exclusive_lock(self._lock_path):
            history = self._load_for_update()
            record = history.get(exercise.exercise_id)
            if record is None:
                record = ExerciseRecord(exercise=exercise)
                history[exercise.exercise_id] = record
                logger.info("exercise_added", exercise_id=exercise.exercise_id)
            else:
                record.exercise = exercise
            self.save(history)
        return record

    def record_attempt(
        self, exercise_id: str, user_answer: str, feedback: GradingResult
    ) -> Attempt:
        """Append a graded attempt and update completion.

        Raises:
            RecordNotFound: The exercise is not in the history.
        """
        with exclusive_lock(self._lock_path):
            history = self._load_for_update()
            record = history.get(exercise_id)
            if record is None:
                raise RecordNotFound(exercise_id)

            timestamp = utc_now()
            if record.attempts and timestamp <= record.attempts[-1].timestamp:
                # Keep timestamps unique within a record; they identify attempts.
                timestamp = record.attempts[-1].timestamp + timedelta(microseconds=1)
            attempt = Attempt(
                attempt_id=len(record.attempts) + 1,
                exercise_id=exercise_id,
                user_answer=user_answer,
                feedback=feedback,
                timestamp=timestamp,
            )
            record.attempts.append(attempt)
            if feedback.is_correct:
                record.is_complete = True
            self.save(history)

        logger.info(
            "attempt_recorded",
            exercise_id=exercise_id,
            attempt_id=attempt.attempt_id,
            is_correct=feedback.is_correct,
        )
        return attempt

    def _replace_qa(
        self, exercise_id: str, label: str, match, qa_thread: list[QAExchange]
    ) -> Attempt | None:
        with exclusive_lock(self._lock_path):
            history = self._load_for_update()
            record = history.get(exercise_id)
            if record is None:
                logger.warning("qa_exercise_not_found", exercise_id=exercise_id)
                return None
            attempt = next((a for a in record.attempts if match(a)), None)
            if attempt is None:
                logger.warning("qa_attempt_not_found", exercise_id=exercise_id, attempt=label)
                return None
            attempt.qa_history = list(qa_thread)
            self.save(history)
        logger.info("qa_updated", exercise_id=exercise_id, attempt=label)
        return attempt

    def attach_followup(
        self,
        exercise_id: str,
        attempt_timestamp: datetime,
        qa_thread: list[QAExchange],
    ) -> Attempt | None:
        """Replace the Q&A thread of the attempt made at ``attempt_timestamp``.

        Unknown exercises and unmatched timestamps are logged and ignored.
        """
        target = as_utc(attempt_timestamp)
        return self._replace_qa(
            exercise_id,
            target.isoformat(),
            lambda a: a.timestamp == target,
            qa_thread,
        )

    def attach_followup_by_id(
        self, exercise_id: str, attempt_id: int, qa_thread: list[QAExchange]
    ) -> Attempt | None:
        """Same as :meth:`attach_followup`, keyed by attempt ID."""
        return self._replace_qa(
            exercise_id,
            str(attempt_id),
            lambda a: a.attempt_id == attempt_id,
            qa_thread,
        )

    def get_record(self, exercise_id: str) -> ExerciseRecord | None:
        return self.load().get(exercise_id)

    def list_attempts(self, exercise_id: str) -> list[Attempt]:
        record = self.load().get(exercise_id)
        return record.attempts if record else []

    def list_recent(self, limit: int = 10) -> list[ExerciseRecord]:
        """Records ordered by most recent attempt, newest first."""
        records = sorted(
            self.load().values(), key=lambda r: r.last_attempt_at, reverse=True
        )
        return records[:limit]

    def list_incomplete(self, limit: int = 10) -> list[ExerciseRecord]:
        """Like :meth:`list_recent`, restricted to records without a correct attempt."""
        records = sorted(
            (r for r in self.load().values() if not r.is_complete),
            key=lambda r: r.last_attempt_at,
            reverse=True,
        )
        return records[:limit]
