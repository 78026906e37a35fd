"""Learner profile persistence (JSON + fcntl.flock + atomic write)."""

import json
import time
from pathlib import Path
from typing import Any

import pydantic
import structlog

from german_sentence_trainer.errors import ValidationError
from german_sentence_trainer.models.profile import LearnerProfile
from german_sentence_trainer.storage.files import exclusive_lock, write_json_atomic

logger = structlog.get_logger()

PROFILE_FILENAME = "profile.json"
SECONDS_PER_DAY = 24 * 60 * 60


class ProfileStore:
    """Single learner profile stored as one JSON object.

    A profile not written for ``retention_days`` is treated as absent.

    Args:
        data_dir: Directory holding the profile file.
        retention_days: Days a saved profile stays valid.
    """

    def __init__(self, data_dir: Path, retention_days: int = 365):
        self.data_dir = data_dir
        self.path = data_dir / PROFILE_FILENAME
        self._lock_path = data_dir / (PROFILE_FILENAME + ".lock")
        self.retention_days = retention_days

    def _is_expired(self) -> bool:
        age = time.time() - self.path.stat().st_mtime
        return age > self.retention_days * SECONDS_PER_DAY

    def _read_blob(self) -> dict[str, Any] | None:
        if not self.path.exists():
            return None
        if self._is_expired():
            logger.info("profile_expired", path=str(self.path))
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.exception("profile_load_failed", path=str(self.path))
            return None
        if not isinstance(data, dict):
            logger.error("profile_load_failed", path=str(self.path), reason="not an object")
            return None
        return data

    def load(self) -> LearnerProfile:
        """Load the profile, filling any missing keys from the defaults."""
        blob = self._read_blob()
        if blob is None:
            return LearnerProfile()
        merged = {**LearnerProfile().to_json_dict(), **blob}
        try:
            return LearnerProfile.model_validate(merged)
        except pydantic.ValidationError:
            logger.exception("profile_load_failed", path=str(self.path))
            return LearnerProfile()

    def _write(self, profile: LearnerProfile) -> None:
        write_json_atomic(self.path, profile.to_json_dict())

    def save(self, profile: LearnerProfile) -> None:
        with exclusive_lock(self._lock_path):
            self._write(profile)

    def update(self, partial: dict[str, Any]) -> LearnerProfile:
        """Shallow-merge ``partial`` (camelCase keys) over the stored profile."""
        with exclusive_lock(self._lock_path):
            merged = {**self.load().to_json_dict(), **partial}
            try:
                profile = LearnerProfile.model_validate(merged)
            except pydantic.ValidationError as exc:
                raise ValidationError(
                    f"Invalid profile update: {exc.error_count()} error(s)"
                ) from exc
            self._write(profile)
        logger.info("profile_updated", fields=sorted(partial))
        return profile
