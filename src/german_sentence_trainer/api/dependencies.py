"""Process-wide service instances built from settings."""

import functools

from german_sentence_trainer.api.orchestrator import RequestOrchestrator
from german_sentence_trainer.config import get_settings
from german_sentence_trainer.generation.generator import ExerciseGenerator
from german_sentence_trainer.storage.history import HistoryStore
from german_sentence_trainer.storage.profile import ProfileStore
from german_sentence_trainer.vocabulary.inspiration import get_inspiration_source


@functools.lru_cache
def get_orchestrator() -> RequestOrchestrator:
    settings = get_settings()
    generator = ExerciseGenerator(
        api_key=settings.openai_api_key,
        model=settings.llm_model,
        inspiration=get_inspiration_source(settings.vocabulary_file),
        generation_temperature=settings.generation_temperature,
        grading_temperature=settings.grading_temperature,
        followup_temperature=settings.followup_temperature,
        inspiration_sample_size=settings.inspiration_sample_size,
    )
    return RequestOrchestrator(generator)


def get_history_store() -> HistoryStore:
    return HistoryStore(get_settings().storage_dir)


def get_profile_store() -> ProfileStore:
    settings = get_settings()
    return ProfileStore(settings.storage_dir, retention_days=settings.profile_retention_days)
