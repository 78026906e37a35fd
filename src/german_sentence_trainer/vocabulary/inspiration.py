"""Random vocabulary hints used to vary generated exercises."""

import csv
import functools
import random
import threading
from pathlib import Path

import structlog

from german_sentence_trainer.models.base import CamelModel

logger = structlog.get_logger()


class VocabularyEntry(CamelModel):
    german: str
    english: str
    german_sentence: str = ""
    cloze_sentence: str = ""


def read_vocabulary_csv(path: Path) -> list[VocabularyEntry]:
    """Parse a ``german,english,german_sentence,cloze_sentence`` CSV file.

    Rows without a German word are skipped.
    """
    entries: list[VocabularyEntry] = []
    with path.open(newline="", encoding="utf-8") as handle:
        for row in csv.DictReader(handle):
            german = (row.get("german") or "").strip()
            if not german:
                continue
            entries.append(
                VocabularyEntry(
                    german=german,
                    english=(row.get("english") or "").strip(),
                    german_sentence=(row.get("german_sentence") or "").strip(),
                    cloze_sentence=(row.get("cloze_sentence") or "").strip(),
                )
            )
    return entries


class VocabularyInspirationSource:
    """Lazily loaded word list with independent random draws.

    The backing list is read once, on the first call to :meth:`sample`, and
    cached for the lifetime of the instance. A load failure is logged and
    leaves the list empty; it is never retried.

    Args:
        path: CSV file to load.
    """

    def __init__(self, path: Path):
        self.path = path
        self._entries: list[VocabularyEntry] | None = None
        self._lock = threading.Lock()

    @property
    def entries(self) -> list[VocabularyEntry]:
        if self._entries is None:
            with self._lock:
                if self._entries is None:
                    self._entries = self._load()
        return self._entries

    def _load(self) -> list[VocabularyEntry]:
        try:
            entries = read_vocabulary_csv(self.path)
        except (OSError, UnicodeDecodeError, csv.Error, ValueError) as exc:
            logger.warning("vocabulary_load_failed", path=str(self.path), error=str(exc))
            return []
        logger.info("vocabulary_loaded", path=str(self.path), count=len(entries))
        return entries

    def sample(self, n: int) -> list[VocabularyEntry]:
        """Draw up to ``n`` distinct entries in random order."""
        entries = self.entries
        if n <= 0 or not entries:
            return []
        return random.sample(entries, min(n, len(entries)))


@functools.lru_cache
def get_inspiration_source(path: Path) -> VocabularyInspirationSource:
    """Process-wide inspiration source for a given file."""
    return VocabularyInspirationSource(path)
