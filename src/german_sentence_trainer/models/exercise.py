"""Exercise and grading models."""

from pydantic import Field

from german_sentence_trainer.models.base import CamelModel


class ExerciseDraft(CamelModel):
    """Exercise fields the model is asked to produce."""

    problem_area: str
    topic: str
    key_words: list[str]
    instructions: str
    context: str
    example_sentences: list[str]


class Exercise(ExerciseDraft):
    """A writing prompt issued to the learner."""

    exercise_id: str
    proficiency_level: str
    example_sentences: list[str] = Field(default_factory=list)


class GrammarNote(CamelModel):
    rule: str
    example: str | None = None


class GradingResult(CamelModel):
    """Grading of a single learner sentence.

    ``review`` carries the detailed explanation; ``grammar_notes`` optionally
    breaks it down rule by rule. Both are ``None`` when absent.
    """

    is_correct: bool
    score: float = Field(ge=0.0, le=1.0)
    feedback: str
    review: str | None = None
    grammar_notes: list[GrammarNote] | None = None

    def summary(self) -> str:
        """One-line summary used when prompting for follow-up answers."""
        verdict = "correct" if self.is_correct else "incorrect"
        text = f"Graded {verdict} (score {self.score:.2f}). Feedback: {self.feedback}"
        if self.review:
            text += f" Review: {self.review}"
        return text
