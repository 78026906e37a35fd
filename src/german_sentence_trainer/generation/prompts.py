"""Prompt templates for exercise generation, grading and follow-up answers."""

from german_sentence_trainer.models.exercise import Exercise, GradingResult
from german_sentence_trainer.models.profile import LearnerProfile
from german_sentence_trainer.vocabulary.inspiration import VocabularyEntry

FALLBACK_FOCUS = "general grammar"

GENERATION_SYSTEM_PROMPT = """\
You are an assistant generating German sentence-writing exercises for language \
learners. Fill in every field of the requested structure.
"""

GENERATION_PROMPT = """\
Generate a German sentence exercise for a {level} learner focusing on {focus}.

Provide:
- a topic;
- 1-2 diverse, less common keywords related to the topic (avoid overly frequent \
words like 'essen' or 'Frühstück' unless highly relevant);
- instructions telling the learner what sentence to write;
- a short context for the situation;
- problemArea, which must be exactly: {focus};
- two example sentences illustrating the focus area. The example sentences must \
NOT use the chosen keywords verbatim, so the learner still has to build their own \
sentence.
{inspiration}"""

INSPIRATION_BLOCK = """
Optional inspiration. You may draw on these words for the topic or keywords, but \
you are not required to use any of them, and if you do, pick a related form rather \
than the exact word shown:
{words}
"""

GRADING_SYSTEM_PROMPT = """\
You are an experienced German teacher grading sentences written by language \
learners. Fill in every field of the requested structure.
"""

GRADING_PROMPT = """\
Grade the following German sentence written by a {level} learner: "{answer}"

The exercise topic was "{topic}", focusing on {focus}, with the keywords {keywords}.
Instructions given to the learner: {instructions}

Grading rules:
- Be lenient about whether the sentence matches the topic, category or keywords. \
A grammatically sound sentence that drifts from the topic is still acceptable.
- Be strict about core grammar: article-gender agreement, adjective endings, \
subject-verb agreement and case usage. Any such error means isCorrect must be false.

Return:
- isCorrect: true only if the sentence has no core grammar errors;
- score: a number between 0.0 and 1.0;
- feedback: one or two short sentences;
- review: a detailed explanation of what, if anything, is wrong and how to fix it, \
written constructively;
- grammarNotes: the grammar rules involved, each with an optional short example, \
or null if there is nothing to note.
"""

FOLLOWUP_SYSTEM_PROMPT = """\
You are a patient German tutor answering a learner's follow-up question about \
feedback they received. Answer precisely and concisely in English, quoting German \
examples where they help.
"""

FOLLOWUP_PROMPT = """\
Exercise topic: {topic}
Focus area: {focus}
Keywords: {keywords}

The learner wrote: "{answer}"
Previous grading: {feedback}

The learner now asks: {question}
"""


def resolve_focus_target(profile: LearnerProfile) -> str:
    """Pick the single area a generated exercise should target.

    ``focus_area`` wins when non-blank, then the joined ``problem_areas``,
    then a general fallback.
    """
    if profile.focus_area and profile.focus_area.strip():
        return profile.focus_area.strip()
    if profile.problem_areas:
        return ", ".join(profile.problem_areas)
    return FALLBACK_FOCUS


def _format_inspiration(words: list[VocabularyEntry]) -> str:
    if not words:
        return ""
    lines = "\n".join(
        f"- {w.german} ({w.english})" if w.english else f"- {w.german}" for w in words
    )
    return INSPIRATION_BLOCK.format(words=lines)


def build_generation_prompt(
    profile: LearnerProfile,
    focus: str,
    inspiration: list[VocabularyEntry] | None = None,
) -> str:
    return GENERATION_PROMPT.format(
        level=profile.proficiency_level,
        focus=focus,
        inspiration=_format_inspiration(inspiration or []),
    )


def build_grading_prompt(exercise: Exercise, answer: str) -> str:
    return GRADING_PROMPT.format(
        level=exercise.proficiency_level,
        answer=answer,
        topic=exercise.topic,
        focus=exercise.problem_area,
        keywords=", ".join(exercise.key_words),
        instructions=exercise.instructions,
    )


def build_followup_prompt(
    exercise: Exercise,
    answer: str,
    feedback: GradingResult,
    question: str,
) -> str:
    return FOLLOWUP_PROMPT.format(
        topic=exercise.topic,
        focus=exercise.problem_area,
        keywords=", ".join(exercise.key_words),
        answer=answer,
        feedback=feedback.summary(),
        question=question,
    )
