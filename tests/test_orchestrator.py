"""Tests for the request orchestrator."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from german_sentence_trainer.api.orchestrator import RequestOrchestrator, parse_request
from german_sentence_trainer.errors import InvalidAction, UpstreamError, ValidationError
from german_sentence_trainer.models.exercise import Exercise, GradingResult
from german_sentence_trainer.models.requests import (
    AnswerQuestionRequest,
    FollowupAnswer,
    GenerateExerciseRequest,
    GradeSentenceRequest,
)

EXERCISE = {
    "exerciseId": "ex-1",
    "problemArea": "cases",
    "proficiencyLevel": "A2",
    "topic": "Im Zoo",
    "keyWords": ["Gehege"],
    "instructions": "Write about an animal.",
    "context": "You are at the zoo.",
    "exampleSentences": [],
}
FEEDBACK = {"isCorrect": False, "score": 0.3, "feedback": "Wrong case"}


@pytest.fixture
def generator():
    gen = MagicMock()
    gen.generate_exercise = AsyncMock(return_value=Exercise.model_validate(EXERCISE))
    gen.grade_sentence = AsyncMock(return_value=GradingResult.model_validate(FEEDBACK))
    gen.answer_followup = AsyncMock(return_value="Use the accusative.")
    return gen


@pytest.fixture
def orchestrator(generator):
    return RequestOrchestrator(generator)


class TestParseRequest:
    def test_generate(self):
        request = parse_request({"action": "generateExercise", "userProfile": {"proficiencyLevel": "B1"}})
        assert isinstance(request, GenerateExerciseRequest)
        assert request.user_profile.proficiency_level == "B1"
        assert request.user_profile.problem_areas == ["word-order"]

    def test_grade(self):
        request = parse_request({"action": "gradeSentence", "exercise": EXERCISE, "userAnswer": "Hallo"})
        assert isinstance(request, GradeSentenceRequest)

    def test_answer_question(self):
        request = parse_request({
            "action": "answerQuestion",
            "exercise": EXERCISE,
            "userAnswer": "Hallo",
            "feedback": FEEDBACK,
            "question": "Why?",
        })
        assert isinstance(request, AnswerQuestionRequest)

    @pytest.mark.parametrize("action", ["deleteEverything", None, "", ["gradeSentence"]])
    def test_unknown_action(self, action):
        with pytest.raises(InvalidAction):
            parse_request({"action": action})

    @pytest.mark.parametrize("payload", [[1, 2], "generateExercise", None])
    def test_body_must_be_an_object(self, payload):
        with pytest.raises(ValidationError, match="JSON object"):
            parse_request(payload)

    def test_missing_user_profile(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_request({"action": "generateExercise"})
        assert exc_info.value.missing == ["userProfile"]
        assert "userProfile" in str(exc_info.value)

    def test_missing_grade_fields_are_all_named(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_request({"action": "gradeSentence", "userAnswer": None})
        assert exc_info.value.missing == ["exercise", "userAnswer"]

    def test_empty_answer_is_present(self):
        request = parse_request({"action": "gradeSentence", "exercise": EXERCISE, "userAnswer": ""})
        assert request.user_answer == ""

    def test_missing_followup_fields(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_request({"action": "answerQuestion", "exercise": EXERCISE, "userAnswer": "x"})
        assert exc_info.value.missing == ["feedback", "question"]

    def test_malformed_nested_payload(self):
        bad_exercise = {k: v for k, v in EXERCISE.items() if k != "topic"}
        with pytest.raises(ValidationError) as exc_info:
            parse_request({"action": "gradeSentence", "exercise": bad_exercise, "userAnswer": "x"})
        assert "exercise.topic" in str(exc_info.value)


class TestDispatch:
    async def test_generate_exercise(self, orchestrator, generator):
        result = await orchestrator.dispatch(
            {"action": "generateExercise", "userProfile": {"proficiencyLevel": "A2", "problemAreas": ["cases"]}}
        )
        assert isinstance(result, Exercise)
        profile = generator.generate_exercise.call_args.args[0]
        assert profile.problem_areas == ["cases"]

    async def test_grade_sentence(self, orchestrator, generator):
        result = await orchestrator.dispatch(
            {"action": "gradeSentence", "exercise": EXERCISE, "userAnswer": "Ich sehe der Mann"}
        )
        assert isinstance(result, GradingResult)
        assert generator.grade_sentence.call_args.args[1] == "Ich sehe der Mann"

    async def test_answer_question(self, orchestrator, generator):
        result = await orchestrator.dispatch({
            "action": "answerQuestion",
            "exercise": EXERCISE,
            "userAnswer": "Ich sehe der Mann",
            "feedback": FEEDBACK,
            "question": "Why den?",
        })
        assert result == FollowupAnswer(answer="Use the accusative.")
        assert result.to_json_dict() == {"answer": "Use the accusative."}
        args = generator.answer_followup.call_args.args
        assert args[3] == "Why den?"

    async def test_validation_happens_before_model_call(self, orchestrator, generator):
        with pytest.raises(ValidationError):
            await orchestrator.dispatch({"action": "gradeSentence", "exercise": EXERCISE})
        generator.grade_sentence.assert_not_called()

    async def test_downstream_errors_propagate(self, orchestrator, generator):
        generator.generate_exercise.side_effect = UpstreamError("boom", status_code=502)
        with pytest.raises(UpstreamError):
            await orchestrator.dispatch({"action": "generateExercise", "userProfile": {}})
        assert generator.generate_exercise.await_count == 1
