"""Tests for typed generative responses."""

import json

from pydantic import TypeAdapter

from retainer.domain.reasoning import ActionOption
from retainer.reasoning import (
    EvaluationResponse,
    GenerativeResponse,
    LessonsResponse,
    OptionsResponse,
)

OPTIONS = [
    ActionOption(action="email", strategy="friendly"),
    ActionOption(action="discount", strategy="value_focused", details={"discount_percent": 20}),
    ActionOption(action="sms", strategy="urgent"),
]


class TestOptionsResponse:
    """Tests for OptionsResponse.parse."""

    def test_parse_valid(self):
        content = json.dumps(
            {
                "options": [
                    {"action": "email", "strategy": "friendly", "details": {"tone": "warm"},
                     "reasoning": "Gentle first touch"},
                    {"action": "discount", "strategy": "value_focused",
                     "predicted_success_rate": 1.4},
                ]
            }
        )

        parsed = OptionsResponse.parse(content)

        assert [o.action for o in parsed.options] == ["email", "discount"]
        assert parsed.options[0].details == {"tone": "warm"}
        assert parsed.options[1].predicted_success_rate == 1.0

    def test_missing_fields_get_defaults(self):
        parsed = OptionsResponse.parse('{"options": [{"details": "not a dict"}]}')

        option = parsed.options[0]
        assert (option.action, option.strategy, option.details) == ("email", "default", {})

    def test_caps_option_count(self):
        content = json.dumps({"options": [{"action": f"a{i}"} for i in range(10)]})
        assert len(OptionsResponse.parse(content, max_options=4).options) == 4

    def test_unusable_answers(self):
        assert OptionsResponse.parse("Mock response") is None
        assert OptionsResponse.parse('{"options": "email"}') is None
        assert OptionsResponse.parse('{"options": [1, 2]}') is None

    def test_fallback(self):
        option = OptionsResponse.fallback().options[0]
        assert (option.action, option.strategy, option.details) == (
            "email", "friendly", {"default": True},
        )


class TestEvaluationResponse:
    """Tests for EvaluationResponse.parse and fallback."""

    def test_scores_by_index(self):
        content = json.dumps(
            {
                "evaluations": [
                    {"option_index": 1, "score": 0.9, "reasons": ["Good value"]},
                    {"option_index": 0, "score": 0.4, "reasons": ["Too soft"]},
                ]
            }
        )

        parsed = EvaluationResponse.parse(content, OPTIONS)

        assert [o.score for o in parsed.evaluated] == [0.4, 0.9, 0.5]
        assert parsed.evaluated[1].details == {"discount_percent": 20}
        assert parsed.evaluated[2].reasons == ["No specific evaluation"]

    def test_invalid_scores(self):
        content = json.dumps(
            {
                "evaluations": [
                    {"option_index": 0, "score": "high"},
                    {"option_index": 1, "score": True},
                    {"option_index": 2, "score": -3},
                ]
            }
        )

        parsed = EvaluationResponse.parse(content, OPTIONS)
        assert [o.score for o in parsed.evaluated] == [0.5, 0.5, 0.0]

    def test_unusable_answer(self):
        assert EvaluationResponse.parse("no json here", OPTIONS) is None

    def test_fallback_descending(self):
        fallback = EvaluationResponse.fallback(OPTIONS, "Evaluation error")
        assert [o.score for o in fallback.evaluated] == [0.5, 0.4, 0.3]
        assert fallback.evaluated[0].reasons == ["Evaluation error"]

    def test_fallback_never_negative(self):
        options = [ActionOption(action="email", strategy=str(i)) for i in range(8)]
        scores = [o.score for o in EvaluationResponse.fallback(options, "x").evaluated]
        assert min(scores) == 0.0


class TestLessonsResponse:
    """Tests for LessonsResponse.parse."""

    def test_parse_lessons(self):
        content = json.dumps(
            {
                "lessons": [
                    {"insight": "Pause offers retain long-tenure customers", "confidence": 0.8,
                     "applicableTo": {"tenure_min": 6}, "recommendation": "Offer a pause"},
                    {"insight": "No confidence given"},
                    {"confidence": 0.9},
                    "garbage",
                ]
            }
        )

        lessons = LessonsResponse.parse(content).lessons

        assert len(lessons) == 2
        assert lessons[0].applicable_to == {"tenure_min": 6}
        assert lessons[1].confidence == 0.5

    def test_unusable_answer(self):
        assert LessonsResponse.parse("nothing") is None
        assert LessonsResponse.fallback().lessons == []


class TestGenerativeResponse:
    """Tests for the discriminated union of response kinds."""

    def test_discriminates_by_kind(self):
        adapter = TypeAdapter(GenerativeResponse)

        options = adapter.validate_python(
            {"kind": "options", "options": [{"action": "email", "strategy": "friendly"}]}
        )
        lessons = adapter.validate_python({"kind": "lessons", "lessons": []})

        assert isinstance(options, OptionsResponse)
        assert isinstance(lessons, LessonsResponse)
