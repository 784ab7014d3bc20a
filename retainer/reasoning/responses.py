"""Typed shapes of the generative backend's answers.

Each call site expects one JSON object. Every response type has a
`parse` that returns None when the answer is unusable and a `fallback`
constructor for the documented default, so a malformed answer never
surfaces as an exception.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, ValidationError

from retainer.domain.episode import Lesson
from retainer.domain.reasoning import ActionOption, EvaluatedOption
from retainer.utils.llm_json import extract_json_object


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _as_score(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return max(0.0, min(1.0, float(value)))


class OptionsResponse(BaseModel):
    """Candidate actions proposed for a situation."""

    kind: Literal["options"] = "options"
    options: list[ActionOption] = Field(..., min_length=1)

    @classmethod
    def parse(cls, content: str, max_options: int = 4) -> "OptionsResponse | None":
        data = extract_json_object(content)
        if data is None or not isinstance(data.get("options"), list):
            return None

        options = [
            ActionOption(
                action=_as_str(raw.get("action")) or "email",
                strategy=_as_str(raw.get("strategy")) or "default",
                details=_as_dict(raw.get("details")),
                predicted_success_rate=_as_score(raw.get("predicted_success_rate")),
                reasoning=_as_str(raw.get("reasoning")),
            )
            for raw in data["options"]
            if isinstance(raw, dict)
        ]
        if not options:
            return None
        return cls(options=options[:max_options])

    @classmethod
    def fallback(cls) -> "OptionsResponse":
        return cls(
            options=[ActionOption(action="email", strategy="friendly", details={"default": True})]
        )


class EvaluationResponse(BaseModel):
    """Scores for each candidate, kept in generation order."""

    kind: Literal["evaluation"] = "evaluation"
    evaluated: list[EvaluatedOption]

    @classmethod
    def parse(
        cls, content: str, options: list[ActionOption]
    ) -> "EvaluationResponse | None":
        data = extract_json_object(content)
        if data is None or not isinstance(data.get("evaluations"), list):
            return None

        by_index: dict[int, dict[str, Any]] = {}
        for raw in data["evaluations"]:
            if isinstance(raw, dict) and isinstance(raw.get("option_index"), int):
                by_index.setdefault(raw["option_index"], raw)

        evaluated = []
        for i, option in enumerate(options):
            raw = by_index.get(i, {})
            score = _as_score(raw.get("score"))
            reasons = raw.get("reasons")
            if not isinstance(reasons, list) or not reasons:
                reasons = ["No specific evaluation"]
            evaluated.append(
                EvaluatedOption(
                    **option.model_dump(),
                    score=0.5 if score is None else score,
                    reasons=[str(r) for r in reasons],
                )
            )
        return cls(evaluated=evaluated)

    @classmethod
    def fallback(cls, options: list[ActionOption], reason: str) -> "EvaluationResponse":
        """Descending default scores 0.5, 0.4, 0.3, ... in generation order."""
        return cls(
            evaluated=[
                EvaluatedOption(
                    **option.model_dump(),
                    score=max(0.0, round(0.5 - i * 0.1, 4)),
                    reasons=[reason],
                )
                for i, option in enumerate(options)
            ]
        )


class LessonsResponse(BaseModel):
    """Lessons extracted from a resolved episode."""

    kind: Literal["lessons"] = "lessons"
    lessons: list[Lesson] = Field(default_factory=list)

    @classmethod
    def parse(cls, content: str) -> "LessonsResponse | None":
        data = extract_json_object(content)
        if data is None or not isinstance(data.get("lessons"), list):
            return None

        lessons = []
        for raw in data["lessons"]:
            if not isinstance(raw, dict):
                continue
            try:
                confidence = _as_score(raw.get("confidence"))
                lessons.append(
                    Lesson(
                        insight=raw.get("insight"),
                        confidence=0.5 if confidence is None else confidence,
                        applicable_to=_as_dict(raw.get("applicable_to") or raw.get("applicableTo")),
                        recommendation=_as_str(raw.get("recommendation")),
                    )
                )
            except ValidationError:
                continue
        return cls(lessons=lessons)

    @classmethod
    def fallback(cls) -> "LessonsResponse":
        return cls(lessons=[])


GenerativeResponse = Annotated[
    OptionsResponse | EvaluationResponse | LessonsResponse,
    Field(discriminator="kind"),
]
