"""Quiz payload schema, tool-call extraction and scoring."""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from studyai.app.core.logging import get_logger
from studyai.app.exceptions import UpstreamError
from studyai.app.services.study_modes import QUIZ_QUESTION_COUNT, QUIZ_TOOL_NAME

logger = get_logger(__name__)

OptionLabel = Literal["A", "B", "C", "D"]


class QuizOptions(BaseModel):
    A: str = Field(..., min_length=1)
    B: str = Field(..., min_length=1)
    C: str = Field(..., min_length=1)
    D: str = Field(..., min_length=1)

    @field_validator("A", "B", "C", "D")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("option text cannot be blank")
        return v


class QuizQuestion(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: str = Field(..., min_length=1)
    options: QuizOptions
    correct_answer: OptionLabel = Field(..., alias="correctAnswer")
    explanation: str


class QuizPayload(BaseModel):
    title: str
    questions: List[QuizQuestion] = Field(
        ..., min_length=QUIZ_QUESTION_COUNT, max_length=QUIZ_QUESTION_COUNT
    )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


def parse_quiz_completion(completion: Mapping[str, Any]) -> QuizPayload:
    """Extract and validate the quiz from a non-streamed tool-call completion.

    The upstream must have called the quiz tool; free-text content is never
    parsed as a fallback.

    Raises:
        UpstreamError: If no quiz tool call is present or its arguments do
            not match the quiz schema
    """
    try:
        message = completion["choices"][0]["message"]
        tool_calls = message.get("tool_calls") or []
    except (KeyError, IndexError, TypeError, AttributeError):
        logger.error("Quiz completion has no message")
        raise UpstreamError("Failed to generate quiz. Please try again.")

    if not isinstance(tool_calls, list):
        tool_calls = []
    call = next(
        (
            c for c in tool_calls
            if isinstance(c, dict)
            and isinstance(c.get("function"), dict)
            and c["function"].get("name") == QUIZ_TOOL_NAME
        ),
        None,
    )
    if call is None:
        logger.error("Upstream did not call the quiz tool", extra={"tool_calls": len(tool_calls)})
        raise UpstreamError("Failed to generate quiz. Please try again.")

    arguments = call["function"].get("arguments")
    try:
        if isinstance(arguments, str):
            arguments = json.loads(arguments)
        return QuizPayload.model_validate(arguments)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Invalid quiz payload: {e}")
        raise UpstreamError("Failed to parse quiz. Please try again.")


@dataclass(frozen=True)
class QuizScore:
    correct: int
    total: int
    percentage: int
    verdict: str


def score_quiz(quiz: QuizPayload, answers: Mapping[int, str]) -> QuizScore:
    """Score answers keyed by question index; unanswered questions are wrong."""
    total = len(quiz.questions)
    correct = sum(
        1 for i, q in enumerate(quiz.questions) if answers.get(i) == q.correct_answer
    )
    percentage = round(correct / total * 100) if total else 0

    if percentage == 100:
        verdict = "Perfect Score!"
    elif percentage >= 80:
        verdict = "Excellent Work!"
    elif percentage >= 60:
        verdict = "Good Job!"
    elif percentage >= 40:
        verdict = "Keep Practicing!"
    else:
        verdict = "Keep Studying!"

    return QuizScore(correct=correct, total=total, percentage=percentage, verdict=verdict)
