"""Services package for the gateway.

This package provides:
- Daily allowance arithmetic (quota)
- Study modes, prompts and upstream payloads (study_modes)
- Quiz schema, tool-call parsing and scoring (quiz)
- The account quota store (accounts) and upstream dispatch (dispatch)
"""

from studyai.app.services.quota import (
    QuotaState,
    apply_usage,
    effective_uses,
    is_exhausted,
    remaining,
)
from studyai.app.services.study_modes import (
    ResponseShape,
    StudyMode,
    Tier,
    build_upstream_payload,
)
from studyai.app.services.quiz import QuizPayload, QuizScore, parse_quiz_completion, score_quiz

__all__ = [
    # Quota
    "QuotaState",
    "apply_usage",
    "effective_uses",
    "is_exhausted",
    "remaining",
    # Study modes
    "ResponseShape",
    "StudyMode",
    "Tier",
    "build_upstream_payload",
    # Quiz
    "QuizPayload",
    "QuizScore",
    "parse_quiz_completion",
    "score_quiz",
]
