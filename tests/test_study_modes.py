import pytest

from studyai.app.core.config import settings
from studyai.app.exceptions import BadRequestError
from studyai.app.services.study_modes import (
    QUIZ_TOOL_NAME,
    ResponseShape,
    StudyMode,
    Tier,
    build_upstream_payload,
)


@pytest.mark.parametrize("raw", ["explain", "Summarize", " quiz ", "FLASHCARDS"])
def test_parse_known_modes(raw):
    assert StudyMode.parse(raw).value == raw.strip().lower()


def test_parse_unknown_mode_is_rejected():
    with pytest.raises(BadRequestError) as exc_info:
        StudyMode.parse("poetry")
    assert exc_info.value.status_code == 400
    assert "explain" in exc_info.value.message


def test_only_quiz_is_structured():
    shapes = {mode: mode.response_shape for mode in StudyMode}
    assert shapes.pop(StudyMode.QUIZ) is ResponseShape.STRUCTURED
    assert set(shapes.values()) == {ResponseShape.STREAM}


def test_prompts_are_distinct():
    prompts = {mode.system_prompt for mode in StudyMode}
    assert len(prompts) == len(StudyMode)
    assert "TL;DR" in StudyMode.SUMMARIZE.system_prompt
    assert "**Front:**" in StudyMode.FLASHCARDS.system_prompt


def test_prose_payload_streams():
    payload = build_upstream_payload(StudyMode.EXPLAIN, "photosynthesis", Tier.STANDARD)
    assert payload["stream"] is True
    assert "tools" not in payload
    assert payload["messages"][0]["role"] == "system"
    assert payload["messages"][1] == {"role": "user", "content": "photosynthesis"}


def test_quiz_payload_forces_tool_call():
    payload = build_upstream_payload(StudyMode.QUIZ, "cell biology", Tier.STANDARD)
    assert payload["stream"] is False
    assert payload["tools"][0]["function"]["name"] == QUIZ_TOOL_NAME
    assert payload["tool_choice"]["function"]["name"] == QUIZ_TOOL_NAME


def test_tier_changes_model_and_budget_only():
    standard = build_upstream_payload(StudyMode.EXPLAIN, "gravity", Tier.STANDARD)
    premium = build_upstream_payload(StudyMode.EXPLAIN, "gravity", Tier.for_account(True))

    assert standard["model"] == settings.upstream_model
    assert premium["model"] == settings.upstream_premium_model
    assert standard["max_tokens"] < premium["max_tokens"]
    assert standard["messages"][0]["content"] != premium["messages"][0]["content"]
    assert standard["stream"] == premium["stream"]
