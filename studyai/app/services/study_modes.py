"""Study modes and the upstream request each one produces.

Every mode is a closed variant carrying its system prompt and the response
shape it needs from the upstream: prose modes stream, quiz mode asks for a
single structured tool call. Unknown mode strings are rejected by
`StudyMode.parse` rather than mapped to a default.
"""

from enum import Enum
from typing import Any, Dict

from studyai.app.core.config import settings
from studyai.app.exceptions import BadRequestError

QUIZ_QUESTION_COUNT = 5
QUIZ_TOOL_NAME = "create_quiz"
OPTION_LABELS = ("A", "B", "C", "D")


class ResponseShape(str, Enum):
    STREAM = "stream"
    STRUCTURED = "structured"


class Tier(str, Enum):
    STANDARD = "standard"
    PREMIUM = "premium"

    @classmethod
    def for_account(cls, is_premium: bool) -> "Tier":
        return cls.PREMIUM if is_premium else cls.STANDARD


EXPLAIN_PROMPT = """You are an expert educator and tutor. Your role is to explain complex topics in a clear, engaging, and easy-to-understand way.

When explaining a topic:
- Start with a brief overview
- Break down key concepts step by step
- Use analogies and real-world examples
- Highlight important terms and definitions
- Conclude with practical applications

Format your response with markdown: use ## for headers, **bold** for key terms, and bullet points for lists."""

SUMMARIZE_PROMPT = """You are an expert at summarizing and condensing information. Create clear, comprehensive summaries of the provided content.

Your summary should include:
- A brief TL;DR (1-2 sentences)
- Main points organized by theme
- Key terms and definitions
- Important takeaways

Format with markdown: use ## for headers, **bold** for key terms, and bullet points for organized lists."""

FLASHCARDS_PROMPT = """You are an expert at turning study material into effective flashcards.

Create flashcards that:
- Each test exactly one fact, term, or concept
- Have a short question or term on the front
- Have a concise, precise answer on the back
- Progress from foundational ideas to more detailed ones

Format every card in markdown as:
**Front:** <question or term>
**Back:** <answer>

Separate cards with a blank line."""

QUIZ_PROMPT = f"""You are an expert quiz creator for educational purposes. Generate a multiple choice quiz that tests understanding of the given topic.

Requirements:
- Exactly {QUIZ_QUESTION_COUNT} questions, ordered from easiest to hardest
- Each question has exactly four options labeled A, B, C and D
- Exactly one option is correct
- Every question includes a short explanation of why the correct answer is right

Return the quiz by calling the {QUIZ_TOOL_NAME} function."""

TIER_INSTRUCTIONS = {
    Tier.STANDARD: "Keep the response concise and focused on the essentials.",
    Tier.PREMIUM: (
        "Provide a thorough, well-structured response with additional depth, "
        "worked examples, and connections to related topics."
    ),
}


class StudyMode(str, Enum):
    EXPLAIN = "explain"
    SUMMARIZE = "summarize"
    QUIZ = "quiz"
    FLASHCARDS = "flashcards"

    @classmethod
    def parse(cls, raw: str) -> "StudyMode":
        try:
            return cls(raw.strip().lower())
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise BadRequestError(f"Unknown mode '{raw}'. Expected one of: {allowed}")

    @property
    def system_prompt(self) -> str:
        return _SYSTEM_PROMPTS[self]

    @property
    def response_shape(self) -> ResponseShape:
        if self is StudyMode.QUIZ:
            return ResponseShape.STRUCTURED
        return ResponseShape.STREAM


_SYSTEM_PROMPTS = {
    StudyMode.EXPLAIN: EXPLAIN_PROMPT,
    StudyMode.SUMMARIZE: SUMMARIZE_PROMPT,
    StudyMode.QUIZ: QUIZ_PROMPT,
    StudyMode.FLASHCARDS: FLASHCARDS_PROMPT,
}


def quiz_tool_definition() -> Dict[str, Any]:
    """OpenAI-style function tool whose arguments are the quiz payload."""
    option_properties = {label: {"type": "string"} for label in OPTION_LABELS}
    return {
        "type": "function",
        "function": {
            "name": QUIZ_TOOL_NAME,
            "description": f"Create a {QUIZ_QUESTION_COUNT}-question multiple choice quiz",
            "parameters": {
                "type": "object",
                "properties": {
                    "title": {"type": "string", "description": "Quiz title"},
                    "questions": {
                        "type": "array",
                        "minItems": QUIZ_QUESTION_COUNT,
                        "maxItems": QUIZ_QUESTION_COUNT,
                        "items": {
                            "type": "object",
                            "properties": {
                                "question": {"type": "string"},
                                "options": {
                                    "type": "object",
                                    "properties": option_properties,
                                    "required": list(OPTION_LABELS),
                                    "additionalProperties": False,
                                },
                                "correctAnswer": {"type": "string", "enum": list(OPTION_LABELS)},
                                "explanation": {"type": "string"},
                            },
                            "required": ["question", "options", "correctAnswer", "explanation"],
                            "additionalProperties": False,
                        },
                    },
                },
                "required": ["title", "questions"],
                "additionalProperties": False,
            },
        },
    }


def build_upstream_payload(mode: StudyMode, message: str, tier: Tier) -> Dict[str, Any]:
    """Build the chat completions payload for a study request.

    Tiering only changes the instruction, model and output budget; the wire
    protocol is decided by the mode alone.
    """
    premium = tier is Tier.PREMIUM
    system_prompt = f"{mode.system_prompt}\n\n{TIER_INSTRUCTIONS[tier]}"

    payload: Dict[str, Any] = {
        "model": settings.upstream_premium_model if premium else settings.upstream_model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": message},
        ],
        "max_tokens": settings.upstream_premium_max_tokens if premium else settings.upstream_max_tokens,
    }

    if mode.response_shape is ResponseShape.STRUCTURED:
        payload["tools"] = [quiz_tool_definition()]
        payload["tool_choice"] = {"type": "function", "function": {"name": QUIZ_TOOL_NAME}}
        payload["stream"] = False
    else:
        payload["stream"] = True

    return payload
