"""Generate four-option MCQs about a topic with Gemini."""
import json
import logging
from typing import Any, List, Optional

import google.generativeai as genai

import config
from engine import OPTIONS_PER_QUESTION
from src.errors import ConfigurationError, PrepProError
from src.models import Question

logger = logging.getLogger(__name__)

MAX_QUESTIONS = 50

PROMPT = (
    'Generate {count} multiple-choice questions about "{topic}". '
    "Each question must have exactly 4 options. Ensure the correct answer index is accurate. "
    'Return only JSON: [{{"questionText": "...", "options": ["A", "B", "C", "D"], "correctAnswer": 0}}]'
)


def _strip_fences(text: str) -> str:
    return text.replace("```json", "").replace("```", "").strip()


def _valid_item(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    text = item.get("questionText")
    options = item.get("options")
    answer = item.get("correctAnswer")
    return (
        isinstance(text, str)
        and text.strip() != ""
        and isinstance(options, list)
        and len(options) == OPTIONS_PER_QUESTION
        and all(isinstance(o, str) and o.strip() for o in options)
        and isinstance(answer, int)
        and not isinstance(answer, bool)
        and 0 <= answer < OPTIONS_PER_QUESTION
    )


def parse_generated(text: str, test_id: str, subject: Optional[str] = None) -> List[Question]:
    """
    Turn the model's JSON reply into questions.

    Raises PrepProError when the reply is not a JSON array or any item is malformed.
    """
    try:
        data = json.loads(_strip_fences(text or ""))
    except json.JSONDecodeError as e:
        raise PrepProError(f"Failed to generate questions: the model did not return JSON ({e})")
    if not isinstance(data, list) or not data:
        raise PrepProError("Failed to generate questions: expected a non-empty JSON array.")
    bad = [i for i, item in enumerate(data) if not _valid_item(item)]
    if bad:
        raise PrepProError(f"Failed to generate questions: malformed items at {bad}")
    questions = []
    for item in data:
        question = Question(
            id="",
            test_id=test_id,
            question_text=item["questionText"].strip(),
            options=[o.strip() for o in item["options"]],
            correct_answer=item["correctAnswer"],
        )
        if subject:
            question.subject = subject
        questions.append(question)
    return questions


def generate_questions(
    topic: str,
    count: int,
    test_id: str,
    subject: Optional[str] = None,
    api_key: Optional[str] = None,
    model_name: Optional[str] = None,
) -> List[Question]:
    """Ask Gemini for `count` questions about `topic` for the given test."""
    topic = (topic or "").strip()
    if not topic:
        raise PrepProError("Please enter a topic.")
    if not 1 <= count <= MAX_QUESTIONS:
        raise PrepProError(f"Question count must be between 1 and {MAX_QUESTIONS}.")
    api_key = api_key or config.GEMINI_API_KEY
    if not api_key:
        raise ConfigurationError("GEMINI_API_KEY is not set. Add it to your .env file.")

    genai.configure(api_key=api_key)
    model = genai.GenerativeModel(model_name or config.GEMINI_MODEL)
    prompt = PROMPT.format(count=count, topic=topic)
    logger.info("Requesting %d questions about %r from %s", count, topic, model_name or config.GEMINI_MODEL)
    try:
        response = model.generate_content(prompt, generation_config={"response_mime_type": "application/json"})
        text = response.text
    except Exception as e:
        logger.error(f"Gemini request failed: {e}")
        raise PrepProError(f"Failed to generate questions. {e}") from e
    questions = parse_generated(text, test_id, subject)
    logger.info("Generated %d questions about %r", len(questions), topic)
    return questions
