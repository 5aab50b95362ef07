"""
Parse uploaded question files (CSV / JSON) into Question rows for one test.

Admin CSV:   question,option1,option2,option3,option4,correctAnswerIndex  (0-based)
Subject CSV: question,option1,option2,option3,option4,correctAnswer       (1-based)
JSON:        [{"questionText": ..., "options": [4 strings], "correctAnswer": 0-3}, ...]
"""
import csv
import io
import json
import logging
from pathlib import Path
from typing import List, Optional, Union

from engine import DEFAULT_DIFFICULTY, DEFAULT_SUBJECT, DIFFICULTIES, OPTIONS_PER_QUESTION
from src.errors import ValidationError
from src.models import Question

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".csv", ".json")


def _text(content: Union[str, bytes]) -> str:
    if isinstance(content, bytes):
        return content.decode("utf-8-sig")
    return content.lstrip("\ufeff")


def _rows(text: str) -> List[List[str]]:
    """CSV rows minus the header and blank lines. Quoted fields may hold commas."""
    rows = [[v.strip() for v in row] for row in csv.reader(io.StringIO(text))]
    return [r for r in rows[1:] if any(r)]


def _to_int(value, default: int) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def _answer_index(value, base: int) -> int:
    """Option index from a 0- or 1-based column. Anything out of range falls back to the first option."""
    index = _to_int(value, base) - base
    return index if 0 <= index < OPTIONS_PER_QUESTION else 0


def parse_admin_csv(content: Union[str, bytes], test_id: str) -> List[Question]:
    """Rows with fewer than six columns or any empty text field are skipped."""
    questions = []
    for line_no, values in enumerate(_rows(_text(content)), start=2):
        if len(values) < 6:
            logger.debug("Skipping CSV row %d: %d columns", line_no, len(values))
            continue
        if not all(values[:5]):
            logger.debug("Skipping CSV row %d: empty field", line_no)
            continue
        questions.append(
            Question(
                id="",
                test_id=test_id,
                question_text=values[0],
                options=values[1:5],
                correct_answer=_answer_index(values[5], base=0),
            )
        )
    logger.info("Parsed %d questions from admin CSV", len(questions))
    return questions


def parse_subject_csv(
    content: Union[str, bytes],
    test_id: str,
    subject: str,
    start_position: int = 1,
    difficulty: str = DEFAULT_DIFFICULTY,
) -> List[Question]:
    """
    Questions for one subject; positions continue from start_position.

    The answer column may be blank (first option). Rows missing the question
    or any option are skipped.
    """
    questions = []
    position = start_position
    for line_no, values in enumerate(_rows(_text(content)), start=2):
        values = values + [""] * (6 - len(values))
        if not all(values[:5]):
            logger.debug("Skipping subject CSV row %d: empty field", line_no)
            continue
        questions.append(
            Question(
                id="",
                test_id=test_id,
                question_text=values[0],
                options=values[1:5],
                correct_answer=_answer_index(values[5] or 1, base=1),
                subject=subject,
                position=position,
                difficulty=difficulty,
            )
        )
        position += 1
    logger.info("Parsed %d questions for subject %r", len(questions), subject)
    return questions


def parse_json(content: Union[str, bytes], test_id: str) -> List[Question]:
    """Entries without text or without four options are dropped."""
    try:
        data = json.loads(_text(content))
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON: {e}")
    if not isinstance(data, list):
        raise ValidationError("Invalid JSON format. Expected an array of questions.")
    questions = []
    for item in data:
        if not isinstance(item, dict):
            continue
        text = str(item.get("questionText") or "").strip()
        options = item.get("options")
        if not text or not isinstance(options, list) or len(options) != OPTIONS_PER_QUESTION:
            continue
        difficulty = item.get("difficulty")
        questions.append(
            Question(
                id="",
                test_id=test_id,
                question_text=text,
                options=[str(o).strip() for o in options],
                correct_answer=_answer_index(item.get("correctAnswer"), base=0),
                subject=item.get("subject") or DEFAULT_SUBJECT,
                position=_to_int(item.get("position"), 1),
                difficulty=difficulty if difficulty in DIFFICULTIES else DEFAULT_DIFFICULTY,
            )
        )
    logger.info("Parsed %d questions from JSON", len(questions))
    return questions


def parse_upload(
    filename: str,
    content: Union[str, bytes],
    test_id: str,
    subject: Optional[str] = None,
    start_position: int = 1,
) -> List[Question]:
    """
    Dispatch on the file extension.

    With a subject, CSV files use the 1-based subject format and JSON questions
    are moved into that subject. Unsupported extensions raise ValidationError.
    """
    suffix = Path(filename).suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise ValidationError("Only JSON and CSV files are supported.")
    if suffix == ".json":
        questions = parse_json(content, test_id)
        if subject:
            for offset, question in enumerate(questions):
                question.subject = subject
                question.position = start_position + offset
        return questions
    if subject:
        return parse_subject_csv(content, test_id, subject, start_position)
    return parse_admin_csv(content, test_id)
