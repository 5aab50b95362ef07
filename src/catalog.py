"""Admin-side rules for categories, tests, questions and test subjects."""
import math
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from engine import ADMIN_PAGE_SIZE, DEFAULT_DIFFICULTY, DEFAULT_SUBJECT, DIFFICULTIES, OPTIONS_PER_QUESTION
from src.errors import ValidationError
from src.models import Category, Question, Test, TestSubject, User


def validate_category_name(name: str, categories: Iterable[Category], editing_id: Optional[str] = None) -> str:
    """Returns the cleaned name. Names are unique ignoring case."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Category name is required.")
    for category in categories:
        if category.id != editing_id and category.name.lower() == name.lower():
            raise ValidationError("A category with this name already exists. Please choose a different name.")
    return name


def _positive_int(value, label: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a positive number.")
    if number <= 0:
        raise ValidationError(f"{label} must be a positive number.")
    return number


def validate_test(
    title: str,
    category_id: Optional[str],
    duration,
    total_questions,
    tests: Iterable[Test],
    editing_id: Optional[str] = None,
) -> Test:
    """
    Check an add/edit test form and build the Test (id kept when editing).

    Titles only need to be unique within their category.
    """
    title = (title or "").strip()
    if not title:
        raise ValidationError("Test title is required.")
    if not category_id:
        raise ValidationError("Please select a category.")
    duration = _positive_int(duration, "Duration")
    total_questions = _positive_int(total_questions, "Total questions")
    for test in tests:
        if test.id != editing_id and test.category_id == category_id and test.title.lower() == title.lower():
            raise ValidationError("A test with this name already exists in this category. Please choose a different name.")
    return Test(
        id=editing_id or "",
        category_id=category_id,
        title=title,
        duration=duration,
        total_questions=total_questions,
    )


def validate_question(question: Question) -> Question:
    text = (question.question_text or "").strip()
    if not text:
        raise ValidationError("Question text is required.")
    options = [(o or "").strip() for o in question.options]
    if len(options) != OPTIONS_PER_QUESTION or not all(options):
        raise ValidationError(f"Provide exactly {OPTIONS_PER_QUESTION} non-empty options.")
    if not 0 <= question.correct_answer < OPTIONS_PER_QUESTION:
        raise ValidationError("Correct answer must be one of the options.")
    difficulty = question.difficulty if question.difficulty in DIFFICULTIES else DEFAULT_DIFFICULTY
    return replace(
        question,
        question_text=text,
        options=options,
        subject=(question.subject or "").strip() or DEFAULT_SUBJECT,
        position=question.position or 1,
        difficulty=difficulty,
    )


# --- Test subjects ---

def next_display_order(subjects: Iterable[TestSubject]) -> int:
    return max((s.display_order for s in subjects), default=0) + 1


def next_position(questions: Iterable[Question], test_id: str, subject: str) -> int:
    positions = [q.position or 0 for q in questions if q.test_id == test_id and q.subject == subject]
    return max(positions, default=0) + 1


def validate_subject(name: str, question_count, subjects: Iterable[TestSubject], editing_id: Optional[str] = None):
    name = (name or "").strip()
    if not name:
        raise ValidationError("Subject name is required.")
    count = _positive_int(question_count, "Question count")
    for subject in subjects:
        if subject.id != editing_id and subject.subject_name.lower() == name.lower():
            raise ValidationError(f"Subject {name!r} already exists in this test.")
    return name, count


def move_subject(subjects: List[TestSubject], from_index: int, to_index: int) -> List[TestSubject]:
    """Drag-reorder: move one subject and renumber display_order from 1."""
    ordered = list(subjects)
    if not (0 <= from_index < len(ordered) and 0 <= to_index < len(ordered)):
        raise ValidationError("Subject position out of range.")
    if from_index != to_index:
        ordered.insert(to_index, ordered.pop(from_index))
    return [replace(s, display_order=i + 1) for i, s in enumerate(ordered)]


def total_subject_questions(subjects: Iterable[TestSubject]) -> int:
    return sum(s.question_count for s in subjects)


# --- Search and paging ---

def search_categories(categories: Iterable[Category], query: str) -> List[Category]:
    q = (query or "").lower()
    return [c for c in categories if q in c.name.lower()]


def search_tests(tests: Iterable[Test], categories: Iterable[Category], query: str) -> List[Test]:
    """Match on the test title or its category name."""
    q = (query or "").lower()
    names: Dict[str, str] = {c.id: c.name for c in categories}
    return [t for t in tests if q in t.title.lower() or q in names.get(t.category_id, "").lower()]


def search_users(users: Iterable[User], query: str) -> List[User]:
    q = (query or "").lower()
    return [u for u in users if q in f"{u.name} {u.email}".lower()]


def paginate(items: List, page: int, page_size: int = ADMIN_PAGE_SIZE):
    """Returns (items on the page, clamped page index, total pages)."""
    pages = max(1, math.ceil(len(items) / page_size))
    page = min(max(page, 0), pages - 1)
    return items[page * page_size : (page + 1) * page_size], page, pages
