"""Admin validation, subject ordering, search and paging."""
import pytest

from src import catalog
from src.errors import ValidationError
from src.models import Category, Question, Test, TestSubject, User

CATEGORIES = [Category("1", "Frontend Development"), Category("2", "Backend Development")]
TESTS = [
    Test(id="10", category_id="1", title="React Basics", duration=10, total_questions=5),
    Test(id="11", category_id="2", title="Node.js Fundamentals", duration=15, total_questions=5),
]


def subjects(*names):
    return [
        TestSubject(id=str(i), test_id="10", subject_name=name, question_count=5, display_order=i)
        for i, name in enumerate(names, start=1)
    ]


def question(**overrides):
    values = dict(id="", test_id="10", question_text="  What is JSX? ", options=["a", "b", "c", "d"], correct_answer=0)
    values.update(overrides)
    return Question(**values)


def test_category_name_required_and_unique_ignoring_case():
    assert catalog.validate_category_name("  Data Science ", CATEGORIES) == "Data Science"
    with pytest.raises(ValidationError):
        catalog.validate_category_name("   ", CATEGORIES)
    with pytest.raises(ValidationError, match="already exists"):
        catalog.validate_category_name("frontend development", CATEGORIES)


def test_category_rename_ignores_itself():
    assert catalog.validate_category_name("FRONTEND development", CATEGORIES, editing_id="1") == "FRONTEND development"


def test_test_titles_unique_within_category_only():
    with pytest.raises(ValidationError, match="in this category"):
        catalog.validate_test("react basics", "1", 10, 5, TESTS)
    built = catalog.validate_test("React Basics", "2", "20", "8", TESTS)
    assert (built.category_id, built.duration, built.total_questions) == ("2", 20, 8)
    edited = catalog.validate_test("React Basics", "1", 12, 5, TESTS, editing_id="10")
    assert edited.id == "10"


@pytest.mark.parametrize(
    "title, category_id, duration, total",
    [("", "1", 10, 5), ("Title", None, 10, 5), ("Title", "1", 0, 5), ("Title", "1", 10, -1), ("Title", "1", "x", 5)],
)
def test_invalid_test_forms(title, category_id, duration, total):
    with pytest.raises(ValidationError):
        catalog.validate_test(title, category_id, duration, total, TESTS)


def test_validate_question_cleans_and_defaults():
    cleaned = catalog.validate_question(question(options=[" a ", "b", "c", "d"], subject="", difficulty="Impossible"))
    assert cleaned.question_text == "What is JSX?"
    assert cleaned.options[0] == "a"
    assert cleaned.subject == "General"
    assert cleaned.difficulty == "Medium"


@pytest.mark.parametrize(
    "overrides",
    [
        {"question_text": " "},
        {"options": ["a", "b", "c"]},
        {"options": ["a", "", "c", "d"]},
        {"correct_answer": 4},
        {"correct_answer": -1},
    ],
)
def test_invalid_questions(overrides):
    with pytest.raises(ValidationError):
        catalog.validate_question(question(**overrides))


def test_next_display_order_and_position():
    assert catalog.next_display_order([]) == 1
    assert catalog.next_display_order(subjects("Math", "English")) == 3
    questions = [question(id="1", subject="Math", position=4), question(id="2", subject="English", position=9)]
    assert catalog.next_position(questions, "10", "Math") == 5
    assert catalog.next_position(questions, "10", "History") == 1


def test_validate_subject_rejects_duplicates():
    existing = subjects("Math")
    assert catalog.validate_subject(" English ", "3", existing) == ("English", 3)
    with pytest.raises(ValidationError):
        catalog.validate_subject("math", 3, existing)
    assert catalog.validate_subject("Math", 4, existing, editing_id="1") == ("Math", 4)
    with pytest.raises(ValidationError):
        catalog.validate_subject("Logic", 0, existing)


def test_move_subject_renumbers():
    moved = catalog.move_subject(subjects("Math", "English", "Logic"), 2, 0)
    assert [(s.subject_name, s.display_order) for s in moved] == [("Logic", 1), ("Math", 2), ("English", 3)]
    with pytest.raises(ValidationError):
        catalog.move_subject(subjects("Math"), 0, 1)


def test_total_subject_questions():
    assert catalog.total_subject_questions(subjects("Math", "English")) == 10


def test_search_helpers():
    assert [c.id for c in catalog.search_categories(CATEGORIES, "back")] == ["2"]
    assert [t.id for t in catalog.search_tests(TESTS, CATEGORIES, "frontend")] == ["10"]
    assert [t.id for t in catalog.search_tests(TESTS, CATEGORIES, "NODE")] == ["11"]
    users = [User("1", "John Doe", "user@preppro.com"), User("2", "Admin", "admin@preppro.com", is_admin=True)]
    assert [u.id for u in catalog.search_users(users, "admin@")] == ["2"]
    assert len(catalog.search_users(users, "")) == 2


def test_paginate_clamps_page():
    items = list(range(30))
    page_items, page, pages = catalog.paginate(items, 5)
    assert (page, pages) == (1, 2)
    assert page_items == list(range(25, 30))
    assert catalog.paginate([], 0) == ([], 0, 1)
