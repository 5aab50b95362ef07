"""DatabaseClient against the in-memory Supabase fake."""
from src.models import Question, Test, TestResult, TestSubject, User, UserAnswer


def test_sign_up_and_sign_in(db):
    user = db.sign_up_user("Jane", "jane@example.com", "secret")
    assert user.id and not user.is_admin
    assert db.sign_in_user("jane@example.com", "secret").name == "Jane"
    assert db.sign_in_user("jane@example.com", "wrong") is None
    assert db.sign_in_user("nobody@example.com", "secret") is None


def test_fetch_admins(seeded_db):
    assert [u.email for u in seeded_db.fetch_admins()] == ["admin@preppro.com"]


def test_seed_is_idempotent(seeded_db):
    from init_db import seed

    assert seed(seeded_db)["categories"] == 0
    assert len(seeded_db.fetch_categories()) == 3
    assert len(seeded_db.fetch_questions()) == 13


def test_soft_deleted_tests_are_hidden(db, fake_client):
    category = db.create_category("Frontend Development")
    test = db.create_test(Test(id="", category_id=category.id, title="React", duration=10, total_questions=5))
    db.delete_test(test.id)
    assert db.fetch_tests() == []
    row = fake_client.tables["tests"][0]
    assert row["deleted"] is True and row["deleted_at"]


def test_questions_round_trip_with_defaults(db):
    created = db.create_question(
        Question(id="", test_id="3", question_text="Q", options=["a", "b", "c", "d"], correct_answer=2)
    )
    assert (created.subject, created.position, created.difficulty) == ("General", 1, "Medium")
    created.question_text = "Q2"
    updated = db.update_question(created)
    assert updated.question_text == "Q2" and updated.test_id == "3"
    db.delete_question(created.id)
    assert db.fetch_questions_by_test_id("3") == []


def test_bulk_insert_in_chunks(db, caplog):
    questions = [
        Question(id="", test_id="3", question_text=f"Q{i}", options=["a", "b", "c", "d"], correct_answer=0, subject="Math")
        for i in range(5)
    ]
    with caplog.at_level("INFO"):
        created = db.create_multiple_questions(questions, chunk_size=2)
    assert len(created) == 5
    assert "chunk 3/3" in caplog.text
    assert db.fetch_question_count_by_subject("3", "Math") == 5
    assert db.fetch_question_count_by_subject("3", "English") == 0


def test_results_keep_snapshot(db):
    question = Question(id="9", test_id="3", question_text="Q", options=["a", "b", "c", "d"], correct_answer=1)
    result = TestResult(
        id=None, user_id="4", test_id="3", score=1, total_questions=1,
        answers=[UserAnswer("9", 1)], questions=[question],
    )
    saved = db.create_result(result)
    loaded = db.fetch_result(saved.id)
    assert loaded.questions[0].question_text == "Q"
    assert loaded.selected_for("9") == 1
    assert loaded.date
    assert [r.id for r in db.fetch_results_by_user_id("4")] == [saved.id]
    assert db.fetch_results_by_user_id("5") == []
    assert db.fetch_result("999") is None


def test_notifications_mark_read(db):
    db.create_notification("4", "Hello", "First")
    db.create_notification("4", "Again", "Second")
    db.create_notification("5", "Other", "Not yours")
    notes = db.fetch_notifications("4")
    assert [n.title for n in notes] == ["Again", "Hello"]
    db.mark_notifications_read([n.id for n in notes])
    assert all(n.is_read for n in db.fetch_notifications("4"))
    assert not db.fetch_notifications("5")[0].is_read
    db.mark_notifications_read([])


def test_question_usage(db):
    questions = [
        Question(id="1", test_id="3", question_text="a", options=[], correct_answer=0, subject="Math"),
        Question(id="2", test_id="3", question_text="b", options=[], correct_answer=0, subject="English"),
    ]
    db.track_question_usage("4", "3", questions)
    db.track_question_usage("4", "3", questions[:1])
    assert sorted(db.get_used_question_ids("4", "3")) == ["1", "2"]
    assert db.get_used_question_ids("4", "3", "Math") == ["1"]
    assert db.get_used_question_ids("5", "3") == []


def test_test_access_read_degrades_to_empty(db, fake_client):
    db.upsert_test_access("4", "3", "approved")
    assert len(db.fetch_test_access()) == 1
    fake_client.fail_tables.add("test_access")
    assert db.fetch_test_access() == []


def test_subjects_crud_and_reorder(db):
    math = db.create_test_subject("3", "Math", 5, 1)
    english = db.create_test_subject("3", "English", 3, 2)
    assert [s.subject_name for s in db.fetch_test_subjects("3")] == ["Math", "English"]
    db.reorder_test_subjects("3", [TestSubject(math.id, "3", "Math", 5, 2), TestSubject(english.id, "3", "English", 3, 1)])
    assert [s.subject_name for s in db.fetch_test_subjects("3")] == ["English", "Math"]
    english.question_count = 4
    assert db.update_test_subject(english).question_count == 4
    db.delete_test_subject(math.id)
    assert [s.subject_name for s in db.fetch_test_subjects("3")] == ["English"]


def test_user_admin_crud(db):
    user = db.create_user(User(id="", name="Ann", email="ann@example.com", password="pw", is_admin=True))
    user.name = "Ann B"
    assert db.update_user(user).name == "Ann B"
    db.delete_user(user.id)
    assert db.fetch_users() == []
