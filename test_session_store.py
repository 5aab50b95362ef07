"""Saved test sessions on disk."""
from src.models import Test
from src.session_store import SessionStore, is_resumable, session_key


def make_tests():
    return [
        Test(id="1", category_id="1", title="React Basics", duration=10, total_questions=5),
        Test(id="2", category_id="1", title="Node.js Fundamentals", duration=15, total_questions=5),
    ]


def test_session_key_format():
    assert session_key("7", "3") == "pp_session_7_3"


def test_save_load_and_clear(store):
    payload = {"user_answers": [], "time_left": 30, "stable_questions": [], "ended_for_cheating": False, "is_paused": True}
    store.save("7", "1", payload)
    assert store.load("7", "1") == payload
    assert (store.directory / "pp_session_7_1.json").exists()
    store.clear("7", "1")
    assert store.load("7", "1") is None
    store.clear("7", "1")  # clearing twice is fine


def test_unreadable_file_is_ignored(store):
    store.directory.mkdir(parents=True)
    (store.directory / "pp_session_7_1.json").write_text("{not json", encoding="utf-8")
    assert store.load("7", "1") is None


def test_is_resumable():
    assert is_resumable({"time_left": 10, "user_answers": []})
    assert not is_resumable(None)
    assert not is_resumable({"time_left": 0, "user_answers": []})
    assert not is_resumable({"time_left": 10})
    assert not is_resumable({"time_left": 10, "user_answers": [], "ended_for_cheating": True})


def test_find_paused_returns_first_resumable_test(tmp_path):
    store = SessionStore(tmp_path)
    tests = make_tests()
    assert store.find_paused("7", tests) is None
    store.save("7", "1", {"time_left": 0, "user_answers": []})
    store.save("7", "2", {"time_left": 50, "user_answers": [], "is_paused": True})
    store.save("8", "1", {"time_left": 50, "user_answers": []})
    assert store.find_paused("7", tests).id == "2"
