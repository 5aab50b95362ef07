"""Category/test access requests, admin decisions and the notifications they send."""
import pytest

from src import access
from src.errors import AccessDenied, ValidationError
from src.models import ACCESS_APPROVED, ACCESS_LOCKED, ACCESS_REQUESTED


def people(db):
    users = {u.email: u for u in db.fetch_users()}
    return users["admin@preppro.com"], users["user@preppro.com"]


def titles(db, user):
    return [n.title for n in db.fetch_notifications(user.id)]


def test_status_defaults_to_locked(seeded_db):
    _, user = people(seeded_db)
    category = seeded_db.fetch_categories()[0]
    assert access.category_status([], user.id, category.id) == ACCESS_LOCKED
    assert access.test_status(seeded_db.fetch_test_access(), user.id, "1") == ACCESS_LOCKED


def test_request_category_notifies_admins(seeded_db):
    admin, user = people(seeded_db)
    category = seeded_db.fetch_categories()[0]
    status = access.request_category_access(seeded_db, user, category, seeded_db.fetch_admins())
    assert status == ACCESS_REQUESTED
    assert access.category_status(seeded_db.fetch_category_access(), user.id, category.id) == ACCESS_REQUESTED
    notes = seeded_db.fetch_notifications(admin.id)
    assert notes[0].title == "Category access requested"
    assert notes[0].message == f"John Doe requested access to {category.name}."


def test_repeat_request_is_a_no_op(seeded_db):
    admin, user = people(seeded_db)
    category = seeded_db.fetch_categories()[0]
    access.request_category_access(seeded_db, user, category, [admin])
    status = access.request_category_access(seeded_db, user, category, [admin], current=ACCESS_REQUESTED)
    assert status == ACCESS_REQUESTED
    assert len(seeded_db.fetch_notifications(admin.id)) == 1


def test_approve_and_lock_notify_the_user(seeded_db):
    _, user = people(seeded_db)
    category = seeded_db.fetch_categories()[0]
    access.set_category_access(seeded_db, user, category, ACCESS_APPROVED)
    access.set_category_access(seeded_db, user, category, ACCESS_LOCKED)
    assert titles(seeded_db, user) == ["Category locked", "Category approved"]
    assert access.category_status(seeded_db.fetch_category_access(), user.id, category.id) == ACCESS_LOCKED
    assert len(seeded_db.fetch_category_access()) == 1


def test_admin_cannot_set_requested(seeded_db):
    _, user = people(seeded_db)
    with pytest.raises(ValidationError):
        access.set_test_access(seeded_db, user, seeded_db.fetch_tests()[0], ACCESS_REQUESTED)


def test_two_level_gate(seeded_db):
    admin, user = people(seeded_db)
    test = seeded_db.fetch_tests()[0]
    category = next(c for c in seeded_db.fetch_categories() if c.id == test.category_id)

    def can_take():
        return access.can_take_test(user, test, seeded_db.fetch_category_access(), seeded_db.fetch_test_access())

    assert not can_take()
    access.set_test_access(seeded_db, user, test, ACCESS_APPROVED)
    assert not can_take()
    access.set_category_access(seeded_db, user, category, ACCESS_APPROVED)
    assert access.can_open_category(user, category, seeded_db.fetch_category_access())
    assert can_take()
    assert access.can_take_test(admin, test, [], [])


def test_locking_after_a_pause_blocks_the_attempt(seeded_db):
    admin, user = people(seeded_db)
    test = seeded_db.fetch_tests()[0]
    category = next(c for c in seeded_db.fetch_categories() if c.id == test.category_id)
    access.set_category_access(seeded_db, user, category, ACCESS_APPROVED)
    access.set_test_access(seeded_db, user, test, ACCESS_APPROVED)
    access.require_test_access(seeded_db, user, test)

    access.set_test_access(seeded_db, user, test, ACCESS_LOCKED)
    with pytest.raises(AccessDenied):
        access.require_test_access(seeded_db, user, test)
    access.require_test_access(seeded_db, admin, test)


def test_approve_all_pending_sends_one_summary(seeded_db):
    admin, user = people(seeded_db)
    categories = seeded_db.fetch_categories()
    for category in categories[:2]:
        access.request_category_access(seeded_db, user, category, [admin])
    approved = access.approve_all_pending(seeded_db, user, seeded_db.fetch_category_access(), categories)
    assert approved == 2
    assert titles(seeded_db, user) == ["All requested categories approved"]
    statuses = {a.category_id: a.status for a in seeded_db.fetch_category_access()}
    assert list(statuses.values()) == [ACCESS_APPROVED, ACCESS_APPROVED]


def test_approve_all_pending_without_requests_sends_nothing(seeded_db):
    _, user = people(seeded_db)
    assert access.approve_all_pending(seeded_db, user, [], seeded_db.fetch_categories()) == 0
    assert titles(seeded_db, user) == []


def test_approve_test_for_all_skips_admins(seeded_db):
    admin, user = people(seeded_db)
    test = seeded_db.fetch_tests()[0]
    assert access.approve_test_for_all(seeded_db, test, seeded_db.fetch_users()) == 1
    entries = seeded_db.fetch_test_access()
    assert [(e.user_id, e.status) for e in entries] == [(user.id, ACCESS_APPROVED)]
    assert titles(seeded_db, admin) == []


def test_pending_requests_count(seeded_db):
    admin, user = people(seeded_db)
    access.request_category_access(seeded_db, user, seeded_db.fetch_categories()[0], [admin])
    access.request_test_access(seeded_db, user, seeded_db.fetch_tests()[0], [admin])
    category_access, test_access = seeded_db.fetch_category_access(), seeded_db.fetch_test_access()
    assert access.pending_requests(category_access, test_access) == 2
    assert access.pending_requests(category_access, test_access, admin.id) == 0
