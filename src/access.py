"""
Access request / approval workflow for categories and tests.

A user requests access, every admin is notified; an admin approves or locks,
the user is notified. Missing rows mean locked.
"""
import logging
from typing import Iterable, List, Optional

from src.database import DatabaseClient
from src.errors import AccessDenied, ValidationError
from src.models import (
    ACCESS_APPROVED,
    ACCESS_LOCKED,
    ACCESS_REQUESTED,
    Category,
    CategoryAccess,
    Test,
    TestAccess,
    User,
)

logger = logging.getLogger(__name__)


def category_status(access: Iterable[CategoryAccess], user_id: str, category_id: str) -> str:
    entry = next((a for a in access if a.user_id == user_id and a.category_id == category_id), None)
    return entry.status if entry else ACCESS_LOCKED


def test_status(access: Iterable[TestAccess], user_id: str, test_id: str) -> str:
    entry = next((a for a in access if a.user_id == user_id and a.test_id == test_id), None)
    return entry.status if entry else ACCESS_LOCKED


def can_open_category(user: User, category: Category, category_access: Iterable[CategoryAccess]) -> bool:
    return user.is_admin or category_status(category_access, user.id, category.id) == ACCESS_APPROVED


def can_take_test(
    user: User,
    test: Test,
    category_access: Iterable[CategoryAccess],
    test_access: Iterable[TestAccess],
) -> bool:
    """Admins always; users need the category and the test approved."""
    if user.is_admin:
        return True
    return (
        category_status(category_access, user.id, test.category_id) == ACCESS_APPROVED
        and test_status(test_access, user.id, test.id) == ACCESS_APPROVED
    )


def require_test_access(db: DatabaseClient, user: User, test: Test) -> None:
    """Raise AccessDenied unless the user may take the test right now."""
    if not can_take_test(user, test, db.fetch_category_access(), db.fetch_test_access()):
        logger.warning("User %s was refused test %s", user.id, test.id)
        raise AccessDenied("You do not have access to this test.")


def _notify_admins(db: DatabaseClient, admins: Iterable[User], title: str, message: str) -> None:
    for admin in admins:
        db.create_notification(admin.id, title, message)


def request_category_access(
    db: DatabaseClient,
    user: User,
    category: Category,
    admins: Iterable[User],
    current: str = ACCESS_LOCKED,
) -> str:
    """Ask for a category. Returns the status after the call."""
    if current != ACCESS_LOCKED:
        return current
    db.upsert_category_access(user.id, category.id, ACCESS_REQUESTED)
    _notify_admins(db, admins, "Category access requested", f"{user.name} requested access to {category.name}.")
    logger.info("User %s requested category %s", user.id, category.id)
    return ACCESS_REQUESTED


def request_test_access(
    db: DatabaseClient,
    user: User,
    test: Test,
    admins: Iterable[User],
    current: str = ACCESS_LOCKED,
) -> str:
    if current != ACCESS_LOCKED:
        return current
    db.upsert_test_access(user.id, test.id, ACCESS_REQUESTED)
    _notify_admins(db, admins, "Test access requested", f"{user.name} requested access to {test.title}.")
    logger.info("User %s requested test %s", user.id, test.id)
    return ACCESS_REQUESTED


def _check_decision(status: str) -> None:
    if status not in (ACCESS_APPROVED, ACCESS_LOCKED):
        raise ValidationError(f"Admins can only approve or lock, not set {status!r}")


def set_category_access(db: DatabaseClient, user: User, category: Category, status: str) -> CategoryAccess:
    _check_decision(status)
    entry = db.upsert_category_access(user.id, category.id, status)
    if status == ACCESS_APPROVED:
        db.create_notification(user.id, "Category approved", f"You can now access {category.name}.")
    else:
        db.create_notification(user.id, "Category locked", f"{category.name} has been locked.")
    return entry


def set_test_access(db: DatabaseClient, user: User, test: Test, status: str) -> TestAccess:
    _check_decision(status)
    entry = db.upsert_test_access(user.id, test.id, status)
    if status == ACCESS_APPROVED:
        db.create_notification(user.id, "Test approved", f"You can now access {test.title}.")
    else:
        db.create_notification(user.id, "Test locked", f"{test.title} has been locked.")
    return entry


def approve_all_pending(
    db: DatabaseClient,
    user: User,
    category_access: Iterable[CategoryAccess],
    categories: Iterable[Category],
) -> int:
    """Approve every requested category for one user; a single summary notification."""
    known = {c.id for c in categories}
    pending: List[CategoryAccess] = [
        a for a in category_access if a.user_id == user.id and a.status == ACCESS_REQUESTED and a.category_id in known
    ]
    for entry in pending:
        db.upsert_category_access(user.id, entry.category_id, ACCESS_APPROVED)
    if pending:
        db.create_notification(user.id, "All requested categories approved", f"{len(pending)} categories approved.")
    logger.info("Approved %d pending categories for user %s", len(pending), user.id)
    return len(pending)


def approve_test_for_all(db: DatabaseClient, test: Test, users: Iterable[User]) -> int:
    """Grant a test to every non-admin user."""
    count = 0
    for user in users:
        if user.is_admin:
            continue
        set_test_access(db, user, test, ACCESS_APPROVED)
        count += 1
    return count


def pending_requests(
    category_access: Iterable[CategoryAccess],
    test_access: Iterable[TestAccess],
    user_id: Optional[str] = None,
) -> int:
    """Number of open requests, optionally for one user (admin badge)."""
    entries = [*category_access, *test_access]
    return sum(
        1 for a in entries if a.status == ACCESS_REQUESTED and (user_id is None or a.user_id == user_id)
    )
