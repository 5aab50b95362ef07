"""
Database operations for PrepPro.
Handles Supabase CRUD for users, catalog, results, access grants and notifications.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from supabase import Client

from engine import DEFAULT_SUBJECT
from src.models import (
    Category,
    CategoryAccess,
    Notification,
    Question,
    Test,
    TestAccess,
    TestResult,
    TestSubject,
    User,
    db_id,
)

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _first(response) -> Optional[Dict]:
    data = response.data or []
    if isinstance(data, dict):
        return data
    return data[0] if data else None


class DatabaseClient:
    """Wrapper around Supabase client with PrepPro-specific operations."""

    def __init__(self, client: Client):
        self.client = client

    # ============= Users =============

    def sign_up_user(self, name: str, email: str, password: str) -> User:
        """Insert a regular (non-admin) user row and return it."""
        row = {"name": name, "email": email, "password": password, "is_admin": False}
        response = self.client.table("users").insert(row).execute()
        logger.info("Signed up user %s", email)
        return User.from_row(_first(response))

    def sign_in_user(self, email: str, password: str) -> Optional[User]:
        """Exact email + password match. Returns None when nothing matches."""
        response = (
            self.client.table("users")
            .select("*")
            .eq("email", email)
            .eq("password", password)
            .limit(1)
            .execute()
        )
        row = _first(response)
        return User.from_row(row) if row else None

    def fetch_users(self) -> List[User]:
        response = self.client.table("users").select("*").order("created_at", desc=True).execute()
        return [User.from_row(r) for r in response.data or []]

    def fetch_admins(self) -> List[User]:
        response = self.client.table("users").select("*").eq("is_admin", True).execute()
        return [User.from_row(r) for r in response.data or []]

    def create_user(self, user: User) -> User:
        response = self.client.table("users").insert(user.to_row()).execute()
        logger.info("Created user %s (admin=%s)", user.email, user.is_admin)
        return User.from_row(_first(response))

    def update_user(self, user: User) -> User:
        response = self.client.table("users").update(user.to_row()).eq("id", db_id(user.id)).execute()
        return User.from_row(_first(response))

    def delete_user(self, user_id: str) -> None:
        self.client.table("users").delete().eq("id", db_id(user_id)).execute()
        logger.info("Deleted user %s", user_id)

    # ============= Notifications =============

    def fetch_notifications(self, user_id: Optional[str] = None) -> List[Notification]:
        query = self.client.table("notifications").select("*").order("created_at", desc=True)
        if user_id is not None:
            query = query.eq("user_id", db_id(user_id))
        response = query.execute()
        return [Notification.from_row(r) for r in response.data or []]

    def create_notification(self, user_id: str, title: str, message: str) -> None:
        row = {"user_id": db_id(user_id), "title": title, "message": message}
        self.client.table("notifications").insert(row).execute()
        logger.debug("Notified user %s: %s", user_id, title)

    def mark_notification_read(self, notification_id: str) -> None:
        self.client.table("notifications").update({"is_read": True}).eq("id", db_id(notification_id)).execute()

    def mark_notifications_read(self, notification_ids: Iterable[str]) -> None:
        ids = [db_id(i) for i in notification_ids]
        if not ids:
            return
        self.client.table("notifications").update({"is_read": True}).in_("id", ids).execute()

    # ============= Categories =============

    def fetch_categories(self) -> List[Category]:
        response = self.client.table("categories").select("*").order("created_at", desc=True).execute()
        return [Category.from_row(r) for r in response.data or []]

    def create_category(self, name: str) -> Category:
        response = self.client.table("categories").insert({"name": name}).execute()
        logger.info("Created category %r", name)
        return Category.from_row(_first(response))

    def update_category(self, category: Category) -> Category:
        response = (
            self.client.table("categories")
            .update({"name": category.name})
            .eq("id", db_id(category.id))
            .execute()
        )
        return Category.from_row(_first(response))

    def delete_category(self, category_id: str) -> None:
        """Hard delete; tests and questions cascade in the database."""
        self.client.table("categories").delete().eq("id", db_id(category_id)).execute()
        logger.info("Deleted category %s", category_id)

    # ============= Tests =============

    def fetch_tests(self) -> List[Test]:
        """Non-deleted tests, newest first."""
        response = (
            self.client.table("tests")
            .select("*")
            .eq("deleted", False)
            .order("created_at", desc=True)
            .execute()
        )
        return [Test.from_row(r) for r in response.data or []]

    def create_test(self, test: Test) -> Test:
        response = self.client.table("tests").insert(test.to_row()).execute()
        logger.info("Created test %r", test.title)
        return Test.from_row(_first(response))

    def update_test(self, test: Test) -> Test:
        response = self.client.table("tests").update(test.to_row()).eq("id", db_id(test.id)).execute()
        return Test.from_row(_first(response))

    def delete_test(self, test_id: str) -> None:
        """Soft delete so user results keep pointing at a test row."""
        (
            self.client.table("tests")
            .update({"deleted": True, "deleted_at": _now()})
            .eq("id", db_id(test_id))
            .execute()
        )
        logger.info("Soft-deleted test %s", test_id)

    # ============= Questions =============

    def fetch_questions(self) -> List[Question]:
        response = (
            self.client.table("questions")
            .select("*")
            .order("position")
            .order("created_at", desc=True)
            .execute()
        )
        return [Question.from_row(r) for r in response.data or []]

    def fetch_questions_by_test_id(self, test_id: str) -> List[Question]:
        response = (
            self.client.table("questions")
            .select("*")
            .eq("test_id", db_id(test_id))
            .order("position")
            .execute()
        )
        return [Question.from_row(r) for r in response.data or []]

    def create_question(self, question: Question) -> Question:
        response = self.client.table("questions").insert(question.to_row()).execute()
        return Question.from_row(_first(response))

    def update_question(self, question: Question) -> Question:
        row = question.to_row()
        row.pop("test_id")
        response = self.client.table("questions").update(row).eq("id", db_id(question.id)).execute()
        return Question.from_row(_first(response))

    def delete_question(self, question_id: str) -> None:
        self.client.table("questions").delete().eq("id", db_id(question_id)).execute()

    def create_multiple_questions(self, questions: List[Question], chunk_size: int = 200) -> List[Question]:
        """Bulk insert in chunks. Returns the created rows."""
        rows = [q.to_row() for q in questions]
        n_chunks = (len(rows) + chunk_size - 1) // chunk_size
        created: List[Question] = []
        for i in range(0, len(rows), chunk_size):
            chunk = rows[i : i + chunk_size]
            logger.info("Inserting question chunk %d/%d (%d rows)", i // chunk_size + 1, n_chunks, len(chunk))
            response = self.client.table("questions").insert(chunk).execute()
            created.extend(Question.from_row(r) for r in response.data or [])
        return created

    def fetch_question_count_by_subject(self, test_id: str, subject_name: str) -> int:
        response = (
            self.client.table("questions")
            .select("id", count="exact")
            .eq("test_id", db_id(test_id))
            .eq("subject", subject_name)
            .execute()
        )
        count = getattr(response, "count", None)
        return count if count is not None else len(response.data or [])

    # ============= Results =============

    def fetch_results(self) -> List[TestResult]:
        response = self.client.table("test_results").select("*").order("created_at", desc=True).execute()
        return [TestResult.from_row(r) for r in response.data or []]

    def fetch_results_by_user_id(self, user_id: str) -> List[TestResult]:
        response = (
            self.client.table("test_results")
            .select("*")
            .eq("user_id", db_id(user_id))
            .order("created_at", desc=True)
            .execute()
        )
        return [TestResult.from_row(r) for r in response.data or []]

    def fetch_result(self, result_id: str) -> Optional[TestResult]:
        response = self.client.table("test_results").select("*").eq("id", db_id(result_id)).limit(1).execute()
        row = _first(response)
        return TestResult.from_row(row) if row else None

    def create_result(self, result: TestResult) -> TestResult:
        response = self.client.table("test_results").insert(result.to_row()).execute()
        saved = TestResult.from_row(_first(response))
        logger.info(
            "Saved result %s: user=%s test=%s score=%d/%d",
            saved.id, saved.user_id, saved.test_id, saved.score, saved.total_questions,
        )
        return saved

    # ============= Access =============

    def fetch_category_access(self) -> List[CategoryAccess]:
        response = self.client.table("category_access").select("*").execute()
        return [CategoryAccess.from_row(r) for r in response.data or []]

    def upsert_category_access(self, user_id: str, category_id: str, status: str) -> CategoryAccess:
        row = {"user_id": db_id(user_id), "category_id": db_id(category_id), "status": status, "updated_at": _now()}
        response = self.client.table("category_access").upsert(row, on_conflict="user_id,category_id").execute()
        logger.info("Category access user=%s category=%s -> %s", user_id, category_id, status)
        return CategoryAccess.from_row(_first(response))

    def fetch_test_access(self) -> List[TestAccess]:
        """Polled by the catalog page; a failed refresh shows everything as locked."""
        try:
            response = self.client.table("test_access").select("*").execute()
        except Exception as e:
            logger.error(f"Error fetching test access: {e}")
            return []
        return [TestAccess.from_row(r) for r in response.data or []]

    def upsert_test_access(self, user_id: str, test_id: str, status: str) -> TestAccess:
        row = {"user_id": db_id(user_id), "test_id": db_id(test_id), "status": status, "updated_at": _now()}
        response = self.client.table("test_access").upsert(row, on_conflict="user_id,test_id").execute()
        logger.info("Test access user=%s test=%s -> %s", user_id, test_id, status)
        return TestAccess.from_row(_first(response))

    # ============= Question usage =============

    def track_question_usage(self, user_id: str, test_id: str, questions: List[Question]) -> None:
        """Record that the user has now seen these questions in this test."""
        if not questions:
            return
        used_at = _now()
        rows = [
            {
                "user_id": db_id(user_id),
                "question_id": db_id(q.id),
                "test_id": db_id(test_id),
                "subject_name": q.subject or DEFAULT_SUBJECT,
                "used_at": used_at,
            }
            for q in questions
        ]
        self.client.table("question_usage").upsert(rows, on_conflict="user_id,question_id,test_id").execute()

    def get_used_question_ids(self, user_id: str, test_id: str, subject_name: Optional[str] = None) -> List[str]:
        query = (
            self.client.table("question_usage")
            .select("question_id")
            .eq("user_id", db_id(user_id))
            .eq("test_id", db_id(test_id))
        )
        if subject_name is not None:
            query = query.eq("subject_name", subject_name)
        response = query.execute()
        return [str(r["question_id"]) for r in response.data or []]

    # ============= Test subjects =============

    def fetch_test_subjects(self, test_id: str) -> List[TestSubject]:
        response = (
            self.client.table("test_subjects")
            .select("*")
            .eq("test_id", db_id(test_id))
            .order("display_order")
            .execute()
        )
        return [TestSubject.from_row(r) for r in response.data or []]

    def create_test_subject(self, test_id: str, subject_name: str, question_count: int, display_order: int) -> TestSubject:
        row = {
            "test_id": db_id(test_id),
            "subject_name": subject_name,
            "question_count": question_count,
            "display_order": display_order,
        }
        response = self.client.table("test_subjects").insert(row).execute()
        logger.info("Added subject %r to test %s (%d questions)", subject_name, test_id, question_count)
        return TestSubject.from_row(_first(response))

    def update_test_subject(self, subject: TestSubject) -> TestSubject:
        values = {
            "subject_name": subject.subject_name,
            "question_count": subject.question_count,
            "display_order": subject.display_order,
            "updated_at": _now(),
        }
        response = self.client.table("test_subjects").update(values).eq("id", db_id(subject.id)).execute()
        return TestSubject.from_row(_first(response))

    def delete_test_subject(self, subject_id: str) -> None:
        self.client.table("test_subjects").delete().eq("id", db_id(subject_id)).execute()

    def reorder_test_subjects(self, test_id: str, subjects: List[TestSubject]) -> None:
        """Persist each subject's display_order (scoped to the test)."""
        for subject in subjects:
            (
                self.client.table("test_subjects")
                .update({"display_order": subject.display_order})
                .eq("id", db_id(subject.id))
                .eq("test_id", db_id(test_id))
                .execute()
            )
        logger.info("Reordered %d subjects for test %s", len(subjects), test_id)
