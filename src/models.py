"""
Row types for the Supabase tables.

Each type maps to one table (snake_case columns). Results keep their answers
and a snapshot of the questions as JSON documents with camelCase keys, the
shape the web client has always written, so older rows stay readable.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from engine import DEFAULT_DIFFICULTY, DEFAULT_SUBJECT

ACCESS_LOCKED = "locked"
ACCESS_REQUESTED = "requested"
ACCESS_APPROVED = "approved"
ACCESS_STATUSES = (ACCESS_LOCKED, ACCESS_REQUESTED, ACCESS_APPROVED)


def db_id(value):
    """Ids are strings in the app and SERIAL integers in the database."""
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return value


def _sid(value) -> Optional[str]:
    return None if value is None else str(value)


@dataclass
class User:
    id: str
    name: str
    email: str
    password: str = ""
    is_admin: bool = False

    @classmethod
    def from_row(cls, row: Dict) -> "User":
        return cls(
            id=str(row["id"]),
            name=row.get("name") or "",
            email=row.get("email") or "",
            password=row.get("password") or "",
            is_admin=bool(row.get("is_admin")),
        )

    def to_row(self) -> Dict:
        return {"name": self.name, "email": self.email, "password": self.password, "is_admin": self.is_admin}


@dataclass
class Category:
    id: str
    name: str

    @classmethod
    def from_row(cls, row: Dict) -> "Category":
        return cls(id=str(row["id"]), name=row.get("name") or "")


@dataclass
class Test:
    id: str
    category_id: str
    title: str
    duration: int  # minutes
    total_questions: int

    @classmethod
    def from_row(cls, row: Dict) -> "Test":
        return cls(
            id=str(row["id"]),
            category_id=str(row["category_id"]),
            title=row.get("title") or "",
            duration=int(row.get("duration") or 0),
            total_questions=int(row.get("total_questions") or 0),
        )

    def to_row(self) -> Dict:
        return {
            "category_id": db_id(self.category_id),
            "title": self.title,
            "duration": self.duration,
            "total_questions": self.total_questions,
        }


@dataclass
class Question:
    id: str
    test_id: str
    question_text: str
    options: List[str]
    correct_answer: int
    subject: str = DEFAULT_SUBJECT
    position: int = 1
    difficulty: str = DEFAULT_DIFFICULTY

    @classmethod
    def from_row(cls, row: Dict) -> "Question":
        return cls(
            id=str(row["id"]),
            test_id=str(row["test_id"]),
            question_text=row.get("question_text") or "",
            options=list(row.get("options") or []),
            correct_answer=int(row.get("correct_answer") or 0),
            subject=row.get("subject") or DEFAULT_SUBJECT,
            position=row.get("position") or 1,
            difficulty=row.get("difficulty") or DEFAULT_DIFFICULTY,
        )

    def to_row(self) -> Dict:
        return {
            "test_id": db_id(self.test_id),
            "question_text": self.question_text,
            "options": list(self.options),
            "correct_answer": self.correct_answer,
            "subject": self.subject or DEFAULT_SUBJECT,
            "position": self.position or 1,
            "difficulty": self.difficulty or DEFAULT_DIFFICULTY,
        }

    def to_snapshot(self) -> Dict:
        return {
            "id": self.id,
            "testId": self.test_id,
            "questionText": self.question_text,
            "options": list(self.options),
            "correctAnswer": self.correct_answer,
            "subject": self.subject,
            "position": self.position,
            "difficulty": self.difficulty,
        }

    @classmethod
    def from_snapshot(cls, data: Dict) -> "Question":
        return cls(
            id=str(data.get("id", "")),
            test_id=str(data.get("testId", "")),
            question_text=data.get("questionText") or "",
            options=list(data.get("options") or []),
            correct_answer=int(data.get("correctAnswer") or 0),
            subject=data.get("subject") or DEFAULT_SUBJECT,
            position=data.get("position") or 1,
            difficulty=data.get("difficulty") or DEFAULT_DIFFICULTY,
        )


@dataclass
class TestSubject:
    id: str
    test_id: str
    subject_name: str
    question_count: int
    display_order: int

    @classmethod
    def from_row(cls, row: Dict) -> "TestSubject":
        return cls(
            id=str(row["id"]),
            test_id=str(row["test_id"]),
            subject_name=row.get("subject_name") or "",
            question_count=int(row.get("question_count") or 0),
            display_order=int(row.get("display_order") or 1),
        )


@dataclass
class UserAnswer:
    question_id: str
    selected_answer: Optional[int] = None

    def to_dict(self) -> Dict:
        return {"questionId": self.question_id, "selectedAnswer": self.selected_answer}

    @classmethod
    def from_dict(cls, data: Dict) -> "UserAnswer":
        return cls(question_id=str(data.get("questionId")), selected_answer=data.get("selectedAnswer"))


@dataclass
class TestResult:
    id: Optional[str]
    user_id: str
    test_id: str
    score: int
    total_questions: int
    answers: List[UserAnswer] = field(default_factory=list)
    questions: List[Question] = field(default_factory=list)
    date: Optional[str] = None

    @property
    def percentage(self) -> int:
        if not self.total_questions:
            return 0
        return round(self.score / self.total_questions * 100)

    def selected_for(self, question_id: str) -> Optional[int]:
        for answer in self.answers:
            if answer.question_id == question_id:
                return answer.selected_answer
        return None

    @classmethod
    def from_row(cls, row: Dict) -> "TestResult":
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            test_id=str(row["test_id"]),
            score=int(row.get("score") or 0),
            total_questions=int(row.get("total_questions") or 0),
            answers=[UserAnswer.from_dict(a) for a in row.get("answers") or []],
            questions=[Question.from_snapshot(q) for q in row.get("questions") or []],
            date=row.get("created_at"),
        )

    def to_row(self) -> Dict:
        return {
            "user_id": db_id(self.user_id),
            "test_id": db_id(self.test_id),
            "score": self.score,
            "total_questions": self.total_questions,
            "answers": [a.to_dict() for a in self.answers],
            "questions": [q.to_snapshot() for q in self.questions],
        }


@dataclass
class CategoryAccess:
    id: str
    user_id: str
    category_id: str
    status: str
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict) -> "CategoryAccess":
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            category_id=str(row["category_id"]),
            status=row.get("status") or ACCESS_LOCKED,
            updated_at=row.get("updated_at"),
        )


@dataclass
class TestAccess:
    id: str
    user_id: str
    test_id: str
    status: str
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict) -> "TestAccess":
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            test_id=str(row["test_id"]),
            status=row.get("status") or ACCESS_LOCKED,
            updated_at=row.get("updated_at"),
        )


@dataclass
class Notification:
    id: str
    user_id: str
    title: str
    message: str
    is_read: bool = False
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict) -> "Notification":
        return cls(
            id=str(row["id"]),
            user_id=_sid(row.get("user_id")),
            title=row.get("title") or "",
            message=row.get("message") or "",
            is_read=bool(row.get("is_read")),
            created_at=row.get("created_at"),
        )
