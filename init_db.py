"""Print the PrepPro Supabase schema and optionally seed demo data."""
import argparse
import logging

from src.models import Question, Test, User

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id SERIAL PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    password TEXT NOT NULL,
    is_admin BOOLEAN DEFAULT FALSE,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS categories (
    id SERIAL PRIMARY KEY,
    name TEXT NOT NULL,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

-- Tests are soft-deleted so old results keep their test row
CREATE TABLE IF NOT EXISTS tests (
    id SERIAL PRIMARY KEY,
    category_id INT NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    duration INT NOT NULL CHECK (duration > 0),
    total_questions INT NOT NULL CHECK (total_questions > 0),
    deleted BOOLEAN DEFAULT FALSE,
    deleted_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS questions (
    id SERIAL PRIMARY KEY,
    test_id INT NOT NULL REFERENCES tests(id) ON DELETE CASCADE,
    question_text TEXT NOT NULL,
    options JSONB NOT NULL,
    correct_answer INT NOT NULL CHECK (correct_answer BETWEEN 0 AND 3),
    subject TEXT DEFAULT 'General',
    position INT DEFAULT 1,
    difficulty TEXT DEFAULT 'Medium',
    created_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS test_subjects (
    id SERIAL PRIMARY KEY,
    test_id INT NOT NULL REFERENCES tests(id) ON DELETE CASCADE,
    subject_name TEXT NOT NULL,
    question_count INT NOT NULL DEFAULT 0,
    display_order INT NOT NULL DEFAULT 1,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW(),
    UNIQUE(test_id, subject_name)
);

CREATE TABLE IF NOT EXISTS test_results (
    id SERIAL PRIMARY KEY,
    user_id INT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    test_id INT NOT NULL REFERENCES tests(id),
    score INT NOT NULL,
    total_questions INT NOT NULL,
    answers JSONB NOT NULL,
    questions JSONB NOT NULL,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS category_access (
    id SERIAL PRIMARY KEY,
    user_id INT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    category_id INT NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
    status TEXT NOT NULL DEFAULT 'locked' CHECK (status IN ('locked', 'requested', 'approved')),
    updated_at TIMESTAMPTZ DEFAULT NOW(),
    UNIQUE(user_id, category_id)
);

CREATE TABLE IF NOT EXISTS test_access (
    id SERIAL PRIMARY KEY,
    user_id INT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    test_id INT NOT NULL REFERENCES tests(id) ON DELETE CASCADE,
    status TEXT NOT NULL DEFAULT 'locked' CHECK (status IN ('locked', 'requested', 'approved')),
    updated_at TIMESTAMPTZ DEFAULT NOW(),
    UNIQUE(user_id, test_id)
);

CREATE TABLE IF NOT EXISTS notifications (
    id SERIAL PRIMARY KEY,
    user_id INT REFERENCES users(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    message TEXT NOT NULL,
    is_read BOOLEAN DEFAULT FALSE,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

-- Which questions a user has already seen in a test (unused ones are drawn first)
CREATE TABLE IF NOT EXISTS question_usage (
    id SERIAL PRIMARY KEY,
    user_id INT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    question_id INT NOT NULL REFERENCES questions(id) ON DELETE CASCADE,
    test_id INT NOT NULL REFERENCES tests(id) ON DELETE CASCADE,
    subject_name TEXT,
    used_at TIMESTAMPTZ DEFAULT NOW(),
    UNIQUE(user_id, question_id, test_id)
);

CREATE INDEX IF NOT EXISTS idx_tests_category_id ON tests(category_id);
CREATE INDEX IF NOT EXISTS idx_questions_test_id ON questions(test_id);
CREATE INDEX IF NOT EXISTS idx_questions_subject ON questions(test_id, subject);
CREATE INDEX IF NOT EXISTS idx_test_results_user_id ON test_results(user_id);
CREATE INDEX IF NOT EXISTS idx_notifications_user_id ON notifications(user_id);
CREATE INDEX IF NOT EXISTS idx_question_usage_user_test ON question_usage(user_id, test_id);
"""

DEMO_USERS = [
    ("Admin", "admin@preppro.com", "password", True),
    ("John Doe", "user@preppro.com", "password", False),
]

# category -> [(title, duration, total_questions, [(text, options, correct)])]
DEMO_CATALOG = {
    "Frontend Development": [
        ("React Basics", 10, 5, [
            ("What is JSX?", ["A JavaScript syntax extension", "A templating engine", "A CSS preprocessor", "A database query language"], 0),
            ("Which hook is used to manage state in a functional component?", ["useEffect", "useState", "useContext", "useReducer"], 1),
            ('What does "props" stand for in React?', ["Properties", "Proposals", "Prototypes", "Procedures"], 0),
            ("How do you pass data from a parent to a child component?", ["Using state", "Using context", "Using props", "Using refs"], 2),
            ("What is the virtual DOM?", ["A direct representation of the DOM", "A backup of the DOM", "A copy of the DOM kept in memory", "A new browser feature"], 2),
        ]),
    ],
    "Backend Development": [
        ("Node.js Fundamentals", 15, 5, [
            ("What is Node.js?", ["A frontend framework", "A JavaScript runtime environment", "A database", "A web browser"], 1),
            ("Which module is used for handling file operations in Node.js?", ["http", "url", "fs", "path"], 2),
            ("What is NPM?", ["Node Package Manager", "Node Project Manager", "New Project Manager", "Network Protocol Manager"], 0),
            ("Which of the following is a core module in Node.js?", ["express", "lodash", "http", "react"], 2),
            ("What is the purpose of `package.json`?", ["To list project dependencies", "To define project scripts", "To store project metadata", "All of the above"], 3),
        ]),
    ],
    "Project Management": [
        ("Agile Methodologies", 5, 3, [
            ('What is a "sprint" in Scrum?', ["A quick meeting", "A project phase", "A time-boxed period for work", "A final project review"], 2),
            ("Who is responsible for the product backlog?", ["The Scrum Master", "The Development Team", "The Product Owner", "The Stakeholders"], 2),
            ("What is a daily stand-up meeting for?", ["To assign tasks for the day", "For the team to synchronize activities", "To report progress to managers", "To discuss project roadblocks in detail"], 1),
        ]),
    ],
}


def seed(db) -> dict:
    """Insert demo users and catalog. Skips when categories already exist."""
    if db.fetch_categories():
        logger.info("Categories already present, skipping seed")
        return {"users": 0, "categories": 0, "tests": 0, "questions": 0}
    counts = {"users": 0, "categories": 0, "tests": 0, "questions": 0}
    existing = {u.email for u in db.fetch_users()}
    for name, email, password, is_admin in DEMO_USERS:
        if email not in existing:
            db.create_user(User(id="", name=name, email=email, password=password, is_admin=is_admin))
            counts["users"] += 1
    for category_name, tests in DEMO_CATALOG.items():
        category = db.create_category(category_name)
        counts["categories"] += 1
        for title, duration, total, questions in tests:
            test = db.create_test(Test(id="", category_id=category.id, title=title, duration=duration, total_questions=total))
            counts["tests"] += 1
            rows = [
                Question(id="", test_id=test.id, question_text=text, options=options, correct_answer=correct, position=i)
                for i, (text, options, correct) in enumerate(questions, start=1)
            ]
            counts["questions"] += len(db.create_multiple_questions(rows))
    logger.info("Seeded %s", counts)
    return counts


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    parser = argparse.ArgumentParser(description="Print the PrepPro schema SQL; optionally seed demo data.")
    parser.add_argument("--seed", action="store_true", help="Insert demo users, categories, tests and questions")
    args = parser.parse_args()

    print("Run this SQL in the Supabase SQL Editor (https://app.supabase.com > SQL Editor > New Query):")
    print(SCHEMA_SQL)
    if args.seed:
        from db import get_database_uncached

        counts = seed(get_database_uncached())
        print(f"✓ Seeded {counts['users']} users, {counts['categories']} categories, "
              f"{counts['tests']} tests, {counts['questions']} questions")
