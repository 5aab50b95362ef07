"""Shared fixtures: an in-memory stand-in for the supabase-py query builder."""
import copy
from datetime import datetime, timedelta

import pytest

from src.database import DatabaseClient
from src.session_store import SessionStore

TABLE_DEFAULTS = {
    "users": {"is_admin": False},
    "tests": {"deleted": False, "deleted_at": None},
    "questions": {"subject": "General", "position": 1, "difficulty": "Medium"},
    "notifications": {"is_read": False},
}

BASE_TIME = datetime(2024, 1, 1, 9, 0, 0)


class FakeResponse:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    """Records filters/ordering and applies them to the table on execute()."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.action = "select"
        self.columns = "*"
        self.count = None
        self.payload = None
        self.on_conflict = None
        self.filters = []
        self.orders = []
        self.limit_n = None
        self.range_bounds = None

    # --- builders ---
    def select(self, columns="*", count=None):
        self.action, self.columns, self.count = "select", columns, count
        return self

    def insert(self, payload):
        self.action, self.payload = "insert", payload
        return self

    def update(self, values):
        self.action, self.payload = "update", values
        return self

    def upsert(self, payload, on_conflict=None):
        self.action, self.payload, self.on_conflict = "upsert", payload, on_conflict
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc=False):
        self.orders.append((column, desc))
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    def range(self, start, end):
        self.range_bounds = (start, end)
        return self

    # --- execution ---
    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def execute(self):
        if self.table in self.db.fail_tables:
            raise RuntimeError(f"simulated failure on {self.table}")
        rows = self.db.tables.setdefault(self.table, [])
        if self.action == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            return FakeResponse([copy.deepcopy(self.db.add(self.table, item)) for item in items])
        if self.action == "upsert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            keys = (self.on_conflict or "id").split(",")
            out = []
            for item in items:
                existing = next((r for r in rows if all(r.get(k) == item.get(k) for k in keys)), None)
                if existing is not None:
                    existing.update(copy.deepcopy(item))
                    out.append(copy.deepcopy(existing))
                else:
                    out.append(copy.deepcopy(self.db.add(self.table, item)))
            return FakeResponse(out)
        if self.action == "update":
            out = []
            for row in rows:
                if self._matches(row):
                    row.update(copy.deepcopy(self.payload))
                    out.append(copy.deepcopy(row))
            return FakeResponse(out)
        if self.action == "delete":
            removed = [r for r in rows if self._matches(r)]
            self.db.tables[self.table] = [r for r in rows if not self._matches(r)]
            return FakeResponse(removed)

        selected = [r for r in rows if self._matches(r)]
        for column, desc in reversed(self.orders):
            selected.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
        total = len(selected)
        if self.range_bounds:
            selected = selected[self.range_bounds[0] : self.range_bounds[1] + 1]
        if self.limit_n is not None:
            selected = selected[: self.limit_n]
        if self.columns != "*":
            wanted = [c.strip() for c in self.columns.split(",")]
            selected = [{c: r.get(c) for c in wanted} for r in selected]
        return FakeResponse(copy.deepcopy(selected), total if self.count else None)


class FakeSupabase:
    """Tables are lists of dicts; ids are SERIAL-style integers."""

    def __init__(self):
        self.tables = {}
        self.fail_tables = set()
        self._seq = 0

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def add(self, table: str, item: dict) -> dict:
        self._seq += 1
        row = dict(TABLE_DEFAULTS.get(table, {}))
        row.update({"id": self._seq, "created_at": (BASE_TIME + timedelta(seconds=self._seq)).isoformat()})
        row.update(copy.deepcopy(item))
        self.tables.setdefault(table, []).append(row)
        return row


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_client():
    return FakeSupabase()


@pytest.fixture
def db(fake_client):
    return DatabaseClient(fake_client)


@pytest.fixture
def store(tmp_path):
    return SessionStore(tmp_path / "sessions")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def seeded_db(db):
    """Demo users, categories, tests and questions."""
    from init_db import seed

    seed(db)
    return db
