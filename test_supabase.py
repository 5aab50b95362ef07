"""
Test Supabase connection and table structure.
Run after pasting the init_db.py schema into the Supabase SQL Editor.
"""
import pytest

import config

TABLES = [
    "users",
    "categories",
    "tests",
    "questions",
    "test_subjects",
    "test_results",
    "category_access",
    "test_access",
    "notifications",
    "question_usage",
]

pytestmark = pytest.mark.skipif(
    not (config.SUPABASE_URL and config.SUPABASE_KEY),
    reason="SUPABASE_URL / SUPABASE_KEY not set",
)


@pytest.fixture(scope="module")
def live_db():
    from db import get_database_uncached

    return get_database_uncached()


@pytest.mark.parametrize("table", TABLES)
def test_table_exists(live_db, table):
    response = live_db.client.table(table).select("id").limit(1).execute()
    assert isinstance(response.data, list)
    print(f"✓ {table} table exists (rows: {len(response.data)})")


def test_catalog_reads(live_db):
    categories = live_db.fetch_categories()
    tests = live_db.fetch_tests()
    print(f"✓ {len(categories)} categories, {len(tests)} tests")
    known = {c.id for c in categories}
    assert all(t.category_id in known for t in tests)
