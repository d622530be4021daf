from pyai_academy.db import init_db, get_connection
from pyai_academy.records import get_user
from pyai_academy.seed import DEMO_USER_ID, is_seeded, load_catalog, seed_all, seed_courses


def test_load_catalog():
    catalog = load_catalog()
    assert len(catalog) == 5
    assert all(course["lessons"] for course in catalog)
    assert all(course["test"]["questions"] for course in catalog)


def test_seed_courses(tmp_db):
    init_db(tmp_db)
    seed_courses(tmp_db)
    conn = get_connection(tmp_db)
    assert conn.execute("SELECT COUNT(*) FROM courses").fetchone()[0] == 5
    assert conn.execute("SELECT COUNT(*) FROM tests").fetchone()[0] == 5
    premium = conn.execute("SELECT COUNT(*) FROM courses WHERE is_premium = 1").fetchone()[0]
    assert premium == 3
    conn.close()


def test_is_seeded(tmp_db):
    init_db(tmp_db)
    assert not is_seeded(tmp_db)
    seed_all(tmp_db)
    assert is_seeded(tmp_db)


def test_seed_all_creates_demo_user(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    user = get_user(tmp_db, DEMO_USER_ID)
    assert not user.is_premium


def test_seed_all_is_idempotent(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    seed_all(tmp_db)
    conn = get_connection(tmp_db)
    assert conn.execute("SELECT COUNT(*) FROM courses").fetchone()[0] == 5
    conn.close()
