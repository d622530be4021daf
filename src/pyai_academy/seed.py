"""Seed the database with the bundled course catalog and a demo learner."""
import json
from pathlib import Path

from pyai_academy.db import get_connection
from pyai_academy.importer import import_course
from pyai_academy.records import create_user

CONTENT_DIR = Path(__file__).parent / "content"

DEMO_USER_ID = "demo"


def is_seeded(db_path: str) -> bool:
    """Check whether the catalog has already been seeded."""
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM courses").fetchone()[0]
    conn.close()
    return count > 0


def load_catalog() -> list[dict]:
    data = json.loads((CONTENT_DIR / "courses.json").read_text())
    return data["courses"]


def seed_courses(db_path: str) -> None:
    """Insert every course from courses.json."""
    for course in load_catalog():
        import_course(db_path, course)


def seed_demo_user(db_path: str) -> None:
    create_user(db_path, DEMO_USER_ID, "Demo Learner", email="demo@example.com")


def seed_all(db_path: str) -> None:
    """Run all seed functions in order."""
    if is_seeded(db_path):
        return
    seed_courses(db_path)
    seed_demo_user(db_path)
