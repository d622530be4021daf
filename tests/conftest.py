import pytest

from pyai_academy.db import init_db
from pyai_academy.records import create_user
from pyai_academy.seed import seed_all


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_academy.db")
    return db_path


@pytest.fixture
def seeded_db(tmp_db):
    """Database with the bundled catalog, the demo learner and a premium learner."""
    init_db(tmp_db)
    seed_all(tmp_db)
    create_user(tmp_db, "pro", "Pro Learner", user_role="premium")
    return tmp_db
