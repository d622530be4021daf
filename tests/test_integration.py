# tests/test_integration.py
"""End-to-end test of the core workflow."""
import pytest

from pyai_academy.access import ensure_lesson_access, ensure_test_access
from pyai_academy.assessment import start_test
from pyai_academy.content import get_course
from pyai_academy.dashboard import get_learner_stats
from pyai_academy.db import init_db
from pyai_academy.errors import InvalidSessionTransition, PremiumAccessRequired
from pyai_academy.progress import get_progress_percent, record_exercise_submission
from pyai_academy.records import create_user, get_course_progress, update_user_subscription
from pyai_academy.seed import seed_all

ML = "intro-to-machine-learning"


def test_full_premium_course_workflow(tmp_db):
    """A free learner previews, upgrades, works through a premium course and passes its test."""
    init_db(tmp_db)
    seed_all(tmp_db)
    create_user(tmp_db, "ada", "Ada")
    course = get_course(tmp_db, ML)

    # Preview lesson is open, the rest is gated
    ensure_lesson_access(tmp_db, "ada", course, 0)
    assert record_exercise_submission(tmp_db, "ada", ML, "ml-fundamentals", "ml-concepts",
                                      'def classify(description):\n    if "labeled" in description.lower():\n        return "supervised"')
    assert get_progress_percent(tmp_db, "ada", ML) == 65
    with pytest.raises(PremiumAccessRequired):
        ensure_lesson_access(tmp_db, "ada", course, 1)
    with pytest.raises(PremiumAccessRequired):
        ensure_test_access(tmp_db, "ada", course)

    update_user_subscription(tmp_db, "ada", "premium")
    ensure_lesson_access(tmp_db, "ada", course, 1)

    assert not record_exercise_submission(tmp_db, "ada", ML, "data-preprocessing", "missing-values",
                                          "SimpleImputer(strategy='mean')")
    assert record_exercise_submission(tmp_db, "ada", ML, "data-preprocessing", "missing-values",
                                      "imputer = SimpleImputer(strategy='median')")
    assert get_progress_percent(tmp_db, "ada", ML) == 100
    assert not get_course_progress(tmp_db, "ada", ML).completed

    # A failed test leaves the course open
    ensure_test_access(tmp_db, "ada", course)
    session = start_test(tmp_db, "ada", ML)
    session.answer_question(0, "a")
    assert not session.submit().passed
    with pytest.raises(InvalidSessionTransition):
        session.answer_question(1, "b")

    session = start_test(tmp_db, "ada", ML)
    for i, answer in enumerate(["a", "b", "c"]):
        session.answer_question(i, answer)
    result = session.submit()
    assert result.passed
    assert result.score == 100

    record = get_course_progress(tmp_db, "ada", ML)
    assert record.completed
    assert record.progress_percent == 100

    # Later exercise activity never reopens a completed course
    record_exercise_submission(tmp_db, "ada", ML, "ml-fundamentals", "ml-concepts", "nothing")
    record_exercise_submission(tmp_db, "ada", ML, "ml-fundamentals", "ml-concepts",
                               'if "labeled" in description.lower():\n        return "supervised"')
    assert get_course_progress(tmp_db, "ada", ML).completed

    stats = get_learner_stats(tmp_db, "ada")
    assert stats["completed_courses"] == 1
    assert stats["tests_taken"] == 2
    assert stats["tests_passed"] == 1
    assert stats["exercises_solved"] == 2
