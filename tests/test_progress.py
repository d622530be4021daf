"""Tests for exercise grading and course progress."""
from unittest.mock import patch

import pytest

from pyai_academy.content import get_course
from pyai_academy.errors import ContentNotFound, StorePersistenceFailure
from pyai_academy.importer import import_course
from pyai_academy.models import ExerciseCompletionRecord
from pyai_academy.progress import (
    calc_course_progress, completed_exercise_ids, count_failed_attempts,
    get_lesson_exercise_status, get_progress_percent, hint_for_attempt,
    is_solution_correct, recompute_course_progress, record_exercise_submission,
    round_half_up, update_progress,
)
from pyai_academy.records import get_completed_exercises, get_course_progress

COURSE = "python-fundamentals"


def test_round_half_up():
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(12.5) == 13
    assert round_half_up(64.4) == 64
    assert round_half_up(0) == 0


def test_calc_course_progress_weights():
    assert calc_course_progress(1, 2, 1, 1) == 65
    assert calc_course_progress(2, 2, 1, 2) == 85
    assert calc_course_progress(2, 2, 2, 2) == 100


def test_calc_course_progress_lesson_without_exercises():
    assert calc_course_progress(1, 2, 0, 0) == 35


def test_calc_course_progress_rejects_empty_course():
    with pytest.raises(ValueError):
        calc_course_progress(1, 0, 0, 0)


def test_is_solution_correct_is_substring_check(seeded_db):
    ex = get_course(seeded_db, COURSE).lessons[0].exercises[0]
    assert is_solution_correct(ex, 'print("Hello, World!")')
    assert is_solution_correct(ex, '# my answer\nprint("Hello, World!")  # done\n')
    assert not is_solution_correct(ex, 'print("hello, world!")')
    assert not is_solution_correct(ex, "")


def test_completed_exercise_ids():
    log = [
        ExerciseCompletionRecord("u", "c", "l", "e1", "x", False, 1),
        ExerciseCompletionRecord("u", "c", "l", "e1", "y", True, 2),
        ExerciseCompletionRecord("u", "c", "l", "e2", "z", False, 1),
    ]
    assert completed_exercise_ids(log) == {"e1"}


def test_correct_submission_updates_progress(seeded_db):
    assert record_exercise_submission(seeded_db, "demo", COURSE, "python-intro", "hello-world",
                                      'print("Hello, World!")')
    assert get_progress_percent(seeded_db, "demo", COURSE) == 65


def test_wrong_submission_leaves_progress(seeded_db):
    assert not record_exercise_submission(seeded_db, "demo", COURSE, "python-intro", "hello-world",
                                          "print(42)")
    assert get_course_progress(seeded_db, "demo", COURSE) is None
    log = get_completed_exercises(seeded_db, "demo", COURSE, "python-intro")
    assert len(log) == 1
    assert not log[0].is_correct


def test_progress_within_second_lesson(seeded_db):
    code = 'age = 25\ntemperature = 98.6\ngreeting = "Hello, Python!"'
    record_exercise_submission(seeded_db, "demo", COURSE, "variables-data-types", "variable-assignment", code)
    assert get_progress_percent(seeded_db, "demo", COURSE) == 85
    record_exercise_submission(seeded_db, "demo", COURSE, "variables-data-types", "type-check",
                               "print(type(temperature))")
    assert get_progress_percent(seeded_db, "demo", COURSE) == 100
    record = get_course_progress(seeded_db, "demo", COURSE)
    assert not record.completed


def test_attempts_are_counted_from_the_log(seeded_db):
    for code in ("print(1)", "print(2)", 'print("Hello, World!")'):
        record_exercise_submission(seeded_db, "demo", COURSE, "python-intro", "hello-world", code,
                                   attempt_number=1)
    log = get_completed_exercises(seeded_db, "demo", COURSE, "python-intro")
    assert [e.attempts for e in log] == [1, 2, 3]


def test_resolving_same_exercise_twice_does_not_double_count(seeded_db):
    for _ in range(2):
        record_exercise_submission(seeded_db, "demo", COURSE, "variables-data-types", "type-check",
                                   "print(type(temperature))")
    assert get_progress_percent(seeded_db, "demo", COURSE) == 85


def test_submission_unknown_lesson_or_exercise(seeded_db):
    with pytest.raises(ContentNotFound):
        record_exercise_submission(seeded_db, "demo", COURSE, "nope", "hello-world", "x")
    with pytest.raises(ContentNotFound):
        record_exercise_submission(seeded_db, "demo", COURSE, "python-intro", "nope", "x")
    with pytest.raises(ContentNotFound):
        record_exercise_submission(seeded_db, "demo", "cobol-101", "python-intro", "hello-world", "x")


def test_log_write_failure_still_grades_and_advances(seeded_db):
    with patch("pyai_academy.progress.records.append_exercise_completion",
               side_effect=StorePersistenceFailure("disk full")):
        ok = record_exercise_submission(seeded_db, "demo", COURSE, "python-intro", "hello-world",
                                        'print("Hello, World!")')
    assert ok
    assert get_progress_percent(seeded_db, "demo", COURSE) == 65


def test_progress_write_failure_still_returns_grade(seeded_db):
    with patch("pyai_academy.progress.records.update_course_progress",
               side_effect=StorePersistenceFailure("disk full")):
        ok = record_exercise_submission(seeded_db, "demo", COURSE, "python-intro", "hello-world",
                                        'print("Hello, World!")')
    assert ok
    assert get_course_progress(seeded_db, "demo", COURSE) is None


def test_update_progress_completed_forces_100(seeded_db):
    record = update_progress(seeded_db, "demo", COURSE, 30, completed=True)
    assert record.completed
    assert record.progress_percent == 100


def test_update_progress_validates(seeded_db):
    for bad in (101, -1, 50.5, True, "50"):
        with pytest.raises(ValueError):
            update_progress(seeded_db, "demo", COURSE, bad)


def test_completed_course_stays_completed(seeded_db):
    update_progress(seeded_db, "demo", COURSE, 100, completed=True)
    record_exercise_submission(seeded_db, "demo", COURSE, "python-intro", "hello-world",
                               'print("Hello, World!")')
    record = get_course_progress(seeded_db, "demo", COURSE)
    assert record.completed
    assert record.progress_percent == 100


def test_progress_never_exceeds_bounds(seeded_db):
    record = update_progress(seeded_db, "demo", COURSE, 0)
    assert record.progress_percent == 0
    record = update_progress(seeded_db, "demo", COURSE, 100)
    assert record.progress_percent == 100


def test_recompute_for_lesson_without_exercises(seeded_db):
    import_course(seeded_db, {
        "id": "reading-only",
        "title": "Reading Only",
        "lessons": [
            {"id": "intro", "title": "Intro"},
            {"id": "more", "title": "More", "exercises": [
                {"id": "e1", "title": "E1", "solution": "pass"},
            ]},
        ],
    })
    assert recompute_course_progress(seeded_db, "demo", "reading-only", "intro") == 35
    with pytest.raises(ContentNotFound):
        recompute_course_progress(seeded_db, "demo", "reading-only", "missing")


def test_lesson_exercise_status(seeded_db):
    record_exercise_submission(seeded_db, "demo", COURSE, "variables-data-types", "type-check",
                               "print(type(temperature))")
    status = get_lesson_exercise_status(seeded_db, "demo", COURSE, "variables-data-types")
    assert status == {"variable-assignment": False, "type-check": True}
    assert list(status) == ["variable-assignment", "type-check"]


def test_hint_after_repeated_failures(seeded_db):
    ex = get_course(seeded_db, COURSE).lessons[0].exercises[0]
    assert hint_for_attempt(ex, 2) is None
    assert hint_for_attempt(ex, 3) == ex.hint
    for code in ("a", "b", "c"):
        record_exercise_submission(seeded_db, "demo", COURSE, "python-intro", "hello-world", code)
    assert count_failed_attempts(seeded_db, "demo", COURSE, "python-intro", "hello-world") == 3
