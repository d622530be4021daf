"""Tests for data model classes."""
from dataclasses import FrozenInstanceError

import pytest

from pyai_academy.models import (
    Answer, Course, CourseProgressRecord, Exercise, Lesson, Question, Test,
    TestAttemptResult, User,
)


def test_question_answer_ids():
    q = Question(id="q1", prompt="?", answers=[Answer("a", "x"), Answer("b", "y")], correct_answer_id="b")
    assert q.answer_ids() == {"a", "b"}
    assert q.code is None


def test_test_time_limit_seconds():
    t = Test(id="final", course_id="c", time_limit_minutes=15, questions=[])
    assert t.time_limit_seconds == 900
    assert t.title == ""


def test_exercise_defaults():
    e = Exercise(id="e1", lesson_id="l1", title="Hello", solution="print(1)")
    assert e.hint == ""
    assert e.starter_code == ""


def test_course_lesson_index():
    course = Course(id="c", title="C", lessons=[
        Lesson(id="l1", course_id="c", title="One", position=0),
        Lesson(id="l2", course_id="c", title="Two", position=1),
    ])
    assert course.lesson_index("l1") == 0
    assert course.lesson_index("l2") == 1
    assert course.lesson_index("missing") == -1


def test_course_defaults():
    c = Course(id="c", title="C")
    assert c.is_premium is False
    assert c.lessons == []


def test_user_is_premium():
    assert User(id="u", display_name="U", user_role="premium").is_premium
    assert not User(id="u", display_name="U").is_premium


def test_progress_record_rejects_out_of_range():
    with pytest.raises(ValueError):
        CourseProgressRecord(user_id="u", course_id="c", progress_percent=101)
    with pytest.raises(ValueError):
        CourseProgressRecord(user_id="u", course_id="c", progress_percent=-1)


def test_completed_progress_record_must_be_100():
    with pytest.raises(ValueError):
        CourseProgressRecord(user_id="u", course_id="c", progress_percent=90, completed=True)
    r = CourseProgressRecord(user_id="u", course_id="c", progress_percent=100, completed=True)
    assert r.completed


def test_attempt_result_is_frozen():
    r = TestAttemptResult(score=80, total_questions=5, correct_answers=4, passed=True, time_spent_seconds=30)
    with pytest.raises(FrozenInstanceError):
        r.score = 10
