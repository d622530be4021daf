"""Read-only access to the course catalog."""
from pyai_academy.db import get_connection
from pyai_academy.errors import ContentNotFound, MalformedContent
from pyai_academy.models import (
    Answer, Course, Exercise, Lesson, LessonSection, Question, Test,
)

SORT_COLUMNS = {"title": "title", "level": "level", "category": "category"}


def _course_from_row(row) -> Course:
    return Course(
        id=row["id"],
        title=row["title"],
        is_premium=bool(row["is_premium"]),
        description=row["description"] or "",
        category=row["category"] or "",
        level=row["level"] or "",
        duration=row["duration"] or "",
    )


def _exercise_from_row(row) -> Exercise:
    return Exercise(
        id=row["id"],
        lesson_id=row["lesson_id"],
        title=row["title"],
        solution=row["solution"],
        hint=row["hint"] or "",
        starter_code=row["starter_code"] or "",
        instructions=row["instructions"] or "",
        position=row["position"],
    )


def _load_lesson(conn, course_id: str, row) -> Lesson:
    exercises = conn.execute(
        "SELECT * FROM exercises WHERE course_id = ? AND lesson_id = ? ORDER BY position",
        (course_id, row["id"]),
    ).fetchall()
    sections = conn.execute(
        "SELECT * FROM lesson_sections WHERE course_id = ? AND lesson_id = ? ORDER BY position",
        (course_id, row["id"]),
    ).fetchall()
    return Lesson(
        id=row["id"],
        course_id=course_id,
        title=row["title"],
        position=row["position"],
        duration=row["duration"] or "",
        exercises=[_exercise_from_row(e) for e in exercises],
        sections=[
            LessonSection(
                id=s["id"], title=s["title"], kind=s["kind"], body=s["body"] or "",
                video_url=s["video_url"], code=s["code"],
            )
            for s in sections
        ],
    )


def list_courses(
    db_path: str,
    category: str | None = None,
    level: str | None = None,
    is_premium: bool | None = None,
    sort_by: str = "title",
) -> list[Course]:
    """Catalog listing with optional filters. Lessons are not loaded."""
    clauses, params = [], []
    if category:
        clauses.append("category = ?")
        params.append(category)
    if level:
        clauses.append("level = ?")
        params.append(level)
    if is_premium is not None:
        clauses.append("is_premium = ?")
        params.append(int(is_premium))
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    order = SORT_COLUMNS.get(sort_by, "title")
    conn = get_connection(db_path)
    rows = conn.execute(
        f"SELECT * FROM courses {where} ORDER BY {order}, id", params
    ).fetchall()
    conn.close()
    return [_course_from_row(r) for r in rows]


def list_categories(db_path: str) -> list[str]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT DISTINCT category FROM courses WHERE category IS NOT NULL ORDER BY category"
    ).fetchall()
    conn.close()
    return [r["category"] for r in rows]


def get_course(db_path: str, course_id: str) -> Course:
    """Course with its ordered lessons and their ordered exercises."""
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM courses WHERE id = ?", (course_id,)).fetchone()
    if row is None:
        conn.close()
        raise ContentNotFound(f"course not found: {course_id}")
    course = _course_from_row(row)
    lessons = conn.execute(
        "SELECT * FROM lessons WHERE course_id = ? ORDER BY position", (course_id,)
    ).fetchall()
    course.lessons = [_load_lesson(conn, course_id, row) for row in lessons]
    conn.close()
    return course


def validate_test(test: Test) -> None:
    """Raise MalformedContent unless every question can be graded."""
    if not test.questions:
        raise MalformedContent(f"test for {test.course_id} has no questions")
    for q in test.questions:
        if not q.correct_answer_id:
            raise MalformedContent(f"question {q.id} has no correct answer")
        if q.correct_answer_id not in q.answer_ids():
            raise MalformedContent(
                f"question {q.id}: correct answer {q.correct_answer_id!r} is not an option"
            )


def get_test(db_path: str, course_id: str) -> Test:
    """Final test for a course with ordered questions and answers."""
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM tests WHERE course_id = ?", (course_id,)).fetchone()
    if row is None:
        conn.close()
        raise ContentNotFound(f"test not found for course: {course_id}")
    question_rows = conn.execute(
        "SELECT * FROM questions WHERE course_id = ? ORDER BY position", (course_id,)
    ).fetchall()
    questions = []
    for q in question_rows:
        answers = conn.execute(
            "SELECT * FROM answers WHERE course_id = ? AND question_id = ? ORDER BY position",
            (course_id, q["id"]),
        ).fetchall()
        questions.append(Question(
            id=q["id"],
            prompt=q["prompt"],
            code=q["code"],
            correct_answer_id=q["correct_answer_id"] or "",
            position=q["position"],
            answers=[Answer(id=a["id"], text=a["text"]) for a in answers],
        ))
    conn.close()
    test = Test(
        id=row["id"],
        course_id=course_id,
        title=row["title"] or "",
        time_limit_minutes=row["time_limit_minutes"],
        questions=questions,
    )
    validate_test(test)
    return test
