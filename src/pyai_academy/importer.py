"""Import course definitions (lessons, exercises, final test) from JSON or YAML."""
import json
import logging
from pathlib import Path

import yaml

from pyai_academy.constants import CATEGORIES, LEVELS
from pyai_academy.db import get_connection
from pyai_academy.errors import MalformedContent

logger = logging.getLogger(__name__)

CONTENT_TABLES = ("answers", "questions", "tests", "exercises", "lesson_sections", "lessons")


def read_course_file(file_path: str) -> dict:
    path = Path(file_path)
    suffix = path.suffix.lower()
    if suffix == ".json":
        return json.loads(path.read_text())
    elif suffix in (".yaml", ".yml"):
        return yaml.safe_load(path.read_text())
    raise ValueError(f"unsupported course file type: {suffix or path.name}")


def _require(item, keys: tuple, what: str) -> None:
    if not isinstance(item, dict):
        raise MalformedContent(f"{what} must be a mapping, got {type(item).__name__}")
    for key in keys:
        if not item.get(key):
            raise MalformedContent(f"{what} is missing '{key}'")


def _require_unique(items: list, what: str) -> None:
    seen = set()
    for item in items:
        if item["id"] in seen:
            raise MalformedContent(f"duplicate {what} id {item['id']}")
        seen.add(item["id"])


def _require_list(value, what: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedContent(f"{what} must be a list")
    return value


def validate_course_data(data: dict) -> None:
    """Raise MalformedContent for a course that the engine could not grade or track."""
    _require(data, ("id", "title", "lessons"), "course")
    course_id = data["id"]
    if data.get("category") and data["category"] not in CATEGORIES:
        raise MalformedContent(f"course {course_id}: unknown category {data['category']!r}")
    if data.get("level") and data["level"] not in LEVELS:
        raise MalformedContent(f"course {course_id}: unknown level {data['level']!r}")

    lessons = _require_list(data["lessons"], f"course {course_id} lessons")
    for lesson in lessons:
        _require(lesson, ("id", "title"), f"lesson in course {course_id}")
        sections = _require_list(lesson.get("sections"), f"lesson {lesson['id']} sections")
        for section in sections:
            _require(section, ("id", "title"), f"section in lesson {lesson['id']}")
        _require_unique(sections, f"section in lesson {lesson['id']}:")
        exercises = _require_list(lesson.get("exercises"), f"lesson {lesson['id']} exercises")
        for exercise in exercises:
            _require(exercise, ("id", "solution"), f"exercise in lesson {lesson['id']}")
        _require_unique(exercises, f"exercise in lesson {lesson['id']}:")
    _require_unique(lessons, f"lesson in course {course_id}:")

    test = data.get("test")
    if test is None:
        return
    _require(test, ("questions",), f"course {course_id} test")
    try:
        time_limit = int(test.get("time_limit_minutes", 0))
    except (TypeError, ValueError):
        time_limit = 0
    if time_limit <= 0:
        raise MalformedContent(f"course {course_id}: test needs a positive time limit")
    questions = _require_list(test["questions"], f"course {course_id} test questions")
    for q in questions:
        _require(q, ("id", "prompt", "answers"), f"question in course {course_id}")
        answers = _require_list(q["answers"], f"question {q['id']} answers")
        for answer in answers:
            _require(answer, ("id", "text"), f"answer in question {q['id']}")
        _require_unique(answers, f"answer in question {q['id']}:")
        if q.get("correct_answer") not in {a["id"] for a in answers}:
            raise MalformedContent(f"question {q['id']}: correct answer is not one of its options")
    _require_unique(questions, f"question in course {course_id}:")



def _delete_course_content(conn, course_id: str) -> None:
    for table in CONTENT_TABLES:
        conn.execute(f"DELETE FROM {table} WHERE course_id = ?", (course_id,))
    conn.execute("DELETE FROM courses WHERE id = ?", (course_id,))


def insert_course(conn, data: dict) -> None:
    conn.execute(
        """INSERT INTO courses (id, title, description, category, level, duration, is_premium)
        VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (data["id"], data["title"], data.get("description", ""), data.get("category"),
         data.get("level"), data.get("duration", ""), int(bool(data.get("is_premium", False)))),
    )
    for position, lesson in enumerate(data["lessons"]):
        conn.execute(
            "INSERT INTO lessons (id, course_id, title, position, duration) VALUES (?, ?, ?, ?, ?)",
            (lesson["id"], data["id"], lesson["title"], position, lesson.get("duration", "")),
        )
        for s_pos, section in enumerate(lesson.get("sections", [])):
            conn.execute(
                """INSERT INTO lesson_sections
                (id, course_id, lesson_id, title, kind, body, video_url, code, position)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (section["id"], data["id"], lesson["id"], section["title"],
                 section.get("type", "text"), section.get("description", ""),
                 section.get("video_url"), section.get("code"), s_pos),
            )
        for e_pos, exercise in enumerate(lesson.get("exercises", [])):
            conn.execute(
                """INSERT INTO exercises
                (id, course_id, lesson_id, title, instructions, starter_code, solution, hint, position)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (exercise["id"], data["id"], lesson["id"], exercise.get("title", exercise["id"]),
                 exercise.get("instructions", ""), exercise.get("starter_code", ""),
                 exercise["solution"], exercise.get("hint", ""), e_pos),
            )
    test = data.get("test")
    if test:
        conn.execute(
            "INSERT INTO tests (id, course_id, title, time_limit_minutes) VALUES (?, ?, ?, ?)",
            (test.get("id", "final"), data["id"], test.get("title", ""), int(test["time_limit_minutes"])),
        )
        for q_pos, q in enumerate(test["questions"]):
            conn.execute(
                """INSERT INTO questions (id, course_id, prompt, code, correct_answer_id, position)
                VALUES (?, ?, ?, ?, ?, ?)""",
                (q["id"], data["id"], q["prompt"], q.get("code"), q["correct_answer"], q_pos),
            )
            for a_pos, answer in enumerate(q["answers"]):
                conn.execute(
                    """INSERT INTO answers (id, course_id, question_id, text, position)
                    VALUES (?, ?, ?, ?, ?)""",
                    (answer["id"], data["id"], q["id"], answer["text"], a_pos),
                )


def import_course(db_path: str, data: dict, replace: bool = False) -> dict:
    """Insert one course. With replace=True an existing course of the same id is swapped out."""
    validate_course_data(data)
    conn = get_connection(db_path)
    try:
        exists = conn.execute("SELECT 1 FROM courses WHERE id = ?", (data["id"],)).fetchone()
        if exists and not replace:
            raise ValueError(f"course already exists: {data['id']}")
        if exists:
            _delete_course_content(conn, data["id"])
        insert_course(conn, data)
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
    logger.info("Imported course %s (%d lessons)", data["id"], len(data["lessons"]))
    test = data.get("test") or {}
    return {
        "course_id": data["id"],
        "lessons": len(data["lessons"]),
        "exercises": sum(len(lesson.get("exercises", [])) for lesson in data["lessons"]),
        "questions": len(test.get("questions", [])),
    }


def import_file(db_path: str, file_path: str, replace: bool = False) -> list[dict]:
    """Import a file holding one course or a {"courses": [...]} list."""
    data = read_course_file(file_path)
    if isinstance(data, dict) and "courses" in data:
        courses = _require_list(data["courses"], f"{file_path} courses")
    else:
        courses = [data]
    return [import_course(db_path, course, replace=replace) for course in courses]
