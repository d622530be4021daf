"""Per-user learner records: progress, exercise log, test results, settings."""
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime

from pyai_academy.constants import USER_ROLES
from pyai_academy.db import get_connection
from pyai_academy.errors import ContentNotFound, StorePersistenceFailure
from pyai_academy.models import (
    CourseProgressRecord, ExerciseCompletionRecord, TestAttemptResult, User,
)

logger = logging.getLogger(__name__)


@contextmanager
def _store_call(db_path: str, action: str):
    """Connection scoped to one store call; sqlite errors become StorePersistenceFailure."""
    conn = None
    try:
        conn = get_connection(db_path)
        yield conn
        conn.commit()
    except sqlite3.Error as e:
        if conn is not None:
            conn.rollback()
        logger.error("User store %s failed: %s", action, e)
        raise StorePersistenceFailure(f"{action} failed: {e}") from e
    finally:
        if conn is not None:
            conn.close()


def _user_from_row(row) -> User:
    return User(
        id=row["id"],
        display_name=row["display_name"],
        email=row["email"] or "",
        user_role=row["user_role"],
    )


def _progress_from_row(row) -> CourseProgressRecord:
    return CourseProgressRecord(
        user_id=row["user_id"],
        course_id=row["course_id"],
        progress_percent=row["progress_percent"],
        completed=bool(row["completed"]),
        last_updated=row["last_updated"],
        started_at=row["started_at"],
        completed_at=row["completed_at"],
    )


def _completion_from_row(row) -> ExerciseCompletionRecord:
    return ExerciseCompletionRecord(
        id=row["id"],
        user_id=row["user_id"],
        course_id=row["course_id"],
        lesson_id=row["lesson_id"],
        exercise_id=row["exercise_id"],
        code=row["code"],
        is_correct=bool(row["is_correct"]),
        attempts=row["attempts"],
        completed_at=row["completed_at"],
    )


# --- users ---------------------------------------------------------------


def create_user(db_path: str, user_id: str, display_name: str, email: str = "",
                user_role: str = "free") -> User:
    """Register a user. An existing user id is left untouched."""
    if user_role not in USER_ROLES:
        raise ValueError(f"unknown user role: {user_role}")
    now = datetime.now().isoformat()
    with _store_call(db_path, "create user") as conn:
        conn.execute(
            """INSERT OR IGNORE INTO users (id, display_name, email, user_role, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)""",
            (user_id, display_name, email, user_role, now, now),
        )
    return get_user(db_path, user_id)


def get_user(db_path: str, user_id: str) -> User:
    with _store_call(db_path, "get user") as conn:
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    if row is None:
        raise ContentNotFound(f"user not found: {user_id}")
    return _user_from_row(row)


def list_users(db_path: str) -> list[User]:
    with _store_call(db_path, "list users") as conn:
        rows = conn.execute("SELECT * FROM users ORDER BY display_name").fetchall()
    return [_user_from_row(r) for r in rows]


def update_user_subscription(db_path: str, user_id: str, subscription_type: str) -> User:
    if subscription_type not in USER_ROLES:
        raise ValueError(f"unknown subscription type: {subscription_type}")
    with _store_call(db_path, "update subscription") as conn:
        cur = conn.execute(
            "UPDATE users SET user_role = ?, updated_at = ? WHERE id = ?",
            (subscription_type, datetime.now().isoformat(), user_id),
        )
    if cur.rowcount == 0:
        raise ContentNotFound(f"user not found: {user_id}")
    logger.info("User %s subscription set to %s", user_id, subscription_type)
    return get_user(db_path, user_id)


def update_user_profile(db_path: str, user_id: str, display_name: str | None = None,
                        email: str | None = None) -> User:
    """Change the learner's display name and/or email. Fields left as None are kept."""
    user = get_user(db_path, user_id)
    if display_name is not None and not display_name.strip():
        raise ValueError("display name cannot be empty")
    with _store_call(db_path, "update profile") as conn:
        conn.execute(
            "UPDATE users SET display_name = ?, email = ?, updated_at = ? WHERE id = ?",
            (display_name.strip() if display_name is not None else user.display_name,
             email if email is not None else user.email,
             datetime.now().isoformat(), user_id),
        )
    return get_user(db_path, user_id)


# --- course progress -----------------------------------------------------


def get_course_progress(db_path: str, user_id: str, course_id: str) -> CourseProgressRecord | None:
    with _store_call(db_path, "get course progress") as conn:
        row = conn.execute(
            "SELECT * FROM course_progress WHERE user_id = ? AND course_id = ?",
            (user_id, course_id),
        ).fetchone()
    return _progress_from_row(row) if row else None


def list_course_progress(db_path: str, user_id: str, completed: bool | None = None) -> list[CourseProgressRecord]:
    query = "SELECT * FROM course_progress WHERE user_id = ?"
    params: list = [user_id]
    if completed is not None:
        query += " AND completed = ?"
        params.append(int(completed))
    with _store_call(db_path, "list course progress") as conn:
        rows = conn.execute(query + " ORDER BY last_updated DESC", params).fetchall()
    return [_progress_from_row(r) for r in rows]


def update_course_progress(db_path: str, user_id: str, course_id: str,
                           progress_percent: int, completed: bool) -> CourseProgressRecord:
    """Upsert the progress row and return what is stored afterwards.

    A row that is already completed only accepts another completed write.
    """
    now = datetime.now().isoformat()
    with _store_call(db_path, "update course progress") as conn:
        conn.execute(
            """INSERT INTO course_progress
            (user_id, course_id, progress_percent, completed, started_at, last_updated, completed_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id, course_id) DO UPDATE SET
                progress_percent = excluded.progress_percent,
                completed = excluded.completed,
                last_updated = excluded.last_updated,
                completed_at = COALESCE(course_progress.completed_at, excluded.completed_at)
            WHERE course_progress.completed = 0 OR excluded.completed = 1""",
            (user_id, course_id, progress_percent, int(completed), now, now,
             now if completed else None),
        )
        row = conn.execute(
            "SELECT * FROM course_progress WHERE user_id = ? AND course_id = ?",
            (user_id, course_id),
        ).fetchone()
    return _progress_from_row(row)


# --- exercise log --------------------------------------------------------


def append_exercise_completion(db_path: str, user_id: str, course_id: str, lesson_id: str,
                               exercise_id: str, code: str, is_correct: bool,
                               attempts: int) -> ExerciseCompletionRecord:
    if attempts < 1:
        raise ValueError(f"attempts must be positive, got {attempts}")
    now = datetime.now().isoformat()
    with _store_call(db_path, "append exercise completion") as conn:
        cur = conn.execute(
            """INSERT INTO exercise_completions
            (user_id, course_id, lesson_id, exercise_id, code, is_correct, attempts, completed_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (user_id, course_id, lesson_id, exercise_id, code, int(is_correct), attempts, now),
        )
        row_id = cur.lastrowid
    return ExerciseCompletionRecord(
        id=row_id, user_id=user_id, course_id=course_id, lesson_id=lesson_id,
        exercise_id=exercise_id, code=code, is_correct=is_correct,
        attempts=attempts, completed_at=now,
    )


def get_completed_exercises(db_path: str, user_id: str, course_id: str,
                            lesson_id: str) -> list[ExerciseCompletionRecord]:
    """Every logged submission for the lesson, oldest first."""
    with _store_call(db_path, "get completed exercises") as conn:
        rows = conn.execute(
            """SELECT * FROM exercise_completions
            WHERE user_id = ? AND course_id = ? AND lesson_id = ?
            ORDER BY id""",
            (user_id, course_id, lesson_id),
        ).fetchall()
    return [_completion_from_row(r) for r in rows]


def count_exercise_attempts(db_path: str, user_id: str, course_id: str, lesson_id: str,
                            exercise_id: str) -> int:
    with _store_call(db_path, "count exercise attempts") as conn:
        count = conn.execute(
            """SELECT COUNT(*) FROM exercise_completions
            WHERE user_id = ? AND course_id = ? AND lesson_id = ? AND exercise_id = ?""",
            (user_id, course_id, lesson_id, exercise_id),
        ).fetchone()[0]
    return count


def count_solved_exercises(db_path: str, user_id: str) -> int:
    with _store_call(db_path, "count solved exercises") as conn:
        count = conn.execute(
            """SELECT COUNT(*) FROM (
                SELECT DISTINCT course_id, lesson_id, exercise_id
                FROM exercise_completions WHERE user_id = ? AND is_correct = 1
            )""",
            (user_id,),
        ).fetchone()[0]
    return count


# --- test results --------------------------------------------------------


def append_test_result(db_path: str, user_id: str, course_id: str, result: TestAttemptResult) -> None:
    with _store_call(db_path, "append test result") as conn:
        conn.execute(
            """INSERT INTO test_results
            (user_id, course_id, score, total_questions, correct_answers, passed,
             time_spent_seconds, completed_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (user_id, course_id, result.score, result.total_questions, result.correct_answers,
             int(result.passed), result.time_spent_seconds, datetime.now().isoformat()),
        )


def get_test_results(db_path: str, user_id: str, course_id: str | None = None) -> list[TestAttemptResult]:
    query = "SELECT * FROM test_results WHERE user_id = ?"
    params: list = [user_id]
    if course_id is not None:
        query += " AND course_id = ?"
        params.append(course_id)
    with _store_call(db_path, "get test results") as conn:
        rows = conn.execute(query + " ORDER BY id", params).fetchall()
    return [
        TestAttemptResult(
            score=r["score"],
            total_questions=r["total_questions"],
            correct_answers=r["correct_answers"],
            passed=bool(r["passed"]),
            time_spent_seconds=r["time_spent_seconds"],
        )
        for r in rows
    ]


# --- settings ------------------------------------------------------------


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    with _store_call(db_path, "get setting") as conn:
        row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    with _store_call(db_path, "set setting") as conn:
        conn.execute(
            "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
            (key, value, value),
        )
