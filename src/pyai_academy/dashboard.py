"""Learner profile statistics and per-course progress rows."""
from pyai_academy.constants import CATEGORIES
from pyai_academy.content import list_courses
from pyai_academy.models import CourseProgressRecord
from pyai_academy.records import (
    count_solved_exercises, get_test_results, list_course_progress,
)


def get_progress_label(record: CourseProgressRecord | None) -> str:
    if record is None:
        return "NOT STARTED"
    if record.completed:
        return "COMPLETED"
    return "IN PROGRESS"


def get_progress_color(percent: int) -> str:
    if percent >= 100:
        return "green"
    elif percent >= 50:
        return "yellow"
    elif percent > 0:
        return "dark_orange"
    return "dim"


def get_course_rows(db_path: str, user_id: str, category: str | None = None,
                    level: str | None = None, sort_by: str = "title") -> list[dict]:
    """One row per catalog course with this learner's progress."""
    progress = {r.course_id: r for r in list_course_progress(db_path, user_id)}
    rows = []
    for course in list_courses(db_path, category=category, level=level, sort_by=sort_by):
        record = progress.get(course.id)
        percent = 0
        if record is not None:
            percent = 100 if record.completed else record.progress_percent
        rows.append({
            "course_id": course.id,
            "title": course.title,
            "is_premium": course.is_premium,
            "category": CATEGORIES.get(course.category, course.category),
            "level": course.level,
            "progress": percent,
            "label": get_progress_label(record),
        })
    return rows


def get_learner_stats(db_path: str, user_id: str) -> dict:
    completed = list_course_progress(db_path, user_id, completed=True)
    in_progress = list_course_progress(db_path, user_id, completed=False)
    results = get_test_results(db_path, user_id)
    scores = [r.score for r in results]
    return {
        "completed_courses": len(completed),
        "in_progress_courses": len(in_progress),
        "total_courses": len(completed) + len(in_progress),
        "exercises_solved": count_solved_exercises(db_path, user_id),
        "tests_taken": len(results),
        "tests_passed": sum(1 for r in results if r.passed),
        "avg_test_score": round(sum(scores) / len(scores), 1) if scores else 0.0,
        "best_test_score": max(scores) if scores else 0,
    }
