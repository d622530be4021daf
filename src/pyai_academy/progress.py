"""Course progress tracking from exercise submissions."""
import logging
import math

from pyai_academy import records
from pyai_academy.constants import EXERCISE_WEIGHT, LESSON_WEIGHT, PROGRESS_SETTINGS
from pyai_academy.content import get_course
from pyai_academy.errors import ContentNotFound, StorePersistenceFailure
from pyai_academy.models import CourseProgressRecord, Exercise, ExerciseCompletionRecord

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def is_solution_correct(exercise: Exercise, submitted_code: str) -> bool:
    """Containment check only: the submission is never executed."""
    return exercise.solution in submitted_code


def completed_exercise_ids(log: list[ExerciseCompletionRecord]) -> set[str]:
    """Exercises with at least one correct submission in the log."""
    return {entry.exercise_id for entry in log if entry.is_correct}


def calc_course_progress(lesson_position: int, total_lessons: int,
                         completed_exercises: int, total_exercises: int) -> int:
    """Weighted course percentage: lesson position 70%, exercises within the lesson 30%.

    Args:
        lesson_position: 1-based position of the current lesson.
        total_lessons: Number of lessons in the course.
        completed_exercises: Solved exercises in the current lesson.
        total_exercises: Exercises in the current lesson.
    """
    if total_lessons <= 0:
        raise ValueError("course has no lessons")
    lesson_progress = lesson_position / total_lessons
    exercise_progress = completed_exercises / total_exercises if total_exercises else 0.0
    return round_half_up((lesson_progress * LESSON_WEIGHT + exercise_progress * EXERCISE_WEIGHT) * 100)


def update_progress(db_path: str, user_id: str, course_id: str, progress_percent: int,
                    completed: bool = False) -> CourseProgressRecord:
    """Store a course percentage. Completing a course always stores 100."""
    if isinstance(progress_percent, bool) or not isinstance(progress_percent, int):
        raise ValueError(f"progress_percent must be an integer, got {progress_percent!r}")
    if not 0 <= progress_percent <= 100:
        raise ValueError(f"progress_percent must be within 0-100, got {progress_percent}")
    if completed:
        progress_percent = 100
    record = records.update_course_progress(db_path, user_id, course_id, progress_percent, completed)
    if record.completed and not completed:
        logger.info("Course %s already completed for %s; kept at 100%%", course_id, user_id)
    else:
        logger.debug("Progress for %s/%s is now %d%%", user_id, course_id, record.progress_percent)
    return record


def get_progress_percent(db_path: str, user_id: str, course_id: str) -> int:
    record = records.get_course_progress(db_path, user_id, course_id)
    if record is None:
        return 0
    return 100 if record.completed else record.progress_percent


def recompute_course_progress(db_path: str, user_id: str, course_id: str, lesson_id: str,
                              just_completed: str | None = None) -> int:
    """Derive and store the course percentage after a correct submission.

    ``just_completed`` names an exercise to count as solved even if its log
    entry could not be written.
    """
    course = get_course(db_path, course_id)
    index = course.lesson_index(lesson_id)
    if index < 0:
        raise ContentNotFound(f"lesson not found: {course_id}/{lesson_id}")
    lesson = course.lessons[index]

    log = records.get_completed_exercises(db_path, user_id, course_id, lesson_id)
    solved = completed_exercise_ids(log)
    if just_completed:
        solved.add(just_completed)
    lesson_exercise_ids = {e.id for e in lesson.exercises}

    overall = calc_course_progress(
        lesson_position=index + 1,
        total_lessons=len(course.lessons),
        completed_exercises=len(solved & lesson_exercise_ids),
        total_exercises=len(lesson.exercises),
    )
    update_progress(db_path, user_id, course_id, overall, completed=False)
    return overall


def record_exercise_submission(db_path: str, user_id: str, course_id: str, lesson_id: str,
                               exercise_id: str, submitted_code: str,
                               attempt_number: int | None = None) -> bool:
    """Grade a submission, log it, and advance course progress when correct.

    The stored attempt count is derived from the log (prior submissions + 1);
    ``attempt_number`` is only used when the log cannot be read.
    """
    course = get_course(db_path, course_id)
    lesson_index = course.lesson_index(lesson_id)
    if lesson_index < 0:
        raise ContentNotFound(f"lesson not found: {course_id}/{lesson_id}")
    exercise = next(
        (e for e in course.lessons[lesson_index].exercises if e.id == exercise_id), None
    )
    if exercise is None:
        raise ContentNotFound(f"exercise not found: {course_id}/{lesson_id}/{exercise_id}")

    is_correct = is_solution_correct(exercise, submitted_code)

    try:
        attempts = records.count_exercise_attempts(
            db_path, user_id, course_id, lesson_id, exercise_id
        ) + 1
    except StorePersistenceFailure:
        attempts = max(attempt_number or 1, 1)
    if attempt_number is not None and attempt_number != attempts:
        logger.debug("Caller attempt %d differs from logged attempt %d for %s",
                     attempt_number, attempts, exercise_id)

    try:
        records.append_exercise_completion(
            db_path, user_id, course_id, lesson_id, exercise_id,
            submitted_code, is_correct, attempts,
        )
    except StorePersistenceFailure:
        logger.warning("Submission for %s by %s was graded but not saved", exercise_id, user_id)

    if is_correct:
        try:
            recompute_course_progress(db_path, user_id, course_id, lesson_id,
                                      just_completed=exercise_id)
        except StorePersistenceFailure:
            logger.warning("Progress for %s/%s was not saved", user_id, course_id)
    return is_correct


def get_lesson_exercise_status(db_path: str, user_id: str, course_id: str,
                               lesson_id: str) -> dict[str, bool]:
    """Exercise id -> solved, in lesson order."""
    course = get_course(db_path, course_id)
    index = course.lesson_index(lesson_id)
    if index < 0:
        raise ContentNotFound(f"lesson not found: {course_id}/{lesson_id}")
    solved = completed_exercise_ids(
        records.get_completed_exercises(db_path, user_id, course_id, lesson_id)
    )
    return {e.id: e.id in solved for e in course.lessons[index].exercises}


def hint_for_attempt(exercise: Exercise, failed_attempts: int) -> str | None:
    """The exercise hint once enough submissions have failed."""
    if failed_attempts > PROGRESS_SETTINGS["hint_after_failed_attempts"] and exercise.hint:
        return exercise.hint
    return None


def count_failed_attempts(db_path: str, user_id: str, course_id: str, lesson_id: str,
                          exercise_id: str) -> int:
    log = records.get_completed_exercises(db_path, user_id, course_id, lesson_id)
    return sum(1 for e in log if e.exercise_id == exercise_id and not e.is_correct)
