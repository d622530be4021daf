"""Premium gate: non-subscribers may preview only the first lesson of a premium course."""
from pyai_academy.errors import PremiumAccessRequired
from pyai_academy.models import Course, User
from pyai_academy.records import get_user


def is_premium_gate_blocking(course: Course, user: User, lesson_index: int) -> bool:
    return course.is_premium and not user.is_premium and lesson_index != 0


def ensure_lesson_access(db_path: str, user_id: str, course: Course, lesson_index: int) -> User:
    # The user is re-read on every check; a plan upgrade applies immediately.
    user = get_user(db_path, user_id)
    if is_premium_gate_blocking(course, user, lesson_index):
        raise PremiumAccessRequired(
            f"lesson {lesson_index + 1} of {course.title} requires a premium plan"
        )
    return user


def ensure_test_access(db_path: str, user_id: str, course: Course) -> User:
    """The final test is never part of the free preview."""
    user = get_user(db_path, user_id)
    if is_premium_gate_blocking(course, user, lesson_index=-1):
        raise PremiumAccessRequired(f"the final test of {course.title} requires a premium plan")
    return user
