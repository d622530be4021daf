"""Timed final tests: session state, countdown, grading and result handling."""
import logging
import threading
from enum import Enum
from functools import partial
from typing import Callable, Optional

from pyai_academy import records
from pyai_academy.constants import MINIMUM_TEST_SCORE, PROGRESS_SETTINGS
from pyai_academy.content import get_test, validate_test
from pyai_academy.errors import InvalidSessionTransition, StorePersistenceFailure
from pyai_academy.models import Test, TestAttemptResult
from pyai_academy.progress import round_half_up, update_progress

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TestSession:
    """One attempt at a course's final test.

    ``answer_question``, ``submit`` and ``tick`` hold the same lock, so the
    session moves to COMPLETED once, with the result of a single successful
    ``on_finish``, whichever of a manual submit or the countdown reaching
    zero gets there first.
    """

    __test__ = False

    def __init__(self, user_id: str, course_id: str, test: Test,
                 on_finish: Optional[Callable[["TestSession"], TestAttemptResult]] = None):
        self.user_id = user_id
        self.course_id = course_id
        self.test = test
        self.current_question = 0
        self.answers: dict[int, str] = {}
        self.time_limit_seconds = test.time_limit_seconds
        self.remaining_seconds = self.time_limit_seconds
        self.state = SessionState.IN_PROGRESS
        self.result: Optional[TestAttemptResult] = None
        self._on_finish = on_finish or score_test
        self._lock = threading.RLock()
        self._timer: Optional["CountdownTimer"] = None

    @property
    def is_completed(self) -> bool:
        return self.state is SessionState.COMPLETED

    def _require_in_progress(self, action: str) -> None:
        if self.state is not SessionState.IN_PROGRESS:
            raise InvalidSessionTransition(f"cannot {action}: test session is {self.state.value}")

    def answer_question(self, question_index: int, answer_id: str) -> None:
        with self._lock:
            self._require_in_progress("answer a question")
            if not 0 <= question_index < len(self.test.questions):
                raise ValueError(f"question index out of range: {question_index}")
            question = self.test.questions[question_index]
            if answer_id not in question.answer_ids():
                raise ValueError(f"unknown answer {answer_id!r} for question {question.id}")
            self.answers[question_index] = answer_id

    def next_question(self) -> int:
        with self._lock:
            if self.current_question < len(self.test.questions) - 1:
                self.current_question += 1
            return self.current_question

    def previous_question(self) -> int:
        with self._lock:
            if self.current_question > 0:
                self.current_question -= 1
            return self.current_question

    def unanswered_count(self) -> int:
        return len(self.test.questions) - len(self.answers)

    def tick(self) -> Optional[TestAttemptResult]:
        """Count down one second; returns the result if this tick ended the test."""
        with self._lock:
            if self.state is not SessionState.IN_PROGRESS:
                return None
            self.remaining_seconds = max(self.remaining_seconds - 1, 0)
            if self.remaining_seconds == 0:
                logger.info("Time is up for %s on %s", self.user_id, self.course_id)
                return self._finish()
            return None

    def submit(self) -> TestAttemptResult:
        """Finish the test now. A session that already finished returns its result."""
        with self._lock:
            if self.state is SessionState.COMPLETED:
                return self.result
            return self._finish()

    def _finish(self) -> TestAttemptResult:
        # Caller holds the lock. The state only moves once a result exists;
        # a failing on_finish leaves the session in progress so submit can be retried.
        self.cancel()
        result = self._on_finish(self)
        self.result = result
        self.state = SessionState.COMPLETED
        return result

    def attach_timer(self, timer: "CountdownTimer") -> None:
        with self._lock:
            self._require_in_progress("start the countdown")
            self._timer = timer

    def cancel(self) -> None:
        """Stop the countdown without grading (leaving the test screen)."""
        timer = self._timer
        if timer is not None:
            timer.cancel()


class CountdownTimer:
    """Calls ``session.tick()`` once per interval on a daemon thread."""

    def __init__(self, session: TestSession, interval: float = 1.0):
        self.session = session
        self.interval = interval
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True, name="test-countdown")

    def start(self) -> "CountdownTimer":
        self.session.attach_timer(self)
        self._thread.start()
        return self

    def _run(self) -> None:
        while not self._stopped.wait(self.interval):
            self.session.tick()
            if self.session.is_completed:
                break
        self._stopped.set()

    def cancel(self) -> None:
        self._stopped.set()

    @property
    def cancelled(self) -> bool:
        return self._stopped.is_set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout)


def score_test(session: TestSession) -> TestAttemptResult:
    """Grade a session's answers. Unanswered questions count as wrong."""
    test = session.test
    validate_test(test)
    correct = sum(
        1 for i, q in enumerate(test.questions)
        if session.answers.get(i) == q.correct_answer_id
    )
    total = len(test.questions)
    score = round_half_up(correct / total * 100)
    return TestAttemptResult(
        score=score,
        total_questions=total,
        correct_answers=correct,
        passed=score >= MINIMUM_TEST_SCORE,
        time_spent_seconds=session.time_limit_seconds - session.remaining_seconds,
    )


def finish_test(db_path: str, session: TestSession) -> TestAttemptResult:
    """Grade, then save the attempt. Saving never hides the grade."""
    result = score_test(session)
    logger.info("Test for %s by %s scored %d%% (%s)", session.course_id, session.user_id,
                result.score, "passed" if result.passed else "failed")
    try:
        records.append_test_result(db_path, session.user_id, session.course_id, result)
    except StorePersistenceFailure:
        logger.warning("Test result for %s/%s was not saved", session.user_id, session.course_id)
    if result.passed and PROGRESS_SETTINGS["auto_mark_complete"]:
        try:
            update_progress(db_path, session.user_id, session.course_id, 100, completed=True)
        except StorePersistenceFailure:
            logger.warning("Course completion for %s/%s was not saved",
                           session.user_id, session.course_id)
    return result


def start_test(db_path: str, user_id: str, course_id: str, start_timer: bool = False,
               interval: float = 1.0) -> TestSession:
    test = get_test(db_path, course_id)
    session = TestSession(user_id, course_id, test, on_finish=partial(finish_test, db_path))
    if start_timer:
        CountdownTimer(session, interval=interval).start()
    logger.info("Started test %s for %s (%d questions, %d min)", test.id, user_id,
                len(test.questions), test.time_limit_minutes)
    return session


def format_time(seconds: int) -> str:
    minutes, secs = divmod(max(int(seconds), 0), 60)
    return f"{minutes}:{secs:02d}"
