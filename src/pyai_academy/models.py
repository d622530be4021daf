"""Data classes for the course catalog and learner records."""
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Answer:
    id: str
    text: str


@dataclass
class Question:
    id: str
    prompt: str
    answers: list[Answer]
    correct_answer_id: str
    code: Optional[str] = None
    position: int = 0

    def answer_ids(self) -> set[str]:
        return {a.id for a in self.answers}


@dataclass
class Test:
    __test__ = False  # not a pytest class

    id: str
    course_id: str
    time_limit_minutes: int
    questions: list[Question]
    title: str = ""

    @property
    def time_limit_seconds(self) -> int:
        return self.time_limit_minutes * 60


@dataclass
class Exercise:
    id: str
    lesson_id: str
    title: str
    solution: str
    hint: str = ""
    starter_code: str = ""
    instructions: str = ""
    position: int = 0


@dataclass
class LessonSection:
    id: str
    title: str
    kind: str  # text | video | code
    body: str = ""
    video_url: Optional[str] = None
    code: Optional[str] = None


@dataclass
class Lesson:
    id: str
    course_id: str
    title: str
    position: int
    exercises: list[Exercise] = field(default_factory=list)
    duration: str = ""
    sections: list[LessonSection] = field(default_factory=list)


@dataclass
class Course:
    id: str
    title: str
    is_premium: bool = False
    lessons: list[Lesson] = field(default_factory=list)
    description: str = ""
    category: str = ""
    level: str = ""
    duration: str = ""

    def lesson_index(self, lesson_id: str) -> int:
        """0-based position of a lesson in this course, or -1."""
        for i, lesson in enumerate(self.lessons):
            if lesson.id == lesson_id:
                return i
        return -1


@dataclass
class User:
    id: str
    display_name: str
    email: str = ""
    user_role: str = "free"

    @property
    def is_premium(self) -> bool:
        return self.user_role == "premium"


@dataclass
class CourseProgressRecord:
    user_id: str
    course_id: str
    progress_percent: int
    completed: bool = False
    last_updated: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None

    def __post_init__(self):
        if not 0 <= self.progress_percent <= 100:
            raise ValueError(f"progress_percent out of range: {self.progress_percent}")
        if self.completed and self.progress_percent != 100:
            raise ValueError("a completed course must be at 100%")


@dataclass
class ExerciseCompletionRecord:
    user_id: str
    course_id: str
    lesson_id: str
    exercise_id: str
    code: str
    is_correct: bool
    attempts: int
    completed_at: Optional[str] = None
    id: Optional[int] = None


@dataclass(frozen=True)
class TestAttemptResult:
    __test__ = False

    score: int
    total_questions: int
    correct_answers: int
    passed: bool
    time_spent_seconds: int
