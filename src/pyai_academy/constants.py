"""Progress tracking settings and catalog constants."""

PROGRESS_SETTINGS = {
    "auto_mark_complete": True,
    "minimum_test_score": 70,  # percentage
    "lesson_weight": 0.7,
    "exercise_weight": 0.3,
    "hint_after_failed_attempts": 2,
}

MINIMUM_TEST_SCORE = PROGRESS_SETTINGS["minimum_test_score"]
LESSON_WEIGHT = PROGRESS_SETTINGS["lesson_weight"]
EXERCISE_WEIGHT = PROGRESS_SETTINGS["exercise_weight"]

CATEGORIES = {
    "python": "Python",
    "ai": "AI & ML",
    "data-science": "Data Science",
    "web": "Web Dev",
    "algorithms": "Algorithms",
}

LEVELS = ("beginner", "intermediate", "advanced")

USER_ROLES = ("free", "premium")
