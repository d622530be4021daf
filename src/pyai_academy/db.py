"""Database initialization and connection management."""
import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = str(Path.home() / ".pyai_academy" / "academy.db")

SCHEMA = """
CREATE TABLE IF NOT EXISTS courses (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT,
    category TEXT,
    level TEXT,
    duration TEXT,
    is_premium INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS lessons (
    id TEXT NOT NULL,
    course_id TEXT NOT NULL REFERENCES courses(id),
    title TEXT NOT NULL,
    position INTEGER NOT NULL,
    duration TEXT,
    PRIMARY KEY (course_id, id)
);

CREATE TABLE IF NOT EXISTS lesson_sections (
    id TEXT NOT NULL,
    course_id TEXT NOT NULL,
    lesson_id TEXT NOT NULL,
    title TEXT NOT NULL,
    kind TEXT NOT NULL DEFAULT 'text',
    body TEXT,
    video_url TEXT,
    code TEXT,
    position INTEGER NOT NULL,
    PRIMARY KEY (course_id, lesson_id, id),
    FOREIGN KEY (course_id, lesson_id) REFERENCES lessons(course_id, id)
);

CREATE TABLE IF NOT EXISTS exercises (
    id TEXT NOT NULL,
    course_id TEXT NOT NULL,
    lesson_id TEXT NOT NULL,
    title TEXT NOT NULL,
    instructions TEXT,
    starter_code TEXT,
    solution TEXT NOT NULL,
    hint TEXT,
    position INTEGER NOT NULL,
    PRIMARY KEY (course_id, lesson_id, id),
    FOREIGN KEY (course_id, lesson_id) REFERENCES lessons(course_id, id)
);

CREATE TABLE IF NOT EXISTS tests (
    id TEXT NOT NULL,
    course_id TEXT NOT NULL UNIQUE REFERENCES courses(id),
    title TEXT,
    time_limit_minutes INTEGER NOT NULL,
    PRIMARY KEY (course_id, id)
);

CREATE TABLE IF NOT EXISTS questions (
    id TEXT NOT NULL,
    course_id TEXT NOT NULL REFERENCES courses(id),
    prompt TEXT NOT NULL,
    code TEXT,
    correct_answer_id TEXT,
    position INTEGER NOT NULL,
    PRIMARY KEY (course_id, id)
);

CREATE TABLE IF NOT EXISTS answers (
    id TEXT NOT NULL,
    course_id TEXT NOT NULL,
    question_id TEXT NOT NULL,
    text TEXT NOT NULL,
    position INTEGER NOT NULL,
    PRIMARY KEY (course_id, question_id, id),
    FOREIGN KEY (course_id, question_id) REFERENCES questions(course_id, id)
);

CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    display_name TEXT NOT NULL,
    email TEXT,
    user_role TEXT NOT NULL DEFAULT 'free',
    created_at TEXT,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS course_progress (
    user_id TEXT NOT NULL REFERENCES users(id),
    course_id TEXT NOT NULL,
    progress_percent INTEGER NOT NULL DEFAULT 0,
    completed INTEGER NOT NULL DEFAULT 0,
    started_at TEXT,
    last_updated TEXT,
    completed_at TEXT,
    PRIMARY KEY (user_id, course_id)
);

CREATE TABLE IF NOT EXISTS exercise_completions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL REFERENCES users(id),
    course_id TEXT NOT NULL,
    lesson_id TEXT NOT NULL,
    exercise_id TEXT NOT NULL,
    code TEXT NOT NULL,
    is_correct INTEGER NOT NULL,
    attempts INTEGER NOT NULL,
    completed_at TEXT
);

CREATE TABLE IF NOT EXISTS test_results (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL REFERENCES users(id),
    course_id TEXT NOT NULL,
    score INTEGER NOT NULL,
    total_questions INTEGER NOT NULL,
    correct_answers INTEGER NOT NULL,
    passed INTEGER NOT NULL,
    time_spent_seconds INTEGER NOT NULL,
    completed_at TEXT
);

CREATE TABLE IF NOT EXISTS user_settings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL UNIQUE,
    value TEXT
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()
