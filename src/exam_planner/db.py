"""Database initialization and connection management."""
import sqlite3
from pathlib import Path

from exam_planner.config import DEFAULT_DB_PATH

SCHEMA = """
CREATE TABLE IF NOT EXISTS courses (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    videos_enabled INTEGER DEFAULT 1
);

CREATE TABLE IF NOT EXISTS modules (
    id TEXT PRIMARY KEY,
    course_id TEXT NOT NULL REFERENCES courses(id),
    title TEXT NOT NULL,
    position INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS content_items (
    id TEXT PRIMARY KEY,
    module_id TEXT NOT NULL REFERENCES modules(id),
    content_type TEXT NOT NULL,
    title TEXT,
    position INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS quizzes (
    id TEXT PRIMARY KEY,
    course_id TEXT NOT NULL REFERENCES courses(id),
    content_item_id TEXT REFERENCES content_items(id),
    title TEXT NOT NULL,
    is_mock_exam INTEGER DEFAULT 0,
    passing_score INTEGER DEFAULT 70,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS flashcards (
    id TEXT PRIMARY KEY,
    course_id TEXT NOT NULL REFERENCES courses(id),
    module_id TEXT REFERENCES modules(id),
    front TEXT NOT NULL,
    back TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS learning_activities (
    id TEXT PRIMARY KEY,
    course_id TEXT NOT NULL REFERENCES courses(id),
    module_id TEXT REFERENCES modules(id),
    title TEXT NOT NULL,
    activity_type TEXT,
    instructions TEXT
);

CREATE TABLE IF NOT EXISTS course_settings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    course_id TEXT NOT NULL REFERENCES courses(id),
    exam_date TEXT NOT NULL,
    study_hours_per_week REAL NOT NULL,
    self_rating TEXT NOT NULL,
    preferred_study_days TEXT,
    plan_created_at TEXT NOT NULL,
    plan_generation INTEGER DEFAULT 0,
    orientation_completed INTEGER DEFAULT 0,
    UNIQUE(user_id, course_id)
);

CREATE TABLE IF NOT EXISTS plan_entries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    entry_key TEXT NOT NULL,
    generation INTEGER NOT NULL DEFAULT 0,
    user_id TEXT NOT NULL,
    course_id TEXT NOT NULL,
    date TEXT NOT NULL,
    task_type TEXT NOT NULL,
    review_subtype TEXT,
    target_module_id TEXT,
    target_content_item_id TEXT,
    target_quiz_id TEXT,
    target_flashcard_ids TEXT,
    estimated_blocks INTEGER NOT NULL,
    position INTEGER NOT NULL,
    is_off_platform INTEGER DEFAULT 0,
    status TEXT DEFAULT 'PENDING',
    actual_time_spent_seconds INTEGER,
    completed_at TEXT,
    UNIQUE(user_id, course_id, entry_key)
);

CREATE INDEX IF NOT EXISTS idx_plan_entries_owner_date
    ON plan_entries (user_id, course_id, date);

CREATE TABLE IF NOT EXISTS module_progress (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    course_id TEXT NOT NULL,
    module_id TEXT NOT NULL REFERENCES modules(id),
    learn_status TEXT DEFAULT 'NOT_LEARNED',
    last_learned_at TEXT,
    memory_strength REAL DEFAULT 0,
    error_rate REAL DEFAULT 0,
    UNIQUE(user_id, module_id)
);

CREATE TABLE IF NOT EXISTS smart_review_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    course_id TEXT NOT NULL,
    module_id TEXT NOT NULL,
    item_type TEXT NOT NULL,
    flashcard_id TEXT REFERENCES flashcards(id),
    learning_activity_id TEXT REFERENCES learning_activities(id),
    times_served INTEGER DEFAULT 0,
    last_difficulty TEXT,
    probability_weight REAL DEFAULT 1.0,
    last_served_at TEXT,
    UNIQUE(user_id, flashcard_id),
    UNIQUE(user_id, learning_activity_id),
    CHECK ((flashcard_id IS NULL) != (learning_activity_id IS NULL))
);

CREATE TABLE IF NOT EXISTS smart_review_progress (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    course_id TEXT NOT NULL,
    total_items_reviewed INTEGER DEFAULT 0,
    last_item_id INTEGER,
    UNIQUE(user_id, course_id)
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH, autocommit: bool = False) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled.

    With ``autocommit=True`` the caller drives transactions explicitly
    (``BEGIN IMMEDIATE`` / ``SAVEPOINT``).
    """
    conn = sqlite3.connect(db_path, isolation_level=None if autocommit else "")
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
