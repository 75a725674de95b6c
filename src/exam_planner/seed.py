"""Load course content (modules, items, flashcards, activities, mock exams) into the database."""
import json
from datetime import datetime, timedelta
from pathlib import Path

from loguru import logger

from exam_planner.db import get_connection

CONTENT_DIR = Path(__file__).parent / "content"
DEMO_COURSE_FILE = CONTENT_DIR / "demo_course.json"


def is_seeded(db_path: str, course_id: str) -> bool:
    """Check whether the course is already in the database."""
    conn = get_connection(db_path)
    row = conn.execute("SELECT 1 FROM courses WHERE id = ?", (course_id,)).fetchone()
    conn.close()
    return row is not None


def seed_course(db_path: str, data: dict) -> str:
    """Insert one course description (see content/demo_course.json). Returns the course id."""
    course = data["course"]
    course_id = course["id"]
    conn = get_connection(db_path)
    conn.execute(
        "INSERT OR IGNORE INTO courses (id, title, videos_enabled) VALUES (?, ?, ?)",
        (course_id, course["title"], int(course.get("videos_enabled", True))),
    )
    for position, module in enumerate(data["modules"], start=1):
        conn.execute(
            "INSERT OR IGNORE INTO modules (id, course_id, title, position) VALUES (?, ?, ?, ?)",
            (module["id"], course_id, module["title"], position),
        )
        for item_position, item in enumerate(module.get("content", []), start=1):
            conn.execute(
                "INSERT OR IGNORE INTO content_items (id, module_id, content_type, title, position) VALUES (?, ?, ?, ?, ?)",
                (item["id"], module["id"], item["type"], item["title"], item_position),
            )
            if item["type"] == "QUIZ":
                conn.execute(
                    "INSERT OR IGNORE INTO quizzes (id, course_id, content_item_id, title) VALUES (?, ?, ?, ?)",
                    (item["quiz_id"], course_id, item["id"], item["title"]),
                )
        for card in module.get("flashcards", []):
            conn.execute(
                "INSERT OR IGNORE INTO flashcards (id, course_id, module_id, front, back) VALUES (?, ?, ?, ?, ?)",
                (card["id"], course_id, module["id"], card["front"], card["back"]),
            )
        for activity in module.get("activities", []):
            conn.execute(
                """INSERT OR IGNORE INTO learning_activities
                (id, course_id, module_id, title, activity_type, instructions) VALUES (?, ?, ?, ?, ?, ?)""",
                (activity["id"], course_id, module["id"], activity["title"],
                 activity.get("activity_type"), activity.get("instructions")),
            )
    # Mock exams keep file order through created_at
    base = datetime(2024, 1, 1)
    for i, mock in enumerate(data.get("mock_exams", [])):
        conn.execute(
            "INSERT OR IGNORE INTO quizzes (id, course_id, title, is_mock_exam, created_at) VALUES (?, ?, ?, 1, ?)",
            (mock["id"], course_id, mock["title"], (base + timedelta(minutes=i)).isoformat()),
        )
    conn.commit()
    conn.close()
    logger.info("Seeded course {} with {} modules", course_id, len(data["modules"]))
    return course_id


def seed_demo_course(db_path: str) -> str:
    """Seed the bundled demo course unless it is already present."""
    data = json.loads(DEMO_COURSE_FILE.read_text(encoding="utf-8"))
    course_id = data["course"]["id"]
    if is_seeded(db_path, course_id):
        return course_id
    return seed_course(db_path, data)
