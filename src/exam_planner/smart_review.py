"""Smart review: serve flashcards and activities from unlocked modules.

Unseen items are served first so every item comes up once before any repeat.
After that, items are drawn at random in proportion to their weight, which the
learner's last rating sets.
"""
import random
from datetime import datetime
from typing import Optional, Sequence, TypeVar

from loguru import logger

from exam_planner.cache import plan_cache
from exam_planner.db import get_connection
from exam_planner.errors import ReviewItemNotFoundError
from exam_planner.models import ReviewDifficulty, ReviewItemType, SmartReviewItem, SmartReviewProgress
from exam_planner.progress import get_learned_module_ids

DIFFICULTY_WEIGHTS = {
    ReviewDifficulty.EASY: 0.5,
    ReviewDifficulty.MEDIUM: 1.0,
    ReviewDifficulty.HARD: 1.3,
}
NO_ITEMS_AVAILABLE = "No items available for review"

T = TypeVar("T")


def get_completed_module_ids(db_path: str, user_id: str, course_id: str) -> list[str]:
    """Modules open for review: the learned ones plus the first module of the course."""
    conn = get_connection(db_path)
    modules = conn.execute(
        "SELECT id FROM modules WHERE course_id = ? ORDER BY position", (course_id,)
    ).fetchall()
    conn.close()
    if not modules:
        return []
    unlocked = get_learned_module_ids(db_path, user_id, course_id)
    unlocked.add(modules[0]["id"])
    return [m["id"] for m in modules if m["id"] in unlocked]


def weighted_random_select(items: Sequence[T], rng: Optional[random.Random] = None, weight=None) -> Optional[T]:
    """Pick one item with probability proportional to its weight."""
    if not items:
        return None
    rng = rng or random.Random()
    weight = weight or (lambda item: item.probability_weight)
    point = rng.random() * sum(weight(i) for i in items)
    for item in items:
        point -= weight(item)
        if point <= 0:
            return item
    return items[-1]


def _placeholders(values) -> str:
    return ",".join("?" for _ in values)


def _unseen_candidates(conn, user_id: str, course_id: str, module_ids: list[str]) -> list[tuple]:
    marks = _placeholders(module_ids)
    flashcards = conn.execute(
        f"""SELECT f.id, f.module_id FROM flashcards f
        WHERE f.course_id = ? AND f.module_id IN ({marks})
          AND NOT EXISTS (SELECT 1 FROM smart_review_items s
                          WHERE s.user_id = ? AND s.flashcard_id = f.id)
        ORDER BY f.id""",
        (course_id, *module_ids, user_id),
    ).fetchall()
    activities = conn.execute(
        f"""SELECT a.id, a.module_id FROM learning_activities a
        WHERE a.course_id = ? AND a.module_id IN ({marks})
          AND NOT EXISTS (SELECT 1 FROM smart_review_items s
                          WHERE s.user_id = ? AND s.learning_activity_id = a.id)
        ORDER BY a.id""",
        (course_id, *module_ids, user_id),
    ).fetchall()
    return (
        [(ReviewItemType.FLASHCARD, r["id"], r["module_id"]) for r in flashcards]
        + [(ReviewItemType.ACTIVITY, r["id"], r["module_id"]) for r in activities]
    )


def _record_progress(conn, user_id: str, course_id: str, item_id: int) -> None:
    conn.execute(
        """INSERT INTO smart_review_progress (user_id, course_id, total_items_reviewed, last_item_id)
        VALUES (?, ?, 1, ?)
        ON CONFLICT(user_id, course_id) DO UPDATE SET
            total_items_reviewed = total_items_reviewed + 1, last_item_id = excluded.last_item_id""",
        (user_id, course_id, item_id),
    )


def _item_content(conn, item: SmartReviewItem) -> dict:
    if item.item_type == ReviewItemType.FLASHCARD:
        row = conn.execute(
            "SELECT id, front, back FROM flashcards WHERE id = ?", (item.flashcard_id,)
        ).fetchone()
    else:
        row = conn.execute(
            "SELECT id, title, activity_type, instructions FROM learning_activities WHERE id = ?",
            (item.learning_activity_id,),
        ).fetchone()
    return dict(row) if row else {}


def get_next_item(
    db_path: str,
    user_id: str,
    course_id: str,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Serve the next review item and count it as reviewed.

    Returns ``{"available": False, "reason": ...}`` when no module is unlocked
    or the unlocked modules have nothing to review.
    """
    rng = rng or random.Random()
    served_at = (now or datetime.now()).isoformat()
    module_ids = get_completed_module_ids(db_path, user_id, course_id)
    if not module_ids:
        return {"available": False, "reason": NO_ITEMS_AVAILABLE}

    conn = get_connection(db_path)
    unseen = _unseen_candidates(conn, user_id, course_id, module_ids)
    if unseen:
        item_type, ref_id, module_id = unseen[rng.randrange(len(unseen))]
        column = "flashcard_id" if item_type == ReviewItemType.FLASHCARD else "learning_activity_id"
        cur = conn.execute(
            f"""INSERT INTO smart_review_items
            (user_id, course_id, module_id, item_type, {column}, times_served, last_served_at)
            VALUES (?, ?, ?, ?, ?, 1, ?)""",
            (user_id, course_id, module_id, item_type.value, ref_id, served_at),
        )
        item_id = cur.lastrowid
    else:
        rows = conn.execute(
            f"""SELECT * FROM smart_review_items
            WHERE user_id = ? AND course_id = ? AND module_id IN ({_placeholders(module_ids)})
            ORDER BY id""",
            (user_id, course_id, *module_ids),
        ).fetchall()
        chosen = weighted_random_select([SmartReviewItem.from_row(r) for r in rows], rng)
        if chosen is None:
            conn.close()
            return {"available": False, "reason": NO_ITEMS_AVAILABLE}
        item_id = chosen.id
        conn.execute(
            "UPDATE smart_review_items SET times_served = times_served + 1, last_served_at = ? WHERE id = ?",
            (served_at, item_id),
        )

    _record_progress(conn, user_id, course_id, item_id)
    conn.commit()
    item = SmartReviewItem.from_row(
        conn.execute("SELECT * FROM smart_review_items WHERE id = ?", (item_id,)).fetchone()
    )
    content = _item_content(conn, item)
    module = conn.execute(
        "SELECT id, title, position FROM modules WHERE id = ?", (item.module_id,)
    ).fetchone()
    conn.close()
    logger.debug("Served review item {} ({}) to {}", item.id, "unseen" if unseen else "weighted", user_id)
    plan_cache.invalidate(user_id, course_id)
    return {
        "available": True,
        "item": item,
        "content": content,
        "module": dict(module) if module else None,
        "first_time": bool(unseen),
    }


def rate_item(db_path: str, item_id: int, difficulty: ReviewDifficulty,
              user_id: Optional[str] = None) -> SmartReviewItem:
    """Overwrite the item's weight with the one for ``difficulty``."""
    difficulty = ReviewDifficulty(difficulty)
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM smart_review_items WHERE id = ?", (item_id,)).fetchone()
    if row is None or (user_id is not None and row["user_id"] != user_id):
        conn.close()
        raise ReviewItemNotFoundError(item_id)
    conn.execute(
        "UPDATE smart_review_items SET last_difficulty = ?, probability_weight = ? WHERE id = ?",
        (difficulty.value, DIFFICULTY_WEIGHTS[difficulty], item_id),
    )
    conn.commit()
    updated = conn.execute("SELECT * FROM smart_review_items WHERE id = ?", (item_id,)).fetchone()
    conn.close()
    plan_cache.invalidate(row["user_id"], row["course_id"])
    return SmartReviewItem.from_row(updated)


def get_review_progress(db_path: str, user_id: str, course_id: str) -> SmartReviewProgress:
    conn = get_connection(db_path)
    row = conn.execute(
        "SELECT * FROM smart_review_progress WHERE user_id = ? AND course_id = ?", (user_id, course_id)
    ).fetchone()
    conn.close()
    if row is None:
        return SmartReviewProgress(user_id=user_id, course_id=course_id)
    return SmartReviewProgress(
        user_id=user_id,
        course_id=course_id,
        total_items_reviewed=row["total_items_reviewed"],
        last_item_id=row["last_item_id"],
    )


def get_review_stats(db_path: str, user_id: str, course_id: str) -> dict:
    """Items reviewed so far and, per unlocked module, reviewed vs available counts."""
    unlocked = get_completed_module_ids(db_path, user_id, course_id)
    conn = get_connection(db_path)
    chapters = []
    for module_id in unlocked:
        module = conn.execute("SELECT id, title, position FROM modules WHERE id = ?", (module_id,)).fetchone()
        reviewed = conn.execute(
            """SELECT item_type, COUNT(*) AS n FROM smart_review_items
            WHERE user_id = ? AND module_id = ? AND times_served > 0
            GROUP BY item_type""",
            (user_id, module_id),
        ).fetchall()
        counts = {r["item_type"]: r["n"] for r in reviewed}
        chapters.append({
            "module_id": module_id,
            "module_title": module["title"],
            "module_order": module["position"],
            "flashcards_reviewed": counts.get(ReviewItemType.FLASHCARD.value, 0),
            "activities_reviewed": counts.get(ReviewItemType.ACTIVITY.value, 0),
            "total_flashcards": conn.execute(
                "SELECT COUNT(*) FROM flashcards WHERE module_id = ?", (module_id,)
            ).fetchone()[0],
            "total_activities": conn.execute(
                "SELECT COUNT(*) FROM learning_activities WHERE module_id = ?", (module_id,)
            ).fetchone()[0],
        })
    conn.close()
    return {
        "total_items_reviewed": get_review_progress(db_path, user_id, course_id).total_items_reviewed,
        "chapter_stats": chapters,
        "completed_chapters": unlocked,
    }
