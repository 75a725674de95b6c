"""Per-module learned status for a learner."""
from datetime import datetime

from exam_planner.db import get_connection
from exam_planner.models import LearnStatus, ModuleProgress


def ensure_module_progress(db_path: str, user_id: str, course_id: str, conn=None) -> int:
    """Create a NOT_LEARNED row for every module that has none. Returns rows created.

    Runs on ``conn`` when given so it can join a caller's transaction.
    """
    own = conn is None
    if own:
        conn = get_connection(db_path)
    cur = conn.execute(
        """INSERT OR IGNORE INTO module_progress (user_id, course_id, module_id, learn_status)
        SELECT ?, ?, id, ? FROM modules WHERE course_id = ?""",
        (user_id, course_id, LearnStatus.NOT_LEARNED.value, course_id),
    )
    created = cur.rowcount
    if own:
        conn.commit()
        conn.close()
    return created


def mark_module_learned(db_path: str, user_id: str, course_id: str, module_id: str,
                        learned: bool = True) -> None:
    status = LearnStatus.LEARNED if learned else LearnStatus.NOT_LEARNED
    learned_at = datetime.now().isoformat() if learned else None
    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO module_progress (user_id, course_id, module_id, learn_status, last_learned_at)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(user_id, module_id) DO UPDATE SET learn_status=?, last_learned_at=?""",
        (user_id, course_id, module_id, status.value, learned_at, status.value, learned_at),
    )
    conn.commit()
    conn.close()


def get_learned_module_ids(db_path: str, user_id: str, course_id: str) -> set[str]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT module_id FROM module_progress WHERE user_id = ? AND course_id = ? AND learn_status = ?",
        (user_id, course_id, LearnStatus.LEARNED.value),
    ).fetchall()
    conn.close()
    return {r["module_id"] for r in rows}


def get_module_progress(db_path: str, user_id: str, course_id: str) -> list[ModuleProgress]:
    """Progress rows in course order; modules without a row read as NOT_LEARNED."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT m.id AS module_id, mp.learn_status, mp.last_learned_at,
            mp.memory_strength, mp.error_rate
        FROM modules m
        LEFT JOIN module_progress mp ON mp.module_id = m.id AND mp.user_id = ?
        WHERE m.course_id = ?
        ORDER BY m.position""",
        (user_id, course_id),
    ).fetchall()
    conn.close()
    return [
        ModuleProgress(
            user_id=user_id,
            course_id=course_id,
            module_id=r["module_id"],
            learn_status=LearnStatus(r["learn_status"] or LearnStatus.NOT_LEARNED.value),
            last_learned_at=r["last_learned_at"],
            memory_strength=r["memory_strength"] or 0.0,
            error_rate=r["error_rate"] or 0.0,
        )
        for r in rows
    ]


def check_phase3_access(db_path: str, user_id: str, course_id: str) -> dict:
    """Practice unlocks once every module of the course is marked learned."""
    conn = get_connection(db_path)
    modules = conn.execute(
        "SELECT id, title, position FROM modules WHERE course_id = ? ORDER BY position",
        (course_id,),
    ).fetchall()
    conn.close()
    learned = get_learned_module_ids(db_path, user_id, course_id)
    unlearned = [dict(m) for m in modules if m["id"] not in learned]
    result = {
        "can_access": not unlearned,
        "learned_modules": len(modules) - len(unlearned),
        "total_modules": len(modules),
        "unlearned_modules": unlearned,
    }
    if unlearned:
        remaining = ", ".join(f"Module {m['position']}: {m['title']}" for m in unlearned)
        result["message"] = (
            f"Mark every module as learned to unlock Phase 3. Remaining modules: {remaining}"
        )
    return result
