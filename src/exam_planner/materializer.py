"""Persist generated blocks as plan entries.

Regeneration is a full replace: old entries are read, deleted, and the new
blocks inserted in batches, all inside one SQLite transaction so a reader never
sees a half-written plan. COMPLETED status is carried over by ``entry_key``.
"""
import json
import sqlite3
import threading
import weakref
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from loguru import logger

from exam_planner.cache import plan_cache
from exam_planner.config import get_settings
from exam_planner.db import get_connection
from exam_planner.errors import ConcurrentRegenerationError, EntryNotFoundError
from exam_planner.models import PlanEntry, PlanEntryStatus, StudyBlock, TaskType
from exam_planner.progress import ensure_module_progress

_registry_lock = threading.Lock()
# Entries drop out once no regeneration holds the lock
_regeneration_locks: weakref.WeakValueDictionary = weakref.WeakValueDictionary()


def _lock_for(user_id: str, course_id: str) -> threading.Lock:
    with _registry_lock:
        lock = _regeneration_locks.get((user_id, course_id))
        if lock is None:
            lock = threading.Lock()
            _regeneration_locks[(user_id, course_id)] = lock
        return lock


@dataclass
class MaterializeResult:
    expected: int
    inserted: int
    carried_completed: int
    failed_batches: int
    generation: int

    @property
    def complete(self) -> bool:
        return self.inserted == self.expected


def _entry_row(block: StudyBlock, user_id: str, course_id: str, generation: int,
               carried: Optional[sqlite3.Row], completed_at: str) -> tuple:
    if carried is not None:
        status, done_at, spent = PlanEntryStatus.COMPLETED.value, completed_at, carried["actual_time_spent_seconds"]
    else:
        status, done_at, spent = PlanEntryStatus.PENDING.value, None, None
    flashcards = json.dumps(block.target_flashcard_ids) if block.target_flashcard_ids is not None else None
    return (
        block.entry_key, generation, user_id, course_id, block.date.isoformat(),
        block.task_type.value, block.review_subtype.value if block.review_subtype else None,
        block.target_module_id, block.target_content_item_id, block.target_quiz_id,
        flashcards, block.estimated_blocks, block.order, int(block.is_off_platform),
        status, spent, done_at,
    )


_INSERT = """INSERT INTO plan_entries (
    entry_key, generation, user_id, course_id, date, task_type, review_subtype,
    target_module_id, target_content_item_id, target_quiz_id, target_flashcard_ids,
    estimated_blocks, position, is_off_platform, status, actual_time_spent_seconds, completed_at
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)"""


def _bump_generation(conn, user_id: str, course_id: str, expected_generation: Optional[int]) -> int:
    row = conn.execute(
        "SELECT plan_generation FROM course_settings WHERE user_id = ? AND course_id = ?",
        (user_id, course_id),
    ).fetchone()
    if row is None:
        return 0
    current = row["plan_generation"] or 0
    if expected_generation is not None and expected_generation != current:
        raise ConcurrentRegenerationError(user_id, course_id, expected_generation, current)
    cur = conn.execute(
        """UPDATE course_settings SET plan_generation = ?
        WHERE user_id = ? AND course_id = ? AND plan_generation = ?""",
        (current + 1, user_id, course_id, current),
    )
    if cur.rowcount != 1:
        raise ConcurrentRegenerationError(user_id, course_id, current, -1)
    return current + 1


def regenerate(
    db_path: str,
    user_id: str,
    course_id: str,
    blocks: list[StudyBlock],
    now: Optional[datetime] = None,
    expected_generation: Optional[int] = None,
    batch_size: Optional[int] = None,
) -> MaterializeResult:
    """Replace the learner's plan with ``blocks``.

    A batch that fails to insert is rolled back on its own and counted; the
    other batches still commit, so callers compare ``inserted`` with
    ``expected``. Raises ConcurrentRegenerationError when
    ``expected_generation`` no longer matches the stored plan generation.
    """
    now = now or datetime.now()
    batch_size = batch_size or get_settings().insert_batch_size
    completed_at = now.isoformat()

    with _lock_for(user_id, course_id):
        conn = get_connection(db_path, autocommit=True)
        try:
            conn.execute("BEGIN IMMEDIATE")
            generation = _bump_generation(conn, user_id, course_id, expected_generation)
            completed = {
                r["entry_key"]: r
                for r in conn.execute(
                    """SELECT entry_key, actual_time_spent_seconds FROM plan_entries
                    WHERE user_id = ? AND course_id = ? AND status = ?""",
                    (user_id, course_id, PlanEntryStatus.COMPLETED.value),
                )
            }
            conn.execute(
                "DELETE FROM plan_entries WHERE user_id = ? AND course_id = ?", (user_id, course_id)
            )

            inserted = carried = failed = 0
            for start in range(0, len(blocks), batch_size):
                batch = blocks[start:start + batch_size]
                rows = [
                    _entry_row(b, user_id, course_id, generation, completed.get(b.entry_key), completed_at)
                    for b in batch
                ]
                conn.execute("SAVEPOINT plan_batch")
                try:
                    conn.executemany(_INSERT, rows)
                except sqlite3.Error as exc:
                    conn.execute("ROLLBACK TO plan_batch")
                    conn.execute("RELEASE plan_batch")
                    failed += 1
                    logger.error(
                        "Plan batch {}-{} failed for {}/{}: {}",
                        start, start + len(batch), user_id, course_id, exc,
                    )
                    continue
                conn.execute("RELEASE plan_batch")
                inserted += len(rows)
                carried += sum(1 for b in batch if b.entry_key in completed)

            ensure_module_progress(db_path, user_id, course_id, conn=conn)
            conn.execute("COMMIT")
        except Exception:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    plan_cache.invalidate(user_id, course_id)
    result = MaterializeResult(
        expected=len(blocks), inserted=inserted, carried_completed=carried,
        failed_batches=failed, generation=generation,
    )
    if not result.complete:
        logger.warning(
            "Plan for {}/{} saved partially: {} of {} entries",
            user_id, course_id, inserted, len(blocks),
        )
    else:
        logger.info(
            "Plan for {}/{} saved: {} entries, {} completed carried over",
            user_id, course_id, inserted, carried,
        )
    return result


def get_plan_entries(
    db_path: str,
    user_id: str,
    course_id: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    task_type: Optional[TaskType] = None,
) -> list[PlanEntry]:
    """Entries between ``start`` and ``end`` inclusive, in plan order."""
    query = "SELECT * FROM plan_entries WHERE user_id = ? AND course_id = ?"
    params: list = [user_id, course_id]
    if start is not None:
        query += " AND date >= ?"
        params.append(start.isoformat())
    if end is not None:
        query += " AND date <= ?"
        params.append(end.isoformat())
    if task_type is not None:
        query += " AND task_type = ?"
        params.append(task_type.value)
    query += " ORDER BY date, position"
    conn = get_connection(db_path)
    rows = conn.execute(query, params).fetchall()
    conn.close()
    return [PlanEntry.from_row(r) for r in rows]


def update_entry_status(
    db_path: str,
    entry_id: int,
    status: PlanEntryStatus,
    actual_time_spent_seconds: Optional[int] = None,
    user_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> PlanEntry:
    """Set an entry's status; COMPLETED stamps ``completed_at``, anything else clears it."""
    status = PlanEntryStatus(status)
    conn = get_connection(db_path)
    query = "SELECT * FROM plan_entries WHERE id = ?"
    params: list = [entry_id]
    if user_id is not None:
        query += " AND user_id = ?"
        params.append(user_id)
    row = conn.execute(query, params).fetchone()
    if row is None:
        conn.close()
        raise EntryNotFoundError(entry_id)

    completed_at = (now or datetime.now()).isoformat() if status == PlanEntryStatus.COMPLETED else None
    spent = actual_time_spent_seconds if actual_time_spent_seconds is not None else row["actual_time_spent_seconds"]
    conn.execute(
        "UPDATE plan_entries SET status = ?, completed_at = ?, actual_time_spent_seconds = ? WHERE id = ?",
        (status.value, completed_at, spent, entry_id),
    )
    conn.commit()
    updated = conn.execute("SELECT * FROM plan_entries WHERE id = ?", (entry_id,)).fetchone()
    conn.close()
    plan_cache.invalidate(row["user_id"], row["course_id"])
    return PlanEntry.from_row(updated)
