"""Operations offered to callers (the terminal app, or any other front end).

Every function returns a dict with a ``success`` flag. Planner errors and
database errors are logged and reported as ``{"success": False, "error": ...}``
instead of being raised.
"""
import functools
import json
import random
import sqlite3
from dataclasses import asdict
from datetime import date, datetime
from typing import Optional

from loguru import logger

from exam_planner import materializer, progress, smart_review, weekly
from exam_planner.behind import detect_behind_schedule
from exam_planner.cache import plan_cache
from exam_planner.catalog import get_course_inventory, get_modules
from exam_planner.config import get_settings
from exam_planner.daily import build_todays_plan
from exam_planner.db import get_connection
from exam_planner.errors import PlanConfigError, PlannerError, SettingsNotFoundError
from exam_planner.feasibility import ensure_future_exam
from exam_planner.generator import generate_plan
from exam_planner.materializer import get_plan_entries, regenerate
from exam_planner.models import (
    PlanEntryStatus,
    ReviewDifficulty,
    SelfRating,
    StudyPlanConfig,
)
from exam_planner.timeline import (
    blocks_per_week,
    calculate_week1_start_date,
    week_bounds,
    week_number,
    weeks_until_exam,
)


def reported(failure: str):
    """Turn raised planner/database errors into a failure result."""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except PlannerError as exc:
                logger.warning("{}: {}", func.__name__, exc)
                return {"success": False, "error": str(exc)}
            except sqlite3.Error:
                logger.exception("{} failed", func.__name__)
                return {"success": False, "error": failure}
        return wrapper
    return decorator


def load_course_settings(db_path: str, user_id: str, course_id: str, fresh: bool = False) -> StudyPlanConfig:
    """Stored study-plan settings; raises SettingsNotFoundError when there are none."""
    def load():
        conn = get_connection(db_path)
        row = conn.execute(
            "SELECT * FROM course_settings WHERE user_id = ? AND course_id = ?", (user_id, course_id)
        ).fetchone()
        conn.close()
        if row is None:
            raise SettingsNotFoundError(user_id, course_id)
        return StudyPlanConfig.from_row(row)

    if fresh:
        return load()
    return plan_cache.get_or_load(user_id, course_id, "settings", load, db_path)


def _validate(exam_date: date, hours: float, days: Optional[list[int]], today: date) -> None:
    ensure_future_exam(exam_date, today)
    blocks_per_week(hours)
    if days is not None and any(d not in range(7) for d in days):
        raise PlanConfigError("Preferred study days must be weekday numbers from 0 (Monday) to 6 (Sunday).")


def _build_and_save(db_path: str, user_id: str, course_id: str, now: datetime) -> dict:
    config = load_course_settings(db_path, user_id, course_id, fresh=True)
    inventory = get_course_inventory(db_path, course_id)
    result = generate_plan(config, inventory, today=now.date(), block_minutes=get_settings().block_minutes)
    saved = regenerate(
        db_path, user_id, course_id, result.blocks, now=now,
        expected_generation=config.plan_generation,
    )
    summary = result.summary()
    summary["entries_expected"] = saved.expected
    summary["entries_saved"] = saved.inserted
    summary["completed_carried_over"] = saved.carried_completed
    if not saved.complete:
        summary["warnings"].append(
            f"Only {saved.inserted} of {saved.expected} plan entries were saved. Regenerate the plan to retry."
        )
    return summary


@reported("Error initializing settings")
def configure(
    db_path: str,
    user_id: str,
    course_id: str,
    exam_date: date,
    study_hours_per_week: float,
    self_rating: SelfRating,
    preferred_study_days: Optional[list[int]] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Save study settings and generate the plan.

    ``plan_created_at`` is set on first creation and kept afterwards so week
    numbers stay stable across regenerations. Until orientation is completed a
    reconfiguration counts as a first creation.
    """
    now = now or datetime.now()
    try:
        self_rating = SelfRating(self_rating)
    except ValueError:
        raise PlanConfigError(f"Unknown self rating: {self_rating}") from None
    _validate(exam_date, study_hours_per_week, preferred_study_days, now.date())

    conn = get_connection(db_path)
    if conn.execute("SELECT 1 FROM courses WHERE id = ?", (course_id,)).fetchone() is None:
        conn.close()
        raise PlannerError("Course not found")
    existing = conn.execute(
        "SELECT plan_created_at, orientation_completed FROM course_settings WHERE user_id = ? AND course_id = ?",
        (user_id, course_id),
    ).fetchone()
    is_first_creation = existing is None or not existing["orientation_completed"]
    created_at = now.isoformat() if is_first_creation else existing["plan_created_at"]
    days = json.dumps(sorted(set(preferred_study_days))) if preferred_study_days else None
    conn.execute(
        """INSERT INTO course_settings
        (user_id, course_id, exam_date, study_hours_per_week, self_rating, preferred_study_days, plan_created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(user_id, course_id) DO UPDATE SET
            exam_date = excluded.exam_date,
            study_hours_per_week = excluded.study_hours_per_week,
            self_rating = excluded.self_rating,
            preferred_study_days = excluded.preferred_study_days,
            plan_created_at = excluded.plan_created_at""",
        (user_id, course_id, exam_date.isoformat(), study_hours_per_week, self_rating.value, days, created_at),
    )
    conn.commit()
    conn.close()
    plan_cache.invalidate(user_id, course_id)
    logger.info("Saved study settings for {}/{} (first creation: {})", user_id, course_id, is_first_creation)

    summary = _build_and_save(db_path, user_id, course_id, now)
    config = load_course_settings(db_path, user_id, course_id)
    return {
        "success": True,
        "settings": asdict(config),
        "is_first_creation": is_first_creation,
        **summary,
    }


@reported("Error generating the plan")
def regenerate_plan(db_path: str, user_id: str, course_id: str, now: Optional[datetime] = None) -> dict:
    return {"success": True, **_build_and_save(db_path, user_id, course_id, now or datetime.now())}


@reported("Error retrieving settings")
def get_course_settings(db_path: str, user_id: str, course_id: str) -> dict:
    try:
        config = load_course_settings(db_path, user_id, course_id)
    except SettingsNotFoundError:
        return {"success": True, "settings": None}
    return {"success": True, "settings": asdict(config)}


@reported("Error updating")
def complete_orientation(db_path: str, user_id: str, course_id: str) -> dict:
    conn = get_connection(db_path)
    conn.execute(
        "UPDATE course_settings SET orientation_completed = 1 WHERE user_id = ? AND course_id = ?",
        (user_id, course_id),
    )
    conn.commit()
    conn.close()
    plan_cache.invalidate(user_id, course_id)
    return {"success": True}


@reported("Error retrieving today's plan")
def get_todays_plan(db_path: str, user_id: str, course_id: str, today: Optional[date] = None) -> dict:
    """Four sessions drawn from the current week's entries."""
    today = today or date.today()
    config = load_course_settings(db_path, user_id, course_id)

    def load():
        week1 = calculate_week1_start_date(config.plan_created_at)
        start, end = week_bounds(week1, week_number(today, week1))
        return build_todays_plan(
            get_plan_entries(db_path, user_id, course_id, start=start, end=end),
            progress.get_learned_module_ids(db_path, user_id, course_id),
            get_modules(db_path, course_id),
            limit=get_settings().max_daily_items,
        )

    plan = plan_cache.get_or_load(user_id, course_id, "todays_plan", load, db_path, today.isoformat())
    return {"success": True, **plan}


@reported("Error retrieving the weekly plan")
def get_weekly_plan(db_path: str, user_id: str, course_id: str, now: Optional[datetime] = None) -> dict:
    config = load_course_settings(db_path, user_id, course_id)
    weeks = weekly.get_weekly_plan(
        db_path, config,
        regenerate=lambda: _build_and_save(db_path, user_id, course_id, now or datetime.now()),
    )
    return {"success": True, "weeks": weeks}


@reported("Error updating the entry")
def update_entry_status(
    db_path: str,
    entry_id: int,
    status: PlanEntryStatus,
    actual_time_spent_seconds: Optional[int] = None,
    user_id: Optional[str] = None,
) -> dict:
    entry = materializer.update_entry_status(
        db_path, entry_id, status, actual_time_spent_seconds, user_id=user_id
    )
    return {"success": True, "entry": entry}


@reported("Error checking the plan")
def check_behind_schedule(db_path: str, user_id: str, course_id: str, today: Optional[date] = None) -> dict:
    today = today or date.today()
    try:
        config = load_course_settings(db_path, user_id, course_id)
    except SettingsNotFoundError:
        return {"success": True, "is_behind": False}

    inventory = get_course_inventory(db_path, course_id)
    todays = get_plan_entries(db_path, user_id, course_id, start=today, end=today)
    learned = progress.get_learned_module_ids(db_path, user_id, course_id)
    block_minutes = get_settings().block_minutes
    result = detect_behind_schedule(
        weeks_until_exam=weeks_until_exam(config.exam_date, config.plan_created_at),
        blocks_per_week=blocks_per_week(config.study_hours_per_week, block_minutes),
        minimum_study_time=inventory.minimum_study_time,
        pending_today=sum(1 for e in todays if e.status != PlanEntryStatus.COMPLETED),
        days_until_exam=(config.exam_date - today).days,
        unlearned_modules=sum(1 for m in inventory.modules if m.id not in learned),
        block_minutes=block_minutes,
    )
    return {"success": True, **result}


@reported("Error updating module progress")
def mark_module_learned(db_path: str, user_id: str, course_id: str, module_id: str,
                        learned: bool = True) -> dict:
    if not any(m["id"] == module_id for m in get_modules(db_path, course_id)):
        raise PlannerError("Module not found")
    progress.mark_module_learned(db_path, user_id, course_id, module_id, learned)
    plan_cache.invalidate(user_id, course_id)
    return {"success": True}


@reported("Error retrieving module progress")
def get_module_progress(db_path: str, user_id: str, course_id: str) -> dict:
    return {"success": True, "modules": progress.get_module_progress(db_path, user_id, course_id)}


@reported("Error checking access to Phase 3")
def check_phase3_access(db_path: str, user_id: str, course_id: str) -> dict:
    return {"success": True, **progress.check_phase3_access(db_path, user_id, course_id)}


@reported("Error retrieving the item")
def get_next_review_item(db_path: str, user_id: str, course_id: str,
                         rng: Optional[random.Random] = None) -> dict:
    result = smart_review.get_next_item(db_path, user_id, course_id, rng=rng)
    if not result["available"]:
        return {"success": False, "error": result["reason"]}
    return {"success": True, **result}


@reported("Error saving")
def rate_review_item(db_path: str, item_id: int, difficulty: ReviewDifficulty,
                     user_id: Optional[str] = None) -> dict:
    item = smart_review.rate_item(db_path, item_id, difficulty, user_id=user_id)
    return {"success": True, "item": item}


@reported("Error retrieving statistics")
def get_review_stats(db_path: str, user_id: str, course_id: str) -> dict:
    return {"success": True, **smart_review.get_review_stats(db_path, user_id, course_id)}
