"""End-to-end test of the core workflow."""
import random
from datetime import date, datetime

from exam_planner import planner
from exam_planner.daily import SECTION_KEYS, SESSION_COURTE
from exam_planner.db import init_db
from exam_planner.models import PlanEntryStatus, SelfRating
from exam_planner.seed import seed_demo_course

PLAN_START = datetime(2025, 1, 6, 9, 0)
EXAM_DATE = date(2025, 3, 3)


def test_full_study_workflow(tmp_db):
    """Configure a plan, study for a day, review, and check progress."""
    init_db(tmp_db)
    course_id = seed_demo_course(tmp_db)

    # Setup
    setup = planner.configure(tmp_db, "u1", course_id, EXAM_DATE, 6, SelfRating.MEDIUM, now=PLAN_START)
    assert setup["success"] and setup["is_first_creation"]
    planner.complete_orientation(tmp_db, "u1", course_id)

    # Day 1
    today = planner.get_todays_plan(tmp_db, "u1", course_id, today=date(2025, 1, 6))
    assert today["phase1_module"]["id"] == "demo-m1"
    first = today["sections"][SESSION_COURTE][0]
    done = planner.update_entry_status(tmp_db, first.id, PlanEntryStatus.COMPLETED, 900, user_id="u1")
    assert done["entry"].status == PlanEntryStatus.COMPLETED

    # Completion shows on the weekly view and survives regeneration
    weeks = planner.get_weekly_plan(tmp_db, "u1", course_id, now=PLAN_START)["weeks"]
    assert weeks[0].completed_tasks == 1
    regen = planner.regenerate_plan(tmp_db, "u1", course_id, now=PLAN_START)
    assert regen["completed_carried_over"] == 1

    # Cached daily plan reflects the status change
    today = planner.get_todays_plan(tmp_db, "u1", course_id, today=date(2025, 1, 6))
    statuses = {e.status for key in SECTION_KEYS for e in today["sections"][key]}
    assert PlanEntryStatus.COMPLETED in statuses

    # Learn the first module, then review
    planner.mark_module_learned(tmp_db, "u1", course_id, "demo-m1")
    rng = random.Random(11)
    for _ in range(4):
        item = planner.get_next_review_item(tmp_db, "u1", course_id, rng=rng)
        planner.rate_review_item(tmp_db, item["item"].id, "EASY", user_id="u1")
    stats = planner.get_review_stats(tmp_db, "u1", course_id)
    assert stats["total_items_reviewed"] == 4

    # Progress
    gate = planner.check_phase3_access(tmp_db, "u1", course_id)
    assert gate["learned_modules"] == 1 and not gate["can_access"]
    behind = planner.check_behind_schedule(tmp_db, "u1", course_id, today=date(2025, 1, 6))
    assert behind["success"] and not behind["is_behind"]
