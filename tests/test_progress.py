from exam_planner.db import init_db
from exam_planner.models import LearnStatus
from exam_planner.progress import (
    check_phase3_access,
    ensure_module_progress,
    get_learned_module_ids,
    get_module_progress,
    mark_module_learned,
)
from exam_planner.seed import seed_demo_course


def setup_course(db_path):
    init_db(db_path)
    seed_demo_course(db_path)


def test_ensure_module_progress_creates_rows_once(tmp_db):
    setup_course(tmp_db)
    assert ensure_module_progress(tmp_db, "u1", "demo-course") == 3
    assert ensure_module_progress(tmp_db, "u1", "demo-course") == 0


def test_progress_defaults_to_not_learned(tmp_db):
    setup_course(tmp_db)
    rows = get_module_progress(tmp_db, "u1", "demo-course")
    assert [r.module_id for r in rows] == ["demo-m1", "demo-m2", "demo-m3"]
    assert all(r.learn_status == LearnStatus.NOT_LEARNED for r in rows)


def test_mark_and_unmark(tmp_db):
    setup_course(tmp_db)
    ensure_module_progress(tmp_db, "u1", "demo-course")
    mark_module_learned(tmp_db, "u1", "demo-course", "demo-m2")
    assert get_learned_module_ids(tmp_db, "u1", "demo-course") == {"demo-m2"}
    rows = get_module_progress(tmp_db, "u1", "demo-course")
    assert rows[1].last_learned_at is not None

    mark_module_learned(tmp_db, "u1", "demo-course", "demo-m2", learned=False)
    assert get_learned_module_ids(tmp_db, "u1", "demo-course") == set()


def test_progress_is_per_learner(tmp_db):
    setup_course(tmp_db)
    mark_module_learned(tmp_db, "u1", "demo-course", "demo-m1")
    assert get_learned_module_ids(tmp_db, "u2", "demo-course") == set()


def test_phase3_gate_lists_remaining_modules(tmp_db):
    setup_course(tmp_db)
    mark_module_learned(tmp_db, "u1", "demo-course", "demo-m1")
    gate = check_phase3_access(tmp_db, "u1", "demo-course")
    assert not gate["can_access"]
    assert gate["learned_modules"] == 1
    assert [m["id"] for m in gate["unlearned_modules"]] == ["demo-m2", "demo-m3"]
    assert "Module 2: Scope and Schedule" in gate["message"]
