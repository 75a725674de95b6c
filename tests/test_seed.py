from exam_planner.catalog import get_course, get_course_inventory, get_modules
from exam_planner.db import get_connection, init_db
from exam_planner.seed import is_seeded, seed_course, seed_demo_course


def test_seed_demo_course(tmp_db):
    init_db(tmp_db)
    assert not is_seeded(tmp_db, "demo-course")
    course_id = seed_demo_course(tmp_db)
    assert course_id == "demo-course"
    assert is_seeded(tmp_db, course_id)
    assert get_course(tmp_db, course_id)["videos_enabled"] == 1


def test_seed_demo_course_is_idempotent(tmp_db):
    init_db(tmp_db)
    seed_demo_course(tmp_db)
    seed_demo_course(tmp_db)
    conn = get_connection(tmp_db)
    assert conn.execute("SELECT COUNT(*) FROM modules").fetchone()[0] == 3
    assert conn.execute("SELECT COUNT(*) FROM flashcards").fetchone()[0] == 12
    conn.close()


def test_demo_inventory(tmp_db):
    init_db(tmp_db)
    seed_demo_course(tmp_db)
    inventory = get_course_inventory(tmp_db, "demo-course")
    assert [m.order for m in inventory.modules] == [1, 2, 3]
    for module in inventory.modules:
        assert (module.videos, module.notes, module.quizzes) == (1, 1, 1)
        assert len(module.flashcard_ids) == 4
        assert len(module.activity_ids) == 2
    assert [m.id for m in inventory.mock_exams] == ["demo-mock-1", "demo-mock-2", "demo-mock-3", "demo-mock-4"]
    assert inventory.minimum_study_time == 40
    assert inventory.total_flashcards == 12
    assert inventory.total_activities == 6


def test_mock_exams_are_not_module_quizzes(tmp_db):
    init_db(tmp_db)
    seed_demo_course(tmp_db)
    inventory = get_course_inventory(tmp_db, "demo-course")
    quiz_ids = {q for m in inventory.modules for q in m.quiz_ids}
    assert quiz_ids == {"demo-m1-quiz", "demo-m2-quiz", "demo-m3-quiz"}


def test_seed_course_without_videos(tmp_db):
    init_db(tmp_db)
    seed_course(tmp_db, {
        "course": {"id": "c2", "title": "Reading only", "videos_enabled": False},
        "modules": [{"id": "c2-m1", "title": "Only module", "content": []}],
    })
    inventory = get_course_inventory(tmp_db, "c2")
    assert inventory.videos_enabled is False
    assert inventory.mock_exams == []
    assert get_modules(tmp_db, "c2") == [{"id": "c2-m1", "title": "Only module", "position": 1}]
