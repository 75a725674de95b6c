import pytest

from exam_planner.cache import plan_cache


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_planner.db")
    return db_path


@pytest.fixture(autouse=True)
def clear_plan_cache():
    plan_cache.clear()
    yield
    plan_cache.clear()
