from exam_planner.cache import PlanCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def counting_loader(calls, value="plan"):
    def load():
        calls.append(1)
        return value
    return load


def test_hit_until_ttl_expires():
    clock = FakeClock()
    cache = PlanCache(ttl_seconds=10, clock=clock)
    calls = []
    assert cache.get_or_load("u1", "c1", "today", counting_loader(calls)) == "plan"
    assert cache.get_or_load("u1", "c1", "today", counting_loader(calls)) == "plan"
    assert len(calls) == 1
    clock.now = 11
    cache.get_or_load("u1", "c1", "today", counting_loader(calls))
    assert len(calls) == 2


def test_extra_key_parts_are_separate_entries():
    cache = PlanCache(ttl_seconds=60)
    cache.get_or_load("u1", "c1", "today", lambda: "monday", "2025-01-06")
    assert cache.get_or_load("u1", "c1", "today", lambda: "tuesday", "2025-01-07") == "tuesday"
    assert cache.get_or_load("u1", "c1", "today", lambda: "other", "2025-01-06") == "monday"


def test_invalidate_only_touches_one_learner_course():
    cache = PlanCache(ttl_seconds=60)
    cache.get_or_load("u1", "c1", "settings", lambda: "a")
    cache.get_or_load("u2", "c1", "settings", lambda: "b")
    cache.invalidate("u1", "c1")
    assert cache.get_or_load("u1", "c1", "settings", lambda: "fresh") == "fresh"
    assert cache.get_or_load("u2", "c1", "settings", lambda: "fresh") == "b"


def test_zero_ttl_disables_caching():
    cache = PlanCache(ttl_seconds=0)
    calls = []
    cache.get_or_load("u1", "c1", "today", counting_loader(calls))
    cache.get_or_load("u1", "c1", "today", counting_loader(calls))
    assert len(calls) == 2


def test_loader_errors_are_not_cached():
    cache = PlanCache(ttl_seconds=60)

    def failing():
        raise RuntimeError("boom")

    try:
        cache.get_or_load("u1", "c1", "settings", failing)
    except RuntimeError:
        pass
    assert cache.get_or_load("u1", "c1", "settings", lambda: "ok") == "ok"
