from exam_planner.behind import capacity_shortfall, detect_behind_schedule, pace_shortfall


def test_on_track():
    result = detect_behind_schedule(8, 12, 40, pending_today=1, days_until_exam=50)
    assert result == {"is_behind": False}


def test_capacity_check_suggests_extra_hours():
    result = detect_behind_schedule(2, 12, 40, pending_today=0, days_until_exam=14)
    assert result["is_behind"]
    assert result["checks"] == ["capacity"]
    # deficit 16 blocks -> 8 extra hours
    assert "Increase your study time by 8 hours per week" in result["suggestions"]


def test_pace_check_needs_pending_work_and_little_time():
    assert pace_shortfall(3, 20, 8, 0) is not None
    assert pace_shortfall(2, 20, 8, 0) is None
    assert pace_shortfall(3, 28, 8, 0) is None


def test_pace_check_mentions_unlearned_modules():
    finding = pace_shortfall(4, 10, 8, unlearned_modules=2)
    assert finding["suggestions"][0].startswith("Mark 2 module(s)")
    assert "4 pending" in finding["warning"]


def test_both_checks_are_reported():
    result = detect_behind_schedule(2, 12, 40, pending_today=5, days_until_exam=5, unlearned_modules=1)
    assert result["checks"] == ["capacity", "pace"]
    assert "Insufficient study time" in result["warning"]
    assert "pending task" in result["warning"]
    assert result["unlearned_modules"] == 1
    assert len(result["suggestions"]) == len(set(result["suggestions"]))


def test_capacity_shortfall_none_when_enough():
    assert capacity_shortfall(40, 40) is None


def test_capacity_suggestion_follows_block_length():
    result = detect_behind_schedule(2, 12, 40, pending_today=0, days_until_exam=14, block_minutes=60)
    assert result["suggestions"][0] == "Increase your study time by 16 hours per week"
    shortfall = capacity_shortfall(24, 40, block_minutes=45)
    assert shortfall["suggestions"][0] == "Increase your study time by 12 hours per week"
