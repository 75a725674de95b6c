from datetime import date

import pytest

from exam_planner.errors import PlanConfigError
from exam_planner.feasibility import analyze_feasibility, ensure_future_exam


def test_feasible_plan_has_no_warnings():
    report = analyze_feasibility(8, 12, 40)
    assert report.meets_minimum
    assert report.blocks_available == 96
    assert report.warnings == []
    assert "required_hours_per_week" not in report.as_dict()


def test_small_shortfall_warns_without_required_hours():
    report = analyze_feasibility(3, 12, 40)
    assert not report.meets_minimum
    assert report.deficit == 4
    assert len(report.warnings) == 1
    assert report.required_hours_per_week is None


def test_severe_shortfall_suggests_hours_and_date_change():
    report = analyze_feasibility(2, 2, 40)
    assert not report.meets_minimum
    assert report.required_hours_per_week == 10
    assert report.suggest_change_exam_date
    summary = report.as_dict()
    assert summary["required_hours_per_week"] == 10
    assert summary["suggest_change_exam_date"] is True


def test_learn_pass_that_does_not_fit_is_severe():
    # Enough blocks overall, but 24 learn blocks cannot fit in one week at 4 per week
    report = analyze_feasibility(3, 6, 12, learn_blocks=24, learn_weeks=1, learn_share=0.7)
    assert report.meets_minimum
    assert report.required_hours_per_week == 18
    assert any("Phase 1" in w for w in report.warnings)


def test_long_horizon_advisory():
    report = analyze_feasibility(20, 12, 40)
    assert report.meets_minimum
    assert any("8 to 12 weeks" in w for w in report.warnings)


def test_meets_minimum_is_monotonic():
    minimum = 40
    for weeks in range(1, 12):
        for per_week in range(1, 20):
            report = analyze_feasibility(weeks, per_week, minimum)
            assert report.meets_minimum == (weeks * per_week >= minimum)
            if report.meets_minimum:
                assert analyze_feasibility(weeks + 1, per_week, minimum).meets_minimum
                assert analyze_feasibility(weeks, per_week + 1, minimum).meets_minimum


def test_ensure_future_exam():
    ensure_future_exam(date(2025, 1, 7), date(2025, 1, 6))
    with pytest.raises(PlanConfigError):
        ensure_future_exam(date(2025, 1, 6), date(2025, 1, 6))
