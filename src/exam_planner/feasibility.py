"""Compare the study time a learner has against what the course needs."""
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from exam_planner.errors import PlanConfigError
from exam_planner.timeline import hours_for_blocks

RECOMMENDED_MAX_WEEKS = 15


@dataclass
class FeasibilityReport:
    weeks_until_exam: int
    blocks_per_week: int
    blocks_available: int
    minimum_study_time: int
    meets_minimum: bool
    deficit: int = 0
    warnings: list[str] = field(default_factory=list)
    required_hours_per_week: Optional[int] = None
    suggest_change_exam_date: bool = False

    def as_dict(self) -> dict:
        result = {
            "warnings": list(self.warnings),
            "minimum_study_time": self.minimum_study_time,
            "blocks_available": self.blocks_available,
            "meets_minimum": self.meets_minimum,
        }
        if self.required_hours_per_week is not None:
            result["required_hours_per_week"] = self.required_hours_per_week
            result["suggest_change_exam_date"] = self.suggest_change_exam_date
        return result


def ensure_future_exam(exam_date: date, today: date) -> None:
    if exam_date <= today:
        raise PlanConfigError("The exam date must be in the future. Please select another date.")


def analyze_feasibility(
    weeks_until_exam: int,
    blocks_per_week: int,
    minimum_study_time: int,
    learn_blocks: int = 0,
    learn_weeks: int = 0,
    learn_share: float = 1.0,
    block_minutes: int = 30,
) -> FeasibilityReport:
    """Check blocks available against the minimum the course requires.

    The deficit is severe when the learning pass cannot fit into the Learn
    weeks at the Learn share of the weekly budget, or when the shortfall is
    larger than a full week of study; only then are a required weekly figure
    and an exam-date change suggested.
    """
    blocks_available = weeks_until_exam * blocks_per_week
    report = FeasibilityReport(
        weeks_until_exam=weeks_until_exam,
        blocks_per_week=blocks_per_week,
        blocks_available=blocks_available,
        minimum_study_time=minimum_study_time,
        meets_minimum=blocks_available >= minimum_study_time,
    )

    required_blocks = 0
    if not report.meets_minimum:
        report.deficit = minimum_study_time - blocks_available
        report.warnings.append(
            f"Insufficient study time. Minimum required: {minimum_study_time} blocks, "
            f"available: {blocks_available} blocks ({report.deficit} blocks short)."
        )
        if report.deficit >= blocks_per_week:
            required_blocks = math.ceil(minimum_study_time / weeks_until_exam)

    learn_capacity = max(1, math.floor(blocks_per_week * learn_share))
    if learn_weeks > 0 and learn_blocks > learn_capacity * learn_weeks:
        needed_per_week = math.ceil(learn_blocks / learn_weeks)
        required_blocks = max(required_blocks, math.ceil(needed_per_week / learn_share))
        report.warnings.append(
            f"You need {hours_for_blocks(required_blocks, block_minutes)} hours/week to complete Phase 1."
        )

    if required_blocks:
        report.required_hours_per_week = hours_for_blocks(required_blocks, block_minutes)
        report.suggest_change_exam_date = True
        report.warnings.append(
            f"Consider increasing your study hours to {report.required_hours_per_week} hours/week "
            "or adjusting your exam date."
        )

    if weeks_until_exam > RECOMMENDED_MAX_WEEKS:
        report.warnings.append(
            "Consider 8 to 12 weeks for best results. You can change your exam date "
            "or continue with the current date."
        )
    return report
