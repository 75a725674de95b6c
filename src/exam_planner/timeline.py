"""Week arithmetic and the three-phase split of the time before an exam."""
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from exam_planner.errors import PlanConfigError

# Final weeks held back for practice exams when the horizon allows it
PRACTICE_RESERVED_WEEKS = 2
# Below this many weeks there is no learning pass at all
MIN_WEEKS_FOR_PHASE1 = 2


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def weeks_until_exam(exam_date: date | datetime, anchor_date: date | datetime) -> int:
    """Whole weeks (rounded up) between the anchor and the exam."""
    days = (_as_date(exam_date) - _as_date(anchor_date)).days
    if days <= 0:
        raise PlanConfigError("The exam date must be in the future. Please select another date.")
    return math.ceil(days / 7)


def blocks_per_week(study_hours_per_week: float, block_minutes: int = 30) -> int:
    if study_hours_per_week <= 0:
        raise PlanConfigError("Study hours per week must be positive.")
    return max(1, int(study_hours_per_week * 60 // block_minutes))


def hours_for_blocks(blocks: int, block_minutes: int = 30) -> int:
    """Inverse of blocks_per_week, rounded up to whole hours."""
    return math.ceil(blocks * block_minutes / 60)


@dataclass(frozen=True)
class PhaseDistribution:
    weeks_until_exam: int
    omit_phase1: bool
    learn_weeks: int
    review_start_week: int
    review_end_week: int
    practice_start_week: int
    practice_end_week: int
    practice_reserved: bool

    @property
    def phase1_end_week(self) -> Optional[int]:
        return self.learn_weeks or None

    def is_learn_week(self, week: int) -> bool:
        return 1 <= week <= self.learn_weeks

    def is_review_week(self, week: int) -> bool:
        return self.review_start_week <= week <= self.review_end_week

    def is_practice_week(self, week: int) -> bool:
        return self.practice_start_week <= week <= self.practice_end_week

    @property
    def shared_review_practice(self) -> bool:
        """Phase 3 has no window of its own and shares Phase 2's weeks."""
        return not self.practice_reserved


def phase_distribution(weeks: int) -> PhaseDistribution:
    """Split the horizon into Learn / Review / Practice weeks.

    * 3+ weeks: the last two weeks are Practice only; Learn and Review run in
      weeks 1..N-2.
    * 2 weeks: nothing is reserved; Learn gets week 1 and Practice shares
      Review's window (weeks 1..2).
    * 1 week: Learn is omitted, Review and Practice split week 1.
    """
    if weeks < 1:
        raise PlanConfigError("The exam date must be in the future. Please select another date.")
    if weeks > PRACTICE_RESERVED_WEEKS:
        last_study_week = weeks - PRACTICE_RESERVED_WEEKS
        return PhaseDistribution(
            weeks_until_exam=weeks,
            omit_phase1=False,
            learn_weeks=last_study_week,
            review_start_week=1,
            review_end_week=last_study_week,
            practice_start_week=last_study_week + 1,
            practice_end_week=weeks,
            practice_reserved=True,
        )
    if weeks >= MIN_WEEKS_FOR_PHASE1:
        return PhaseDistribution(
            weeks_until_exam=weeks,
            omit_phase1=False,
            learn_weeks=weeks - 1,
            review_start_week=1,
            review_end_week=weeks,
            practice_start_week=1,
            practice_end_week=weeks,
            practice_reserved=False,
        )
    return PhaseDistribution(
        weeks_until_exam=weeks,
        omit_phase1=True,
        learn_weeks=0,
        review_start_week=1,
        review_end_week=weeks,
        practice_start_week=1,
        practice_end_week=weeks,
        practice_reserved=False,
    )


def calculate_week1_start_date(plan_created_at: date | datetime) -> date:
    """Monday of the calendar week containing the plan's creation."""
    created = _as_date(plan_created_at)
    return created - timedelta(days=created.weekday())


def week_number(day: date | datetime, week1_start: date) -> int:
    """1-based week index of ``day``; days before week 1 count as week 1."""
    diff = (_as_date(day) - week1_start).days
    return max(1, diff // 7 + 1)


def week_bounds(week1_start: date, week: int) -> tuple[date, date]:
    start = week1_start + timedelta(days=(week - 1) * 7)
    return start, start + timedelta(days=6)


def study_dates(
    week1_start: date,
    week: int,
    preferred_days: Iterable[int],
    earliest: date,
    before: date,
) -> list[date]:
    """Preferred study days of ``week`` inside [earliest, before).

    Falls back to the first open day of the week when no preferred day is
    available, and to an empty list when the week is entirely out of range.
    """
    start, end = week_bounds(week1_start, week)
    open_days = [
        start + timedelta(days=i)
        for i in range(7)
        if earliest <= start + timedelta(days=i) < before
    ]
    if not open_days:
        return []
    wanted = set(preferred_days)
    preferred = [d for d in open_days if d.weekday() in wanted]
    return preferred or open_days[:1]
