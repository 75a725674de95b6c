"""Study block generation: Learn, Review and Practice phases laid out on dates.

Every module gets a learning pass in course order, review sessions run at a
steady weekly cadence alongside it, and the final weeks (when the horizon
allows) are held for mock exams and quiz sessions.
"""
import hashlib
import math
from collections import Counter
from dataclasses import dataclass
from datetime import date
from typing import Optional

from loguru import logger

from exam_planner.catalog import CourseInventory, ModuleInventory, MOCK_EXAM_BLOCKS, VIDEO_BLOCKS
from exam_planner.feasibility import FeasibilityReport, analyze_feasibility, ensure_future_exam
from exam_planner.models import ReviewSubtype, SelfRating, StudyBlock, StudyPlanConfig, TaskType
from exam_planner.timeline import (
    PhaseDistribution,
    blocks_per_week,
    calculate_week1_start_date,
    phase_distribution,
    study_dates,
    weeks_until_exam,
)

# Share of the weekly budget given to the learning pass
PHASE1_SHARE = {
    SelfRating.LOW: 0.8,
    SelfRating.MEDIUM: 0.7,
    SelfRating.HIGH: 0.6,
}
QUICK_READ_BLOCKS = 1
DEEP_READ_BLOCKS = 3
NOTE_BLOCKS = 1
QUIZ_BLOCKS = 1
REVIEW_SESSION_BLOCKS = 1
PRACTICE_SESSION_BLOCKS = 1

_PHASE_RANK = {TaskType.LEARN: 0, TaskType.REVIEW: 1, TaskType.PRACTICE: 2}


@dataclass
class GenerationResult:
    blocks: list[StudyBlock]
    warnings: list[str]
    feasibility: Optional[FeasibilityReport]
    distribution: Optional[PhaseDistribution]
    week1_start: date
    omit_phase1: bool = False
    phase1_end_week: Optional[int] = None
    phase1_capacity: int = 0

    def summary(self) -> dict:
        if self.feasibility is not None:
            result = self.feasibility.as_dict()
        else:
            result = {"minimum_study_time": 0, "blocks_available": 0, "meets_minimum": False}
        result["warnings"] = list(self.warnings)
        if self.omit_phase1:
            result["omit_phase1"] = True
        if self.phase1_end_week:
            result["phase1_end_week"] = self.phase1_end_week
        return result


@dataclass
class _WeekCursor:
    """Fills a week's study dates up to a per-day load."""
    dates: list[date]
    daily_cap: int
    index: int = 0
    load: int = 0

    def place(self, size: int) -> date:
        if self.load >= self.daily_cap and self.index < len(self.dates) - 1:
            self.index += 1
            self.load = 0
        self.load += size
        return self.dates[self.index]


def module_learn_items(module: ModuleInventory, videos_enabled: bool = True) -> list[dict]:
    """Learning-pass items of one module, in study order.

    Quick read, videos, deep read, notes, quizzes. Missing videos, notes or
    quizzes are stood in for by placeholders so every module stays checkable.
    """
    mid = module.id
    items = [dict(target_content_item_id=f"quick-read-{mid}", estimated_blocks=QUICK_READ_BLOCKS,
                  is_off_platform=True)]
    if videos_enabled:
        videos = module.video_ids or [f"video-placeholder-{mid}"]
        items += [dict(target_content_item_id=v, estimated_blocks=VIDEO_BLOCKS) for v in videos]
    items.append(dict(target_content_item_id=f"deep-read-{mid}", estimated_blocks=DEEP_READ_BLOCKS,
                      is_off_platform=True))
    notes = module.note_ids or [f"notes-placeholder-{mid}"]
    items += [dict(target_content_item_id=n, estimated_blocks=NOTE_BLOCKS) for n in notes]
    quizzes = module.quiz_ids or [f"quiz-placeholder-{mid}"]
    items += [dict(target_quiz_id=q, estimated_blocks=QUIZ_BLOCKS) for q in quizzes]
    for item in items:
        item["target_module_id"] = mid
    return items


def _schedule_phase1(inventory, dist, capacity, dates_for) -> list[StudyBlock]:
    per_module = [module_learn_items(m, inventory.videos_enabled) for m in inventory.modules]
    blocks = []
    cursors: dict[int, _WeekCursor] = {}
    week, used = 1, 0
    for items in per_module:
        size = sum(i["estimated_blocks"] for i in items)
        if used and used + size > capacity and size <= capacity:
            week, used = week + 1, 0
        for item in items:
            if used >= capacity:
                week, used = week + 1, 0
            target_week = min(week, dist.learn_weeks)
            if target_week not in cursors:
                days = dates_for(target_week)
                cursors[target_week] = _WeekCursor(days, math.ceil(capacity / len(days)))
            day = cursors[target_week].place(item["estimated_blocks"])
            blocks.append(StudyBlock(date=day, task_type=TaskType.LEARN, **item))
            used += item["estimated_blocks"]
    return blocks


def _weekly_budgets(dist: PhaseDistribution, per_week: int, learn_capacity: int) -> dict[int, tuple[int, int]]:
    """(review blocks, practice blocks) for every week of the horizon."""
    budgets = {}
    for week in range(1, dist.weeks_until_exam + 1):
        review = practice = 0
        if dist.is_learn_week(week):
            if dist.is_review_week(week):
                review = max(1, per_week - learn_capacity)
        elif dist.is_review_week(week) and dist.is_practice_week(week):
            review = max(1, per_week // 2)
            practice = per_week - review
        elif dist.is_review_week(week):
            review = per_week
        elif dist.is_practice_week(week):
            practice = per_week
        budgets[week] = (review, practice)
    return budgets


def _schedule_phase2(budgets, dates_for) -> list[StudyBlock]:
    blocks = []
    for week, (count, _) in sorted(budgets.items()):
        days = dates_for(week)
        for i in range(count):
            subtype = ReviewSubtype.FLASHCARD if len(blocks) % 2 == 0 else ReviewSubtype.ACTIVITY
            blocks.append(StudyBlock(
                date=days[i % len(days)],
                task_type=TaskType.REVIEW,
                estimated_blocks=REVIEW_SESSION_BLOCKS,
                review_subtype=subtype,
                target_flashcard_ids=[],
            ))
    return blocks


def _schedule_phase3(inventory, budgets, dates_for) -> list[StudyBlock]:
    weeks = [w for w, (_, practice) in sorted(budgets.items()) if practice > 0]
    if not weeks:
        return []
    blocks = []
    used: Counter = Counter()
    mocks = inventory.mock_exams
    # First mock in the first practice week, last in the final one, the rest spread between
    for i, mock in enumerate(mocks):
        idx = round(i * (len(weeks) - 1) / (len(mocks) - 1)) if len(mocks) > 1 else 0
        week = weeks[idx]
        days = dates_for(week)
        slot = used[week] // MOCK_EXAM_BLOCKS
        blocks.append(StudyBlock(
            date=days[min(slot, len(days) - 1)],
            task_type=TaskType.PRACTICE,
            estimated_blocks=MOCK_EXAM_BLOCKS,
            target_quiz_id=mock.id,
        ))
        used[week] += MOCK_EXAM_BLOCKS
    for week in weeks:
        days = dates_for(week)
        remaining = max(0, budgets[week][1] - used[week])
        for i in range(remaining // PRACTICE_SESSION_BLOCKS):
            blocks.append(StudyBlock(
                date=days[-1 - (i % len(days))],
                task_type=TaskType.PRACTICE,
                estimated_blocks=PRACTICE_SESSION_BLOCKS,
            ))
    return blocks


def entry_key(block: StudyBlock, occurrence: int) -> str:
    """Stable identity of a block: date, type, targets and its rank among twins that day.

    The review subtype is left out; it shifts whenever an earlier week gains or
    loses a review session.
    """
    parts = [
        block.date.isoformat(),
        block.task_type.value,
        block.target_module_id or "",
        block.target_content_item_id or "",
        block.target_quiz_id or "",
        str(occurrence),
    ]
    return hashlib.sha1("|".join(parts).encode()).hexdigest()[:20]


def finalize_blocks(blocks: list[StudyBlock]) -> list[StudyBlock]:
    """Sort by date then phase, assign increasing ``order`` and identity keys."""
    ordered = sorted(
        enumerate(blocks),
        key=lambda pair: (pair[1].date, _PHASE_RANK[pair[1].task_type], pair[0]),
    )
    seen: Counter = Counter()
    result = []
    for order, (_, block) in enumerate(ordered):
        identity = (block.date, block.task_type, block.targets)
        block.order = order
        block.entry_key = entry_key(block, seen[identity])
        seen[identity] += 1
        result.append(block)
    return result


def generate_plan(
    config: StudyPlanConfig,
    inventory: CourseInventory,
    today: date,
    block_minutes: int = 30,
) -> GenerationResult:
    """Build the full ordered block list from week 1 to the exam.

    Raises PlanConfigError when the exam is not strictly after ``today``.
    """
    ensure_future_exam(config.exam_date, today)
    week1 = calculate_week1_start_date(config.plan_created_at)

    if not inventory.modules:
        return GenerationResult(
            blocks=[], warnings=["No module found in this course"], feasibility=None,
            distribution=None, week1_start=week1,
        )

    weeks = weeks_until_exam(config.exam_date, config.plan_created_at)
    per_week = blocks_per_week(config.study_hours_per_week, block_minutes)
    dist = phase_distribution(weeks)
    share = PHASE1_SHARE[config.self_rating]
    earliest = config.plan_created_at.date()

    date_cache: dict[int, list[date]] = {}

    def dates_for(week: int) -> list[date]:
        if week not in date_cache:
            date_cache[week] = study_dates(week1, week, config.study_days, earliest, config.exam_date)
        return date_cache[week]

    warnings = []
    learn_total = 0
    base_capacity = max(1, math.floor(per_week * share))
    capacity = base_capacity
    if dist.omit_phase1:
        warnings.append(
            "Less than 2 weeks before the exam. Phase 1 omitted; the remaining time is "
            "split between review and practice."
        )
    else:
        learn_total = sum(
            sum(i["estimated_blocks"] for i in module_learn_items(m, inventory.videos_enabled))
            for m in inventory.modules
        )
        capacity = max(base_capacity, math.ceil(learn_total / dist.learn_weeks))

    report = analyze_feasibility(
        weeks,
        per_week,
        inventory.minimum_study_time,
        learn_blocks=learn_total,
        learn_weeks=dist.learn_weeks,
        learn_share=share,
        block_minutes=block_minutes,
    )
    warnings.extend(report.warnings)

    budgets = _weekly_budgets(dist, per_week, base_capacity)
    blocks = []
    if not dist.omit_phase1:
        blocks += _schedule_phase1(inventory, dist, capacity, dates_for)
    blocks += _schedule_phase2(budgets, dates_for)
    blocks += _schedule_phase3(inventory, budgets, dates_for)
    blocks = finalize_blocks(blocks)

    counts = Counter(b.task_type.value for b in blocks)
    logger.debug(
        "Generated {} blocks for course {} over {} weeks ({})",
        len(blocks), inventory.course_id, weeks, dict(counts),
    )
    return GenerationResult(
        blocks=blocks,
        warnings=warnings,
        feasibility=report,
        distribution=dist,
        week1_start=week1,
        omit_phase1=dist.omit_phase1,
        phase1_end_week=dist.phase1_end_week,
        phase1_capacity=capacity,
    )
