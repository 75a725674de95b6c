"""Group persisted plan entries into weeks of readable tasks."""
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Callable, Optional

from loguru import logger

from exam_planner.catalog import get_modules
from exam_planner.db import get_connection
from exam_planner.materializer import get_plan_entries
from exam_planner.models import PlanEntry, PlanEntryStatus, ReviewSubtype, StudyPlanConfig, TaskType
from exam_planner.timeline import (
    calculate_week1_start_date,
    phase_distribution,
    week_bounds,
    week_number,
    weeks_until_exam,
)


@dataclass
class WeeklyTask:
    task_type: TaskType
    description: str
    status: PlanEntryStatus
    module_id: Optional[str] = None
    module_title: Optional[str] = None
    module_number: Optional[int] = None
    item_count: Optional[int] = None
    is_off_platform: bool = False
    entry_ids: list[int] = field(default_factory=list)


@dataclass
class PlanWeek:
    week_number: int
    start_date: date
    end_date: date
    tasks: list[WeeklyTask]
    phase: str
    estimated_blocks: int
    completed_tasks: int
    total_tasks: int

    def as_dict(self) -> dict:
        return asdict(self)


def combined_status(entries: list[PlanEntry]) -> PlanEntryStatus:
    if entries and all(e.status == PlanEntryStatus.COMPLETED for e in entries):
        return PlanEntryStatus.COMPLETED
    if any(e.status == PlanEntryStatus.IN_PROGRESS for e in entries):
        return PlanEntryStatus.IN_PROGRESS
    return PlanEntryStatus.PENDING


def learn_item_kind(entry: PlanEntry) -> str:
    """Which step of a module's learning pass an entry stands for."""
    content = entry.target_content_item_id or ""
    if entry.target_quiz_id:
        return "Quiz"
    if content.startswith("quick-read-"):
        return "Quick read"
    if content.startswith("deep-read-"):
        return "Deep read"
    if entry.estimated_blocks == 2:
        return "Video"
    return "Notes"


_LEARN_KINDS = ("Quick read", "Video", "Deep read", "Notes", "Quiz")


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count > 1 else ''}"


def _learn_tasks(entries: list[PlanEntry], modules: dict[str, dict]) -> list[WeeklyTask]:
    by_module: dict[str, list[PlanEntry]] = {}
    for entry in entries:
        if entry.task_type == TaskType.LEARN and entry.target_module_id in modules:
            by_module.setdefault(entry.target_module_id, []).append(entry)

    tasks = []
    for module_id in sorted(by_module, key=lambda m: modules[m]["position"]):
        module = modules[module_id]
        kinds: dict[str, list[PlanEntry]] = {}
        for entry in by_module[module_id]:
            kinds.setdefault(learn_item_kind(entry), []).append(entry)
        for kind in _LEARN_KINDS:
            if kind not in kinds:
                continue
            tasks.append(WeeklyTask(
                task_type=TaskType.LEARN,
                description=f"{kind} {module['title']}",
                status=combined_status(kinds[kind]),
                module_id=module_id,
                module_title=module["title"],
                module_number=module["position"],
                is_off_platform=kind in ("Quick read", "Deep read"),
                entry_ids=[e.id for e in kinds[kind]],
            ))
    return tasks


def _review_tasks(entries: list[PlanEntry]) -> list[WeeklyTask]:
    review = [e for e in entries if e.task_type == TaskType.REVIEW]
    flashcards = [e for e in review if e.review_subtype != ReviewSubtype.ACTIVITY]
    activities = [e for e in review if e.review_subtype == ReviewSubtype.ACTIVITY]
    tasks = []
    if flashcards:
        tasks.append(WeeklyTask(
            task_type=TaskType.REVIEW,
            description=f"{_plural(len(flashcards), 'flashcard session')} (or smart review)",
            status=combined_status(flashcards),
            item_count=len(flashcards),
            entry_ids=[e.id for e in flashcards],
        ))
    if activities:
        tasks.append(WeeklyTask(
            task_type=TaskType.REVIEW,
            description=f"{_plural(len(activities), 'learning activity session')} (or smart review)",
            status=combined_status(activities),
            item_count=len(activities),
            entry_ids=[e.id for e in activities],
        ))
    return tasks


def _practice_tasks(entries: list[PlanEntry], quiz_titles: dict[str, str]) -> list[WeeklyTask]:
    practice = [e for e in entries if e.task_type == TaskType.PRACTICE]
    tasks = [
        WeeklyTask(
            task_type=TaskType.PRACTICE,
            description=quiz_titles.get(e.target_quiz_id, "Practice exam"),
            status=e.status,
            entry_ids=[e.id],
        )
        for e in practice if e.target_quiz_id
    ]
    sessions = [e for e in practice if not e.target_quiz_id]
    if sessions:
        tasks.append(WeeklyTask(
            task_type=TaskType.PRACTICE,
            description=_plural(len(sessions), "quiz session"),
            status=combined_status(sessions),
            item_count=len(sessions),
            entry_ids=[e.id for e in sessions],
        ))
    return tasks


def week_phase(tasks: list[WeeklyTask]) -> str:
    present = {t.task_type for t in tasks}
    if len(present) == 1:
        return present.pop().value
    return "MIXED"


def aggregate_weeks(
    entries: list[PlanEntry],
    modules: list[dict],
    week1_start: date,
    phase1_end_week: Optional[int] = None,
    quiz_titles: Optional[dict[str, str]] = None,
) -> list[PlanWeek]:
    """Bucket entries into Monday-based weeks and describe each week as tasks.

    LEARN entries dated after ``phase1_end_week`` are left out.
    """
    module_map = {m["id"]: m for m in modules}
    buckets: dict[int, list[PlanEntry]] = {}
    for entry in entries:
        week = week_number(entry.date, week1_start)
        if phase1_end_week and entry.task_type == TaskType.LEARN and week > phase1_end_week:
            continue
        buckets.setdefault(week, []).append(entry)

    weeks = []
    for week in sorted(buckets):
        bucket = buckets[week]
        tasks = (
            _learn_tasks(bucket, module_map)
            + _review_tasks(bucket)
            + _practice_tasks(bucket, quiz_titles or {})
        )
        start, end = week_bounds(week1_start, week)
        weeks.append(PlanWeek(
            week_number=week,
            start_date=start,
            end_date=end,
            tasks=tasks,
            phase=week_phase(tasks),
            estimated_blocks=sum(e.estimated_blocks for e in bucket),
            completed_tasks=sum(1 for t in tasks if t.status == PlanEntryStatus.COMPLETED),
            total_tasks=len(tasks),
        ))
    return weeks


def _quiz_titles(db_path: str, course_id: str) -> dict[str, str]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT id, title FROM quizzes WHERE course_id = ?", (course_id,)).fetchall()
    conn.close()
    return {r["id"]: r["title"] for r in rows}


def _needs_regeneration(entries: list[PlanEntry]) -> bool:
    return not entries or not any(e.task_type == TaskType.REVIEW for e in entries)


def get_weekly_plan(
    db_path: str,
    config: StudyPlanConfig,
    regenerate: Callable[[], object],
) -> list[PlanWeek]:
    """Weekly view of the stored plan from week 1 through the exam date.

    If the stored range is empty or has no REVIEW entries, ``regenerate`` is
    called once and the range read again.
    """
    week1 = calculate_week1_start_date(config.plan_created_at)

    def fetch() -> list[PlanEntry]:
        return get_plan_entries(db_path, config.user_id, config.course_id, start=week1, end=config.exam_date)

    entries = fetch()
    if _needs_regeneration(entries):
        logger.info(
            "Stored plan for {}/{} is incomplete ({} entries), regenerating once",
            config.user_id, config.course_id, len(entries),
        )
        regenerate()
        entries = fetch()

    phase1_end = phase_distribution(
        weeks_until_exam(config.exam_date, config.plan_created_at)
    ).phase1_end_week
    return aggregate_weeks(
        entries,
        get_modules(db_path, config.course_id),
        week1,
        phase1_end_week=phase1_end,
        quiz_titles=_quiz_titles(db_path, config.course_id),
    )
