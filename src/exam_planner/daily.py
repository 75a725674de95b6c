"""Today's plan: pick entries from the current week and lay them into four sessions.

Sessions are sized 1, 2, 1 and 2 blocks (3 hours). The third one, the short
supplementary session, always holds a review item whenever the week has one.
"""
from typing import Iterable, Optional

from exam_planner.models import PlanEntry, TaskType

SESSION_COURTE = "session_courte"
SESSION_LONGUE = "session_longue"
SESSION_COURTE_SUPPLEMENTAIRE = "session_courte_supplementaire"
SESSION_LONGUE_SUPPLEMENTAIRE = "session_longue_supplementaire"
SECTION_KEYS = (SESSION_COURTE, SESSION_LONGUE, SESSION_COURTE_SUPPLEMENTAIRE, SESSION_LONGUE_SUPPLEMENTAIRE)
SECTION_LABELS = {
    SESSION_COURTE: "Session courte (30 min)",
    SESSION_LONGUE: "Session longue (1 h)",
    SESSION_COURTE_SUPPLEMENTAIRE: "Session courte supplémentaire (30 min)",
    SESSION_LONGUE_SUPPLEMENTAIRE: "Session longue supplémentaire (1 h)",
}
DAILY_ITEM_LIMIT = 6


def select_todays_entries(
    week_entries: list[PlanEntry],
    learned_module_ids: Iterable[str],
    limit: int = DAILY_ITEM_LIMIT,
) -> tuple[list[PlanEntry], Optional[str]]:
    """LEARN entries of the first unlearned module, then every REVIEW entry, capped at ``limit``.

    Returns the selection and the id of that module (None when every module in
    the week is learned).
    """
    learned = set(learned_module_ids)
    ordered = sorted(week_entries, key=lambda e: (e.order, e.date))
    pending_learn = [
        e for e in ordered
        if e.task_type == TaskType.LEARN and e.target_module_id and e.target_module_id not in learned
    ]
    module_id = pending_learn[0].target_module_id if pending_learn else None
    learn = [e for e in pending_learn if e.target_module_id == module_id]
    review = [e for e in ordered if e.task_type == TaskType.REVIEW]
    return (learn + review)[:limit], module_id


def _first(entries: list[PlanEntry], *tests) -> Optional[PlanEntry]:
    for test in tests:
        for entry in entries:
            if test(entry):
                return entry
    return None


def format_sections(selected: list[PlanEntry], week_review: list[PlanEntry]) -> dict[str, list[PlanEntry]]:
    """Place ``selected`` into the four sessions.

    A review item for the short supplementary session is reserved before any
    other session is filled, taken from the week's review pool when the
    selection itself has none left.
    """
    sections: dict[str, list[PlanEntry]] = {key: [] for key in SECTION_KEYS}
    used: set[int] = set()

    def available(entries):
        return [e for e in entries if e.id not in used]

    selected_review = [e for e in selected if e.task_type == TaskType.REVIEW]
    reserved = _first(
        available(selected_review),
        lambda e: e.estimated_blocks == 1,
        lambda e: e.estimated_blocks <= 1,
        lambda e: True,
    ) or _first(
        available(week_review),
        lambda e: e.estimated_blocks == 1,
        lambda e: True,
    )
    if reserved is not None:
        used.add(reserved.id)

    learn = [e for e in selected if e.task_type == TaskType.LEARN]
    for key, size in ((SESSION_COURTE, 1), (SESSION_LONGUE, 2)):
        entry = (
            _first(
                available(learn),
                lambda e, s=size: e.estimated_blocks == s,
                lambda e, s=size: e.estimated_blocks <= s,
            )
            or _first(available(selected_review), lambda e, s=size: e.estimated_blocks == s)
            or _first(available(selected), lambda e, s=size: e.estimated_blocks == s)
        )
        if entry is not None:
            sections[key].append(entry)
            used.add(entry.id)

    if reserved is not None:
        sections[SESSION_COURTE_SUPPLEMENTAIRE].append(reserved)

    remaining = available(selected)
    if remaining:
        sections[SESSION_LONGUE_SUPPLEMENTAIRE].append(remaining[0])
        used.add(remaining[0].id)
    return sections


def build_todays_plan(
    week_entries: list[PlanEntry],
    learned_module_ids: Iterable[str],
    modules: list[dict],
    limit: int = DAILY_ITEM_LIMIT,
) -> dict:
    selected, module_id = select_todays_entries(week_entries, learned_module_ids, limit)
    week_review = [e for e in week_entries if e.task_type == TaskType.REVIEW]
    module = next((m for m in modules if m["id"] == module_id), None)
    return {
        "sections": format_sections(selected, week_review),
        "total_blocks": sum(e.estimated_blocks for e in selected),
        "phase1_module": module,
    }
