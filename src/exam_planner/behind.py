"""Warn a learner who is falling behind their plan."""
from exam_planner.timeline import hours_for_blocks

# Pending entries today above which the pace check may fire
PENDING_TODAY_THRESHOLD = 2
# Pace check fires once less than this share of the horizon is left
REMAINING_HORIZON_SHARE = 0.5


def capacity_shortfall(blocks_available: int, minimum_study_time: int,
                       block_minutes: int = 30) -> dict | None:
    if blocks_available >= minimum_study_time:
        return None
    deficit = minimum_study_time - blocks_available
    return {
        "warning": (
            f"Insufficient study time. Minimum required: {minimum_study_time} blocks, "
            f"available: {blocks_available} blocks."
        ),
        "suggestions": [
            f"Increase your study time by {hours_for_blocks(deficit, block_minutes)} hours per week",
            "Change the scheduled exam date to allow more time",
        ],
    }


def pace_shortfall(pending_today: int, days_until_exam: int, weeks_until_exam: int,
                   unlearned_modules: int) -> dict | None:
    if pending_today <= PENDING_TODAY_THRESHOLD:
        return None
    if days_until_exam >= weeks_until_exam * 7 * REMAINING_HORIZON_SHARE:
        return None
    suggestions = []
    if unlearned_modules > 0:
        suggestions.append(
            f"Mark {unlearned_modules} module(s) as learned if you already completed them"
        )
    suggestions.append("Increase your study hours per week")
    suggestions.append("Change the scheduled exam date if necessary")
    return {
        "warning": f"You have {pending_today} pending task(s) today. You risk falling behind.",
        "suggestions": suggestions,
    }


def detect_behind_schedule(
    weeks_until_exam: int,
    blocks_per_week: int,
    minimum_study_time: int,
    pending_today: int,
    days_until_exam: int,
    unlearned_modules: int = 0,
    block_minutes: int = 30,
) -> dict:
    """Run the capacity and pace checks; both are reported when both fire."""
    findings = {
        "capacity": capacity_shortfall(
            weeks_until_exam * blocks_per_week, minimum_study_time, block_minutes
        ),
        "pace": pace_shortfall(pending_today, days_until_exam, weeks_until_exam, unlearned_modules),
    }
    fired = {name: f for name, f in findings.items() if f}
    if not fired:
        return {"is_behind": False}

    suggestions: list[str] = []
    for finding in fired.values():
        suggestions += [s for s in finding["suggestions"] if s not in suggestions]
    result = {
        "is_behind": True,
        "checks": list(fired),
        "warning": " ".join(f["warning"] for f in fired.values()),
        "suggestions": suggestions,
    }
    if "pace" in fired:
        result["unlearned_modules"] = unlearned_modules
    return result
