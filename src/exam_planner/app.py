"""Interactive CLI application."""
from datetime import date

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt, FloatPrompt
from rich.table import Table

from exam_planner import planner
from exam_planner.catalog import get_course, get_modules
from exam_planner.config import configure_logging, get_settings
from exam_planner.daily import SECTION_KEYS, SECTION_LABELS
from exam_planner.db import init_db
from exam_planner.models import LearnStatus, PlanEntry, PlanEntryStatus, ReviewDifficulty, ReviewSubtype, TaskType
from exam_planner.seed import seed_demo_course
from exam_planner.weekly import learn_item_kind

console = Console()

DAY_NAMES = ["mon", "tue", "wed", "thu", "fri", "sat", "sun"]
RATINGS = {"e": ReviewDifficulty.EASY, "m": ReviewDifficulty.MEDIUM, "h": ReviewDifficulty.HARD}
STATUS_STYLE = {
    PlanEntryStatus.COMPLETED: "[green]Done[/green]",
    PlanEntryStatus.IN_PROGRESS: "[yellow]In progress[/yellow]",
    PlanEntryStatus.PENDING: "",
}


class SessionExitRequested(Exception):
    """Raised when the user types q or menu inside a session."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in ("q", "menu"):
        raise SessionExitRequested()
    return answer


def show_welcome(course_title: str):
    console.print(Panel(
        f"[bold]{course_title}[/bold]\n[dim]Study planner[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("setup", "Set exam date and study hours"),
        ("today", "Today's plan"),
        ("week", "Weekly plan"),
        ("done", "Mark a plan entry as done"),
        ("learned", "Mark a module as learned"),
        ("review", "Smart review session"),
        ("stats", "Progress and schedule check"),
        ("plan", "Regenerate the plan"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<10}[/cyan] {desc}")


def print_warnings(warnings: list[str]) -> None:
    for warning in warnings:
        console.print(f"[yellow]! {warning}[/yellow]")


def parse_days(text: str) -> list[int] | None:
    """'mon,wed,fri' -> [0, 2, 4]; blank keeps the default (weekdays)."""
    names = [part.strip().lower()[:3] for part in text.split(",") if part.strip()]
    if not names:
        return None
    unknown = [n for n in names if n not in DAY_NAMES]
    if unknown:
        raise ValueError(f"Unknown day(s): {', '.join(unknown)}")
    return sorted({DAY_NAMES.index(n) for n in names})


def describe_entry(entry: PlanEntry, module_titles: dict[str, str]) -> str:
    title = module_titles.get(entry.target_module_id, "")
    if entry.task_type == TaskType.LEARN:
        return f"{learn_item_kind(entry)} {title}".strip()
    if entry.task_type == TaskType.REVIEW:
        return "Flashcard session" if entry.review_subtype != ReviewSubtype.ACTIVITY else "Learning activity session"
    return f"Practice exam ({entry.target_quiz_id})" if entry.target_quiz_id else "Quiz session"


def cmd_setup(db_path: str, user_id: str, course_id: str):
    console.print("\n[bold]Study plan setup[/bold]")
    exam = date.fromisoformat(Prompt.ask("Exam date (YYYY-MM-DD)").strip())
    hours = FloatPrompt.ask("Study hours per week", default=6.0)
    rating = Prompt.ask("How well do you know the material?", choices=["LOW", "MEDIUM", "HIGH"], default="MEDIUM")
    days = parse_days(Prompt.ask("Study days (e.g. mon,wed,fri; blank for weekdays)", default=""))
    result = planner.configure(db_path, user_id, course_id, exam, hours, rating, days)
    if not result["success"]:
        console.print(f"[red]{result['error']}[/red]")
        return
    if result["is_first_creation"]:
        planner.complete_orientation(db_path, user_id, course_id)
    console.print(
        f"[green]Plan ready.[/green] Minimum {result['minimum_study_time']} blocks, "
        f"{result['blocks_available']} available."
    )
    print_warnings(result["warnings"])


def cmd_plan(db_path: str, user_id: str, course_id: str):
    result = planner.regenerate_plan(db_path, user_id, course_id)
    if not result["success"]:
        console.print(f"[red]{result['error']}[/red]")
        return
    console.print(f"[green]Plan regenerated: {result['entries_saved']} entries.[/green]")
    print_warnings(result["warnings"])


def cmd_today(db_path: str, user_id: str, course_id: str):
    result = planner.get_todays_plan(db_path, user_id, course_id)
    if not result["success"]:
        console.print(f"[red]{result['error']}[/red]")
        return
    titles = {m["id"]: m["title"] for m in get_modules(db_path, course_id)}
    header = f"Total: {result['total_blocks']} blocks"
    if result["phase1_module"]:
        header += f"  |  Module: [cyan]{result['phase1_module']['title']}[/cyan]"
    table = Table(title="Today's Plan")
    table.add_column("Session")
    table.add_column("#", justify="right")
    table.add_column("Task")
    table.add_column("Blocks", justify="right")
    table.add_column("Status")
    for key in SECTION_KEYS:
        for entry in result["sections"][key]:
            table.add_row(
                SECTION_LABELS[key], str(entry.id), describe_entry(entry, titles),
                str(entry.estimated_blocks), STATUS_STYLE[entry.status],
            )
    console.print(Panel(header, border_style="blue"))
    console.print(table)


def cmd_week(db_path: str, user_id: str, course_id: str):
    result = planner.get_weekly_plan(db_path, user_id, course_id)
    if not result["success"]:
        console.print(f"[red]{result['error']}[/red]")
        return
    for week in result["weeks"]:
        table = Table(title=(
            f"Week {week.week_number} ({week.start_date:%b %d} - {week.end_date:%b %d}) "
            f"{week.phase}  {week.completed_tasks}/{week.total_tasks} done"
        ))
        table.add_column("Task")
        table.add_column("Status")
        for task in week.tasks:
            label = task.description + (" [dim](off platform)[/dim]" if task.is_off_platform else "")
            table.add_row(label, STATUS_STYLE[task.status])
        console.print(table)


def cmd_done(db_path: str, user_id: str, course_id: str):
    entry_id = Prompt.ask("Entry # (see 'today')").strip()
    if not entry_id.isdigit():
        console.print("[red]Enter the number shown in today's plan.[/red]")
        return
    result = planner.update_entry_status(db_path, int(entry_id), PlanEntryStatus.COMPLETED, user_id=user_id)
    if result["success"]:
        console.print("[green]Marked as done.[/green]")
    else:
        console.print(f"[red]{result['error']}[/red]")


def cmd_learned(db_path: str, user_id: str, course_id: str):
    modules = get_modules(db_path, course_id)
    if not modules:
        console.print("[yellow]This course has no modules.[/yellow]")
        return
    progress = planner.get_module_progress(db_path, user_id, course_id)
    if not progress["success"]:
        console.print(f"[red]{progress['error']}[/red]")
        return
    status = {p.module_id: p.learn_status for p in progress["modules"]}
    for m in modules:
        mark = "[green]learned[/green]" if status.get(m["id"]) == LearnStatus.LEARNED else ""
        console.print(f"  [cyan]{m['position']}[/cyan]) {m['title']} {mark}")
    choice = Prompt.ask("Module number", choices=[str(m["position"]) for m in modules])
    module = next(m for m in modules if str(m["position"]) == choice)
    result = planner.mark_module_learned(db_path, user_id, course_id, module["id"])
    if result["success"]:
        console.print(f"[green]{module['title']} marked as learned.[/green]")
    else:
        console.print(f"[red]{result['error']}[/red]")


def show_review_item(result: dict) -> None:
    content = result["content"]
    module = result["module"]["title"] if result["module"] else ""
    if "front" in content:
        console.print(Panel(content["front"], title=f"Flashcard - {module}", border_style="cyan"))
        session_prompt("[dim]Press Enter to reveal answer[/dim]", default="")
        console.print(Panel(content["back"], border_style="green"))
    else:
        console.print(Panel(
            content.get("instructions") or "",
            title=f"{content.get('title', 'Activity')} - {module}", border_style="magenta",
        ))


def cmd_review(db_path: str, user_id: str, course_id: str):
    console.print("\n[bold]Smart review[/bold] [dim](q to stop)[/dim]\n")
    try:
        while True:
            result = planner.get_next_review_item(db_path, user_id, course_id)
            if not result["success"]:
                console.print(f"[yellow]{result['error']}[/yellow]")
                return
            show_review_item(result)
            answer = session_prompt("How was it? (e=easy, m=medium, h=hard)", choices=["e", "m", "h", "q"])
            planner.rate_review_item(db_path, result["item"].id, RATINGS[answer], user_id=user_id)
    except SessionExitRequested:
        console.print("[dim]Review stopped.[/dim]")


def cmd_stats(db_path: str, user_id: str, course_id: str):
    stats = planner.get_review_stats(db_path, user_id, course_id)
    if stats["success"]:
        table = Table(title=f"Smart review ({stats['total_items_reviewed']} items reviewed)")
        table.add_column("Module")
        table.add_column("Flashcards", justify="right")
        table.add_column("Activities", justify="right")
        for ch in stats["chapter_stats"]:
            table.add_row(
                f"{ch['module_order']}. {ch['module_title']}",
                f"{ch['flashcards_reviewed']}/{ch['total_flashcards']}",
                f"{ch['activities_reviewed']}/{ch['total_activities']}",
            )
        console.print(table)

    gate = planner.check_phase3_access(db_path, user_id, course_id)
    if gate["success"]:
        console.print(f"\n  Modules learned: [bold]{gate['learned_modules']}/{gate['total_modules']}[/bold]")
        if not gate["can_access"]:
            console.print(f"  [dim]{gate['message']}[/dim]")

    behind = planner.check_behind_schedule(db_path, user_id, course_id)
    if behind["success"] and behind["is_behind"]:
        console.print(f"\n[yellow]{behind['warning']}[/yellow]")
        for suggestion in behind["suggestions"]:
            console.print(f"  - {suggestion}")
    elif behind["success"]:
        console.print("\n  [green]On track.[/green]")


COMMANDS = {
    "setup": cmd_setup,
    "plan": cmd_plan,
    "today": cmd_today,
    "week": cmd_week,
    "done": cmd_done,
    "learned": cmd_learned,
    "review": cmd_review,
    "stats": cmd_stats,
}


def main():
    configure_logging()
    settings = get_settings()
    db_path = settings.db_path
    init_db(db_path)
    course_id = seed_demo_course(db_path) if settings.course_id == "demo-course" else settings.course_id
    user_id = settings.user_id

    course = get_course(db_path, course_id)
    show_welcome(course["title"] if course else course_id)
    if not planner.get_course_settings(db_path, user_id, course_id).get("settings"):
        console.print("[dim]No study plan yet. Start with 'setup'.[/dim]")

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="today").strip().lower()
        if choice in ("quit", "exit", "q"):
            console.print("[dim]Good luck on your exam![/dim]")
            break
        command = COMMANDS.get(choice)
        if command is None:
            console.print("[red]Unknown command. Try again.[/red]")
            continue
        try:
            command(db_path, user_id, course_id)
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except ValueError as e:
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
