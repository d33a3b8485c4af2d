"""Interactive CLI application."""
import logging

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from study_tracker.config import load_config
from study_tracker.dashboard import display_efficiency, get_rating_color, get_study_stats
from study_tracker.db import SQLiteStorage
from study_tracker.errors import ValidationError
from study_tracker.logging_config import init_logging
from study_tracker.models import IntervalRecord, today_str
from study_tracker.report import benchmark_comparison, comprehensive_report, subject_improvement_plan, today_analysis
from study_tracker.repository import StudyRepository
from study_tracker.review import analyze_effectiveness

console = Console()
logger = logging.getLogger(__name__)


def show_welcome(repo: StudyRepository):
    console.print(Panel(
        f"[bold]Study Tracker[/bold]\n[dim]Exam profile: {repo.exam_profile}[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("add", "Log a study interval"),
        ("toggle", "Mark an interval done / not done"),
        ("remove", "Delete an interval"),
        ("score", "Record a mock exam score"),
        ("rotation", "Toggle a rotation pass"),
        ("today", "Today's session"),
        ("week", "This week's totals"),
        ("month", "This month's totals"),
        ("subjects", "Per-subject progress"),
        ("subject", "One subject in detail"),
        ("weak", "Weak subjects"),
        ("report", "Efficiency score + recommendations"),
        ("streak", "Study streak"),
        ("audit", "Check data consistency"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def _hours(value: float) -> str:
    return f"{value:.1f}h"


def show_benchmark(comparison: dict) -> None:
    color = "green" if comparison["met"] else "yellow"
    console.print(f"  Benchmark ({comparison['period']}): {_hours(comparison['actual'])} of "
                  f"{_hours(comparison['target'])} [{color}]{comparison['ratio']:g}%[/{color}]")


def show_plan(plan) -> None:
    for rec in plan:
        timeline = f" [dim]({rec.timeline})[/dim]" if rec.timeline else ""
        console.print(f"  [bold]{rec.action}[/bold]{timeline}  {rec.description}")


def show_intervals(records: list[IntervalRecord], title: str) -> None:
    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("Subject", style="cyan")
    table.add_column("Time")
    table.add_column("Hours", justify="right")
    table.add_column("Done")
    for i, r in enumerate(records, 1):
        table.add_row(
            str(i), r.subject, f"{r.start_time}-{r.end_time}", _hours(r.duration_hours),
            "[green]yes[/green]" if r.completed else "",
        )
    console.print(table)


def choose_interval(repo: StudyRepository, day: str) -> IntervalRecord | None:
    records = [r for r in repo.intervals if r.date == day]
    if not records:
        console.print(f"[yellow]No intervals logged for {day}.[/yellow]")
        return None
    show_intervals(records, f"Intervals on {day}")
    choice = Prompt.ask("Select interval", choices=[str(i) for i in range(1, len(records) + 1)])
    return records[int(choice) - 1]


def cmd_add(repo: StudyRepository) -> IntervalRecord | None:
    data = {
        "subject": Prompt.ask("Subject"),
        "date": Prompt.ask("Date", default=today_str()),
        "startTime": Prompt.ask("Start (HH:MM)"),
        "endTime": Prompt.ask("End (HH:MM)"),
        "note": Prompt.ask("Note", default=""),
        "completed": Prompt.ask("Completed?", choices=["y", "n"], default="n") == "y",
    }
    try:
        record = repo.add_interval(data)
    except ValidationError as e:
        console.print(f"[red]Not saved: {e}[/red]")
        return None
    console.print(f"[green]Logged {_hours(record.duration_hours)} of {record.subject}.[/green]")
    return record


def cmd_toggle(repo: StudyRepository):
    day = Prompt.ask("Date", default=today_str())
    record = choose_interval(repo, day)
    if record and repo.toggle_interval(record.id):
        console.print("[green]Interval updated.[/green]")


def cmd_remove(repo: StudyRepository):
    day = Prompt.ask("Date", default=today_str())
    record = choose_interval(repo, day)
    if record and repo.remove_interval(record.id):
        console.print("[green]Interval removed.[/green]")


def cmd_score(repo: StudyRepository):
    data = {
        "subject": Prompt.ask("Subject"),
        "score": Prompt.ask("Score"),
        "maxScore": Prompt.ask("Max score", default="100"),
        "round": Prompt.ask("Round", default="1"),
        "date": Prompt.ask("Date", default=today_str()),
    }
    try:
        record = repo.add_score(data)
    except ValidationError as e:
        console.print(f"[red]Not saved: {e}[/red]")
        return
    console.print(f"[green]{record.subject}: {record.score:g}/{record.max_score:g} ({record.score_percent:.0f}%)[/green]")


def cmd_rotation(repo: StudyRepository):
    subject = Prompt.ask("Subject")
    try:
        tracker = repo.get_rotation_tracker(subject)
    except ValidationError as e:
        console.print(f"[red]{e}[/red]")
        return
    dots = " ".join(
        f"[green]{r.round}[/green]" if r.completed else f"[dim]{r.round}[/dim]" for r in tracker.rotations
    )
    console.print(f"  {tracker.subject}: {dots}")
    round_number = Prompt.ask("Toggle round", choices=[str(r.round) for r in tracker.rotations])
    repo.toggle_rotation(tracker.subject, int(round_number))
    slot = repo.get_rotation_tracker(tracker.subject).slot(int(round_number))
    console.print(f"[green]{tracker.subject} rotation #{slot.round} {'done' if slot.completed else 'cleared'}.[/green]")


def cmd_today(repo: StudyRepository):
    session = repo.session_for_date()
    analysis = today_analysis(session)
    records = [r for r in repo.intervals if r.date == session.date]
    if records:
        show_intervals(records, f"Today ({session.date})")
    console.print(Panel(
        f"Studied {_hours(session.total_completed_hours)} of {_hours(session.total_planned_hours)} planned "
        f"({display_efficiency(session.efficiency):.0f}%)\n[dim]{analysis['recommendation']}[/dim]",
        title="Today's Session",
    ))


def cmd_week(repo: StudyRepository):
    stats = repo.weekly_stats()
    table = Table(title=f"Week {stats.week_start} to {stats.week_end}")
    table.add_column("Day")
    table.add_column("Studied", justify="right")
    table.add_column("Planned", justify="right")
    for d in stats.daily:
        table.add_row(f"{d.day} {d.date[5:]}", _hours(d.completed_hours), _hours(d.planned_hours))
    console.print(table)
    console.print(f"  Total: [bold]{_hours(stats.total_hours)}[/bold]  |  Study days: [bold]{stats.study_days}[/bold]"
                  f"  |  Avg efficiency: [bold]{display_efficiency(stats.avg_efficiency):.0f}%[/bold]")
    show_benchmark(benchmark_comparison("weekly", stats.total_hours, repo.benchmark))


def cmd_month(repo: StudyRepository):
    stats = repo.monthly_stats()
    console.print(Panel(
        f"Studied {_hours(stats.total_hours)} of {_hours(stats.planned_hours)} planned over {stats.study_days} day(s)\n"
        f"Average {_hours(stats.avg_hours_per_day)} per study day",
        title=f"Month {stats.month}",
    ))
    show_benchmark(benchmark_comparison("monthly", stats.total_hours, repo.benchmark))
    if stats.subject_hours:
        table = Table()
        table.add_column("Subject", style="cyan")
        table.add_column("Hours", justify="right")
        for subject, hours in sorted(stats.subject_hours.items(), key=lambda x: -x[1]):
            table.add_row(subject, _hours(hours))
        console.print(table)


def cmd_subjects(repo: StudyRepository):
    progress = repo.all_subject_progress()
    if not progress:
        console.print("[yellow]No subjects yet. Use 'add' to log a study interval.[/yellow]")
        return
    table = Table(title="Subject Progress")
    table.add_column("Subject", style="cyan")
    table.add_column("Studied", justify="right")
    table.add_column("Efficiency", justify="right")
    table.add_column("Mock avg", justify="right")
    table.add_column("Trend")
    table.add_column("Rotations", justify="right")
    table.add_column("Progress", justify="right")
    for p in progress:
        table.add_row(
            p.name,
            f"{_hours(p.actual_hours)} / {_hours(p.planned_hours)}",
            f"{display_efficiency(p.efficiency):.0f}%",
            f"{p.average_mock_score:.1f}%" if p.score_count else "-",
            p.trend,
            str(p.rotations_completed),
            f"{p.progress_percent:.0f}%",
        )
    console.print(table)


def cmd_subject(repo: StudyRepository):
    subject = Prompt.ask("Subject").strip()
    if subject not in repo.subjects():
        console.print(f"[yellow]Nothing logged for {subject!r} yet.[/yellow]")
        return
    progress = repo.subject_progress(subject)
    effect = analyze_effectiveness(progress)
    console.print(Panel(
        f"Studied {_hours(effect['study_hours'])} of {_hours(progress.planned_hours)} "
        f"({progress.progress_percent:.0f}% of target)\n"
        f"Mock average {effect['avg_score']}% ([bold]{effect['score_label']}[/bold]), trend {progress.trend}\n"
        f"Rotations {effect['rotation_progress']}% ({effect['rotation_label']}), next #{progress.next_rotation}",
        title=subject,
    ))
    table = Table(title="Last 7 days")
    table.add_column("Date")
    table.add_column("Hours", justify="right")
    for day, hours in repo.recent_days(subject=subject):
        table.add_row(day, _hours(hours) if hours else "[dim]-[/dim]")
    console.print(table)
    show_plan(subject_improvement_plan(progress, repo.benchmark))


def cmd_weak(repo: StudyRepository):
    weak = repo.weak_subjects()
    if not weak:
        console.print("[green]No weak subjects detected! Keep up the good work.[/green]")
        return
    table = Table(title="Weak Subjects")
    table.add_column("Subject")
    table.add_column("Severity")
    table.add_column("Issues")
    for w in weak:
        color = "red" if w.severity == "high" else "yellow"
        table.add_row(w.name, f"[{color}]{w.severity}[/{color}]", "; ".join(w.issues))
    console.print(table)
    for w in weak:
        console.print(f"\n[bold cyan]{w.name}[/bold cyan]")
        show_plan(subject_improvement_plan(w.progress, repo.benchmark))


def cmd_report(repo: StudyRepository):
    report = comprehensive_report(repo)
    score = report.efficiency
    color = get_rating_color(score.overall)
    bar_filled = int(score.overall / 5)
    bar = f"[{color}]{'█' * bar_filled}{'░' * (20 - bar_filled)}[/{color}]"
    console.print(f"\n  Efficiency: [bold]{score.overall}[/bold] {bar} [{color}]{score.rating[0]} {score.rating[1]}[/{color}]")
    console.print(f"  [dim]time {score.time_efficiency}  progress {score.progress_rate}  "
                  f"mock {score.mock_score}  streak {score.streak_score}[/dim]\n")
    for rec in report.recommendations:
        console.print(f"[bold]{rec.priority}. {rec.action}[/bold]  {rec.description}")
        for action in rec.actions:
            console.print(f"     - {action}")
    for alert in report.score_alerts:
        console.print(f"  [red]{alert['subject']}[/red] mock average {alert['avg_score']:g}% over {alert['count']} exam(s)")
    m = report.milestone
    if not m["reached"]:
        console.print(f"\n  Next milestone: {m['milestone']:g}h ({m['remaining']:g}h to go, ~{m['days_needed']} days)")


def cmd_streak(repo: StudyRepository):
    status = repo.streak_status()
    stats = get_study_stats(repo.intervals, repo.scores, repo.streak)
    if status["studied_today"]:
        headline = "[green]Studied today![/green]"
    elif status["current"] > 0:
        headline = f"[red]{status['current']}-day streak, study today to keep it[/red]"
    else:
        headline = "[cyan]Start a new streak today[/cyan]"
    console.print(Panel(
        f"{headline}\nCurrent: [bold]{status['current']}[/bold]  Longest: [bold]{status['longest']}[/bold]  "
        f"Study days: [bold]{status['total_days']}[/bold]\n"
        f"Last study: {status['last_study_date'] or 'never'}  |  Total: {_hours(stats['total_hours'])}",
        title="Streak",
    ))


def cmd_audit(repo: StudyRepository):
    warnings = repo.load_warnings + repo.audit()
    if not warnings:
        console.print("[green]No consistency problems found.[/green]")
        return
    for w in warnings:
        console.print(f"[yellow]{w}[/yellow]")


COMMANDS = {
    "add": cmd_add,
    "toggle": cmd_toggle,
    "remove": cmd_remove,
    "score": cmd_score,
    "rotation": cmd_rotation,
    "today": cmd_today,
    "week": cmd_week,
    "month": cmd_month,
    "subjects": cmd_subjects,
    "subject": cmd_subject,
    "weak": cmd_weak,
    "report": cmd_report,
    "streak": cmd_streak,
    "audit": cmd_audit,
}


def run(repo: StudyRepository):
    show_welcome(repo)
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
            command(repo)
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            logger.exception("Command %s failed", choice)
            console.print(f"[red]Error: {e}[/red]")
        if repo.last_persistence_error:
            console.print(f"[yellow]Warning: changes not saved yet ({repo.last_persistence_error})[/yellow]")


def main():
    config = load_config()
    init_logging(config.log_level, config.log_format)
    storage = SQLiteStorage(config.db_path)
    with StudyRepository(storage, config) as repo:
        run(repo)


if __name__ == "__main__":
    main()
