"""Recommendations composed from engine outputs.

Nothing here derives figures from raw records; it only reads session
summaries, subject progress, weak-subject lists and the efficiency score.
"""
import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date

from study_tracker.config import WEAK_ROTATION_THRESHOLD, WEAK_SCORE_THRESHOLD, Benchmark, get_milestones
from study_tracker.dashboard import EfficiencyScore
from study_tracker.models import IntervalRecord
from study_tracker.review import SubjectProgress, WeakSubject, get_weak_subjects_by_score, summarize_weak_points
from study_tracker.study import DayLike, SessionSummary, average_daily_hours, parse_day, shift_day, total_study_hours

PERIOD_DAYS = {"daily": 1, "weekly": 7, "monthly": 30}


def today_analysis(session: SessionSummary) -> dict:
    if session.total_completed_hours <= 0:
        status = "not_started"
        message = "No study logged yet today. Start a session now."
    elif session.efficiency >= 100:
        status = "exceeded"
        message = "Goal exceeded. Great work today."
    elif session.efficiency >= 80:
        status = "good"
        message = "You followed today's plan well. Keep this pace."
    elif session.efficiency >= 60:
        status = "fair"
        message = "A little short of plan. Give it more time tomorrow."
    else:
        status = "insufficient"
        message = "Well short of today's plan. Focus harder tomorrow."
    return {
        "date": session.date,
        "total_hours": session.total_completed_hours,
        "planned_hours": session.total_planned_hours,
        "efficiency": session.efficiency,
        "status": status,
        "recommendation": message,
    }


def benchmark_comparison(period: str, actual_hours: float, benchmark: Benchmark) -> dict:
    target = benchmark.daily_average_hours * PERIOD_DAYS[period]
    ratio = actual_hours / target * 100 if target > 0 else 0.0
    return {
        "period": period,
        "target": target,
        "actual": actual_hours,
        "ratio": round(ratio, 1),
        "met": ratio >= 100,
    }


@dataclass(frozen=True)
class Recommendation:
    priority: str | int
    action: str
    description: str
    timeline: str = ""
    actions: list = field(default_factory=list)


def subject_improvement_plan(progress: SubjectProgress, benchmark: Benchmark) -> list[Recommendation]:
    plan = []
    if 0 < progress.average_mock_score < WEAK_SCORE_THRESHOLD:
        plan.append(Recommendation(
            "high", "Rebuild the fundamentals",
            f"{progress.name} averages {round(progress.average_mock_score)}% on mock exams. "
            "Go back over core concepts with past questions.",
            "2 weeks",
        ))
        needed = benchmark.target_hours_for(progress.name) - progress.actual_hours
        if needed > 0:
            plan.append(Recommendation(
                "high", "Increase study time",
                f"Raise {progress.actual_hours:.1f}h to {benchmark.target_hours_for(progress.name):g}h "
                f"({needed:.1f}h more).",
                "4 weeks",
            ))
    if progress.trend == "down":
        plan.append(Recommendation(
            "high", "Change approach",
            "Recent scores are falling. Drill the questions you got wrong.",
            "1 week",
        ))
    if progress.rotations_completed < WEAK_ROTATION_THRESHOLD:
        missing = WEAK_ROTATION_THRESHOLD - progress.rotations_completed
        plan.append(Recommendation(
            "medium", f"Complete {missing} more rotation(s)",
            f"{progress.rotations_completed} done, {missing} to go. Expect "
            f"{missing * 7}-{missing * 10} points from the remaining passes.",
            "3 weeks",
        ))
    if 0 < progress.efficiency < 70:
        plan.append(Recommendation(
            "medium", "Improve study efficiency",
            f"Studying {round(progress.efficiency)}% of planned time. Aim for 80% or more.",
            "ongoing",
        ))
    return plan or [Recommendation("low", "Keep going", "Progress looks healthy. Stay the course.", "ongoing")]


def pace_status(actual_hours: float, target_hours: float) -> str:
    progress = actual_hours / target_hours * 100 if target_hours > 0 else 0.0
    if progress > 120:
        return "well ahead of target"
    if progress > 100:
        return "target reached"
    if progress > 80:
        return "good pace"
    if progress > 60:
        return "needs improvement"
    return "needs to speed up"


def learning_patterns(
    progress_list: Sequence[SubjectProgress],
    intervals: Sequence[IntervalRecord],
    benchmark: Benchmark,
    today: DayLike,
) -> list[dict]:
    """Per-subject activity, ordered by estimated days left to reach the target."""
    week_ago = shift_day(today, -7)
    patterns = []
    for p in progress_list:
        done = [r for r in intervals if r.subject == p.name and r.completed]
        days = {r.date for r in done}
        target = benchmark.target_hours_for(p.name)
        daily = p.actual_hours / len(days) if days else 0.0
        remaining = max(0.0, target - p.actual_hours)
        if remaining == 0:
            days_left = 0
        elif daily > 0:
            days_left = math.ceil(remaining / daily)
        else:
            days_left = None
        patterns.append({
            "subject": p.name,
            "total_sessions": len(done),
            "last_study": max(days) if days else None,
            "avg_hours_per_session": round(p.actual_hours / len(done), 1) if done else 0.0,
            "recent_week_sessions": sum(1 for r in done if r.date >= week_ago),
            "pace": pace_status(p.actual_hours, target),
            "days_to_target": days_left,
        })
    return sorted(patterns, key=lambda x: (x["days_to_target"] is None, x["days_to_target"] or 0))


def next_milestone(total_hours: float, daily_average: float, target_total: float) -> dict:
    upcoming = [m for m in get_milestones() if m > total_hours]
    if not upcoming:
        return {"milestone": target_total, "current": total_hours, "remaining": 0.0, "days_needed": 0, "reached": True}
    milestone = upcoming[0]
    remaining = milestone - total_hours
    return {
        "milestone": milestone,
        "current": total_hours,
        "remaining": round(remaining, 1),
        "days_needed": math.ceil(remaining / daily_average) if daily_average > 0 else 0,
        "reached": False,
    }


@dataclass(frozen=True)
class Report:
    date: str
    efficiency: EfficiencyScore
    recommendations: list
    milestone: dict
    weak_summary: dict
    subject_plans: dict = field(default_factory=dict)
    score_alerts: list = field(default_factory=list)


def comprehensive_report(repo, today: DayLike | None = None) -> Report:
    """Prioritised guidance for the whole store."""
    day = parse_day(today or date.today())
    score = repo.efficiency_score()
    weak: list[WeakSubject] = repo.weak_subjects()
    weekly = repo.weekly_stats(day)
    benchmark = repo.benchmark
    patterns = learning_patterns(repo.all_subject_progress(), repo.intervals, benchmark, day)
    summary = summarize_weak_points(weak)

    recommendations = []
    if score.overall < 60:
        recommendations.append(Recommendation(
            1, "Improve overall study efficiency",
            f"Efficiency score is {score.overall}. Revisit how and when you study.",
            actions=["Study at a fixed time every day", "Go deep on one subject at a time",
                     "Repeat the questions you got wrong"],
        ))
    if weak:
        recommendations.append(Recommendation(
            2, f"Focus on {len(weak)} weak subject(s)", summary["summary"],
            actions=[f"{w.name}: {', '.join(w.issues)}" for w in weak[:3]],
        ))
    slow = [p for p in patterns if p["days_to_target"] is None or p["days_to_target"] > 100][:2]
    if slow:
        recommendations.append(Recommendation(
            3, "Start on stalled subjects",
            f"{', '.join(p['subject'] for p in slow)} are moving slowly.",
            actions=[f"{p['subject']}: study at least 3 days a week" for p in slow],
        ))
    if weekly.study_days < 5:
        recommendations.append(Recommendation(
            4, "Study more consistently",
            f"Only {weekly.study_days} study day(s) this week. Aim for 6.",
            actions=["Plan the week ahead", "Set a daily minimum", "Keep a study calendar"],
        ))

    return Report(
        date=day.isoformat(),
        efficiency=score,
        recommendations=sorted(recommendations, key=lambda r: r.priority),
        milestone=next_milestone(
            total_study_hours(repo.intervals), average_daily_hours(repo.intervals), benchmark.target_total_hours,
        ),
        weak_summary=summary,
        subject_plans={w.name: subject_improvement_plan(w.progress, benchmark) for w in weak if w.progress},
        score_alerts=get_weak_subjects_by_score(repo.scores),
    )
