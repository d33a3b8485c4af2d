"""Session summaries and period rollups derived from the interval log.

Everything here is a pure function of the log and a date or range. Nothing is
cached: any later change to a record on a given day changes that day's summary.
"""
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta

from study_tracker.models import IntervalRecord

DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

DayLike = date | str


def parse_day(value: DayLike) -> date:
    return value if isinstance(value, date) else date.fromisoformat(value)


def days_between(earlier: DayLike, later: DayLike) -> int:
    """Calendar days from ``earlier`` to ``later`` (negative if reversed)."""
    return (parse_day(later) - parse_day(earlier)).days


def shift_day(day: DayLike, offset: int) -> str:
    return (parse_day(day) + timedelta(days=offset)).isoformat()


def week_start(day: DayLike) -> date:
    d = parse_day(day)
    return d - timedelta(days=d.weekday())


def efficiency_ratio(actual: float, planned: float) -> float:
    """Completed over planned hours as a percentage. Not clamped."""
    return actual / planned * 100 if planned > 0 else 0.0


@dataclass(frozen=True)
class SessionSummary:
    date: str
    planned_count: int
    completed_intervals: tuple
    total_planned_hours: float
    total_completed_hours: float
    has_studied: bool

    @property
    def efficiency(self) -> float:
        return efficiency_ratio(self.total_completed_hours, self.total_planned_hours)

    @property
    def completed_count(self) -> int:
        return len(self.completed_intervals)


def session_for_date(intervals: Iterable[IntervalRecord], day: DayLike) -> SessionSummary:
    key = parse_day(day).isoformat()
    on_day = [r for r in intervals if r.date == key]
    completed = tuple(r for r in on_day if r.completed)
    return SessionSummary(
        date=key,
        planned_count=len(on_day),
        completed_intervals=completed,
        total_planned_hours=sum(r.duration_hours for r in on_day),
        total_completed_hours=sum(r.duration_hours for r in completed),
        has_studied=len(completed) > 0,
    )


def summaries_for_range(intervals: Sequence[IntervalRecord], start: DayLike, end: DayLike) -> list[SessionSummary]:
    """One summary per calendar day from ``start`` to ``end`` inclusive."""
    first, last = parse_day(start), parse_day(end)
    return [
        session_for_date(intervals, first + timedelta(days=i))
        for i in range((last - first).days + 1)
    ]


@dataclass(frozen=True)
class DayStats:
    date: str
    day: str
    completed_hours: float
    planned_hours: float
    efficiency: float


@dataclass(frozen=True)
class WeeklyStats:
    week_start: str
    week_end: str
    total_hours: float
    planned_hours: float
    study_days: int
    avg_efficiency: float
    daily: list = field(default_factory=list)


def weekly_stats(intervals: Sequence[IntervalRecord], day: DayLike) -> WeeklyStats:
    """Monday-to-Sunday rollup for the week containing ``day``."""
    start = week_start(day)
    summaries = summaries_for_range(intervals, start, start + timedelta(days=6))
    active = [s for s in summaries if s.planned_count > 0]
    return WeeklyStats(
        week_start=summaries[0].date,
        week_end=summaries[-1].date,
        total_hours=sum(s.total_completed_hours for s in summaries),
        planned_hours=sum(s.total_planned_hours for s in summaries),
        study_days=sum(1 for s in summaries if s.has_studied),
        avg_efficiency=sum(s.efficiency for s in active) / len(active) if active else 0.0,
        daily=[
            DayStats(s.date, DAY_NAMES[i], s.total_completed_hours, s.total_planned_hours, s.efficiency)
            for i, s in enumerate(summaries)
        ],
    )


@dataclass(frozen=True)
class MonthlyStats:
    month: str
    total_hours: float
    planned_hours: float
    efficiency: float
    study_days: int
    avg_hours_per_day: float
    subject_hours: dict = field(default_factory=dict)


def month_bounds(month: str) -> tuple[date, date]:
    first = date.fromisoformat(f"{month}-01")
    nxt = (first.replace(day=28) + timedelta(days=4)).replace(day=1)
    return first, nxt - timedelta(days=1)


def monthly_stats(intervals: Sequence[IntervalRecord], month: str) -> MonthlyStats:
    """Rollup for a ``YYYY-MM`` month."""
    first, last = month_bounds(month)
    summaries = summaries_for_range(intervals, first, last)
    total = sum(s.total_completed_hours for s in summaries)
    planned = sum(s.total_planned_hours for s in summaries)
    days = sum(1 for s in summaries if s.has_studied)
    by_subject: dict[str, float] = {}
    for s in summaries:
        for r in s.completed_intervals:
            by_subject[r.subject] = by_subject.get(r.subject, 0.0) + r.duration_hours
    return MonthlyStats(
        month=month,
        total_hours=total,
        planned_hours=planned,
        efficiency=efficiency_ratio(total, planned),
        study_days=days,
        avg_hours_per_day=total / days if days else 0.0,
        subject_hours=by_subject,
    )


def recent_days(intervals: Sequence[IntervalRecord], today: DayLike, days: int = 7) -> list[tuple[str, float]]:
    """Completed hours for the trailing ``days`` days ending today, oldest first."""
    end = parse_day(today)
    return [
        (s.date, s.total_completed_hours)
        for s in summaries_for_range(intervals, end - timedelta(days=days - 1), end)
    ]


def total_study_hours(intervals: Iterable[IntervalRecord]) -> float:
    return sum(r.duration_hours for r in intervals if r.completed)


def study_days(intervals: Iterable[IntervalRecord]) -> list[str]:
    """Sorted distinct days with at least one completed interval."""
    return sorted({r.date for r in intervals if r.completed})


def average_daily_hours(intervals: Sequence[IntervalRecord]) -> float:
    days = study_days(intervals)
    if not days:
        return 0.0
    return total_study_hours(intervals) / len(days)


def subject_hours(intervals: Iterable[IntervalRecord], subject: str) -> tuple[float, float]:
    """(planned, actual) hours for one subject. Actual counts completed intervals only."""
    planned = actual = 0.0
    for r in intervals:
        if r.subject != subject:
            continue
        planned += r.duration_hours
        if r.completed:
            actual += r.duration_hours
    return planned, actual
