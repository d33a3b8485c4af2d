"""Subject progress and weak-subject identification."""
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from study_tracker.config import (
    TREND_MARGIN, TREND_WINDOW, WEAK_EFFICIENCY_THRESHOLD, WEAK_PROGRESS_THRESHOLD,
    WEAK_ROTATION_THRESHOLD, WEAK_SCORE_THRESHOLD,
)
from study_tracker.models import IntervalRecord, ScoreRecord
from study_tracker.rotation import RotationTracker
from study_tracker.study import efficiency_ratio, subject_hours

SEVERITY_ORDER = {"high": 0, "medium": 1, "low": 2}


def score_trend(percents: Sequence[float]) -> str:
    """Classify the last few scores as 'up', 'down' or 'stable'."""
    if len(percents) < 2:
        return "stable"
    window = list(percents)[-TREND_WINDOW:]
    mean = sum(window) / len(window)
    first = window[0]
    if mean > first + TREND_MARGIN:
        return "up"
    if mean < first - TREND_MARGIN:
        return "down"
    return "stable"


def scores_for_subject(scores: Iterable[ScoreRecord], subject: str) -> list[ScoreRecord]:
    """A subject's scores, oldest first. Same-day scores keep insertion order."""
    return sorted((s for s in scores if s.subject == subject), key=lambda s: s.date)


def average_mock_score(scores: Iterable[ScoreRecord], subject: str) -> float:
    own = [s.score_percent for s in scores if s.subject == subject]
    return sum(own) / len(own) if own else 0.0


@dataclass(frozen=True)
class SubjectProgress:
    name: str
    planned_hours: float
    actual_hours: float
    efficiency: float
    average_mock_score: float
    recent_score: float | None
    trend: str
    score_count: int
    rotations_completed: int
    rotation_progress: float
    next_rotation: int
    progress_percent: float


def subject_progress(
    subject: str,
    intervals: Sequence[IntervalRecord],
    scores: Sequence[ScoreRecord],
    tracker: RotationTracker | None,
    target_hours: float = 100.0,
) -> SubjectProgress:
    planned, actual = subject_hours(intervals, subject)
    percents = [s.score_percent for s in scores_for_subject(scores, subject)]
    tracker = tracker or RotationTracker(subject)
    return SubjectProgress(
        name=subject,
        planned_hours=planned,
        actual_hours=actual,
        efficiency=efficiency_ratio(actual, planned),
        average_mock_score=sum(percents) / len(percents) if percents else 0.0,
        recent_score=percents[-1] if percents else None,
        trend=score_trend(percents),
        score_count=len(percents),
        rotations_completed=tracker.completed_count,
        rotation_progress=tracker.progress_percent,
        next_rotation=tracker.next_rotation,
        progress_percent=min(100.0, actual / target_hours * 100) if target_hours > 0 else 0.0,
    )


def known_subjects(
    intervals: Iterable[IntervalRecord],
    scores: Iterable[ScoreRecord],
    trackers: Mapping[str, RotationTracker] | None = None,
) -> list[str]:
    """Every subject mentioned anywhere, in first-seen order."""
    seen: dict[str, None] = {}
    for r in intervals:
        seen.setdefault(r.subject)
    for s in scores:
        seen.setdefault(s.subject)
    for name in trackers or {}:
        seen.setdefault(name)
    return list(seen)


def find_issues(progress: SubjectProgress) -> list[tuple[str, str]]:
    """(issue, severity) pairs for every weakness rule the subject trips."""
    issues = []
    if 0 < progress.average_mock_score < WEAK_SCORE_THRESHOLD:
        issues.append(("mock exam average below passing", "high"))
    if progress.trend == "down":
        issues.append(("recent scores declining", "high"))
    if 0 < progress.efficiency < WEAK_EFFICIENCY_THRESHOLD:
        issues.append(("not enough of the planned time studied", "medium"))
    if progress.rotations_completed < WEAK_ROTATION_THRESHOLD:
        missing = WEAK_ROTATION_THRESHOLD - progress.rotations_completed
        issues.append((f"{missing} rotation(s) short of {WEAK_ROTATION_THRESHOLD}", "medium"))
    if progress.progress_percent < WEAK_PROGRESS_THRESHOLD:
        issues.append((f"progress under {WEAK_PROGRESS_THRESHOLD:g}%", "medium"))
    return issues


@dataclass(frozen=True)
class WeakSubject:
    name: str
    issues: list = field(default_factory=list)
    severity: str = "low"
    current_score: float = 0.0
    average_score: float = 0.0
    efficiency: float = 0.0
    trend: str = "stable"
    progress: SubjectProgress | None = None

    @property
    def total_issues(self) -> int:
        return len(self.issues)


def get_weak_subjects(progress_list: Iterable[SubjectProgress]) -> list[WeakSubject]:
    """Subjects with at least one issue, high severity first (stable otherwise)."""
    weak = []
    for p in progress_list:
        found = find_issues(p)
        if not found:
            continue
        severities = [sev for _, sev in found]
        weak.append(WeakSubject(
            name=p.name,
            issues=[issue for issue, _ in found],
            severity="high" if "high" in severities else severities[0],
            current_score=p.recent_score or 0.0,
            average_score=p.average_mock_score,
            efficiency=p.efficiency,
            trend=p.trend,
            progress=p,
        ))
    return sorted(weak, key=lambda w: SEVERITY_ORDER[w.severity])


def summarize_weak_points(weak: Sequence[WeakSubject]) -> dict:
    total = sum(w.total_issues for w in weak)
    high = sum(1 for w in weak if w.severity == "high")
    medium = sum(1 for w in weak if w.severity == "medium")
    return {
        "total_weak_subjects": len(weak),
        "total_issues": total,
        "high_severity": high,
        "medium_severity": medium,
        "summary": f"{total} issue(s) across {len(weak)} subject(s): {high} high priority, {medium} medium",
    }


def get_weak_subjects_by_score(scores: Sequence[ScoreRecord], threshold: float = WEAK_SCORE_THRESHOLD) -> list[dict]:
    """Subjects whose mock average is below ``threshold``, worst first."""
    results = []
    for subject in known_subjects([], scores):
        avg = average_mock_score(scores, subject)
        if avg < threshold:
            results.append({
                "subject": subject,
                "avg_score": round(avg, 1),
                "count": sum(1 for s in scores if s.subject == subject),
            })
    return sorted(results, key=lambda r: r["avg_score"])


def analyze_effectiveness(progress: SubjectProgress) -> dict:
    avg = progress.average_mock_score
    return {
        "subject": progress.name,
        "avg_score": round(avg),
        "rotation_progress": round(progress.rotation_progress),
        "study_hours": round(progress.actual_hours, 1),
        "score_label": "strong" if avg > 70 else "fair" if avg > 50 else "weak",
        "rotation_label": "in progress" if progress.rotation_progress > 50 else "early stage",
    }
