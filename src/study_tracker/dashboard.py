"""Composite efficiency score and dashboard statistics."""
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from study_tracker.config import EFFICIENCY_WEIGHTS
from study_tracker.models import IntervalRecord, ScoreRecord, StreakState
from study_tracker.review import SubjectProgress
from study_tracker.study import average_daily_hours, study_days, total_study_hours


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def get_rating(score: float) -> tuple[str, str]:
    if score >= 90:
        return "A+", "EXCELLENT"
    elif score >= 80:
        return "A", "GOOD"
    elif score >= 70:
        return "B+", "SOLID"
    elif score >= 60:
        return "B", "FAIR"
    elif score >= 50:
        return "C", "LACKING"
    return "F", "NEEDS WORK"


def get_rating_color(score: float) -> str:
    if score >= 80:
        return "green"
    elif score >= 65:
        return "yellow"
    elif score >= 50:
        return "dark_orange"
    return "red"


def display_efficiency(value: float, cap: float = 100.0) -> float:
    """Clamp a raw efficiency ratio for display. The stored ratio stays unclamped."""
    return max(0.0, min(cap, value))


@dataclass(frozen=True)
class EfficiencyScore:
    overall: int
    time_efficiency: int
    progress_rate: int
    mock_score: int
    streak_score: int
    rating: tuple


def _time_efficiency(progress_list: Sequence[SubjectProgress]) -> float:
    planned = sum(p.planned_hours for p in progress_list)
    actual = sum(p.actual_hours for p in progress_list)
    return min(100.0, actual / max(planned, 1) * 100)


def _mock_score(scores: Sequence[ScoreRecord]) -> float:
    if not scores:
        return 0.0
    return min(100.0, sum(s.score_percent for s in scores) / len(scores))


def calc_efficiency_score(
    progress_list: Sequence[SubjectProgress],
    scores: Sequence[ScoreRecord],
    intervals: Sequence[IntervalRecord],
    min_study_days: int,
    weights: Mapping[str, float] = EFFICIENCY_WEIGHTS,
) -> EfficiencyScore:
    time = _time_efficiency(progress_list)
    progress = sum(p.progress_percent for p in progress_list) / len(progress_list) if progress_list else 0.0
    mock = _mock_score(scores)
    streak = min(100.0, len(study_days(intervals)) / max(min_study_days, 1) * 100)
    # Weighted: time 40%, progress 30%, mock 20%, streak 10%
    overall = (
        time * weights["time"]
        + progress * weights["progress"]
        + mock * weights["mock"]
        + streak * weights["streak"]
    )
    return EfficiencyScore(
        overall=round_half_up(overall),
        time_efficiency=round_half_up(time),
        progress_rate=round_half_up(progress),
        mock_score=round_half_up(mock),
        streak_score=round_half_up(streak),
        rating=get_rating(overall),
    )


def get_study_stats(intervals: Sequence[IntervalRecord], scores: Sequence[ScoreRecord], streak: StreakState) -> dict:
    return {
        "total_hours": round(total_study_hours(intervals), 1),
        "study_days": len(study_days(intervals)),
        "intervals_logged": len(intervals),
        "intervals_completed": sum(1 for r in intervals if r.completed),
        "avg_daily_hours": round(average_daily_hours(intervals), 1),
        "mock_exams": len(scores),
        "current_streak": streak.current_length,
        "longest_streak": streak.longest_length,
    }
