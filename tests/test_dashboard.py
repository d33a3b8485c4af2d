"""Tests for the composite efficiency score."""
import pytest

from study_tracker.dashboard import (
    calc_efficiency_score, display_efficiency, get_rating, get_rating_color, get_study_stats, round_half_up,
)
from study_tracker.models import StreakState
from study_tracker.review import SubjectProgress, subject_progress


@pytest.mark.parametrize("score,expected", [
    (95, ("A+", "EXCELLENT")),
    (90, ("A+", "EXCELLENT")),
    (89.9, ("A", "GOOD")),
    (70, ("B+", "SOLID")),
    (60, ("B", "FAIR")),
    (50, ("C", "LACKING")),
    (49, ("F", "NEEDS WORK")),
])
def test_get_rating(score, expected):
    assert get_rating(score) == expected


def test_rating_color():
    assert get_rating_color(85) == "green"
    assert get_rating_color(10) == "red"


def test_round_half_up():
    assert round_half_up(62.5) == 63
    assert round_half_up(0.5) == 1
    assert round_half_up(2.4) == 2


def test_display_efficiency_clamps():
    assert display_efficiency(150) == 100
    assert display_efficiency(-5) == 0
    assert display_efficiency(42.0) == 42.0


def test_empty_store_scores_zero():
    score = calc_efficiency_score([], [], [], min_study_days=200)
    assert score.overall == 0
    assert score.rating == ("F", "NEEDS WORK")


def test_weighted_composite(make_interval, make_score):
    log = [make_interval(start="09:00", end="14:00"), make_interval(day="2025-01-02", start="09:00", end="14:00", completed=False)]
    progress = [subject_progress("Law", log, [], None, target_hours=100)]
    score = calc_efficiency_score(progress, [make_score(80)], log, min_study_days=10)
    assert score.time_efficiency == 50
    assert score.progress_rate == 5
    assert score.mock_score == 80
    assert score.streak_score == 10
    # 50*.4 + 5*.3 + 80*.2 + 10*.1 = 38.5
    assert score.overall == 39
    assert score.rating == ("F", "NEEDS WORK")


def test_terms_capped_at_100(make_interval):
    over = SubjectProgress(
        name="Law", planned_hours=2, actual_hours=3, efficiency=150, average_mock_score=0, recent_score=None,
        trend="stable", score_count=0, rotations_completed=0, rotation_progress=0, next_rotation=1,
        progress_percent=100,
    )
    log = [make_interval(day=f"2025-01-0{i}") for i in range(1, 4)]
    score = calc_efficiency_score([over], [], log, min_study_days=2)
    assert score.time_efficiency == 100
    assert score.streak_score == 100


def test_custom_weights(make_interval):
    progress = [subject_progress("Law", [make_interval()], [], None)]
    weights = {"time": 1.0, "progress": 0.0, "mock": 0.0, "streak": 0.0}
    assert calc_efficiency_score(progress, [], [make_interval()], 200, weights).overall == 100


def test_get_study_stats(make_interval, make_score):
    log = [make_interval(), make_interval(day="2025-01-02", completed=False)]
    stats = get_study_stats(log, [make_score(70)], StreakState(1, 3, "2025-01-01", 4))
    assert stats["total_hours"] == 2
    assert stats["intervals_logged"] == 2
    assert stats["intervals_completed"] == 1
    assert stats["mock_exams"] == 1
    assert stats["longest_streak"] == 3
