"""Tests for the recommendation layer."""
import pytest

from study_tracker.config import get_benchmark
from study_tracker.report import (
    benchmark_comparison, comprehensive_report, learning_patterns, next_milestone, pace_status,
    subject_improvement_plan, today_analysis,
)
from study_tracker.review import subject_progress
from study_tracker.rotation import RotationTracker
from study_tracker.study import session_for_date


@pytest.fixture
def primary():
    return get_benchmark("primary")


@pytest.mark.parametrize("completed,planned_extra,status", [
    (0, 2, "not_started"),
    (2, 0, "exceeded"),
    (4, 1, "good"),
    (3, 1, "fair"),
    (1, 3, "insufficient"),
])
def test_today_analysis(make_interval, completed, planned_extra, status):
    log = []
    if completed:
        log.append(make_interval(start="06:00", end=f"{6 + completed:02d}:00"))
    if planned_extra:
        log.append(make_interval(start="14:00", end=f"{14 + planned_extra:02d}:00", completed=False))
    result = today_analysis(session_for_date(log, "2025-01-01"))
    assert result["status"] == status
    assert result["recommendation"]


def test_benchmark_comparison(primary):
    weekly = benchmark_comparison("weekly", 28, primary)
    assert weekly["target"] == 35
    assert weekly["ratio"] == 80
    assert weekly["met"] is False
    assert benchmark_comparison("daily", 6, primary)["met"] is True


def test_improvement_plan_for_struggling_subject(make_interval, make_score, primary):
    p = subject_progress("Civil Law", [make_interval(subject="Civil Law")],
                         [make_score(70, subject="Civil Law"), make_score(40, subject="Civil Law", day="2025-01-02")],
                         None, primary.target_hours_for("Civil Law"))
    plan = subject_improvement_plan(p, primary)
    actions = [r.action for r in plan]
    assert actions[:3] == ["Rebuild the fundamentals", "Increase study time", "Change approach"]
    assert "178.0h more" in plan[1].description
    assert any(a.startswith("Complete 3 more rotation") for a in actions)


def test_improvement_plan_for_healthy_subject(make_interval, make_score, primary):
    log = [make_interval(day=f"2025-01-0{i}", start="08:00", end="18:00") for i in range(1, 6)]
    t = RotationTracker("Law")
    for i in (1, 2, 3):
        t.complete(i)
    plan = subject_improvement_plan(subject_progress("Law", log, [make_score(85)], t), primary)
    assert [r.priority for r in plan] == ["low"]


@pytest.mark.parametrize("actual,label", [
    (130, "well ahead of target"),
    (110, "target reached"),
    (90, "good pace"),
    (70, "needs improvement"),
    (10, "needs to speed up"),
])
def test_pace_status(actual, label):
    assert pace_status(actual, 100) == label


def test_learning_patterns_order(make_interval, primary):
    log = [
        make_interval(subject="Law", day="2025-01-01", start="08:00", end="18:00"),
        make_interval(subject="Civil Law", day="2025-01-01"),
        make_interval(subject="Tax", day="2025-01-01", completed=False),
    ]
    progress = [subject_progress(s, log, [], None, primary.target_hours_for(s)) for s in ("Tax", "Civil Law", "Law")]
    patterns = learning_patterns(progress, log, primary, "2025-01-03")
    assert [p["subject"] for p in patterns] == ["Law", "Civil Law", "Tax"]
    assert patterns[0]["days_to_target"] == 9
    assert patterns[1]["days_to_target"] == 89
    assert patterns[2]["days_to_target"] is None
    assert patterns[0]["recent_week_sessions"] == 1


def test_next_milestone():
    m = next_milestone(100, 5, 1200)
    assert m == {"milestone": 250, "current": 100, "remaining": 150, "days_needed": 30, "reached": False}
    assert next_milestone(1300, 5, 1200)["reached"] is True
    assert next_milestone(0, 0, 1200)["days_needed"] == 0


def test_comprehensive_report_empty_store(repo):
    report = comprehensive_report(repo, "2025-01-01")
    assert report.date == "2025-01-01"
    assert report.efficiency.overall == 0
    assert [r.priority for r in report.recommendations] == [1, 4]
    assert report.milestone["milestone"] == 250


def test_comprehensive_report_with_weak_subjects(repo):
    repo.add_interval({"date": "2025-01-01", "subject": "Law", "startTime": "09:00", "endTime": "11:00", "completed": True})
    repo.add_score({"subject": "Law", "score": 30})
    report = comprehensive_report(repo, "2025-01-01")
    priorities = [r.priority for r in report.recommendations]
    assert priorities == sorted(priorities)
    assert 2 in priorities
    weak_rec = next(r for r in report.recommendations if r.priority == 2)
    assert weak_rec.actions[0].startswith("Law: ")
    assert report.weak_summary["high_severity"] == 1


def test_comprehensive_report_plans_each_weak_subject(repo):
    repo.add_interval({"date": "2025-01-01", "subject": "Law", "startTime": "09:00", "endTime": "11:00", "completed": True})
    repo.add_score({"subject": "Law", "score": 30})
    report = comprehensive_report(repo, "2025-01-01")
    assert set(report.subject_plans) == {w.name for w in repo.weak_subjects()}
    assert report.subject_plans["Law"][0].action == "Rebuild the fundamentals"
    assert report.score_alerts == [{"subject": "Law", "avg_score": 30, "count": 1}]
