"""Tests for record construction and validation."""
import pytest

from study_tracker.errors import ValidationError
from study_tracker.models import (
    IntervalRecord, IntervalUpdate, ScoreRecord, StreakState, duration_between, with_completed,
)


def test_duration_derived_from_times():
    r = IntervalRecord.from_dict({"date": "2025-01-01", "subject": "Law", "startTime": "09:00", "endTime": "11:30"})
    assert r.duration_hours == 2.5
    assert r.completed is False
    assert isinstance(r.id, str) and r.id


@pytest.mark.parametrize("start,end", [("09:00", "09:15"), ("00:00", "23:59"), ("13:45", "14:00")])
def test_duration_is_positive_for_ordered_times(start, end):
    hours = duration_between(start, end)
    assert hours > 0
    r = IntervalRecord.from_dict({"subject": "Law", "startTime": start, "endTime": end})
    assert r.duration_hours == pytest.approx(hours)


@pytest.mark.parametrize("start,end", [("11:00", "09:00"), ("10:00", "10:00")])
def test_start_not_before_end_rejected(start, end):
    with pytest.raises(ValidationError) as exc:
        IntervalRecord.from_dict({"subject": "Law", "startTime": start, "endTime": end})
    assert exc.value.field == "endTime"


@pytest.mark.parametrize("bad", ["2025/01/01", "2025-13-01", "2025-02-30", "2025-01-01\n", "", 20250101])
def test_invalid_date_rejected(bad):
    with pytest.raises(ValidationError) as exc:
        IntervalRecord.from_dict({"date": bad, "subject": "Law", "startTime": "09:00", "endTime": "10:00"})
    assert exc.value.field == "date"


@pytest.mark.parametrize("bad", ["9:00", "24:00", "10:60", "09:00\n", "noon", None])
def test_invalid_time_rejected(bad):
    with pytest.raises(ValidationError) as exc:
        IntervalRecord.from_dict({"subject": "Law", "startTime": bad, "endTime": "23:00"})
    assert exc.value.field == "startTime"


def test_blank_subject_rejected():
    with pytest.raises(ValidationError) as exc:
        IntervalRecord.from_dict({"subject": "   ", "startTime": "09:00", "endTime": "10:00"})
    assert exc.value.field == "subject"


def test_supplied_duration_must_be_in_range():
    with pytest.raises(ValidationError):
        IntervalRecord.from_dict({"subject": "Law", "startTime": "09:00", "endTime": "10:00", "durationHours": 0})
    r = IntervalRecord.from_dict({"subject": "Law", "startTime": "09:00", "endTime": "10:00", "durationHours": 0.75})
    assert r.duration_hours == 0.75


def test_legacy_keys_accepted():
    r = IntervalRecord.from_dict({
        "id": 17, "date": "2024-06-01", "subject": "Civil Law",
        "start_time": "08:00", "end_time": "09:00", "hours": 1, "detail": " ch. 3 ", "completed": True,
    })
    assert r.id == 17
    assert r.note == "ch. 3"
    assert r.completed is True


def test_completed_must_be_literal_true():
    r = IntervalRecord.from_dict({"subject": "Law", "startTime": "09:00", "endTime": "10:00", "completed": "true"})
    assert r.completed is False


def test_bool_id_rejected():
    with pytest.raises(ValidationError) as exc:
        IntervalRecord.from_dict({"id": True, "subject": "Law", "startTime": "09:00", "endTime": "10:00"})
    assert exc.value.field == "id"


def test_interval_to_dict_uses_camel_case(make_interval):
    d = make_interval(note="review").to_dict()
    assert set(d) == {"id", "date", "subject", "startTime", "endTime", "durationHours", "completed", "note"}
    assert IntervalRecord.from_dict(d) == make_interval(note="review", id=d["id"])


def test_score_percent():
    s = ScoreRecord.from_dict({"subject": "Law", "score": 45, "maxScore": 100})
    assert s.score_percent == 45
    assert ScoreRecord.from_dict({"subject": "Law", "score": 30, "maxScore": 40}).score_percent == 75


def test_score_above_max_rejected():
    with pytest.raises(ValidationError) as exc:
        ScoreRecord.from_dict({"subject": "Law", "score": 90, "maxScore": 80})
    assert exc.value.field == "score"


@pytest.mark.parametrize("data,field", [
    ({"round": 11}, "round"),
    ({"round": 1.5}, "round"),
    ({"score": -1}, "score"),
    ({"score": True}, "score"),
    ({"score": "abc"}, "score"),
    ({"maxScore": 0}, "maxScore"),
    ({"correctCount": 501}, "correctCount"),
    ({"accuracy": 101}, "accuracy"),
])
def test_score_ranges(data, field):
    with pytest.raises(ValidationError) as exc:
        ScoreRecord.from_dict({"subject": "Law", **data})
    assert exc.value.field == field


def test_score_accepts_numeric_strings():
    s = ScoreRecord.from_dict({"subject": "Law", "score": "72.5", "round": "2"})
    assert s.score == 72.5
    assert s.round == 2


def test_streak_state_from_legacy_keys():
    s = StreakState.from_dict({"current": 3, "longest": 5, "lastStudyDate": "2025-01-03", "totalDays": 9})
    assert s == StreakState(3, 5, "2025-01-03", 9)
    assert StreakState.from_dict(s.to_dict()) == s


def test_streak_state_from_non_mapping_is_empty():
    assert StreakState.from_dict(None) == StreakState()
    assert StreakState.from_dict([1, 2]) == StreakState()


def test_update_rejects_unknown_fields():
    with pytest.raises(ValidationError) as exc:
        IntervalUpdate.from_dict({"completed": True, "priority": 3})
    assert exc.value.field == "priority"


def test_update_retiming_rederives_duration(make_interval):
    original = make_interval(start="09:00", end="11:00")
    updated = IntervalUpdate.from_dict({"endTime": "12:30"}).apply_to(original)
    assert updated.duration_hours == 3.5
    assert updated.id == original.id
    assert original.end_time == "11:00"


def test_update_changed_fields():
    update = IntervalUpdate(subject="Civil Law", completed=False)
    assert update.changed_fields() == {"subject", "completed"}


def test_update_validates_result(make_interval):
    with pytest.raises(ValidationError):
        IntervalUpdate(start_time="12:00").apply_to(make_interval(start="09:00", end="11:00"))
    with pytest.raises(ValidationError):
        IntervalUpdate(completed="yes").apply_to(make_interval())


def test_with_completed_returns_new_record(make_interval):
    r = make_interval(completed=False)
    done = with_completed(r, True)
    assert done.completed is True
    assert r.completed is False
