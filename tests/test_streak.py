"""Tests for streak bookkeeping."""
from study_tracker.models import StreakState
from study_tracker.streak import (
    derive_streak, effective_current, find_last_study_date, is_streak_active, recompute_on_study,
    reconcile_after_removal,
)


def _play(log, days):
    """Feed each day through recompute in order, as the repository would."""
    state = StreakState()
    for d in days:
        state = recompute_on_study(state, log, d)
    return state


def test_first_study_day(make_interval):
    log = [make_interval(day="2025-01-01")]
    assert recompute_on_study(StreakState(), log, "2025-01-01") == StreakState(1, 1, "2025-01-01", 1)


def test_consecutive_days_extend(make_interval):
    days = ["2025-01-01", "2025-01-02", "2025-01-03"]
    state = _play([make_interval(day=d) for d in days], days)
    assert state == StreakState(3, 3, "2025-01-03", 3)


def test_recompute_same_day_is_idempotent(make_interval):
    log = [make_interval(day="2025-01-01"), make_interval(day="2025-01-02")]
    once = _play(log, ["2025-01-01", "2025-01-02"])
    twice = recompute_on_study(once, log, "2025-01-02")
    assert twice.current_length == once.current_length
    assert twice.total_study_days == once.total_study_days


def test_gap_restarts_current(make_interval):
    days = ["2025-01-07", "2025-01-08", "2025-01-10"]
    state = _play([make_interval(day=d) for d in days], days)
    assert state.current_length == 1
    assert state.longest_length >= 2
    assert state.last_study_date == "2025-01-10"
    assert state.total_study_days == 3


def test_day_without_completed_study_is_ignored(make_interval):
    log = [make_interval(day="2025-01-01", completed=False)]
    assert recompute_on_study(StreakState(), log, "2025-01-01") == StreakState()


def test_backfilled_day_rebuilds_from_log(make_interval):
    log = [make_interval(day="2025-01-01"), make_interval(day="2025-01-03")]
    state = _play(log, ["2025-01-01", "2025-01-03"])
    assert state.current_length == 1
    log.append(make_interval(day="2025-01-02"))
    state = recompute_on_study(state, log, "2025-01-02")
    assert state == StreakState(3, 3, "2025-01-03", 3)


def test_derive_streak(make_interval):
    days = ["2025-01-01", "2025-01-02", "2025-01-03", "2025-01-05", "2025-01-06"]
    log = [make_interval(day=d) for d in days] + [make_interval(day="2025-01-09", completed=False)]
    assert derive_streak(log) == StreakState(2, 3, "2025-01-06", 5)
    assert derive_streak([]) == StreakState()


def test_removing_later_of_two_days_moves_back(make_interval):
    log = [make_interval(day="2025-01-01"), make_interval(day="2025-01-02")]
    state = _play(log, ["2025-01-01", "2025-01-02"])
    assert state.current_length == 2
    log.pop()
    state = reconcile_after_removal(state, log)
    assert state.last_study_date == "2025-01-01"
    assert state.current_length == 1
    assert state.total_study_days == 1


def test_reconcile_noop_while_last_day_still_studied(make_interval):
    log = [make_interval(day="2025-01-01"), make_interval(day="2025-01-01", start="13:00", end="14:00")]
    state = _play(log, ["2025-01-01"])
    log.pop()
    assert reconcile_after_removal(state, log) is state


def test_reconcile_rebuilds_when_middle_day_dropped(make_interval):
    log = [make_interval(day=d) for d in ("2025-01-01", "2025-01-02", "2025-01-03")]
    state = _play(log, ["2025-01-01", "2025-01-02", "2025-01-03"])
    assert state == StreakState(3, 3, "2025-01-03", 3)
    del log[1]
    assert reconcile_after_removal(state, log) == StreakState(1, 1, "2025-01-03", 2)


def test_reconcile_scans_back(make_interval):
    log = [make_interval(day="2025-01-01"), make_interval(day="2025-01-20")]
    state = _play(log, ["2025-01-01", "2025-01-20"])
    log.pop()
    state = reconcile_after_removal(state, log)
    assert state.last_study_date == "2025-01-01"
    assert state.current_length == 1


def test_reconcile_resets_past_scan_window(make_interval):
    log = [make_interval(day="2025-01-01"), make_interval(day="2025-01-20")]
    state = _play(log, ["2025-01-01", "2025-01-20"])
    log.pop()
    assert reconcile_after_removal(state, log, scan_days=5) == StreakState()


def test_reconcile_when_log_empties(make_interval):
    log = [make_interval(day="2025-01-01")]
    state = _play(log, ["2025-01-01"])
    assert reconcile_after_removal(state, []) == StreakState()


def test_find_last_study_date(make_interval):
    log = [make_interval(day="2025-01-01"), make_interval(day="2025-01-05")]
    assert find_last_study_date(log, "2025-01-05") == "2025-01-01"
    assert find_last_study_date(log, "2025-01-05", scan_days=3) is None


def test_streak_activity_window():
    state = StreakState(4, 4, "2025-01-10", 4)
    assert is_streak_active(state, "2025-01-10")
    assert is_streak_active(state, "2025-01-11")
    assert not is_streak_active(state, "2025-01-12")
    assert effective_current(state, "2025-01-11") == 4
    assert effective_current(state, "2025-01-12") == 0
    assert not is_streak_active(StreakState(), "2025-01-10")
