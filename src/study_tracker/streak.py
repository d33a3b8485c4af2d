"""Streak bookkeeping kept consistent with the interval log.

The streak is the only cached aggregate. These functions take the cached
state plus the log and return the next state; inputs are never mutated.
"""
import logging
from collections.abc import Sequence

from study_tracker.config import STREAK_SCAN_DAYS
from study_tracker.models import IntervalRecord, StreakState
from study_tracker.study import DayLike, days_between, parse_day, session_for_date, shift_day, study_days

logger = logging.getLogger(__name__)


def derive_streak(intervals: Sequence[IntervalRecord]) -> StreakState:
    """Rebuild the whole streak state from the log."""
    days = study_days(intervals)
    if not days:
        return StreakState()
    run = longest = 1
    for prev, cur in zip(days, days[1:]):
        run = run + 1 if days_between(prev, cur) == 1 else 1
        longest = max(longest, run)
    return StreakState(
        current_length=run,
        longest_length=longest,
        last_study_date=days[-1],
        total_study_days=len(days),
    )


def recompute_on_study(state: StreakState, intervals: Sequence[IntervalRecord], day: DayLike) -> StreakState:
    """Advance the streak after ``day`` gained a completed interval.

    Same-day re-triggers are no-ops. A day earlier than the cached last study
    day may bridge an old gap, so the state is rebuilt from the log instead.
    """
    key = parse_day(day).isoformat()
    if not session_for_date(intervals, key).has_studied:
        return state
    last = state.last_study_date
    if last == key:
        return state

    if last is None:
        current = 1
        logger.info("First streak day: %s", key)
    else:
        gap = days_between(last, key)
        if gap < 0:
            logger.info("Study logged for past day %s, rebuilding streak", key)
            return derive_streak(intervals)
        if gap == 1:
            current = state.current_length + 1
            logger.info("Streak extended to %d days", current)
        else:
            current = 1
            logger.info("Streak broken after %d-day gap, restarting at %s", gap, key)

    return StreakState(
        current_length=current,
        longest_length=max(state.longest_length, current),
        last_study_date=key,
        total_study_days=state.total_study_days + 1,
    )


def find_last_study_date(
    intervals: Sequence[IntervalRecord], before: DayLike, scan_days: int = STREAK_SCAN_DAYS,
) -> str | None:
    """Most recent study day strictly before ``before``, looking back at most ``scan_days`` days."""
    studied = set(study_days(intervals))
    for offset in range(1, scan_days + 1):
        candidate = shift_day(before, -offset)
        if candidate in studied:
            return candidate
    return None


def _run_ending_at(studied: set[str], day: str) -> int:
    length = 0
    while shift_day(day, -length) in studied:
        length += 1
    return length


def reconcile_after_removal(
    state: StreakState, intervals: Sequence[IntervalRecord], scan_days: int = STREAK_SCAN_DAYS,
) -> StreakState:
    """Repair the cached streak after an interval was removed or un-completed.

    If the cached last study day lost all its completed intervals, the
    preceding day is checked first, then up to ``scan_days`` days back. Past
    that bound the streak resets to empty. When the last day is still studied
    but an earlier day dropped out, the counts are rebuilt from the log.
    """
    last = state.last_study_date
    if last is None:
        return state
    if session_for_date(intervals, last).has_studied:
        derived = derive_streak(intervals)
        if derived == state:
            return state
        logger.info("Earlier study day dropped, streak rebuilt to %d days", derived.current_length)
        return derived

    yesterday = shift_day(last, -1)
    if session_for_date(intervals, yesterday).has_studied:
        found = yesterday
        logger.info("Last study day moved back to %s", found)
    else:
        found = find_last_study_date(intervals, last, scan_days)
        if found is None:
            logger.info("No study within %d days of %s, streak reset", scan_days, last)
            return StreakState()
        logger.info("Last study day found at %s", found)

    studied = set(study_days(intervals))
    return StreakState(
        current_length=_run_ending_at(studied, found),
        longest_length=derive_streak(intervals).longest_length,
        last_study_date=found,
        total_study_days=len(studied),
    )


def is_streak_active(state: StreakState, today: DayLike) -> bool:
    """True while the streak can still be extended: last study was today or yesterday."""
    if state.last_study_date is None:
        return False
    return days_between(state.last_study_date, today) in (0, 1)


def effective_current(state: StreakState, today: DayLike) -> int:
    return state.current_length if is_streak_active(state, today) else 0
