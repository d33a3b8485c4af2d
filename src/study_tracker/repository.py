"""The study store: owns every collection and sequences each mutation.

A mutation validates its input, applies it to the interval log (or scores,
or rotation trackers), reconciles the cached streak against the log, writes a
full snapshot to storage and finally notifies subscribers. Validation errors
propagate before anything changes; unknown ids return ``False``; a failed
write is logged and the in-memory state stays authoritative.
"""
import json
import logging
import time
from collections.abc import Callable, Mapping
from datetime import date

from study_tracker import review, streak as streaks, study
from study_tracker.config import STORAGE_KEY, VERSION, Config, Benchmark, get_benchmark, load_benchmarks
from study_tracker.dashboard import EfficiencyScore, calc_efficiency_score
from study_tracker.errors import IntegrityWarning, PersistenceError, ValidationError
from study_tracker.models import (
    IntervalRecord, IntervalUpdate, RecordId, ScoreRecord, StreakState, today_str,
    validate_date, validate_subject, with_completed,
)
from study_tracker.rotation import RotationTracker

logger = logging.getLogger(__name__)

Listener = Callable[[str, object], None]


class StudyRepository:
    def __init__(
        self,
        storage,
        config: Config | None = None,
        flush_delay: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ):
        self.storage = storage
        self.config = config or Config()
        self.flush_delay = self.config.flush_delay if flush_delay is None else flush_delay
        self._clock = clock
        self._wall_clock = wall_clock
        self._intervals: list[IntervalRecord] = []
        self._scores: list[ScoreRecord] = []
        self._trackers: dict[str, RotationTracker] = {}
        self._streak = StreakState()
        self._listeners: list[Listener] = []
        self._dirty = False
        self._last_write: float | None = None
        self.exam_profile = self.config.exam_profile
        self.metadata = {"version": VERSION, "lastSyncTimestamp": None}
        self.last_persistence_error: PersistenceError | None = None
        self.load_warnings: list[IntegrityWarning] = []
        self.load()

    def __enter__(self) -> "StudyRepository":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def intervals(self) -> tuple[IntervalRecord, ...]:
        return tuple(self._intervals)

    @property
    def scores(self) -> tuple[ScoreRecord, ...]:
        return tuple(self._scores)

    @property
    def rotation_trackers(self) -> dict[str, RotationTracker]:
        """Detached copies; rotations change only through complete_rotation and toggle_rotation."""
        return {name: t.copy() for name, t in self._trackers.items()}

    @property
    def streak(self) -> StreakState:
        return self._streak

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def benchmark(self) -> Benchmark:
        return get_benchmark(self.exam_profile)

    def get_interval(self, record_id: RecordId) -> IntervalRecord | None:
        index = self._index_of(record_id)
        return None if index is None else self._intervals[index]

    def _index_of(self, record_id: RecordId) -> int | None:
        for i, r in enumerate(self._intervals):
            if r.id == record_id:
                return i
        return None

    # ------------------------------------------------------------------
    # Interval mutations
    # ------------------------------------------------------------------

    def add_interval(self, data: Mapping) -> IntervalRecord:
        record = IntervalRecord.from_dict(data)
        if self._index_of(record.id) is not None:
            raise ValidationError("id", f"an interval with id {record.id!r} already exists")
        self._intervals.append(record)
        if record.completed:
            self._streak = streaks.recompute_on_study(self._streak, self._intervals, record.date)
        self._commit("interval_added", record)
        return record

    def toggle_interval(self, record_id: RecordId) -> bool:
        index = self._index_of(record_id)
        if index is None:
            logger.debug("toggle: no interval %r", record_id)
            return False
        record = with_completed(self._intervals[index], not self._intervals[index].completed)
        self._intervals[index] = record
        if record.completed:
            self._streak = streaks.recompute_on_study(self._streak, self._intervals, record.date)
        else:
            self._reconcile()
        self._commit("interval_toggled", record)
        return True

    def remove_interval(self, record_id: RecordId) -> bool:
        index = self._index_of(record_id)
        if index is None:
            logger.debug("remove: no interval %r", record_id)
            return False
        record = self._intervals.pop(index)
        self._reconcile()
        self._commit("interval_removed", record)
        return True

    def update_interval(self, record_id: RecordId, update: IntervalUpdate | Mapping) -> bool:
        if not isinstance(update, IntervalUpdate):
            update = IntervalUpdate.from_dict(update)
        index = self._index_of(record_id)
        if index is None:
            logger.debug("update: no interval %r", record_id)
            return False
        record = update.apply_to(self._intervals[index])
        self._intervals[index] = record
        # An edit can move a day and flip completion at once; rebuild instead of patching.
        self._streak = streaks.derive_streak(self._intervals)
        self._commit("interval_updated", record)
        return True

    def _reconcile(self) -> None:
        self._streak = streaks.reconcile_after_removal(
            self._streak, self._intervals, self.config.streak_scan_days,
        )

    # ------------------------------------------------------------------
    # Scores, rotations, profile
    # ------------------------------------------------------------------

    def add_score(self, data: Mapping) -> ScoreRecord:
        record = ScoreRecord.from_dict(data)
        self._scores.append(record)
        self._commit("score_added", record)
        return record

    def get_rotation_tracker(self, subject: str) -> RotationTracker:
        subject = validate_subject(subject)
        tracker = self._trackers.get(subject)
        if tracker is None:
            return RotationTracker(subject, self.config.rotation_slots)
        return tracker.copy()

    def _tracker(self, subject: str) -> RotationTracker:
        subject = validate_subject(subject)
        if subject not in self._trackers:
            self._trackers[subject] = RotationTracker(subject, self.config.rotation_slots)
        return self._trackers[subject]

    def _unattributed_hours(self, tracker: RotationTracker, round_number: int) -> float:
        _, actual = study.subject_hours(self._intervals, tracker.subject)
        attributed = sum(r.study_hours for r in tracker.rotations if r.completed and r.round != round_number)
        return max(0.0, actual - attributed)

    def complete_rotation(self, subject: str, round_number: int, on: str | None = None) -> bool:
        if on is not None:
            on = validate_date(on, "date")
        tracker = self._tracker(subject)
        hours = self._unattributed_hours(tracker, round_number)
        if not tracker.complete(round_number, on=on, study_hours=hours):
            return False
        self._commit("rotation_completed", tracker.copy())
        return True

    def toggle_rotation(self, subject: str, round_number: int, on: str | None = None) -> bool:
        if on is not None:
            on = validate_date(on, "date")
        tracker = self._tracker(subject)
        hours = self._unattributed_hours(tracker, round_number)
        if not tracker.toggle(round_number, on=on):
            return False
        slot = tracker.slot(round_number)
        if slot.completed:
            slot.study_hours = hours
        self._commit("rotation_toggled", tracker.copy())
        return True

    def set_exam_profile(self, profile: str) -> None:
        if profile not in load_benchmarks():
            raise ValidationError("examProfile", f"unknown exam profile {profile!r}")
        self.exam_profile = profile
        self._commit("profile_changed", profile)

    def reset(self) -> None:
        self._intervals.clear()
        self._scores.clear()
        self._trackers.clear()
        self._streak = StreakState()
        self._commit("reset", None)

    # ------------------------------------------------------------------
    # Derived queries
    # ------------------------------------------------------------------

    def session_for_date(self, day: date | str | None = None) -> study.SessionSummary:
        return study.session_for_date(self._intervals, day or date.today())

    def weekly_stats(self, day: date | str | None = None) -> study.WeeklyStats:
        return study.weekly_stats(self._intervals, day or date.today())

    def monthly_stats(self, month: str | None = None) -> study.MonthlyStats:
        return study.monthly_stats(self._intervals, month or today_str()[:7])

    def recent_days(
        self, day: date | str | None = None, days: int = 7, subject: str | None = None,
    ) -> list[tuple[str, float]]:
        """Completed hours per day over the trailing window, optionally for one subject."""
        records = self._intervals if subject is None else [r for r in self._intervals if r.subject == subject]
        return study.recent_days(records, day or date.today(), days)

    def subjects(self) -> list[str]:
        return review.known_subjects(self._intervals, self._scores, self._trackers)

    def subject_progress(self, subject: str) -> review.SubjectProgress:
        return review.subject_progress(
            subject, self._intervals, self._scores, self._trackers.get(subject),
            self.benchmark.target_hours_for(subject),
        )

    def all_subject_progress(self) -> list[review.SubjectProgress]:
        return [self.subject_progress(s) for s in self.subjects()]

    def weak_subjects(self) -> list[review.WeakSubject]:
        return review.get_weak_subjects(self.all_subject_progress())

    def average_mock_score(self, subject: str) -> float:
        return review.average_mock_score(self._scores, subject)

    def efficiency_score(self) -> EfficiencyScore:
        return calc_efficiency_score(
            self.all_subject_progress(), self._scores, self._intervals,
            self.benchmark.min_study_days, self.config.efficiency_weights,
        )

    def rotation_progress(self, subject: str) -> dict:
        tracker = self._trackers.get(subject) or RotationTracker(subject, self.config.rotation_slots)
        return {
            "subject": subject,
            "progress": tracker.progress_percent,
            "completed": tracker.completed_count,
            "next_rotation": tracker.next_rotation,
            "rotations": [r.to_dict() for r in tracker.rotations],
        }

    def streak_status(self, day: date | str | None = None) -> dict:
        today = day or date.today()
        return {
            "current": streaks.effective_current(self._streak, today),
            "longest": self._streak.longest_length,
            "last_study_date": self._streak.last_study_date,
            "total_days": self._streak.total_study_days,
            "active": streaks.is_streak_active(self._streak, today),
            "studied_today": study.session_for_date(self._intervals, today).has_studied,
        }

    # ------------------------------------------------------------------
    # Notification
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Listener:
        self._listeners.append(listener)
        return listener

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, event: str, payload: object) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, payload)
            except Exception:
                logger.exception("Listener %r failed on %s", listener, event)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _commit(self, event: str, payload: object) -> None:
        self._dirty = True
        self._persist()
        self._notify(event, payload)

    def _persist(self) -> bool:
        if self.flush_delay > 0 and self._last_write is not None:
            if self._clock() - self._last_write < self.flush_delay:
                logger.debug("Write deferred, last write %.3fs ago", self._clock() - self._last_write)
                return False
        return self.flush()

    def flush(self) -> bool:
        """Write the full snapshot now. Returns False if the write failed."""
        if not self._dirty:
            return True
        stamp = int(self._wall_clock() * 1000)
        document = self.to_document()
        document["metadata"]["lastSyncTimestamp"] = stamp
        try:
            payload = json.dumps(document, ensure_ascii=False)
            self.storage.set_item(STORAGE_KEY, payload)
        except (TypeError, ValueError, OSError, PersistenceError) as e:
            error = e if isinstance(e, PersistenceError) else PersistenceError(f"Could not save study data: {e}")
            self.last_persistence_error = error
            logger.warning("Save failed, keeping in-memory state: %s", error)
            return False
        self.metadata["lastSyncTimestamp"] = stamp
        self._dirty = False
        self._last_write = self._clock()
        self.last_persistence_error = None
        logger.debug("Saved study data (%.2f KB)", len(payload.encode("utf-8")) / 1024)
        return True

    def close(self) -> bool:
        return self.flush()

    def to_document(self) -> dict:
        return {
            "intervals": [r.to_dict() for r in self._intervals],
            "scoreRecords": [s.to_dict() for s in self._scores],
            "rotationTrackers": {name: t.to_dict() for name, t in self._trackers.items()},
            "streak": self._streak.to_dict(),
            "examProfile": self.exam_profile,
            "metadata": dict(self.metadata),
        }

    def load(self) -> None:
        raw = self.storage.get_item(STORAGE_KEY)
        if raw is None:
            logger.debug("No saved study data, starting empty")
            return
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Saved study data is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError("Saved study data must be a JSON object")

        self._intervals = self._load_records(
            data.get("intervals", data.get("timeBlocks")) or [], IntervalRecord, "invalid_interval",
        )
        self._scores = self._load_records(
            data.get("scoreRecords", data.get("mockScores")) or [], ScoreRecord, "invalid_score",
        )
        trackers = data.get("rotationTrackers") or {}
        if not isinstance(trackers, Mapping):
            self._warn_on_load("invalid_rotation", "Saved rotation trackers unreadable, starting fresh")
            trackers = {}
        self._trackers = {}
        for subject, saved in trackers.items():
            try:
                self._trackers[subject] = RotationTracker.restore(subject, saved, self.config.rotation_slots)
            except ValidationError as e:
                self._warn_on_load("invalid_rotation", f"Skipped saved rotation tracker {subject!r}: {e}", subject)
        try:
            self._streak = StreakState.from_dict(data.get("streak"))
        except (TypeError, ValueError) as e:
            self._warn_on_load("invalid_streak", f"Saved streak unreadable ({e}), rebuilt from log")
            self._streak = streaks.derive_streak(self._intervals)

        profile = data.get("examProfile", data.get("examType")) or self.config.exam_profile
        if profile not in load_benchmarks():
            self._warn_on_load("unknown_profile", f"Unknown exam profile {profile!r}, using {self.config.exam_profile!r}")
            profile = self.config.exam_profile
        self.exam_profile = profile

        metadata = data.get("metadata") or {}
        self.metadata = {
            "version": metadata.get("version", VERSION),
            "lastSyncTimestamp": metadata.get("lastSyncTimestamp", metadata.get("lastSync")),
        }
        logger.info(
            "Loaded %d intervals, %d scores, %d rotation trackers",
            len(self._intervals), len(self._scores), len(self._trackers),
        )

    def _load_records(self, items, record_cls, kind: str) -> list:
        records = []
        for item in items:
            try:
                records.append(record_cls.from_dict(item))
            except ValidationError as e:
                ref = item.get("id") if isinstance(item, Mapping) else None
                self._warn_on_load(kind, f"Skipped saved record {ref!r}: {e}", ref)
        return records

    def _warn_on_load(self, kind: str, message: str, ref=None) -> None:
        logger.warning(message)
        self.load_warnings.append(IntegrityWarning(kind, message, ref))

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def audit(self) -> list[IntegrityWarning]:
        """Consistency checks over the whole store. Findings are returned, not raised."""
        warnings = []
        seen_ids = set()
        for r in self._intervals:
            if r.id in seen_ids:
                warnings.append(IntegrityWarning("duplicate_id", f"Interval id {r.id!r} appears more than once", r.id))
            seen_ids.add(r.id)

        logged = {r.subject for r in self._intervals}
        for s in self._scores:
            if s.subject not in logged:
                warnings.append(IntegrityWarning(
                    "orphan_score", f"Score {s.id!r} references subject {s.subject!r} with no logged intervals", s.id,
                ))
        for subject, tracker in self._trackers.items():
            if subject not in logged and tracker.completed_count:
                warnings.append(IntegrityWarning(
                    "orphan_rotation", f"Rotation tracker for {subject!r} has no logged intervals", subject,
                ))

        by_day: dict[str, list[IntervalRecord]] = {}
        for r in self._intervals:
            if r.completed:
                by_day.setdefault(r.date, []).append(r)
        for day, records in sorted(by_day.items()):
            records.sort(key=lambda r: r.start_time)
            for prev, cur in zip(records, records[1:]):
                if cur.start_time < prev.end_time:
                    warnings.append(IntegrityWarning(
                        "overlap", f"Intervals {prev.id!r} and {cur.id!r} overlap on {day}", cur.id,
                    ))

        derived = streaks.derive_streak(self._intervals)
        if self._streak != derived:
            warnings.append(IntegrityWarning(
                "stale_streak",
                f"Cached streak {self._streak.to_dict()} does not match the log ({derived.to_dict()})",
                details={"cached": self._streak.to_dict(), "derived": derived.to_dict()},
            ))

        for w in warnings:
            logger.warning("Audit: %s", w)
        return warnings
