"""Validated records for the study log.

Every record is built through ``from_dict``, which either returns a complete,
valid record or raises :class:`ValidationError` naming the offending field.
Records are frozen; the repository swaps in a new instance when one of the
mutable fields (``completed`` or a full update) changes.
"""
import math
import re
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from datetime import date
from typing import Any, Optional, Union

from study_tracker.errors import ValidationError

DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")
TIME_RE = re.compile(r"\d{2}:\d{2}")

RecordId = Union[str, int]


def today_str() -> str:
    """Local calendar date, not UTC."""
    return date.today().isoformat()


def new_id() -> str:
    return uuid.uuid4().hex


def _pick(data: Mapping, *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _record_id(data: Mapping) -> RecordId:
    record_id = data.get("id")
    if record_id is None or record_id == "":
        return new_id()
    if isinstance(record_id, bool) or not isinstance(record_id, (str, int)):
        raise ValidationError("id", f"must be a string or integer, got {record_id!r}")
    return record_id


def validate_date(value: Any, field_name: str = "date") -> str:
    if not isinstance(value, str) or not DATE_RE.fullmatch(value):
        raise ValidationError(field_name, f"invalid date format {value!r} (expected YYYY-MM-DD)")
    try:
        date.fromisoformat(value)
    except ValueError:
        raise ValidationError(field_name, f"{value!r} is not a calendar day") from None
    return value


def validate_time(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not TIME_RE.fullmatch(value):
        raise ValidationError(field_name, f"invalid time format {value!r} (expected HH:MM)")
    if int(value[:2]) > 23 or int(value[3:]) > 59:
        raise ValidationError(field_name, f"{value!r} is not a 24h clock time")
    return value


def validate_subject(value: Any, field_name: str = "subject") -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field_name, "is required and must be a non-empty string")
    return value.strip()


def _as_number(value: Any, field_name: str) -> float:
    if isinstance(value, bool) or value is None:
        raise ValidationError(field_name, f"must be a number, got {value!r}")
    try:
        n = float(value)
    except (TypeError, ValueError):
        raise ValidationError(field_name, f"must be a number, got {value!r}") from None
    if math.isnan(n):
        raise ValidationError(field_name, "must be a number, got NaN")
    return n


def validate_number(value: Any, field_name: str, low: float, high: float) -> float:
    n = _as_number(value, field_name)
    if n < low or n > high:
        raise ValidationError(field_name, f"must be between {low:g} and {high:g}, got {value!r}")
    return n


def validate_int(value: Any, field_name: str, low: int, high: int) -> int:
    n = validate_number(value, field_name, low, high)
    if not n.is_integer():
        raise ValidationError(field_name, f"must be a whole number, got {value!r}")
    return int(n)


def validate_duration(value: Any, field_name: str = "durationHours") -> float:
    h = _as_number(value, field_name)
    if h <= 0 or h > 24:
        raise ValidationError(field_name, f"hours must be between 0 and 24, got {value!r}")
    return h


def time_to_minutes(value: str) -> int:
    return int(value[:2]) * 60 + int(value[3:])


def duration_between(start_time: str, end_time: str) -> float:
    """Hours between two HH:MM clock times on the same day."""
    return (time_to_minutes(end_time) - time_to_minutes(start_time)) / 60


@dataclass(frozen=True)
class IntervalRecord:
    id: RecordId
    date: str
    subject: str
    start_time: str
    end_time: str
    duration_hours: float
    completed: bool = False
    note: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "IntervalRecord":
        if not isinstance(data, Mapping):
            raise ValidationError("data", "interval data must be a mapping")
        record_date = validate_date(_pick(data, "date", default=today_str()))
        subject = validate_subject(data.get("subject"))
        start = validate_time(_pick(data, "startTime", "start_time"), "startTime")
        end = validate_time(_pick(data, "endTime", "end_time"), "endTime")
        if time_to_minutes(start) >= time_to_minutes(end):
            raise ValidationError("endTime", f"startTime must be before endTime ({start} >= {end})")
        supplied = _pick(data, "durationHours", "duration_hours", "hours")
        duration = validate_duration(duration_between(start, end) if supplied is None else supplied)
        note = _pick(data, "note", "detail", default="")
        if not isinstance(note, str):
            raise ValidationError("note", "must be a string")
        return cls(
            id=_record_id(data),
            date=record_date,
            subject=subject,
            start_time=start,
            end_time=end,
            duration_hours=duration,
            completed=data.get("completed") is True,
            note=note.strip(),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "subject": self.subject,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "durationHours": self.duration_hours,
            "completed": self.completed,
            "note": self.note,
        }


@dataclass(frozen=True)
class ScoreRecord:
    id: RecordId
    date: str
    subject: str
    round: int = 1
    score: float = 0.0
    max_score: float = 100.0
    correct_count: int = 0
    total_count: int = 0
    accuracy: float = 0.0
    notes: str = ""

    @property
    def score_percent(self) -> float:
        return self.score / self.max_score * 100 if self.max_score > 0 else 0.0

    @classmethod
    def from_dict(cls, data: Any) -> "ScoreRecord":
        if not isinstance(data, Mapping):
            raise ValidationError("data", "score data must be a mapping")
        score = validate_number(_pick(data, "score", default=0), "score", 0, 1000)
        max_score = validate_number(_pick(data, "maxScore", "max_score", default=100), "maxScore", 1, 1000)
        if score > max_score:
            raise ValidationError("score", f"score ({score:g}) cannot exceed maxScore ({max_score:g})")
        notes = _pick(data, "notes", default="")
        if not isinstance(notes, str):
            raise ValidationError("notes", "must be a string")
        return cls(
            id=_record_id(data),
            date=validate_date(_pick(data, "date", default=today_str())),
            subject=validate_subject(data.get("subject")),
            round=validate_int(_pick(data, "round", default=1), "round", 1, 10),
            score=score,
            max_score=max_score,
            correct_count=validate_int(_pick(data, "correctCount", "correct_count", default=0), "correctCount", 0, 500),
            total_count=validate_int(_pick(data, "totalCount", "total_count", default=0), "totalCount", 0, 500),
            accuracy=validate_number(_pick(data, "accuracy", default=0), "accuracy", 0, 100),
            notes=notes.strip(),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "subject": self.subject,
            "round": self.round,
            "score": self.score,
            "maxScore": self.max_score,
            "correctCount": self.correct_count,
            "totalCount": self.total_count,
            "accuracy": self.accuracy,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class StreakState:
    current_length: int = 0
    longest_length: int = 0
    last_study_date: Optional[str] = None
    total_study_days: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> "StreakState":
        if not isinstance(data, Mapping):
            return cls()
        last = _pick(data, "lastStudyDate", "last_study_date")
        return cls(
            current_length=int(_pick(data, "currentLength", "current", default=0)),
            longest_length=int(_pick(data, "longestLength", "longest", default=0)),
            last_study_date=validate_date(last, "lastStudyDate") if last else None,
            total_study_days=int(_pick(data, "totalStudyDays", "totalDays", default=0)),
        )

    def to_dict(self) -> dict:
        return {
            "currentLength": self.current_length,
            "longestLength": self.longest_length,
            "lastStudyDate": self.last_study_date,
            "totalStudyDays": self.total_study_days,
        }


_UPDATE_KEYS = {
    "date": "date",
    "subject": "subject",
    "startTime": "start_time",
    "start_time": "start_time",
    "endTime": "end_time",
    "end_time": "end_time",
    "durationHours": "duration_hours",
    "duration_hours": "duration_hours",
    "completed": "completed",
    "note": "note",
}


@dataclass(frozen=True)
class IntervalUpdate:
    """The fields of an interval a caller may change. ``None`` means unchanged."""
    date: Optional[str] = None
    subject: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration_hours: Optional[float] = None
    completed: Optional[bool] = None
    note: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping) -> "IntervalUpdate":
        if not isinstance(data, Mapping):
            raise ValidationError("data", "update must be a mapping")
        unknown = sorted(set(data) - set(_UPDATE_KEYS))
        if unknown:
            raise ValidationError(unknown[0], f"cannot update field(s): {', '.join(unknown)}")
        return cls(**{_UPDATE_KEYS[k]: v for k, v in data.items()})

    def changed_fields(self) -> set[str]:
        return {f.name for f in fields(self) if getattr(self, f.name) is not None}

    def apply_to(self, record: IntervalRecord) -> IntervalRecord:
        """Return a new validated record; ``record`` is left untouched."""
        if self.completed is not None and not isinstance(self.completed, bool):
            raise ValidationError("completed", "must be a boolean")
        merged = record.to_dict()
        for name in self.changed_fields():
            merged[name] = getattr(self, name)
        retimed = {"start_time", "end_time"} & self.changed_fields()
        if retimed and self.duration_hours is None:
            merged["durationHours"] = None
        merged["startTime"] = merged.pop("start_time", merged["startTime"])
        merged["endTime"] = merged.pop("end_time", merged["endTime"])
        if "duration_hours" in merged:
            merged["durationHours"] = merged.pop("duration_hours")
        return IntervalRecord.from_dict(merged)


def with_completed(record: IntervalRecord, completed: bool) -> IntervalRecord:
    return replace(record, completed=completed)
