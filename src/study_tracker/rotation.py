"""Per-subject rotation (full pass) tracking."""
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

from study_tracker.config import ROTATION_SLOTS
from study_tracker.models import _pick, today_str, validate_date, validate_number

logger = logging.getLogger(__name__)


@dataclass
class RotationSlot:
    round: int
    completed: bool = False
    date: Optional[str] = None
    study_hours: float = 0.0

    def to_dict(self) -> dict:
        return {
            "round": self.round,
            "completed": self.completed,
            "date": self.date,
            "studyHours": self.study_hours,
        }


class RotationTracker:
    """Fixed, ordered pass slots for one subject, addressed by 1-based round number."""

    def __init__(self, subject: str, slot_count: int = ROTATION_SLOTS):
        if slot_count < 1:
            raise ValueError("slot_count must be at least 1")
        self.subject = subject
        self.rotations = [RotationSlot(round=i) for i in range(1, slot_count + 1)]

    def slot(self, round_number: int) -> RotationSlot | None:
        if 1 <= round_number <= len(self.rotations):
            return self.rotations[round_number - 1]
        return None

    def complete(self, round_number: int, on: str | None = None, study_hours: float = 0.0) -> bool:
        """Mark one round done. Other rounds are left alone."""
        slot = self.slot(round_number)
        if slot is None:
            return False
        slot.completed = True
        slot.date = on or today_str()
        slot.study_hours = study_hours
        return True

    def toggle(self, round_number: int, on: str | None = None) -> bool:
        slot = self.slot(round_number)
        if slot is None:
            return False
        slot.completed = not slot.completed
        if slot.completed:
            slot.date = on or today_str()
        else:
            slot.date = None
            slot.study_hours = 0.0
        return True

    @property
    def slot_count(self) -> int:
        return len(self.rotations)

    @property
    def completed_count(self) -> int:
        return sum(1 for r in self.rotations if r.completed)

    @property
    def progress_percent(self) -> float:
        return self.completed_count / self.slot_count * 100

    @property
    def next_rotation(self) -> int:
        for r in self.rotations:
            if not r.completed:
                return r.round
        return self.slot_count + 1

    def copy(self) -> "RotationTracker":
        return self.restore(self.subject, self.to_dict(), self.slot_count)

    def to_dict(self) -> dict:
        return {"subject": self.subject, "rotations": [r.to_dict() for r in self.rotations]}

    @classmethod
    def restore(cls, subject: str, saved: Any, slot_count: int = ROTATION_SLOTS) -> "RotationTracker":
        """Overlay a persisted slot array onto a freshly built tracker.

        ``saved`` may be the full tracker document, just its slot list, or the
        oldest layout where each slot is a bare boolean. Slots past
        ``slot_count`` are dropped. A slot with a malformed date or hour count
        raises ValidationError.
        """
        tracker = cls(subject, slot_count)
        if isinstance(saved, Mapping):
            saved = saved.get("rotations")
        if not isinstance(saved, list):
            return tracker
        if len(saved) > slot_count:
            logger.warning("Dropping %d extra rotation slots for %s", len(saved) - slot_count, subject)
        for slot, raw in zip(tracker.rotations, saved):
            if isinstance(raw, bool):
                slot.completed = raw
            elif isinstance(raw, Mapping):
                slot.completed = raw.get("completed") is True
                day = raw.get("date")
                slot.date = validate_date(day, "date") if day else None
                hours = _pick(raw, "studyHours", "study_hours")
                slot.study_hours = 0.0 if hours is None else validate_number(hours, "studyHours", 0, float("inf"))
        return tracker

