import logging

import pytest

from study_tracker.db import MemoryStorage
from study_tracker.models import IntervalRecord, ScoreRecord
from study_tracker.repository import StudyRepository


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_tracker.db")
    return db_path


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def repo(storage):
    """A repository over in-memory storage with writes never deferred."""
    return StudyRepository(storage, flush_delay=0, wall_clock=lambda: 1700000000.0)


@pytest.fixture
def make_interval():
    def _make(day="2025-01-01", subject="Law", start="09:00", end="11:00", completed=True, **extra):
        return IntervalRecord.from_dict({
            "date": day, "subject": subject, "startTime": start, "endTime": end,
            "completed": completed, **extra,
        })
    return _make


@pytest.fixture
def make_score():
    def _make(score, subject="Law", day="2025-01-01", max_score=100, **extra):
        return ScoreRecord.from_dict({
            "subject": subject, "date": day, "score": score, "maxScore": max_score, **extra,
        })
    return _make


@pytest.fixture
def reset_logging():
    """Restore the package logger after a test reconfigures it."""
    logger = logging.getLogger("study_tracker")
    handlers, level = list(logger.handlers), logger.level
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)
