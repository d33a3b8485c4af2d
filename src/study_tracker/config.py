"""Settings, policy constants and exam-profile benchmarks."""
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

import yaml

VERSION = "3.11.0"
STORAGE_KEY = "studyData"

CONTENT_DIR = Path(__file__).parent / "content"
DEFAULT_DB_PATH = str(Path.home() / ".study_tracker" / "tracker.db")
DEFAULT_PROFILE = "primary"

# Passes per subject. Older stores used 3, the current layout uses 7.
ROTATION_SLOTS = 7
# Subjects with fewer completed passes than this are flagged weak, whatever the slot count.
WEAK_ROTATION_THRESHOLD = 3
WEAK_SCORE_THRESHOLD = 60.0
WEAK_EFFICIENCY_THRESHOLD = 50.0
WEAK_PROGRESS_THRESHOLD = 50.0
STREAK_SCAN_DAYS = 365
TREND_WINDOW = 3
TREND_MARGIN = 5.0

EFFICIENCY_WEIGHTS = {
    "time": 0.4,
    "progress": 0.3,
    "mock": 0.2,
    "streak": 0.1,
}


@dataclass(frozen=True)
class Benchmark:
    name: str
    target_total_hours: float
    daily_average_hours: float
    passing_score: float
    subject_min_score: float
    min_study_days: int
    subject_hours: dict = field(default_factory=dict)
    default_subject_hours: float = 100.0

    def target_hours_for(self, subject: str) -> float:
        return float(self.subject_hours.get(subject, self.default_subject_hours))


@dataclass(frozen=True)
class Config:
    db_path: str = DEFAULT_DB_PATH
    exam_profile: str = DEFAULT_PROFILE
    flush_delay: float = 0.0
    log_level: str = "INFO"
    log_format: str = "text"
    rotation_slots: int = ROTATION_SLOTS
    streak_scan_days: int = STREAK_SCAN_DAYS
    efficiency_weights: dict = field(default_factory=lambda: dict(EFFICIENCY_WEIGHTS))


def load_config(environ=None) -> Config:
    """Build a Config from STUDY_TRACKER_* environment variables."""
    env = os.environ if environ is None else environ
    return Config(
        db_path=env.get("STUDY_TRACKER_DB", DEFAULT_DB_PATH),
        exam_profile=env.get("STUDY_TRACKER_PROFILE", DEFAULT_PROFILE),
        flush_delay=float(env.get("STUDY_TRACKER_FLUSH_DELAY", "0")),
        log_level=env.get("STUDY_TRACKER_LOG_LEVEL", "INFO"),
        log_format=env.get("STUDY_TRACKER_LOG_FORMAT", "text"),
    )


@lru_cache(maxsize=None)
def _read_benchmarks(path: str) -> dict:
    return yaml.safe_load(Path(path).read_text()) or {}


def load_benchmarks(path: str | None = None) -> dict[str, Benchmark]:
    """Load every exam profile from benchmarks.yaml, keyed by profile name."""
    data = _read_benchmarks(str(path or CONTENT_DIR / "benchmarks.yaml"))
    default_hours = float(data.get("default_subject_hours", 100))
    return {
        name: Benchmark(
            name=name,
            target_total_hours=float(p["target_total_hours"]),
            daily_average_hours=float(p["daily_average_hours"]),
            passing_score=float(p["passing_score"]),
            subject_min_score=float(p["subject_min_score"]),
            min_study_days=int(p["min_study_days"]),
            subject_hours=dict(p.get("subject_hours") or {}),
            default_subject_hours=default_hours,
        )
        for name, p in (data.get("profiles") or {}).items()
    }


def get_benchmark(profile: str) -> Benchmark:
    benchmarks = load_benchmarks()
    if profile not in benchmarks:
        raise KeyError(f"Unknown exam profile: {profile}")
    return benchmarks[profile]


def get_milestones() -> list[float]:
    data = _read_benchmarks(str(CONTENT_DIR / "benchmarks.yaml"))
    return [float(m) for m in data.get("milestones", [250, 500, 750, 1000, 1200])]
