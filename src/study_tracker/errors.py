"""Error taxonomy for the study tracker core."""
from dataclasses import dataclass, field
from typing import Any, Optional


class ValidationError(ValueError):
    """A record or update failed validation. Nothing was stored."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class PersistenceError(RuntimeError):
    """Serializing or writing the store failed."""


@dataclass
class IntegrityWarning:
    """A consistency problem found by an audit or load pass. Reported, never raised."""
    kind: str
    message: str
    ref: Optional[Any] = None
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        return f"[{self.kind}] {self.message}"
