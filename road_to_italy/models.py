"""Plain data types shared by the store client and the update controller."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


class TrackerError(Exception):
    """Base class for tracker failures."""


class ValidationError(TrackerError):
    """Malformed or out-of-range amount typed into a form."""


class StoreUnavailable(TrackerError):
    """The scores table could not be read."""


class StoreError(TrackerError):
    """A distance write was not applied."""


@dataclass(frozen=True)
class Participant:
    id: int
    name: str
    distance: float

    def with_distance(self, distance: float) -> "Participant":
        return Participant(id=self.id, name=self.name, distance=distance)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Participant":
        return cls(id=int(row["id"]), name=str(row.get("name") or ""), distance=float(row.get("distance") or 0))


@dataclass(frozen=True)
class StoreResult:
    """Outcome of a single round-trip field write."""

    ok: bool
    error: Optional[StoreError] = None

    @classmethod
    def success(cls) -> "StoreResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, message: str) -> "StoreResult":
        return cls(ok=False, error=StoreError(message))
