"""Progress figures for the board: how far each participant is toward the goal."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List

from .models import Participant

DEFAULT_GOAL_KM = 1000.0


def format_km(value: float) -> str:
    """Return ``value`` as a two-decimal display string."""
    return f"{value:.2f}"


@dataclass(frozen=True)
class Progress:
    distance: float
    goal: float
    percent: float
    remaining: float
    reached: bool

    def to_dict(self) -> Dict[str, float]:
        return {
            "distance": self.distance,
            "goal": self.goal,
            "percent": self.percent,
            "remaining": self.remaining,
            "reached": self.reached,
        }


def progress_for(distance: float, goal: float) -> Progress:
    """Compute clamped progress of ``distance`` toward ``goal``.

    ``percent`` is rounded to one decimal and clamped to 0..100 so the bar
    never overflows; ``remaining`` is never negative.
    """
    distance = max(float(distance or 0), 0.0)
    goal = float(goal) if goal and goal > 0 else DEFAULT_GOAL_KM
    percent = round(min(distance / goal * 100, 100.0), 1)
    remaining = round(max(goal - distance, 0.0), 2)
    return Progress(distance=distance, goal=goal, percent=percent, remaining=remaining, reached=distance >= goal)


def board_summary(participants: Iterable[Participant], goal: float) -> Dict[str, object]:
    """Rows for each participant plus the combined total."""
    people = list(participants)
    rows: List[Dict[str, object]] = []
    for index, p in enumerate(people):
        prog = progress_for(p.distance, goal)
        rows.append(
            {
                "index": index,
                "id": p.id,
                "name": p.name,
                "distance": p.distance,
                "display": format_km(p.distance),
                "progress": prog.to_dict(),
            }
        )
    total = round(sum(p.distance for p in people), 2)
    combined = progress_for(total, goal * len(people)) if people else progress_for(0, goal)
    return {
        "participants": rows,
        "goal": progress_for(0, goal).goal,
        "total": total,
        "total_display": format_km(total),
        "combined": combined.to_dict(),
    }
