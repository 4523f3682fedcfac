from typing import List
import logging

# Participant store client
# Delegates to datastore_pg and converts driver failures into the tracker's
# error policy: reads degrade to an empty list, writes return a StoreResult.

from . import datastore_pg as _pg
from .models import Participant, StoreResult, StoreUnavailable

logger = logging.getLogger(__name__)


def fetch_all_or_raise() -> List[Participant]:
    """Return all participants ordered by id, raising ``StoreUnavailable``."""
    try:
        rows = _pg.fetch_participants() or []
    except Exception as exc:
        raise StoreUnavailable(str(exc) or exc.__class__.__name__) from exc
    participants = [Participant.from_row(r) for r in rows]
    participants.sort(key=lambda p: p.id)
    return participants


def fetch_all() -> List[Participant]:
    """Return all participants ordered by id, or ``[]`` if the read fails."""
    try:
        return fetch_all_or_raise()
    except StoreUnavailable:
        logger.exception("Could not load participants; showing an empty board")
        return []


def update_distance(participant_id: int, value: float) -> StoreResult:
    """Write ``value`` to one participant's distance. Never raises."""
    try:
        count = _pg.update_distance(int(participant_id), value)
    except Exception as exc:
        logger.error("update_distance id=%s value=%.2f failed: %s", participant_id, value, exc)
        return StoreResult.failure(str(exc) or exc.__class__.__name__)
    if count == 0:
        logger.error("update_distance id=%s matched no row", participant_id)
        return StoreResult.failure(f"No participant with id {participant_id}")
    return StoreResult.success()
