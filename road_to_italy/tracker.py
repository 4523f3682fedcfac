"""Update controller for participant distances.

Every change goes through one shape: the new value is applied to the local
list immediately, the single-field write is sent to the store, and the
participant is restored to the exact value captured beforehand if the write
fails. The open form carries an explicit phase (``idle`` or ``pending``) that
rejects a second submission while a write is outstanding.
"""

from __future__ import annotations

import logging
import math
import re
import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Tuple

from .models import Participant, StoreResult, ValidationError
from .progress import format_km

logger = logging.getLogger(__name__)

FAILURE_NOTICE = "Failed to update. Please try again."

_TYPEABLE_RE = re.compile(r"^[0-9]*\.?[0-9]*$")


class Mode(str, Enum):
    ADD = "add"
    EDIT = "edit"


class Phase(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    ROLLED_BACK = "rolled_back"


class SubmitOutcome(str, Enum):
    IGNORED = "ignored"
    INVALID = "invalid"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"


def round2(value: float) -> float:
    """Round half-up to two decimal places."""
    return math.floor(value * 100 + 0.5) / 100


def is_typeable(text: str) -> bool:
    """True when ``text`` is digits with at most one decimal point (or empty)."""
    return text == "" or bool(_TYPEABLE_RE.fullmatch(text))


def parse_amount(raw: Optional[str], mode: Mode) -> float:
    """Parse a submitted amount.

    ``Mode.ADD`` requires a value strictly greater than zero, ``Mode.EDIT``
    accepts zero. Signs, exponents and trailing garbage are rejected.
    """
    text = (raw or "").strip()
    if not text or not _TYPEABLE_RE.fullmatch(text) or not any(ch.isdigit() for ch in text):
        raise ValidationError(f"Not a number: {raw!r}")
    value = float(text)
    if not math.isfinite(value):
        raise ValidationError(f"Not a finite number: {raw!r}")
    if mode is Mode.ADD and value <= 0:
        raise ValidationError("Amount to add must be greater than zero")
    if value < 0:
        raise ValidationError("Distance cannot be negative")
    return value


@dataclass(frozen=True)
class SubmitResult:
    outcome: SubmitOutcome
    participant: Optional[Participant] = None


@dataclass(frozen=True)
class FormState:
    """The single open add/edit form."""

    mode: Mode
    index: int
    participant_id: int
    text: str = ""
    phase: Phase = Phase.IDLE
    notice: Optional[str] = None
    token: int = 0

    @property
    def pending(self) -> bool:
        return self.phase is Phase.PENDING

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "index": self.index,
            "participant_id": self.participant_id,
            "text": self.text,
            "phase": self.phase.value,
            "notice": self.notice,
        }


class UpdateController:
    """Owns the in-memory participant list and mutates it for the UI.

    ``store`` needs ``fetch_all()`` returning participants and
    ``update_distance(id, value)`` returning a ``StoreResult``.
    """

    def __init__(self, store) -> None:
        self._store = store
        self._lock = threading.Lock()
        self._people: List[Participant] = []
        self._form: Optional[FormState] = None
        self._pending_ids: set[int] = set()
        self._tokens = 0

    # -- reads -----------------------------------------------------------

    def load(self) -> List[Participant]:
        """Fetch the participant list; a failed read leaves it empty."""
        fetched = list(self._store.fetch_all() or [])
        with self._lock:
            # keep optimistic values for rows with a write in flight
            local = {p.id: p for p in self._people if p.id in self._pending_ids}
            self._people = [local.get(p.id, p) for p in fetched]
            self._form = None
            logger.info("Loaded %d participants", len(self._people))
            return list(self._people)

    def participants(self) -> List[Participant]:
        with self._lock:
            return list(self._people)

    def form(self) -> Optional[FormState]:
        with self._lock:
            return self._form

    def selected(self) -> Optional[Participant]:
        with self._lock:
            if self._form is None:
                return None
            found = self._find(self._form.participant_id)
            return found[1] if found else None

    # -- callbacks -------------------------------------------------------

    def on_add_triggered(self, index: int) -> FormState:
        return self._open(Mode.ADD, index)

    def on_edit_triggered(self, index: int) -> FormState:
        return self._open(Mode.EDIT, index)

    def on_input_changed(self, text: str) -> str:
        """Apply a keystroke; rejected input keeps the previous text."""
        with self._lock:
            if self._form is None:
                return ""
            if is_typeable(text or ""):
                self._form = replace(self._form, text=text or "")
            return self._form.text

    def on_dismiss(self) -> None:
        with self._lock:
            self._form = None

    def on_submit(self, raw: Optional[str]) -> SubmitOutcome:
        return self.submit(raw).outcome

    def submit(self, raw: Optional[str]) -> SubmitResult:
        """Run one mutation cycle and report the record it touched.

        The participant is captured under the lock when the cycle ends, so a
        concurrent reselection cannot change which record is reported.
        """
        with self._lock:
            form = self._form
            if form is None:
                logger.debug("Submission ignored; no open form")
                return SubmitResult(SubmitOutcome.IGNORED)
            if form.pending or form.participant_id in self._pending_ids:
                logger.debug("Submission ignored; write in flight for id=%s", form.participant_id)
                return SubmitResult(SubmitOutcome.IGNORED, self._snapshot(form.participant_id))
            try:
                amount = parse_amount(raw, form.mode)
            except ValidationError as exc:
                logger.debug("Submission rejected: %s", exc)
                self._form = replace(form, text=raw or "")
                return SubmitResult(SubmitOutcome.INVALID, self._snapshot(form.participant_id))
            found = self._find(form.participant_id)
            if found is None:
                return SubmitResult(SubmitOutcome.IGNORED)
            idx, previous = found
            if form.mode is Mode.ADD:
                new_value = round2(previous.distance + amount)
            else:
                new_value = round2(amount)
            self._people[idx] = previous.with_distance(new_value)
            self._pending_ids.add(previous.id)
            form = replace(form, text=raw or "", phase=Phase.PENDING, notice=None)
            self._form = form

        result = self._write(previous.id, new_value)

        with self._lock:
            self._pending_ids.discard(previous.id)
            is_current = self._form is not None and self._form.token == form.token
            if result.ok:
                if is_current:
                    self._form = None
                logger.info(
                    "%s %s: %.2f -> %.2f km confirmed",
                    form.mode.value, previous.name, previous.distance, new_value,
                )
                return SubmitResult(SubmitOutcome.CONFIRMED, self._snapshot(previous.id))
            found = self._find(previous.id)
            if found is not None:
                self._people[found[0]] = found[1].with_distance(previous.distance)
            if is_current:
                self._form = replace(form, phase=Phase.ROLLED_BACK, notice=FAILURE_NOTICE)
            logger.warning(
                "%s %s rolled back to %.2f km: %s",
                form.mode.value, previous.name, previous.distance, result.error,
            )
            return SubmitResult(SubmitOutcome.ROLLED_BACK, self._snapshot(previous.id))

    # -- internals -------------------------------------------------------

    def _open(self, mode: Mode, index: int) -> FormState:
        with self._lock:
            if index < 0 or index >= len(self._people):
                raise IndexError(f"No participant at index {index}")
            person = self._people[index]
            self._tokens += 1
            text = format_km(person.distance) if mode is Mode.EDIT else ""
            self._form = FormState(
                mode=mode, index=index, participant_id=person.id, text=text, token=self._tokens
            )
            return self._form

    def _snapshot(self, participant_id: int) -> Optional[Participant]:
        found = self._find(participant_id)
        return found[1] if found else None

    def _find(self, participant_id: int) -> Optional[Tuple[int, Participant]]:
        for i, p in enumerate(self._people):
            if p.id == participant_id:
                return i, p
        return None

    def _write(self, participant_id: int, value: float) -> StoreResult:
        try:
            return self._store.update_distance(participant_id, value)
        except Exception as exc:
            logger.exception("Store client raised during update of id=%s", participant_id)
            return StoreResult.failure(str(exc) or exc.__class__.__name__)
