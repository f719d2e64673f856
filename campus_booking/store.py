"""Appointment records kept as one JSON collection.

Every operation reads the whole collection, works on it in memory and, when
it changes something, writes the whole collection back.
"""
from __future__ import annotations

import threading
import uuid
from datetime import date as date_type, datetime
from typing import Callable, Iterable

from pydantic import ValidationError

from .identity import IdentityResolver
from .logging_config import get_logger
from .models import Appointment
from .storage import APPOINTMENTS_KEY, KeyValueStorage, read_json, write_json

logger = get_logger(__name__)


def new_appointment_id() -> str:
    return f"apt_{uuid.uuid4().hex}"


def _day(value: date_type | datetime) -> date_type:
    return value.date() if isinstance(value, datetime) else value


class AppointmentStore:
    """CRUD over the appointment collection with per-user ownership.

    Slot uniqueness is global: ``is_booked`` looks at every record no matter
    who owns it. ``save`` does not check it; ``book`` checks and saves while
    holding the writer lock.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        identity: IdentityResolver,
        id_factory: Callable[[], str] | None = None,
        clock: Callable[[], datetime] | None = None,
        lock: threading.RLock | None = None,
    ):
        self.storage = storage
        self.identity = identity
        self.id_factory = id_factory or new_appointment_id
        self.clock = clock or datetime.now
        # share one lock between stores that write the same storage
        self.lock = lock or threading.RLock()

    # -- collection -----------------------------------------------------------

    def _entries(self) -> list:
        """Stored items as-is; writes keep records that fail validation."""
        raw = read_json(self.storage, APPOINTMENTS_KEY, default=[])
        if not isinstance(raw, list):
            logger.warning("malformed_appointments", reason="not a list")
            return []
        return raw

    def _load(self) -> list[Appointment]:
        appointments = []
        for item in self._entries():
            try:
                appointments.append(Appointment.model_validate(item))
            except ValidationError as exc:
                logger.warning("malformed_appointment", errors=exc.error_count())
        return appointments

    def _persist(self, entries: list) -> None:
        write_json(self.storage, APPOINTMENTS_KEY, entries)

    @staticmethod
    def _find(entries: list, appt_id: str | None) -> int | None:
        if appt_id is None:
            return None
        return next(
            (i for i, item in enumerate(entries) if isinstance(item, dict) and item.get("id") == appt_id),
            None,
        )

    @staticmethod
    def _owner(entry: dict) -> str | None:
        return entry.get("userId") or entry.get("user_id") or None

    @staticmethod
    def _may_access(owner: str | None, user_id: str | None) -> bool:
        # unowned records are open to anyone; owned ones only to their owner
        return not owner or owner == user_id

    # -- reads ----------------------------------------------------------------

    def list(self) -> list[Appointment]:
        """The signed-in user's appointments, or the anonymous ones."""
        user_id = self.identity.current_user_id()
        appointments = self._load()
        if user_id:
            return [apt for apt in appointments if apt.user_id == user_id]
        return [apt for apt in appointments if not apt.user_id]

    def list_upcoming(self) -> list[Appointment]:
        now = self.clock()
        upcoming = [apt for apt in self.list() if apt.date >= now]
        return sorted(upcoming, key=lambda apt: apt.date)

    def get(self, appt_id: str) -> Appointment | None:
        return next((apt for apt in self.list() if apt.id == appt_id), None)

    def is_booked(self, day: date_type | datetime, time: str) -> bool:
        """True when any record, whoever owns it, holds this day and time label."""
        target = _day(day)
        return any(apt.date.date() == target and apt.time == time for apt in self._load())

    def available_times(self, day: date_type | datetime, slots: Iterable[str]) -> list[str]:
        target = _day(day)
        taken = {apt.time for apt in self._load() if apt.date.date() == target}
        return [slot for slot in slots if slot not in taken]

    # -- writes ---------------------------------------------------------------

    def save(self, appointment: Appointment) -> Appointment:
        """Append a new record owned by the current user (if any).

        Does not look at existing bookings; check ``is_booked`` first or use
        ``book``.
        """
        with self.lock:
            user_id = self.identity.current_user_id()
            record = appointment.model_copy(update={"id": self.id_factory(), "user_id": user_id or None})
            entries = self._entries()
            entries.append(record.to_storage())
            self._persist(entries)
        logger.info("appointment_saved", appointment_id=record.id, owned=bool(user_id))
        return record

    def book(self, appointment: Appointment) -> Appointment | None:
        """Save unless the slot is already taken; None when it is."""
        with self.lock:
            if self.is_booked(appointment.date, appointment.time):
                logger.info("slot_taken", date=appointment.date.date().isoformat(), time=appointment.time)
                return None
            return self.save(appointment)

    def update(self, appointment: Appointment) -> bool:
        """Replace a record the caller may access. The owner never changes."""
        with self.lock:
            user_id = self.identity.current_user_id()
            entries = self._entries()
            index = self._find(entries, appointment.id)
            if index is None:
                return False
            owner = self._owner(entries[index])
            if not self._may_access(owner, user_id):
                logger.info("appointment_update_denied", appointment_id=appointment.id)
                return False
            entries[index] = appointment.model_copy(update={"user_id": owner}).to_storage()
            self._persist(entries)
        return True

    def delete(self, appt_id: str) -> bool:
        with self.lock:
            user_id = self.identity.current_user_id()
            entries = self._entries()
            index = self._find(entries, appt_id)
            if index is None:
                return False
            if not self._may_access(self._owner(entries[index]), user_id):
                logger.info("appointment_delete_denied", appointment_id=appt_id)
                return False
            del entries[index]
            self._persist(entries)
        return True
