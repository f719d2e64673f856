"""Three-step booking form as a plain state machine.

DATE_TIME -> DETAILS -> CONFIRM. Confirming books the slot through the store and
resets the form to its defaults.
"""
from __future__ import annotations

from datetime import date as date_type, datetime, time as time_type
from enum import IntEnum
from typing import Callable

from . import config
from .auth import AuthService
from .errors import SignInRequired, StepValidationError
from .logging_config import get_logger
from .models import Appointment
from .store import AppointmentStore

logger = get_logger(__name__)


class Step(IntEnum):
    DATE_TIME = 1
    DETAILS = 2
    CONFIRM = 3


class BookingStepper:
    def __init__(
        self,
        store: AppointmentStore,
        auth: AuthService,
        time_slots: list[str] | None = None,
        today: Callable[[], date_type] | None = None,
    ):
        self.store = store
        self.auth = auth
        self.time_slots = list(time_slots if time_slots is not None else config.TIME_SLOTS)
        self.today = today or date_type.today
        self.reset()

    def reset(self) -> None:
        self.step = Step.DATE_TIME
        self.selected_date: date_type | None = self.today()
        self.selected_time: str | None = config.DEFAULT_TIME
        self.doctor: str | None = config.DEFAULT_DOCTOR
        self.appointment_type: str | None = config.DEFAULT_TYPE
        self.patient_name = ""
        self.patient_email = ""
        self.notes = ""
        self.available_times = list(self.time_slots)
        self._refresh_times()

    def _refresh_times(self) -> None:
        if self.selected_date is None:
            return
        self.available_times = self.store.available_times(self.selected_date, self.time_slots)
        if self.available_times and self.selected_time not in self.available_times:
            self.selected_time = self.available_times[0]

    def select_date(self, day: date_type | None) -> None:
        if day is not None and day < self.today():
            raise StepValidationError("Past dates cannot be booked")
        self.selected_date = day
        self._refresh_times()

    def select_time(self, label: str) -> None:
        if label not in self.available_times:
            raise StepValidationError(f"{label} is not available")
        self.selected_time = label

    def next(self) -> Appointment | None:
        """Advance one step; on the last step book and return the appointment."""
        if self.step is Step.DATE_TIME:
            if not self.selected_date or not self.selected_time:
                raise StepValidationError("Please select both date and time for your appointment")
            self.step = Step.DETAILS
            return None
        if self.step is Step.DETAILS:
            if not self.doctor or not self.appointment_type:
                raise StepValidationError("Please select doctor and appointment type")
            self.step = Step.CONFIRM
            return None

        if not self.patient_name:
            raise StepValidationError("Please enter your name")
        if not self.auth.is_authenticated:
            raise SignInRequired("Please sign in to complete your booking")

        saved = self.store.book(
            Appointment(
                date=datetime.combine(self.selected_date, time_type()),
                time=self.selected_time,
                doctor=self.doctor,
                type=self.appointment_type,
                notes=self.notes,
                patient_name=self.patient_name,
                patient_email=self.patient_email,
            )
        )
        if saved is None:
            # someone took the slot since it was picked
            taken = self.selected_time
            self._refresh_times()
            self.step = Step.DATE_TIME
            raise StepValidationError(f"{taken} is no longer available, please pick another time")
        logger.info("booking_confirmed", appointment_id=saved.id, doctor=saved.doctor)
        self.reset()
        return saved

    def prev(self) -> None:
        if self.step > Step.DATE_TIME:
            self.step = Step(self.step - 1)

    def go_to(self, step: Step) -> None:
        """Jump back to an earlier step; later steps are reached with next()."""
        if step < self.step:
            self.step = Step(step)
