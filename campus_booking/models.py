from datetime import date as date_type, datetime, time as time_type
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

AuthProvider = Literal["email", "google"]


def _coerce_day(value):
    """Accept a bare calendar day (date or YYYY-MM-DD) as midnight."""
    if isinstance(value, date_type) and not isinstance(value, datetime):
        return datetime.combine(value, time_type())
    if isinstance(value, str) and len(value) == 10:
        return datetime.combine(date_type.fromisoformat(value), time_type())
    return value


def _as_local(value: datetime) -> datetime:
    # stored dates are naive local time so comparisons never mix tz kinds
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


LocalDateTime = Annotated[datetime, BeforeValidator(_coerce_day), AfterValidator(_as_local)]


class _Record(BaseModel):
    """Persisted with camelCase keys, readable with either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Appointment(_Record):
    id: str | None = None
    date: LocalDateTime  # only the calendar day matters for slot checks
    time: str  # slot label, e.g. "10:30 AM"
    doctor: str
    type: str
    notes: str | None = None
    patient_name: str | None = None
    patient_email: str | None = None
    user_id: str | None = None  # unset for anonymous bookings


class User(_Record):
    id: str
    name: str
    email: str
    password: str | None = None  # email accounts only, plaintext
    auth_provider: AuthProvider = "email"


class SessionUser(_Record):
    """The record kept under the session key. Never carries a password."""

    id: str
    name: str
    email: str
    auth_provider: AuthProvider | None = None


# HTTP payloads -------------------------------------------------------------

class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str


class LoginRequest(BaseModel):
    email: str
    password: str


class SessionResponse(BaseModel):
    token: str
    user: SessionUser


class AppointmentRequest(_Record):
    """Booking form payload; id and owner are assigned by the store."""

    date: LocalDateTime
    time: str
    doctor: str
    type: str
    notes: str | None = None
    patient_name: str | None = None
    patient_email: str | None = None

    def to_appointment(self, appt_id: str | None = None) -> Appointment:
        return Appointment(id=appt_id, **self.model_dump())


class AvailabilityResponse(BaseModel):
    date: date_type
    times: list[str] = Field(default_factory=list)
