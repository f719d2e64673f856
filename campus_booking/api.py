import threading
import uuid
from datetime import date
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from . import config
from .auth import AuthService
from .identity import IdentityResolver
from .logging_config import setup_structured_logging
from .models import (
    Appointment,
    AppointmentRequest,
    AvailabilityResponse,
    LoginRequest,
    RegisterRequest,
    SessionResponse,
    SessionUser,
)
from .storage import TOKEN_KEY, KeyValueStorage, MemoryStorage, NamespacedStorage, build_storage
from .store import AppointmentStore

setup_structured_logging()

_STORAGE = build_storage(config.STORAGE_PATH)
# one writer at a time for the shared appointment collection
_WRITE_LOCK = threading.RLock()

# HTTPBearer scheme so Swagger-UI can attach the session token globally
auth_scheme = HTTPBearer(auto_error=False)

app = FastAPI(title="Campus Booking Service")


def get_storage() -> KeyValueStorage:
    return _STORAGE


def _session_for(storage: KeyValueStorage, token: str) -> NamespacedStorage:
    return NamespacedStorage(storage, f"session:{token}:")


def get_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
    storage: KeyValueStorage = Depends(get_storage),
) -> KeyValueStorage:
    """Session storage for the bearer token; an empty one for anonymous callers."""
    if credentials is None:
        return MemoryStorage()
    if credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid session token")
    session = _session_for(storage, credentials.credentials)
    if session.get_item(TOKEN_KEY) is None:
        raise HTTPException(status_code=401, detail="Invalid session token")
    return session


def get_auth(
    session: KeyValueStorage = Depends(get_session),
    storage: KeyValueStorage = Depends(get_storage),
) -> AuthService:
    return AuthService(storage, session)


def get_store(
    session: KeyValueStorage = Depends(get_session),
    storage: KeyValueStorage = Depends(get_storage),
) -> AppointmentStore:
    return AppointmentStore(storage, IdentityResolver(session), lock=_WRITE_LOCK)


# Auth endpoints ------------------------------------------------------------

@app.post("/auth/register", status_code=201)
async def register(req: RegisterRequest, storage: KeyValueStorage = Depends(get_storage)):
    """Create an email account. Does not sign in."""
    if not AuthService(storage, MemoryStorage()).register(req.name, req.email, req.password):
        raise HTTPException(status_code=409, detail="User already exists")
    return {"message": "registered"}


def _new_session(storage: KeyValueStorage, login) -> SessionResponse:
    token = uuid.uuid4().hex
    auth = AuthService(storage, _session_for(storage, token))
    if not login(auth):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return SessionResponse(token=token, user=auth.current_user())


@app.post("/auth/login", response_model=SessionResponse)
async def login(req: LoginRequest, storage: KeyValueStorage = Depends(get_storage)):
    return _new_session(storage, lambda auth: auth.login(req.email, req.password))


@app.post("/auth/google", response_model=SessionResponse)
async def login_google(storage: KeyValueStorage = Depends(get_storage)):
    """Simulated Google sign-in; always opens a session for a new account."""
    return _new_session(storage, lambda auth: auth.login_with_google())


@app.post("/auth/logout", status_code=204)
async def logout(auth: AuthService = Depends(get_auth)):
    auth.logout()
    return None


@app.get("/auth/me", response_model=SessionUser)
async def me(auth: AuthService = Depends(get_auth)):
    user = auth.restore()
    if user is None:
        raise HTTPException(status_code=401, detail="Not signed in")
    return user


# Booking endpoints ---------------------------------------------------------

@app.get("/availability", response_model=AvailabilityResponse)
async def availability(
    day: date = Query(..., alias="date", description="YYYY-MM-DD day to check"),
    store: AppointmentStore = Depends(get_store),
):
    """Slot labels still free on the given day, across all users."""
    return AvailabilityResponse(date=day, times=store.available_times(day, config.TIME_SLOTS))


@app.get("/appointments", response_model=list[Appointment], response_model_exclude_none=True)
async def list_appointments(store: AppointmentStore = Depends(get_store)):
    return store.list()


@app.get("/appointments/upcoming", response_model=list[Appointment], response_model_exclude_none=True)
async def list_upcoming(store: AppointmentStore = Depends(get_store)):
    return store.list_upcoming()


@app.get("/appointments/{appt_id}", response_model=Appointment, response_model_exclude_none=True)
async def get_appointment(appt_id: str, store: AppointmentStore = Depends(get_store)):
    appt = store.get(appt_id)
    if appt is None:
        raise HTTPException(status_code=404, detail="No appointment found")
    return appt


@app.post("/appointments", status_code=201, response_model=Appointment, response_model_exclude_none=True)
async def book(req: AppointmentRequest, store: AppointmentStore = Depends(get_store)):
    """Book a slot if nobody holds it yet."""
    if req.time not in config.TIME_SLOTS:
        raise HTTPException(status_code=422, detail=f"Unknown time slot {req.time!r}")
    saved = store.book(req.to_appointment())
    if saved is None:
        raise HTTPException(status_code=409, detail="Slot already booked")
    return saved


@app.put("/appointments/{appt_id}")
async def update_appointment(appt_id: str, req: AppointmentRequest, store: AppointmentStore = Depends(get_store)):
    appt = req.to_appointment(appt_id)
    if not store.update(appt):
        # not found and not yours are the same answer
        raise HTTPException(status_code=404, detail="No appointment found")
    return {"message": "updated", "appointment_id": appt_id}


@app.delete("/appointments/{appt_id}", status_code=204)
async def delete_appointment(appt_id: str, store: AppointmentStore = Depends(get_store)):
    if not store.delete(appt_id):
        raise HTTPException(status_code=404, detail="No appointment found")
    return None
