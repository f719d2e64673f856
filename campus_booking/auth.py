"""Simulated accounts and sessions.

Accounts are a JSON list under the ``users`` key of the shared storage. A
session is the ``token`` + ``user`` pair in a session storage. Nothing here
is real authentication: passwords are compared as plain text and tokens are
opaque presence markers.
"""
from __future__ import annotations

import uuid

from pydantic import ValidationError

from .identity import IdentityResolver
from .logging_config import get_logger
from .models import SessionUser, User
from .storage import TOKEN_KEY, USER_KEY, USERS_KEY, KeyValueStorage, read_json, write_json

logger = get_logger(__name__)

EMAIL_TOKEN = "simulated_jwt_token"
GOOGLE_TOKEN = "simulated_google_jwt_token"


class AuthService:
    def __init__(self, storage: KeyValueStorage, session: KeyValueStorage):
        self.storage = storage
        self.session = session
        self.identity = IdentityResolver(session)

    def _users(self) -> list[User]:
        raw = read_json(self.storage, USERS_KEY, default=[])
        if not isinstance(raw, list):
            logger.warning("malformed_users", reason="not a list")
            return []
        users = []
        for item in raw:
            try:
                users.append(User.model_validate(item))
            except ValidationError:
                logger.warning("malformed_user_record")
        return users

    def _save_users(self, users: list[User]) -> None:
        write_json(self.storage, USERS_KEY, [u.to_storage() for u in users])

    def _open_session(self, token: str, user: SessionUser) -> None:
        self.session.set_item(TOKEN_KEY, token)
        write_json(self.session, USER_KEY, user.to_storage())

    @property
    def is_authenticated(self) -> bool:
        if self.session.get_item(TOKEN_KEY) is None:
            return False
        return self.identity.current_user() is not None

    def current_user(self) -> SessionUser | None:
        return self.identity.current_user()

    def restore(self) -> SessionUser | None:
        """Load the session user if a token is present; clear a broken session."""
        if self.session.get_item(TOKEN_KEY) is None:
            return None
        user = self.identity.current_user()
        if user is None:
            logger.warning("session_invalid")
            self.logout()
        return user

    def register(self, name: str, email: str, password: str) -> bool:
        users = self._users()
        if any(u.email == email for u in users):
            logger.info("register_rejected", reason="email exists")
            return False
        users.append(
            User(id=f"user_{uuid.uuid4().hex}", name=name, email=email, password=password, auth_provider="email")
        )
        self._save_users(users)
        return True

    def login(self, email: str, password: str) -> bool:
        user = next((u for u in self._users() if u.email == email), None)
        if user is None:
            logger.info("login_failed", reason="user not found")
            return False
        if user.password is None or user.password != password:
            logger.info("login_failed", reason="invalid password")
            return False
        self._open_session(EMAIL_TOKEN, SessionUser(id=user.id, name=user.name, email=user.email, auth_provider="email"))
        return True

    def login_with_google(self) -> bool:
        """Stand-in for an OAuth round trip: always succeeds with a fresh account."""
        suffix = uuid.uuid4().hex
        google_user = SessionUser(
            id=f"google_user_{suffix}",
            name="Google User",
            email=f"user_{suffix}@gmail.com",
            auth_provider="google",
        )
        users = self._users()
        if not any(u.email == google_user.email for u in users):
            users.append(User(id=google_user.id, name=google_user.name, email=google_user.email, auth_provider="google"))
            self._save_users(users)
        self._open_session(GOOGLE_TOKEN, google_user)
        return True

    def logout(self) -> None:
        self.session.remove_item(TOKEN_KEY)
        self.session.remove_item(USER_KEY)
