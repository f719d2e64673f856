"""Resolve who is using the service from a persisted session."""
from __future__ import annotations

from pydantic import ValidationError

from .logging_config import get_logger
from .models import SessionUser
from .storage import USER_KEY, KeyValueStorage, read_json

logger = get_logger(__name__)


class IdentityResolver:
    """Read-only view of one session's user record.

    Each session gets its own resolver, so any number of sessions can be
    active in one process.
    """

    def __init__(self, session: KeyValueStorage):
        self.session = session

    def current_user(self) -> SessionUser | None:
        data = read_json(self.session, USER_KEY)
        if data is None:
            return None
        try:
            return SessionUser.model_validate(data)
        except ValidationError:
            logger.warning("malformed_session_user")
            return None

    def current_user_id(self) -> str | None:
        """Id of the signed-in user, or None when there is no usable session."""
        data = read_json(self.session, USER_KEY)
        if not isinstance(data, dict):
            if data is not None:
                logger.warning("malformed_session_user")
            return None
        user_id = data.get("id")
        if not isinstance(user_id, str) or not user_id.strip():
            return None
        return user_id
