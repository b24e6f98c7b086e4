import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from app.schemas.sessions import (
    BulkRevokeResult,
    Session,
    SessionNotFoundError,
    SessionOwnershipError,
    SessionView,
)
from app.services.session_store import SessionStore
from app.services.tokens import create_access_token

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_view(session: Session, current_session_id: Optional[str]) -> SessionView:
    return SessionView(
        session_id=session.session_id,
        created_at=session.created_at,
        last_activity=session.last_activity,
        expires_at=session.expires_at,
        user_agent=session.user_agent,
        ip_address=session.ip_address,
        is_current=session.session_id == current_session_id,
    )


class SessionService:
    def __init__(self, store: SessionStore, ttl_seconds: int) -> None:
        self._store = store
        self._ttl_seconds = ttl_seconds

    def start_session(
        self,
        user_id: str,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Session:
        now = _utcnow()
        session_id = uuid.uuid4().hex
        expires_at = now + timedelta(seconds=self._ttl_seconds)
        session = Session(
            session_id=session_id,
            user_id=str(user_id),
            token=create_access_token(str(user_id), session_id),
            created_at=now,
            last_activity=now,
            expires_at=expires_at,
            user_agent=user_agent,
            ip_address=ip_address,
        )
        self._store.create(session)
        return session

    def get_session_by_token(self, token: str) -> Session:
        return self._store.get_by_token(token)

    def get_session_by_id(self, session_id: str) -> Session:
        return self._store.get_by_session_id(session_id)

    def record_activity(self, session_id: str) -> Session:
        return self._store.update_activity(session_id)

    def extend_session(self, session_id: str, duration: timedelta) -> Session:
        return self._store.set_expiration(session_id, duration)

    def list_sessions(self, user_id: str, token: Optional[str]) -> list[SessionView]:
        current_session_id = None
        if token:
            try:
                current_session_id = self._store.get_by_token(token).session_id
            except SessionNotFoundError:
                LOGGER.debug("Current session not found for user %s", user_id)
        sessions = self._store.get_by_user_id(user_id)
        return [to_view(session, current_session_id) for session in sessions]

    def revoke_session(self, user_id: str, session_id: str) -> None:
        session = self._store.get_by_session_id(session_id)
        if session.user_id != str(user_id):
            LOGGER.warning(
                "User %s attempted to revoke session %s of another user", user_id, session_id
            )
            raise SessionOwnershipError("Session belongs to another user")
        self._store.delete(session_id)

    def revoke_other_sessions(self, user_id: str, token: str) -> BulkRevokeResult:
        current = self._store.get_by_token(token)
        if current.user_id != str(user_id):
            raise SessionOwnershipError("Current session belongs to another user")
        return self._store.delete_by_user_id(str(user_id), exclude=[current.session_id])

    def revoke_all_sessions(self, user_id: str) -> BulkRevokeResult:
        return self._store.delete_by_user_id(str(user_id))

    def end_session(self, token: str) -> None:
        session = self._store.get_by_token(token)
        self._store.delete(session.session_id)
