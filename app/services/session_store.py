"""Redis-backed storage for login sessions.

Each session is reachable three ways, all carrying the session's expiry:

* ``session:{session_id}`` holds the JSON record and is authoritative;
* ``user_sessions:{user_id}`` is a set of the user's session ids;
* ``token_session:{token}`` maps a bearer token to its session id.

The two reverse indexes are hints. When enumeration finds an id whose record
has expired, the id is dropped from the user's set instead of being reported.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable

from redis import Redis
from redis.exceptions import RedisError

from app.schemas.sessions import (
    BulkRevokeResult,
    Session,
    SessionExpiredError,
    SessionNotFoundError,
    SessionStorageError,
)

LOGGER = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "session:"
USER_SESSIONS_KEY_PREFIX = "user_sessions:"
TOKEN_SESSION_KEY_PREFIX = "token_session:"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _millis(delta: timedelta) -> int:
    return math.ceil(delta.total_seconds() * 1000)


def reconcile(indexed_ids: Iterable[str], observed_valid_ids: Iterable[str]) -> list[str]:
    """Return the indexed session ids that no longer resolve to a record."""
    valid = set(observed_valid_ids)
    return sorted(set(indexed_ids) - valid)


class SessionStore:
    def __init__(
        self,
        client: Redis,
        key_prefix: str = "",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._redis = client
        self._key_prefix = key_prefix
        self._clock = clock

    def session_key(self, session_id: str) -> str:
        return f"{self._key_prefix}{SESSION_KEY_PREFIX}{session_id}"

    def user_sessions_key(self, user_id: str) -> str:
        return f"{self._key_prefix}{USER_SESSIONS_KEY_PREFIX}{user_id}"

    def token_key(self, token: str) -> str:
        return f"{self._key_prefix}{TOKEN_SESSION_KEY_PREFIX}{token}"

    def create(self, session: Session) -> None:
        ttl_ms = _millis(_as_utc(session.expires_at) - self._clock())
        if ttl_ms <= 0:
            raise SessionExpiredError("Session already expired")

        user_key = self.user_sessions_key(session.user_id)
        try:
            with self._redis.pipeline(transaction=True) as pipe:
                pipe.set(self.session_key(session.session_id), session.to_json(), px=ttl_ms)
                pipe.sadd(user_key, session.session_id)
                self._extend_user_index(pipe, user_key, ttl_ms)
                pipe.set(self.token_key(session.token), session.session_id, px=ttl_ms)
                pipe.execute()
        except RedisError as exc:
            raise SessionStorageError("Failed to create session") from exc

        LOGGER.debug("Session created: %s for user: %s", session.session_id, session.user_id)

    def get_by_session_id(self, session_id: str) -> Session:
        try:
            data = self._redis.get(self.session_key(session_id))
        except RedisError as exc:
            raise SessionStorageError("Failed to get session") from exc
        if data is None:
            raise SessionNotFoundError("Session not found")
        return self._decode(session_id, data)

    def get_by_user_id(self, user_id: str) -> list[Session]:
        user_key = self.user_sessions_key(user_id)
        try:
            session_ids = sorted(self._redis.smembers(user_key))
            if not session_ids:
                return []
            records = self._redis.mget([self.session_key(sid) for sid in session_ids])
        except RedisError as exc:
            raise SessionStorageError("Failed to get user sessions") from exc

        sessions = []
        for session_id, data in zip(session_ids, records):
            if data is None:
                continue
            try:
                sessions.append(self._decode(session_id, data))
            except SessionStorageError:
                LOGGER.warning("Skipping unreadable session record %s", session_id)

        stale_ids = reconcile(session_ids, (s.session_id for s in sessions))
        if stale_ids:
            LOGGER.debug("Removing stale sessions %s from user %s", stale_ids, user_id)
            try:
                self._redis.srem(user_key, *stale_ids)
            except RedisError as exc:
                LOGGER.warning("Failed to repair session index of user %s: %s", user_id, exc)

        sessions.sort(key=lambda s: s.created_at)
        return sessions

    def get_by_token(self, token: str) -> Session:
        try:
            session_id = self._redis.get(self.token_key(token))
        except RedisError as exc:
            raise SessionStorageError("Failed to get session by token") from exc
        if session_id is None:
            raise SessionNotFoundError("Session not found for token")
        session = self.get_by_session_id(session_id)
        if session.token != token:
            raise SessionNotFoundError("Session not found for token")
        return session

    def update_activity(self, session_id: str) -> Session:
        session = self.get_by_session_id(session_id).touched(self._clock())
        try:
            # XX + KEEPTTL: keep the remaining lifetime, never resurrect an expired key
            updated = self._redis.set(
                self.session_key(session_id), session.to_json(), xx=True, keepttl=True
            )
        except RedisError as exc:
            raise SessionStorageError("Failed to update session activity") from exc
        if not updated:
            raise SessionNotFoundError("Session not found")
        return session

    def delete(self, session_id: str) -> None:
        session = self.get_by_session_id(session_id)
        try:
            with self._redis.pipeline(transaction=True) as pipe:
                pipe.delete(self.session_key(session_id))
                pipe.srem(self.user_sessions_key(session.user_id), session_id)
                pipe.delete(self.token_key(session.token))
                pipe.execute()
        except RedisError as exc:
            raise SessionStorageError("Failed to delete session") from exc

        LOGGER.debug("Session deleted: %s", session_id)

    def delete_by_user_id(self, user_id: str, exclude: Iterable[str] = ()) -> BulkRevokeResult:
        """Delete every session of ``user_id`` except the ids in ``exclude``.

        Best effort: a failed deletion is logged and recorded in the result,
        and the sweep carries on with the remaining sessions.
        """
        keep = set(exclude)
        result = BulkRevokeResult()
        for session in self.get_by_user_id(user_id):
            if session.session_id in keep:
                continue
            try:
                self.delete(session.session_id)
            except SessionNotFoundError:
                LOGGER.debug("Session %s already gone", session.session_id)
                continue
            except SessionStorageError as exc:
                LOGGER.error("Failed to delete session %s: %s", session.session_id, exc)
                result.failed[session.session_id] = str(exc)
                continue
            result.revoked.append(session.session_id)
        return result

    def delete_expired(self) -> int:
        LOGGER.debug("Expired sessions are automatically removed by Redis TTL")
        return 0

    def set_expiration(self, session_id: str, expiration: timedelta) -> Session:
        """Move the expiry of a session on all three access paths."""
        ttl_ms = _millis(expiration)
        if ttl_ms <= 0:
            raise SessionExpiredError("Session expiration must be in the future")

        session = self.get_by_session_id(session_id).extended(self._clock() + expiration)
        user_key = self.user_sessions_key(session.user_id)
        try:
            with self._redis.pipeline(transaction=True) as pipe:
                pipe.set(self.session_key(session_id), session.to_json(), px=ttl_ms, xx=True)
                pipe.pexpire(self.token_key(session.token), ttl_ms)
                self._extend_user_index(pipe, user_key, ttl_ms)
                updated = pipe.execute()[0]
        except RedisError as exc:
            raise SessionStorageError("Failed to set session expiration") from exc
        if not updated:
            raise SessionNotFoundError("Session not found")
        return session

    def _extend_user_index(self, pipe, user_key: str, ttl_ms: int) -> None:
        # the user set must outlive every member, so its TTL only grows (Redis 7+)
        pipe.pexpire(user_key, ttl_ms, nx=True)
        pipe.pexpire(user_key, ttl_ms, gt=True)

    def _decode(self, session_id: str, data: str) -> Session:
        try:
            return Session.from_json(data)
        except (ValueError, TypeError, KeyError) as exc:
            raise SessionStorageError(f"Corrupt session record {session_id}") from exc
