import json
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class SessionError(RuntimeError):
    pass


class SessionNotFoundError(SessionError):
    pass


class SessionExpiredError(SessionError):
    pass


class SessionOwnershipError(SessionError):
    pass


class SessionStorageError(SessionError):
    pass


_TIMESTAMP_FIELDS = ("created_at", "last_activity", "expires_at")


@dataclass(frozen=True)
class Session:
    session_id: str
    user_id: str
    token: str
    created_at: datetime
    last_activity: datetime
    expires_at: datetime
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None

    def to_json(self) -> str:
        payload = asdict(self)
        for name in _TIMESTAMP_FIELDS:
            payload[name] = payload[name].isoformat()
        return json.dumps(payload)

    @classmethod
    def from_json(cls, raw: str) -> "Session":
        payload = json.loads(raw)
        for name in _TIMESTAMP_FIELDS:
            payload[name] = datetime.fromisoformat(payload[name])
        return cls(**payload)

    def touched(self, now: datetime) -> "Session":
        return replace(self, last_activity=now)

    def extended(self, expires_at: datetime) -> "Session":
        return replace(self, expires_at=expires_at)


@dataclass
class BulkRevokeResult:
    """Outcome of a best-effort bulk revocation.

    ``failed`` maps each session id that could not be deleted to the error
    message logged for it; sessions that were already gone appear in neither
    list.
    """

    revoked: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class SessionView(BaseModel):
    session_id: str
    created_at: datetime
    last_activity: datetime
    expires_at: datetime
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    is_current: bool = False


class SessionListResponse(BaseModel):
    sessions: list[SessionView]
    total: int


class BulkRevokeResponse(BaseModel):
    revoked: list[str]
    failed: list[str]
