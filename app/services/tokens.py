from dataclasses import dataclass
from datetime import datetime, timezone

import jwt

from app.config import settings


class TokenError(ValueError):
    pass


@dataclass(frozen=True)
class AccessTokenData:
    user_id: str
    session_id: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_access_token(user_id: str, session_id: str) -> str:
    """Sign a bearer token for a session.

    The token has no `exp` claim: its lifetime is the session record in Redis,
    so extending or revoking the session takes effect for the token as well.
    """
    if not settings.jwt_secret:
        raise TokenError("JWT secret is not configured")
    now = _utcnow()
    payload = {
        "sub": str(user_id),
        "sid": session_id,
        "type": "access",
        "iat": int(now.timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> AccessTokenData:
    payload = _decode_token(token, expected_type="access")
    session_id = payload.get("sid")
    if not session_id:
        raise TokenError("Access token is missing session id")
    subject = payload.get("sub")
    if not subject:
        raise TokenError("Token subject is missing")
    return AccessTokenData(user_id=str(subject), session_id=session_id)


def _decode_token(token: str, expected_type: str) -> dict:
    if not token:
        raise TokenError("Token is missing")
    if not settings.jwt_secret:
        raise TokenError("JWT secret is not configured")
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenError("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise TokenError("Invalid token") from exc
    if payload.get("type") != expected_type:
        raise TokenError("Invalid token type")
    return payload
