from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, Request, status
from redis import Redis

from app.config import settings
from app.schemas.sessions import SessionNotFoundError
from app.services.session_store import SessionStore
from app.services.sessions import SessionService
from app.services.tokens import TokenError, decode_access_token


@dataclass(frozen=True)
class Identity:
    user_id: str
    session_id: str
    token: str


def get_redis(request: Request) -> Redis:
    client = getattr(request.app.state, "redis", None)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Session management is not available",
        )
    return client


def get_session_store(client: Redis = Depends(get_redis)) -> SessionStore:
    return SessionStore(client)


def get_session_service(store: SessionStore = Depends(get_session_store)) -> SessionService:
    return SessionService(store, settings.session_ttl_seconds)


def get_bearer_token(authorization: str | None = Header(default=None)) -> str:
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization header",
        )
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Authorization header",
        )
    return token.strip()


def get_current_identity(
    token: str = Depends(get_bearer_token),
    service: SessionService = Depends(get_session_service),
) -> Identity:
    try:
        access_data = decode_access_token(token)
    except TokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
    try:
        session = service.get_session_by_token(token)
        if session.user_id != access_data.user_id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid session token",
            )
        service.record_activity(session.session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token",
        ) from exc
    return Identity(user_id=session.user_id, session_id=session.session_id, token=token)
