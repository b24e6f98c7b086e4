import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.dependencies import Identity, get_current_identity, get_session_service
from app.schemas.sessions import (
    BulkRevokeResponse,
    SessionListResponse,
    SessionNotFoundError,
    SessionOwnershipError,
)
from app.services.sessions import SessionService

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/user", tags=["sessions"])


@router.get("/sessions", response_model=SessionListResponse)
def get_active_sessions(
    identity: Identity = Depends(get_current_identity),
    service: SessionService = Depends(get_session_service),
) -> SessionListResponse:
    sessions = service.list_sessions(identity.user_id, identity.token)
    return SessionListResponse(sessions=sessions, total=len(sessions))


@router.delete("/session/{session_id}")
def revoke_session(
    session_id: str,
    identity: Identity = Depends(get_current_identity),
    service: SessionService = Depends(get_session_service),
) -> dict:
    try:
        service.revoke_session(identity.user_id, session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found",
        ) from exc
    except SessionOwnershipError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to revoke this session",
        ) from exc
    return {"message": "Session revoked successfully"}


@router.post("/sessions/revoke-others", response_model=BulkRevokeResponse)
def revoke_other_sessions(
    identity: Identity = Depends(get_current_identity),
    service: SessionService = Depends(get_session_service),
) -> BulkRevokeResponse:
    try:
        result = service.revoke_other_sessions(identity.user_id, identity.token)
    except SessionNotFoundError as exc:
        LOGGER.error("Current session not found for user %s: %s", identity.user_id, exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Failed to get current session",
        ) from exc
    except SessionOwnershipError as exc:
        LOGGER.error("Current session does not belong to user %s: %s", identity.user_id, exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Failed to get current session",
        ) from exc
    return BulkRevokeResponse(revoked=result.revoked, failed=sorted(result.failed))
