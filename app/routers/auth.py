from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.config import settings
from app.dependencies import Identity, get_current_identity, get_session_service
from app.schemas.sessions import BulkRevokeResponse, SessionNotFoundError
from app.schemas.users import LoginRequest, LoginResponse, UserCreate, UserResponse
from app.services.sessions import SessionService
from app.services.tokens import TokenError
from app.services.users import user_store

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(payload: UserCreate) -> UserResponse:
    try:
        return user_store.create_user(payload)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    request: Request,
    service: SessionService = Depends(get_session_service),
) -> LoginResponse:
    user = user_store.authenticate(payload.email, payload.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    try:
        session = service.start_session(
            str(user.id),
            user_agent=request.headers.get("user-agent"),
            ip_address=request.client.host if request.client else None,
        )
    except TokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    return LoginResponse(
        message="Login successful",
        user_id=user.id,
        session_id=session.session_id,
        access_token=session.token,
        token_type="bearer",
        expires_in_seconds=settings.session_ttl_seconds,
    )


@router.post("/logout")
def logout(
    identity: Identity = Depends(get_current_identity),
    service: SessionService = Depends(get_session_service),
) -> dict:
    try:
        service.end_session(identity.token)
    except SessionNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found",
        ) from exc
    return {"message": "Logged out"}


@router.post("/logout-all", response_model=BulkRevokeResponse)
def logout_all(
    identity: Identity = Depends(get_current_identity),
    service: SessionService = Depends(get_session_service),
) -> BulkRevokeResponse:
    result = service.revoke_all_sessions(identity.user_id)
    return BulkRevokeResponse(revoked=result.revoked, failed=sorted(result.failed))
