from fastapi import APIRouter, Depends, HTTPException, status

from app.dependencies import Identity, get_current_identity
from app.schemas.users import UserResponse
from app.services.users import user_store

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
def get_me(identity: Identity = Depends(get_current_identity)) -> UserResponse:
    user = user_store.get_user(int(identity.user_id))
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user
