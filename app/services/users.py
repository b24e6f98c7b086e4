from datetime import datetime, timezone

from sqlalchemy import select

from app.database import session_scope
from app.models.user import UserEntry
from app.schemas.users import UserCreate, UserResponse
from app.services.passwords import hash_password, verify_password

DEFAULT_ROLE = "member"


def _normalize_email(email: str) -> str:
    return email.strip().lower()


class UserStore:
    def create_user(self, payload: UserCreate, role: str = DEFAULT_ROLE) -> UserResponse:
        now = datetime.now(timezone.utc)
        email = _normalize_email(payload.email)
        with session_scope() as session:
            existing = session.execute(
                select(UserEntry).where(UserEntry.email == email)
            ).scalar_one_or_none()
            if existing:
                raise ValueError("Email already in use")
            entry = UserEntry(
                email=email,
                password_hash=hash_password(payload.password),
                full_name=payload.full_name,
                role=role,
                created_at=now,
                updated_at=now,
            )
            session.add(entry)
            session.flush()
            return self._to_response(entry)

    def authenticate(self, email: str, password: str) -> UserResponse | None:
        with session_scope() as session:
            entry = session.execute(
                select(UserEntry).where(UserEntry.email == _normalize_email(email))
            ).scalar_one_or_none()
            if entry is None or not verify_password(password, entry.password_hash):
                return None
            return self._to_response(entry)

    def get_user(self, user_id: int) -> UserResponse | None:
        with session_scope() as session:
            entry = session.get(UserEntry, user_id)
            if entry is None:
                return None
            return self._to_response(entry)

    def _to_response(self, entry: UserEntry) -> UserResponse:
        return UserResponse(
            id=entry.id,
            email=entry.email,
            full_name=entry.full_name,
            role=entry.role or DEFAULT_ROLE,
            created_at=entry.created_at,
        )


user_store = UserStore()
