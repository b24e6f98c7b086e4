from fastapi import APIRouter, Request

from app.database import ping_db
from app.redis_client import ping_redis

router = APIRouter(tags=["health"])


@router.get("/health")
def health(request: Request) -> dict:
    return {
        "status": "ok",
        "redis": ping_redis(getattr(request.app.state, "redis", None)),
        "database": ping_db(),
    }
