import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import init_db
from app.error_handlers import register_error_handlers
from app.redis_client import connect_redis
from app.routers import auth, health, sessions, users


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


configure_logging()

app = FastAPI(title="Safety Riding Sessions API")
app.state.redis = None

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_error_handlers(app)

app.include_router(health.router, prefix="/api")
app.include_router(auth.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(sessions.router, prefix="/api")
# Compatibility for clients calling /auth/* and /user/* without /api.
app.include_router(auth.router)
app.include_router(sessions.router)


@app.on_event("startup")
def startup() -> None:
    init_db()
    app.state.redis = connect_redis()


@app.on_event("shutdown")
def shutdown() -> None:
    client = app.state.redis
    if client is not None:
        client.close()
        app.state.redis = None


@app.get("/")
def root():
    return {"status": "Backend running"}
