import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.schemas.sessions import SessionStorageError

LOGGER = logging.getLogger(__name__)


async def session_storage_exception_handler(
    request: Request, exc: SessionStorageError
) -> JSONResponse:
    LOGGER.error(
        "Session storage failure on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Session storage unavailable"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SessionStorageError, session_storage_exception_handler)
