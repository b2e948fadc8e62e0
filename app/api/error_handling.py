"""예외 핸들러 — 도메인 예외를 최소 정보 HTTP 응답으로 변환.

Exception handlers translating domain errors into minimal client responses.
Authentication failures map to a fixed 401 detail per error family; storage
failures are logged with their cause server-side and surface as a bare 500.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.logging import get_logger
from app.utils.exceptions import AuthError, StorageError

logger = get_logger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """애플리케이션에 예외 핸들러를 등록합니다."""

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError) -> JSONResponse:
        logger.error(
            "storage_error",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            cause=repr(exc.__cause__),
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )
