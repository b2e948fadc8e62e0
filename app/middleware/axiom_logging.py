"""요청 로깅 미들웨어 — structlog 및 Axiom 전송.

Request logging middleware.
Logs method, path, status code and duration of every request through
structlog and, when configured, ships the same event to Axiom.
Request bodies are only captured for error responses, with sensitive
fields (password, token, secret, ...) masked.
"""

import json
import re
import time
from typing import Any

from axiom_py import Client as AxiomClient
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.config import settings
from app.logging import get_logger

logger = get_logger(__name__)

# 마스킹 대상 필드 패턴 — Fields to mask in request bodies
_SENSITIVE_KEYS = re.compile(
    r"(password|passwd|secret|token|authorization|api_?key|credential)",
    re.IGNORECASE,
)

# 로깅 제외 경로 — Paths excluded from logging
_SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}


def mask_sensitive(data: Any, depth: int = 0) -> Any:
    """민감 필드 자동 마스킹 — Recursively mask sensitive fields in dicts/lists."""
    if depth > 5:
        return "..."
    if isinstance(data, dict):
        return {
            k: "***" if _SENSITIVE_KEYS.search(str(k)) else mask_sensitive(v, depth + 1)
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [mask_sensitive(item, depth + 1) for item in data[:20]]
    return data


def _parse_body(body_bytes: bytes) -> Any:
    if not body_bytes:
        return None
    try:
        return mask_sensitive(json.loads(body_bytes))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return "(non-json body)"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """모든 API 요청을 structlog(및 선택적으로 Axiom)에 로깅하는 미들웨어.

    Middleware that logs all API requests. Axiom shipping is enabled only
    when both AXIOM_API_TOKEN and AXIOM_DATASET are set.
    """

    def __init__(self, app: Any) -> None:
        super().__init__(app)
        self._axiom: AxiomClient | None = None
        self._dataset: str = settings.AXIOM_DATASET

        if settings.AXIOM_API_TOKEN and settings.AXIOM_DATASET:
            self._axiom = AxiomClient(token=settings.AXIOM_API_TOKEN)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in _SKIP_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        request_body: Any = None
        if request.method in ("POST", "PUT", "PATCH"):
            # Starlette가 body를 캐시하므로 핸들러에서도 다시 읽을 수 있음
            request_body = _parse_body(await request.body())

        status_code: int = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            event: dict[str, Any] = {
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
            }
            if status_code >= 400 and request_body is not None:
                event["request_body"] = request_body

            if status_code >= 500:
                logger.error("http_request", **event)
            else:
                logger.info("http_request", **event)
            self._ship(event)

    def _ship(self, event: dict[str, Any]) -> None:
        if self._axiom is None:
            return
        try:
            self._axiom.ingest_events(self._dataset, [event])
        except Exception as exc:  # noqa: BLE001 — 로깅 실패가 요청 처리에 영향주지 않도록
            logger.warning("axiom_ingest_failed", error=type(exc).__name__)
