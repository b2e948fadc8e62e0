"""구조화 로깅 설정 모듈 — structlog 기반.

Structured logging configuration based on structlog.
Configured once on import; every module obtains its logger via get_logger().
Sensitive keys (password, token, secret, authorization) are masked and
email addresses are partially redacted before rendering.
"""

import logging
from typing import Any

import structlog

from app.config import settings

# 완전 마스킹 대상 키 — Keys whose values are fully masked
_SECRET_KEYS = ("password", "secret", "token", "authorization")


def _redact_sensitive(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """민감 정보 마스킹 프로세서 — Mask secrets and partially redact emails."""
    for key in list(event_dict.keys()):
        lower_key = key.lower()
        value = event_dict[key]
        if any(secret in lower_key for secret in _SECRET_KEYS):
            event_dict[key] = "***"
        elif "email" in lower_key and isinstance(value, str) and "@" in value:
            local, _, domain = value.partition("@")
            event_dict[key] = f"{local[:2]}***@{domain}"
    return event_dict


def configure_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """structlog 프로세서 체인을 구성합니다.

    Args:
        log_level: 로그 레벨 (DEBUG, INFO, WARNING, ERROR)
        json_output: True이면 JSON, False이면 콘솔 출력 (JSON or console rendering)
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _redact_sensitive,
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging(log_level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)


def get_logger(name: str) -> Any:
    """모듈 이름으로 바인딩된 로거를 반환합니다."""
    return structlog.get_logger(name)
