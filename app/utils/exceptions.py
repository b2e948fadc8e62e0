"""인증 도메인 예외 및 커스텀 HTTP 예외 모듈.

Authentication domain exceptions and custom HTTP exception classes.

Domain errors (AuthError, StorageError) are raised by services and
repositories and translated into minimal client-facing responses by the
handlers in app.api.error_handling. Every AuthError subclass carries the
same generic detail as its family, so clients cannot tell which internal
check failed.

Usage:
    from app.utils.exceptions import InvalidCredentials, StorageError
    raise InvalidCredentials()
"""

from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError


class AuthError(Exception):
    """인증 실패 예외의 공통 부모 클래스.

    Base class for authentication failures. Always surfaced as 401.

    Attributes:
        status_code: HTTP 상태 코드 (HTTP status code)
        detail: 클라이언트에 노출되는 고정 메시지 (Fixed client-facing message)
        reason: 감사 로그용 내부 사유 (Internal reason for audit logs only)
    """

    status_code: int = status.HTTP_401_UNAUTHORIZED
    detail: str = "Authentication failed"
    reason: str = "auth_error"

    def __init__(self) -> None:
        super().__init__(self.reason)


class InvalidCredentials(AuthError):
    """이메일 또는 비밀번호 불일치 — Unknown email, wrong password, or refused account."""

    detail = "Invalid credentials"
    reason = "invalid_credentials"


class InvalidToken(AuthError):
    """액세스 토큰 검증 실패 — Bad signature, malformed payload, or missing claims."""

    detail = "Invalid or expired token"
    reason = "invalid_token"


class ExpiredToken(InvalidToken):
    """토큰 exp 클레임 만료 — Token's embedded expiry has passed."""

    reason = "expired_token"


class InvalidRefreshToken(AuthError):
    """리프레시 토큰이 저장소에 없음 — Not found in the session store (revoked, rotated, or never issued)."""

    detail = "Invalid or expired session"
    reason = "invalid_refresh_token"


class ExpiredRefreshToken(InvalidRefreshToken):
    """저장된 세션 만료 — Stored session record is past its expiry."""

    reason = "expired_refresh_token"


class TamperedToken(InvalidRefreshToken):
    """저장소에는 있으나 서명 검증 실패 — Stored token fails signature verification."""

    reason = "tampered_token"


class UserNotFound(InvalidRefreshToken):
    """토큰 소유자가 더 이상 없음 — Subject deleted or banned since issuance."""

    reason = "user_not_found"


class SessionConflict(InvalidRefreshToken):
    """동시 요청이 먼저 세션을 저장함 — A concurrent request stored the user's session first."""

    reason = "session_conflict"


class StorageError(Exception):
    """저장소 계층 오류 — Database failure, fatal to the calling operation (500)."""


class ConflictError(StorageError):
    """고유 제약 위반 — Unique constraint violated, usually by a concurrent writer."""


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """SQLAlchemy 예외를 StorageError로 변환합니다.

    Re-raise any SQLAlchemyError raised inside the block as StorageError,
    keeping the original exception as __cause__ for server-side logging.
    Integrity violations become ConflictError so callers can map them.

    Args:
        operation: 실패한 작업 이름 (Name of the failing operation)
    """
    try:
        yield
    except IntegrityError as exc:
        raise ConflictError(f"{operation} conflicted") from exc
    except SQLAlchemyError as exc:
        raise StorageError(f"{operation} failed") from exc


class DuplicateError(HTTPException):
    """409 Conflict 예외 — 중복 리소스 생성 시도 시 사용.

    409 Conflict exception.
    Raised when attempting to create a resource that violates a uniqueness constraint
    (e.g. registering an email that already has an account).

    Args:
        detail: 오류 메시지 (Error message, default: "Resource already exists")
    """

    def __init__(self, detail: str = "Resource already exists") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)
