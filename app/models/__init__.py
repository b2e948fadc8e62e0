"""SQLAlchemy ORM 모델 패키지 — 모든 도메인 모델의 중앙 임포트 지점.

SQLAlchemy ORM models package — Central import point for all domain models.
Importing from this package ensures all models are registered with the
SQLAlchemy metadata, which is required for Alembic migrations and
relationship resolution.

Modules:
    user: 사용자, 역할/상태 열거형 (User, UserRole, UserStatus)
    token: 리프레시 토큰 (Refresh tokens)
"""

from app.models.user import User, UserRole, UserStatus
from app.models.token import RefreshToken

__all__ = [
    "User", "UserRole", "UserStatus",
    "RefreshToken",
]
