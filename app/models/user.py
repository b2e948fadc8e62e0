"""사용자 관련 SQLAlchemy ORM 모델 정의.

User SQLAlchemy ORM model definitions.
The user record is owned by the platform's user management; the session
lifecycle only reads id, email, password hash, role and status from it.

Tables:
    - users: 사용자 계정 (User accounts with a closed set of role tags)
"""

import enum
import uuid
from datetime import date, datetime, timezone

from sqlalchemy import Date, DateTime, Enum, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class UserRole(str, enum.Enum):
    """사용자 역할 — Closed set of platform role tags."""

    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class UserStatus(str, enum.Enum):
    """계정 상태 — Account status. Banned accounts cannot authenticate."""

    ACTIVE = "active"
    BANNED = "banned"
    PENDING_VERIFICATION = "pending_verification"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class User(Base):
    """사용자 모델 — 플랫폼 사용자 계정 정보.

    User model — Platform user account information.
    Email is globally unique and is the login identifier.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        first_name: 이름 (Given name)
        last_name: 성 (Family name)
        email: 로그인 이메일 (Login email, unique)
        birthdate: 생년월일 (Birth date, optional)
        password_hash: bcrypt 해시된 비밀번호 (bcrypt-hashed password)
        role: 역할 태그 (Role tag: admin, teacher, student)
        timezone: 사용자 시간대 (IANA timezone name, optional)
        status: 계정 상태 (Account status)
        created_at: 생성 일시 UTC (Creation timestamp)
        updated_at: 수정 일시 UTC (Last update timestamp)

    Relationships:
        refresh_tokens: 리프레시 토큰 목록 (Refresh token records, cascade delete)
    """

    __tablename__ = "users"

    # 사용자 고유 식별자 — User unique identifier (UUID v4, auto-generated)
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    # 로그인 이메일 — 전역 고유 (Globally unique login identifier)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    birthdate: Mapped[date | None] = mapped_column(Date, nullable=True)
    # 비밀번호 해시 — bcrypt hashed password (평문 저장 금지, never store plaintext)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role", values_callable=_enum_values),
        nullable=False,
        default=UserRole.STUDENT,
    )
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[UserStatus] = mapped_column(
        Enum(UserStatus, name="user_status", values_callable=_enum_values),
        nullable=False,
        default=UserStatus.ACTIVE,
    )
    # 생성 일시 — Record creation timestamp (UTC)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    # 수정 일시 — Last modification timestamp (UTC, auto-updated)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # 관계 — Relationships
    refresh_tokens = relationship("RefreshToken", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
