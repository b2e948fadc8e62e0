"""인증 관련 Pydantic 요청/응답 스키마 정의.

Authentication-related Pydantic request/response schema definitions.
Covers registration, login, token refresh/logout, and the verified principal.
JSON bodies use camelCase keys; snake_case is also accepted on input.
"""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from app.utils.password import MAX_PASSWORD_BYTES


def normalize_email(value: str) -> str:
    """이메일 정규화 — 공백 제거, 도메인 소문자화.

    Strip surrounding whitespace and lowercase the domain part. The local part
    keeps its case, matching the form EmailStr stores at registration.
    """
    local, at, domain = value.strip().rpartition("@")
    if not at:
        return value.strip()
    return f"{local}@{domain.lower()}"


class CamelModel(BaseModel):
    """camelCase 직렬화 베이스 — Base model serializing fields as camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Principal(CamelModel):
    """검증된 요청 주체 — Identity extracted from a validated access token.

    Attributes:
        id: 사용자 ID (Subject claim)
        email: 이메일 (Email claim)
        role: 역할 태그 (Role claim)
    """

    id: str
    email: str
    role: str


class ClientMeta(BaseModel):
    """발급 클라이언트 메타데이터 — Best-effort issuing client metadata."""

    user_agent: str | None = None
    ip_address: str | None = None


class LoginRequest(CamelModel):
    """로그인 요청 스키마.

    Login request schema. Email format is not validated here so that a
    malformed email fails exactly like an unknown one.
    """

    email: str  # 로그인 이메일 (Login email)
    password: str  # 비밀번호 — 평문, 서버에서 bcrypt 해시와 비교 (Plain text, compared to bcrypt hash)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value)


class RegisterRequest(CamelModel):
    """회원가입 요청 스키마.

    Self-registration request schema. Only student and teacher roles can be
    self-assigned; admins are provisioned out of band (see app.seed).

    Attributes:
        first_name: 이름 (Given name)
        last_name: 성 (Family name)
        email: 이메일 (Login email, unique)
        password: 비밀번호 (8+ chars, at most 72 bytes UTF-8)
        birthdate: 생년월일 (Optional birth date)
        timezone: 시간대 (Optional IANA timezone)
        role: 역할 (student or teacher, default student)
    """

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8)
    birthdate: date | None = None
    timezone: str | None = Field(default=None, max_length=64)
    role: Literal["student", "teacher"] = "student"

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator("password")
    @classmethod
    def _password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
        return value


class RefreshRequest(CamelModel):
    """토큰 갱신/로그아웃 요청 스키마.

    Token refresh and logout request schema.

    Attributes:
        refresh_token: 기존 리프레시 토큰 (Existing refresh token)
    """

    refresh_token: str


class TokenResponse(CamelModel):
    """JWT 토큰 발급 응답 스키마.

    JWT token issuance response schema, returned after a refresh.

    Attributes:
        access_token: JWT 액세스 토큰 (Short-lived access token)
        refresh_token: JWT 리프레시 토큰 (Long-lived refresh token)
        token_type: 토큰 유형 (Always "bearer" for Authorization header)
    """

    access_token: str  # JWT 액세스 토큰 — 만료: 15분 기본 (Access token, default TTL: 15min)
    refresh_token: str  # JWT 리프레시 토큰 — 만료: 30일 기본 (Refresh token, default TTL: 30 days)
    token_type: str = "bearer"


class UserSummary(CamelModel):
    """공개 가능한 사용자 요약 — Sanitized user summary (never includes the hash)."""

    id: str
    first_name: str
    last_name: str
    email: str
    role: str
    status: str
    created_at: datetime


class LoginResponse(TokenResponse):
    """로그인 응답 — Token pair plus the sanitized user summary."""

    message: str = "Login successful"
    user: UserSummary


class RegisterResponse(TokenResponse):
    """회원가입 응답 — Created user summary plus the first token pair."""

    message: str = "User registered successfully"
    user: UserSummary


class MessageResponse(CamelModel):
    """단순 메시지 응답 — Plain confirmation message."""

    message: str


class LogoutAllResponse(MessageResponse):
    """전체 로그아웃 응답 — Confirmation plus number of revoked sessions."""

    revoked: int


class ProfileResponse(CamelModel):
    """프로필 응답 — Principal claims of the current access token."""

    message: str = "Profile retrieved successfully"
    user: Principal
