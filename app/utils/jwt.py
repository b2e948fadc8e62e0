"""JWT 토큰 발급 및 검증 모듈.

JWT token issuance and verification module.
TokenIssuer mints the access/refresh pair and verifies both kinds.

JWT Payload Structure:
    액세스 토큰 (Access token, 15 min default):
    {
        "sub": "user_uuid",       # 사용자 ID (User identifier)
        "email": "a@x.com",       # 이메일 (Email)
        "role": "student",        # 역할 (Role tag)
        "exp": 1234567890         # 만료 시간 UNIX timestamp (Expiration)
    }
    리프레시 토큰 (Refresh token, 30 days default):
    {
        "sub": "user_uuid",       # 사용자 ID (User identifier)
        "jti": "random-nonce",    # 토큰 고유값 (Makes every token string unique)
        "exp": 1234567890
    }

Expiry is checked against the issuer's Clock rather than PyJWT's internal
wall clock, so rotation and expiry tests can run on a frozen clock.
"""

import secrets
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

import jwt
from pydantic import BaseModel

from app.config import Settings, settings
from app.schemas.auth import Principal
from app.utils.clock import Clock, system_clock
from app.utils.exceptions import ExpiredToken, InvalidToken


class TokenPair(BaseModel):
    """발급된 토큰 쌍 — Freshly minted access/refresh pair with their expiries."""

    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime


class TokenIssuer:
    """액세스/리프레시 토큰을 서명하고 검증하는 발급기.

    Signs and verifies access and refresh tokens with a symmetric key.
    Has no side effects: output depends only on the inputs, the key and
    the clock. The key is held privately and never appears in repr().
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=30),
        clock: Clock = system_clock,
    ) -> None:
        if not secret_key:
            raise ValueError("JWT secret key must not be empty")
        self._secret_key: str = secret_key
        self.algorithm: str = algorithm
        self.access_ttl: timedelta = access_ttl
        self.refresh_ttl: timedelta = refresh_ttl
        self.clock: Clock = clock

    @classmethod
    def from_settings(cls, config: Settings, clock: Clock = system_clock) -> "TokenIssuer":
        """설정값으로 발급기를 생성합니다 — Build an issuer from application settings."""
        return cls(
            secret_key=config.JWT_SECRET_KEY.get_secret_value(),
            algorithm=config.JWT_ALGORITHM,
            access_ttl=timedelta(minutes=config.JWT_ACCESS_TOKEN_EXPIRE_MINUTES),
            refresh_ttl=timedelta(days=config.JWT_REFRESH_TOKEN_EXPIRE_DAYS),
            clock=clock,
        )

    def __repr__(self) -> str:
        return f"TokenIssuer(algorithm={self.algorithm!r}, access_ttl={self.access_ttl}, refresh_ttl={self.refresh_ttl})"

    def issue(self, user_id: UUID | str, email: str, role: str) -> TokenPair:
        """액세스 토큰과 리프레시 토큰 쌍을 발급합니다.

        Mint an access token carrying {sub, email, role} and a refresh token
        carrying only {sub} plus a random jti.

        Args:
            user_id: 사용자 ID (User identifier)
            email: 사용자 이메일 (User email)
            role: 역할 태그 (Role tag, e.g. "student")

        Returns:
            TokenPair: 토큰 쌍과 각 만료 시각 (Token pair with expiries)
        """
        # JWT exp는 초 단위 — keep stored expiries aligned with the embedded exp claim
        now: datetime = self.clock.now().replace(microsecond=0)
        access_expires_at: datetime = now + self.access_ttl
        refresh_expires_at: datetime = now + self.refresh_ttl

        access_token: str = self._encode(
            {"sub": str(user_id), "email": email, "role": role, "exp": access_expires_at}
        )
        refresh_token: str = self._encode(
            {"sub": str(user_id), "jti": secrets.token_urlsafe(16), "exp": refresh_expires_at}
        )
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            access_expires_at=access_expires_at,
            refresh_expires_at=refresh_expires_at,
        )

    def decode_access_token(self, token: str) -> Principal:
        """액세스 토큰을 검증하고 주체 정보를 반환합니다.

        Verify an access token and extract the request principal.

        Raises:
            ExpiredToken: exp 경과 (Embedded expiry has passed)
            InvalidToken: 서명 불일치, 형식 오류, 클레임 누락 (Bad signature, malformed, missing claims)
        """
        payload: dict[str, Any] = self._decode(token, required=("sub", "email", "role", "exp"))
        return Principal(id=payload["sub"], email=payload["email"], role=payload["role"])

    def verify_refresh_token(self, token: str) -> str:
        """리프레시 토큰 서명과 만료를 검증하고 subject를 반환합니다.

        Raises:
            ExpiredToken: exp 경과 (Embedded expiry has passed)
            InvalidToken: 서명 불일치 또는 형식 오류 (Bad signature or malformed)
        """
        payload: dict[str, Any] = self._decode(token, required=("sub", "exp"))
        return payload["sub"]

    def _encode(self, payload: dict[str, Any]) -> str:
        return jwt.encode(payload, self._secret_key, algorithm=self.algorithm)

    def _decode(self, token: str, required: tuple[str, ...]) -> dict[str, Any]:
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "require": list(required)},
            )
        except jwt.InvalidTokenError as exc:
            raise InvalidToken() from exc

        exp = payload.get("exp")
        if not isinstance(exp, (int, float)):
            raise InvalidToken()
        if self.clock.now().timestamp() >= exp:
            raise ExpiredToken()
        for claim in required:
            if claim != "exp" and not isinstance(payload.get(claim), str):
                raise InvalidToken()
        return payload


# 싱글턴 인스턴스 — Process-wide issuer built once from settings
token_issuer: TokenIssuer = TokenIssuer.from_settings(settings)
