"""FastAPI 의존성 주입 모듈 — 액세스 토큰 인증 가드.

FastAPI dependency injection module — Access-token guard.
Extracts the verified principal from the Authorization header and exposes
the session lifecycle service and client metadata to route handlers.

Authentication Flow:
    1. 클라이언트가 Authorization: Bearer <token> 헤더를 전송
       (Client sends Authorization: Bearer <token> header)
    2. HTTPBearer가 토큰을 추출 (HTTPBearer extracts the token)
    3. TokenIssuer가 서명과 만료를 검증 (Issuer verifies signature and expiry)
    4. {sub, email, role} 클레임이 Principal로 주입됨
       (Claims are injected as the request Principal)

No database lookup happens here: access tokens are stateless and cannot be
revoked before their natural expiry.
"""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.schemas.auth import ClientMeta, Principal
from app.services.auth_service import AuthService, auth_service
from app.utils.exceptions import InvalidToken
from app.utils.jwt import TokenIssuer, token_issuer

# HTTP Bearer 토큰 추출기 — auto_error=False: 누락 시 403 대신 401 응답
# (Missing credentials are reported as 401 by get_current_principal)
security: HTTPBearer = HTTPBearer(auto_error=False)


def get_token_issuer() -> TokenIssuer:
    return token_issuer


def get_auth_service() -> AuthService:
    return auth_service


def get_client_meta(request: Request) -> ClientMeta:
    """요청의 User-Agent와 IP를 수집합니다 — Collect best-effort client metadata."""
    return ClientMeta(
        user_agent=request.headers.get("user-agent"),
        ip_address=request.client.host if request.client else None,
    )


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    issuer: Annotated[TokenIssuer, Depends(get_token_issuer)],
) -> Principal:
    """Bearer 액세스 토큰에서 현재 주체를 추출합니다.

    Decode the access token from the Authorization header.

    Returns:
        Principal: 검증된 주체 (Verified id, email, role)

    Raises:
        InvalidToken: 토큰 누락, 잘못된 스킴, 서명 불일치, 만료
                      (Missing token, wrong scheme, bad signature, expired)
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise InvalidToken()
    return issuer.decode_access_token(credentials.credentials)
