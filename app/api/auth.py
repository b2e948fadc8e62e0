"""인증 라우터 — 회원가입, 로그인, 토큰 갱신, 로그아웃, 프로필 조회.

Auth Router — Registration, login, token refresh, logout and profile endpoints.
Handlers commit the request transaction only after the service succeeded;
failures leave the session uncommitted so nothing partial is persisted.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_auth_service, get_client_meta, get_current_principal
from app.database import get_db
from app.schemas.auth import (
    ClientMeta,
    LoginRequest,
    LoginResponse,
    LogoutAllResponse,
    MessageResponse,
    Principal,
    ProfileResponse,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
)
from app.services.auth_service import AuthService

router: APIRouter = APIRouter()


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    data: RegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[AuthService, Depends(get_auth_service)],
    client: Annotated[ClientMeta, Depends(get_client_meta)],
) -> RegisterResponse:
    """회원가입 — 사용자 생성 후 토큰 쌍 발급.

    Register a user and start their first session.
    """
    result: RegisterResponse = await service.register(db, data, client)
    await db.commit()
    return result


@router.post("/login", response_model=LoginResponse)
async def login(
    data: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[AuthService, Depends(get_auth_service)],
    client: Annotated[ClientMeta, Depends(get_client_meta)],
) -> LoginResponse:
    """로그인 — 이메일/비밀번호 검증 후 토큰 쌍 발급.

    Login endpoint. Replaces any existing session of the user.
    """
    result: LoginResponse = await service.login(db, data, client)
    await db.commit()
    return result


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    data: RefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[AuthService, Depends(get_auth_service)],
    client: Annotated[ClientMeta, Depends(get_client_meta)],
) -> TokenResponse:
    """토큰 갱신 — 리프레시 토큰으로 새 토큰 쌍 발급.

    Refresh token endpoint. The presented token is rotated away.
    """
    result: TokenResponse = await service.refresh(db, data.refresh_token, client)
    await db.commit()
    return result


@router.post("/logout", response_model=MessageResponse)
async def logout(
    data: RefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> MessageResponse:
    """로그아웃 — 리프레시 토큰 폐기. 여러 번 호출해도 성공.

    Logout endpoint. Idempotent.
    """
    await service.logout(db, data.refresh_token)
    await db.commit()
    return MessageResponse(message="Session closed successfully")


@router.post("/logout-all", response_model=LogoutAllResponse)
async def logout_all(
    db: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[AuthService, Depends(get_auth_service)],
    principal: Annotated[Principal, Depends(get_current_principal)],
) -> LogoutAllResponse:
    """모든 기기에서 로그아웃 — Revoke every session of the current user."""
    revoked: int = await service.logout_all(db, UUID(principal.id))
    await db.commit()
    return LogoutAllResponse(message="All sessions closed", revoked=revoked)


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    principal: Annotated[Principal, Depends(get_current_principal)],
) -> ProfileResponse:
    """현재 주체 조회 — Return the claims of the presented access token."""
    return ProfileResponse(user=principal)
