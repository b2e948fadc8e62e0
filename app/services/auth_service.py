"""인증 서비스 — 회원가입, 로그인, 토큰 갱신(회전), 로그아웃 비즈니스 로직.

Auth Service — Session lifecycle controller.
Orchestrates the credential verifier, the token issuer and the session store:

    login    : verify → issue → put (replaces any prior session)
    refresh  : find → expiry → signature → user → delete old → issue → put
    logout   : delete by token (idempotent)

Each user has at most one live refresh token. A rotated-away token is no
longer in the store, so replaying it fails exactly like an unknown token.
Audit events are logged with the outcome and user id or email only.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.logging import get_logger
from app.models.token import RefreshToken
from app.models.user import User, UserRole, UserStatus
from app.repositories.auth_repository import auth_repository
from app.repositories.user_repository import user_repository
from app.schemas.auth import (
    ClientMeta,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserSummary,
)
from app.services.credential_verifier import CredentialVerifier, credential_verifier
from app.utils.clock import Clock, as_utc, system_clock
from app.utils.exceptions import (
    AuthError,
    ConflictError,
    DuplicateError,
    ExpiredRefreshToken,
    ExpiredToken,
    InvalidRefreshToken,
    InvalidToken,
    TamperedToken,
    UserNotFound,
)
from app.utils.jwt import TokenIssuer, TokenPair, token_issuer
from app.utils.password import hash_password

logger = get_logger(__name__)


def _user_summary(user: User) -> UserSummary:
    return UserSummary(
        id=str(user.id),
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        role=user.role.value,
        status=user.status.value,
        created_at=user.created_at,
    )


class AuthService:
    """세션 수명주기를 처리하는 서비스.

    Service handling the session lifecycle: registration, login, rotation
    and revocation. Collaborators are injected so tests can supply a
    frozen clock or a differently keyed issuer.
    """

    def __init__(
        self,
        issuer: TokenIssuer,
        verifier: CredentialVerifier,
        clock: Clock = system_clock,
    ) -> None:
        self.issuer: TokenIssuer = issuer
        self.verifier: CredentialVerifier = verifier
        self.clock: Clock = clock

    async def _start_session(
        self,
        db: AsyncSession,
        user: User,
        client: ClientMeta | None,
    ) -> TokenPair:
        """토큰 쌍을 발급하고 세션을 저장합니다.

        Issue a token pair from the user's current email/role and store the
        refresh token, replacing any previous session of the user.
        """
        pair: TokenPair = self.issuer.issue(user.id, user.email, user.role.value)
        await auth_repository.put(
            db,
            user_id=user.id,
            token=pair.refresh_token,
            client=client,
            expires_at=pair.refresh_expires_at,
        )
        return pair

    async def register(
        self,
        db: AsyncSession,
        data: RegisterRequest,
        client: ClientMeta | None = None,
    ) -> RegisterResponse:
        """회원가입을 처리하고 첫 세션을 시작합니다.

        Create the user account and start its first session.

        Raises:
            DuplicateError: 이미 가입된 이메일 (Email already registered)
        """
        if await user_repository.email_exists(db, data.email):
            logger.info("auth.register", outcome="failure", reason="duplicate_email", email=data.email)
            raise DuplicateError("A user with this email already exists")

        password_hash: str = await run_in_threadpool(hash_password, data.password)
        try:
            user: User = await user_repository.create(
                db,
                {
                    "first_name": data.first_name,
                    "last_name": data.last_name,
                    "email": data.email,
                    "password_hash": password_hash,
                    "birthdate": data.birthdate,
                    "timezone": data.timezone,
                    "role": UserRole(data.role),
                    "status": UserStatus.ACTIVE,
                },
            )
        except ConflictError as exc:
            # 동시 가입 — a concurrent registration took the email after the check above
            logger.info("auth.register", outcome="failure", reason="duplicate_email", email=data.email)
            raise DuplicateError("A user with this email already exists") from exc
        pair: TokenPair = await self._start_session(db, user, client)
        logger.info("auth.register", outcome="success", user_id=str(user.id))

        return RegisterResponse(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            user=_user_summary(user),
        )

    async def login(
        self,
        db: AsyncSession,
        data: LoginRequest,
        client: ClientMeta | None = None,
    ) -> LoginResponse:
        """로그인을 처리합니다.

        Verify credentials and start a new session, revoking any previous one.

        Raises:
            InvalidCredentials: 잘못된 이메일 또는 비밀번호 (Bad email or password)
            SessionConflict: 같은 사용자의 동시 로그인 (Concurrent login of the same user won)
        """
        try:
            user: User = await self.verifier.verify(db, data.email, data.password)
            pair: TokenPair = await self._start_session(db, user, client)
        except AuthError as exc:
            logger.info("auth.login", outcome="failure", reason=exc.reason, email=data.email)
            raise

        logger.info("auth.login", outcome="success", user_id=str(user.id))

        return LoginResponse(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            user=_user_summary(user),
        )

    async def refresh(
        self,
        db: AsyncSession,
        refresh_token: str,
        client: ClientMeta | None = None,
    ) -> TokenResponse:
        """리프레시 토큰을 회전시켜 새 토큰 쌍을 발급합니다.

        Rotate a refresh token: the presented token is removed and a new
        pair is issued from the user's current email and role.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            refresh_token: 제시된 리프레시 토큰 (Presented refresh token)
            client: 요청 클라이언트 메타데이터 (Requesting client metadata)

        Returns:
            TokenResponse: 새 토큰 쌍 (New token pair)

        Raises:
            InvalidRefreshToken: 저장소에 없음 또는 동시 회전에서 패배 (Not stored, or lost a concurrent rotation)
            ExpiredRefreshToken: 저장된 세션 만료 (Stored session expired)
            TamperedToken: 서명 검증 실패 (Signature check failed)
            UserNotFound: 사용자 삭제 또는 차단 (User deleted or banned)
            SessionConflict: 같은 사용자의 동시 로그인/회전이 먼저 저장됨 (Concurrent login or rotation stored first)
        """
        try:
            user, pair = await self._rotate(db, refresh_token, client)
        except AuthError as exc:
            logger.info("auth.refresh", outcome="failure", reason=exc.reason)
            raise

        logger.info("auth.refresh", outcome="success", user_id=str(user.id))
        return TokenResponse(access_token=pair.access_token, refresh_token=pair.refresh_token)

    async def _rotate(
        self,
        db: AsyncSession,
        refresh_token: str,
        client: ClientMeta | None,
    ) -> tuple[User, TokenPair]:
        record: RefreshToken | None = await auth_repository.find_by_token(db, refresh_token)
        if record is None:
            raise InvalidRefreshToken()

        now: datetime = self.clock.now()
        if now > as_utc(record.expires_at):
            # 만료 레코드는 정리 작업에 맡김 — left for the expiry sweeper
            raise ExpiredRefreshToken()

        try:
            subject: str = self.issuer.verify_refresh_token(refresh_token)
        except ExpiredToken as exc:
            # exp 경계는 저장소 만료와 같은 시각 — both expiries fall on the same second
            raise ExpiredRefreshToken() from exc
        except InvalidToken as exc:
            raise TamperedToken() from exc
        if subject != str(record.user_id):
            raise TamperedToken()

        user: User | None = await user_repository.get_by_id(db, record.user_id)
        if user is None or user.status == UserStatus.BANNED:
            raise UserNotFound()

        # 동시 회전 시 먼저 삭제한 쪽만 진행 — only the caller that removed the row may continue
        if not await auth_repository.delete_by_token(db, refresh_token):
            raise InvalidRefreshToken()

        pair: TokenPair = await self._start_session(db, user, client)
        return user, pair

    async def logout(
        self,
        db: AsyncSession,
        refresh_token: str,
    ) -> None:
        """로그아웃 처리 — 리프레시 토큰을 삭제합니다.

        Revoke the given refresh token. Unknown tokens are not an error.
        """
        removed: bool = await auth_repository.delete_by_token(db, refresh_token)
        logger.info("auth.logout", outcome="success", revoked=removed)

    async def logout_all(
        self,
        db: AsyncSession,
        user_id: UUID,
    ) -> int:
        """사용자의 모든 세션을 폐기합니다 — Revoke every session of a user."""
        revoked: int = await auth_repository.delete_all_for_user(db, user_id)
        logger.info("auth.logout_all", outcome="success", user_id=str(user_id), revoked=revoked)
        return revoked


# 싱글턴 인스턴스 — Singleton instance
auth_service: AuthService = AuthService(issuer=token_issuer, verifier=credential_verifier)
