"""자격 증명 검증 서비스 — 이메일/비밀번호 확인.

Credential Verifier — Checks a submitted email/password pair against the
stored bcrypt hash. Every failure raises the same InvalidCredentials, and the
unknown-email path still performs one bcrypt comparison so both paths cost
about the same. Hashing runs in the threadpool to keep the event loop free.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.models.user import User, UserStatus
from app.repositories.user_repository import user_repository
from app.utils.exceptions import InvalidCredentials
from app.utils.password import dummy_password_hash, verify_password


class CredentialVerifier:
    """이메일/비밀번호 검증기."""

    async def verify(
        self,
        db: AsyncSession,
        email: str,
        password: str,
    ) -> User:
        """자격 증명을 검증하고 사용자 레코드를 반환합니다.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            email: 제출된 이메일 (Submitted email)
            password: 제출된 평문 비밀번호 (Submitted plain text password)

        Returns:
            User: 검증된 사용자 (Verified user record)

        Raises:
            InvalidCredentials: 이메일 없음, 비밀번호 불일치, 차단된 계정
                                (Unknown email, wrong password, or banned account)
        """
        user: User | None = await user_repository.get_by_email(db, email)
        if user is not None:
            password_hash: str = user.password_hash
        else:
            password_hash = await run_in_threadpool(dummy_password_hash)
        matched: bool = await run_in_threadpool(verify_password, password, password_hash)

        if user is None or not matched:
            raise InvalidCredentials()
        if user.status == UserStatus.BANNED:
            raise InvalidCredentials()
        return user


# 싱글턴 인스턴스 — Singleton instance
credential_verifier: CredentialVerifier = CredentialVerifier()
