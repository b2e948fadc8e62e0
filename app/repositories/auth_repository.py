"""인증 레포지토리 — 리프레시 토큰 세션 저장소.

Auth Repository — Session store for refresh token records.
Holds at most one live refresh token per user. Every method is a single
statement (or a pair of statements sharing the caller's transaction), and
SQLAlchemy failures surface as StorageError.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.token import RefreshToken
from app.schemas.auth import ClientMeta
from app.utils.exceptions import ConflictError, SessionConflict, storage_errors


class AuthRepository:
    """리프레시 토큰 레코드에 대한 데이터베이스 쿼리를 담당하는 레포지토리.

    Repository handling refresh token session records.
    """

    async def put(
        self,
        db: AsyncSession,
        user_id: UUID,
        token: str,
        client: ClientMeta | None,
        expires_at: datetime,
    ) -> RefreshToken:
        """사용자의 기존 세션을 모두 삭제하고 새 세션을 저장합니다.

        Replace every session of the user with a new one (single active
        session per account). The delete and the insert run in the caller's
        transaction and are committed together by the router. refresh_tokens.user_id
        is unique, so a concurrent put for the same user fails instead of
        leaving two live sessions.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            user_id: 토큰 소유자 사용자 ID (Token owner user UUID)
            token: JWT 리프레시 토큰 문자열 (JWT refresh token string)
            client: 발급 클라이언트 메타데이터 (Issuing client metadata, optional)
            expires_at: 토큰 만료 일시 (Token expiration timestamp)

        Returns:
            RefreshToken: 생성된 리프레시 토큰 레코드 (Created refresh token record)

        Raises:
            SessionConflict: 동시 요청이 먼저 세션을 저장함 (A concurrent put won)
        """
        client = client or ClientMeta()
        db_token: RefreshToken = RefreshToken(
            user_id=user_id,
            token=token,
            user_agent=client.user_agent,
            ip_address=client.ip_address,
            expires_at=expires_at,
        )
        try:
            with storage_errors("refresh_tokens.put"):
                await db.execute(delete(RefreshToken).where(RefreshToken.user_id == user_id))
                db.add(db_token)
                await db.flush()
        except ConflictError as exc:
            # user_id 고유 제약 — another transaction inserted this user's session first
            raise SessionConflict() from exc
        return db_token

    async def find_by_token(
        self,
        db: AsyncSession,
        token: str,
    ) -> RefreshToken | None:
        """리프레시 토큰 문자열로 토큰 레코드를 조회합니다.

        Retrieve a refresh token record by its token string.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            token: 조회할 JWT 리프레시 토큰 문자열 (JWT refresh token string to look up)

        Returns:
            RefreshToken | None: 조회된 토큰 레코드 또는 None (Found token record or None)
        """
        query: Select = select(RefreshToken).where(RefreshToken.token == token)
        with storage_errors("refresh_tokens.find_by_token"):
            result = await db.execute(query)
            return result.scalar_one_or_none()

    async def delete_by_token(
        self,
        db: AsyncSession,
        token: str,
    ) -> bool:
        """리프레시 토큰을 삭제합니다.

        Delete a refresh token by its token string in a single statement.
        The return value tells whether this call removed the row, which makes
        it usable as a compare-and-swap during rotation.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            token: 삭제할 리프레시 토큰 문자열 (Refresh token string to delete)

        Returns:
            bool: 실제로 행을 삭제했는지 여부 (Whether a row was removed)
        """
        stmt = (
            delete(RefreshToken)
            .where(RefreshToken.token == token)
            .execution_options(synchronize_session=False)
        )
        with storage_errors("refresh_tokens.delete_by_token"):
            result = await db.execute(stmt)
        return (result.rowcount or 0) > 0

    async def delete_all_for_user(
        self,
        db: AsyncSession,
        user_id: UUID,
    ) -> int:
        """특정 사용자의 모든 리프레시 토큰을 삭제합니다.

        Delete all refresh tokens for a user (logout from all devices).

        Returns:
            int: 삭제된 레코드 수 (Number of records removed)
        """
        stmt = (
            delete(RefreshToken)
            .where(RefreshToken.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        with storage_errors("refresh_tokens.delete_all_for_user"):
            result = await db.execute(stmt)
        return result.rowcount or 0

    async def delete_expired(
        self,
        db: AsyncSession,
        now: datetime,
    ) -> int:
        """만료된 리프레시 토큰을 일괄 삭제합니다.

        Delete every record whose expiry is at or before `now`.

        Returns:
            int: 삭제된 레코드 수 (Number of records removed)
        """
        stmt = (
            delete(RefreshToken)
            .where(RefreshToken.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        with storage_errors("refresh_tokens.delete_expired"):
            result = await db.execute(stmt)
        return result.rowcount or 0

    async def count_for_user(
        self,
        db: AsyncSession,
        user_id: UUID,
    ) -> int:
        query: Select = (
            select(func.count())
            .select_from(RefreshToken)
            .where(RefreshToken.user_id == user_id)
        )
        with storage_errors("refresh_tokens.count_for_user"):
            return (await db.execute(query)).scalar() or 0


# 싱글턴 인스턴스 — Singleton instance
auth_repository: AuthRepository = AuthRepository()
