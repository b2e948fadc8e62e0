"""사용자 레포지토리 — 인증에 필요한 사용자 조회 및 생성.

User Repository — User lookups and creation needed by authentication.
Extends BaseRepository with email-based lookup.
"""

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.repositories.base import BaseRepository
from app.utils.exceptions import storage_errors


class UserRepository(BaseRepository[User]):
    """사용자 테이블에 대한 데이터베이스 쿼리를 담당하는 레포지토리.

    Repository handling database queries for the users table.
    """

    def __init__(self) -> None:
        super().__init__(User)

    async def get_by_email(
        self,
        db: AsyncSession,
        email: str,
    ) -> User | None:
        """이메일로 사용자를 조회합니다.

        Retrieve a user by email. Case handling follows the column collation.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            email: 조회할 이메일 (Email to look up)

        Returns:
            User | None: 조회된 사용자 또는 None (Found user or None)
        """
        query: Select = select(User).where(User.email == email)
        with storage_errors("users.get_by_email"):
            result = await db.execute(query)
            return result.scalar_one_or_none()

    async def email_exists(self, db: AsyncSession, email: str) -> bool:
        return await self.exists(db, {"email": email})


# 싱글턴 인스턴스 — Singleton instance
user_repository: UserRepository = UserRepository()
