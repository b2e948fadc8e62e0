"""초기 데이터 시드 스크립트 — 관리자 계정 생성.

Seed script — Creates the bootstrap admin account.
Admins cannot self-register, so the first one is provisioned here.

Usage:
    python -m app.seed

Creates:
    - 1개 관리자 계정: SEED_ADMIN_EMAIL / SEED_ADMIN_PASSWORD (1 admin user)
"""

import asyncio

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.config import settings
from app.database import Base, async_session, engine
from app.models import User, UserRole, UserStatus
from app.repositories.user_repository import user_repository
from app.schemas.auth import normalize_email
from app.utils.password import hash_password


async def seed(
    bind: AsyncEngine = engine,
    session_factory: async_sessionmaker[AsyncSession] = async_session,
) -> bool:
    """데이터베이스를 초기 데이터로 시드합니다.

    Seed the database with the bootstrap admin.
    Creates tables if they don't exist, then inserts the admin user.

    Idempotent: 관리자 이메일이 이미 있으면 건너뜁니다 (Skips if the admin email exists).

    Returns:
        bool: 새로 생성했으면 True (True if the admin was created)
    """
    # 테이블 생성 — DDL 실행 (Create all tables from ORM metadata)
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    admin_email: str = normalize_email(settings.SEED_ADMIN_EMAIL)
    async with session_factory() as db:
        if await user_repository.email_exists(db, admin_email):
            print("Already seeded. Skipping.")
            return False

        admin: User = User(
            first_name="Platform",
            last_name="Admin",
            email=admin_email,
            password_hash=hash_password(settings.SEED_ADMIN_PASSWORD.get_secret_value()),
            role=UserRole.ADMIN,
            status=UserStatus.ACTIVE,
        )
        db.add(admin)
        await db.commit()

    print(f"Seed complete. Admin: {admin_email}")
    return True


if __name__ == "__main__":
    asyncio.run(seed())
