"""테스트 인프라 — 임시 SQLite DB, 세션, httpx 클라이언트, 고정 시계 픽스처.

Test infrastructure — Temporary SQLite DB, session, httpx client and frozen clock fixtures.
Each test gets a fresh database file under tmp_path with the schema applied.
Environment is configured before any app module is imported.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-automation-only-0123456789")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_JSON", "false")

from collections.abc import AsyncGenerator  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config import settings  # noqa: E402
from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import *  # noqa: F401,F403,E402 — register all models with metadata
from app.models.user import User, UserRole, UserStatus  # noqa: E402
from app.services.auth_service import AuthService  # noqa: E402
from app.services.credential_verifier import CredentialVerifier  # noqa: E402
from app.utils.clock import Clock  # noqa: E402
from app.utils.jwt import TokenIssuer  # noqa: E402
from app.utils.password import hash_password  # noqa: E402

TEST_SECRET: str = settings.JWT_SECRET_KEY.get_secret_value()


class FrozenClock(Clock):
    """테스트용 고정 시계 — Clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.current: datetime = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current = self.current + timedelta(**kwargs)


# ---------------------------------------------------------------------------
# Function-scoped: 엔진, 세션, 클라이언트
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """테스트용 async 엔진. 매 테스트마다 새 DB 파일에 스키마를 생성합니다."""
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """각 테스트에 격리된 DB 세션을 제공합니다."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """FastAPI 테스트 클라이언트 — DB 세션을 오버라이드합니다."""
    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db

    app.dependency_overrides[get_db] = _override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# 시계 및 서비스 — frozen clock and services wired to it
# ---------------------------------------------------------------------------
@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def issuer(clock: FrozenClock) -> TokenIssuer:
    return TokenIssuer(secret_key=TEST_SECRET, clock=clock)


@pytest.fixture
def service(issuer: TokenIssuer, clock: FrozenClock) -> AuthService:
    return AuthService(issuer=issuer, verifier=CredentialVerifier(), clock=clock)


# ---------------------------------------------------------------------------
# 헬퍼 픽스처: 테스트용 데이터 생성
# ---------------------------------------------------------------------------
async def make_user(
    db: AsyncSession,
    email: str,
    password: str,
    role: UserRole = UserRole.STUDENT,
    status: UserStatus = UserStatus.ACTIVE,
) -> User:
    user = User(
        first_name="Test",
        last_name=role.value.title(),
        email=email,
        password_hash=hash_password(password),
        role=role,
        status=status,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def student_user(db: AsyncSession) -> User:
    """학생 사용자를 생성합니다."""
    user = await make_user(db, "a@x.com", "correct")
    await db.commit()
    return user


@pytest_asyncio.fixture
async def teacher_user(db: AsyncSession) -> User:
    """강사 사용자를 생성합니다."""
    user = await make_user(db, "teacher@x.com", "teach1234", role=UserRole.TEACHER)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def banned_user(db: AsyncSession) -> User:
    """차단된 사용자를 생성합니다."""
    user = await make_user(db, "banned@x.com", "correct", status=UserStatus.BANNED)
    await db.commit()
    return user


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def tamper(token: str) -> str:
    """서명 구간의 중간 문자 하나를 바꿉니다.

    Flip one character in the middle of the signature segment. The last
    character is avoided because it may only carry base64 padding bits.
    """
    head, signature = token.rsplit(".", 1)
    i = len(signature) // 2
    replacement = "A" if signature[i] != "A" else "B"
    return f"{head}.{signature[:i]}{replacement}{signature[i + 1:]}"
