"""만료 세션 정리 작업 — 만료된 리프레시 토큰 주기적 삭제.

Expired session sweeper — Periodically deletes refresh token records whose
expiry has passed. Optional: refresh already rejects expired records lazily,
this only keeps the table small. Started by the application lifespan when
SESSION_SWEEP_INTERVAL_SECONDS > 0.
"""

import asyncio

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.logging import get_logger
from app.repositories.auth_repository import auth_repository
from app.utils.clock import Clock, system_clock
from app.utils.exceptions import StorageError

logger = get_logger(__name__)


async def sweep_expired_sessions(
    session_factory: async_sessionmaker[AsyncSession],
    clock: Clock = system_clock,
) -> int:
    """만료된 세션을 한 번 정리합니다.

    Run a single sweep pass in its own transaction.

    Returns:
        int: 삭제된 레코드 수 (Number of records removed)
    """
    async with session_factory() as db:
        removed: int = await auth_repository.delete_expired(db, clock.now())
        await db.commit()
    if removed:
        logger.info("sessions.swept", removed=removed)
    return removed


async def run_session_sweeper(
    session_factory: async_sessionmaker[AsyncSession],
    interval_seconds: int,
    clock: Clock = system_clock,
) -> None:
    """취소될 때까지 주기적으로 정리합니다.

    Sweep every `interval_seconds` until cancelled. A failed pass of any kind
    is logged and the loop keeps going; only cancellation stops it.
    """
    while True:
        try:
            await sweep_expired_sessions(session_factory, clock)
        except StorageError as exc:
            logger.error("sessions.sweep_failed", error=str(exc), cause=repr(exc.__cause__))
        except Exception as exc:  # noqa: BLE001 — 한 번의 실패로 정리 루프가 멈추지 않도록
            logger.error("sessions.sweep_failed", error=type(exc).__name__, exc_info=True)
        await asyncio.sleep(interval_seconds)
