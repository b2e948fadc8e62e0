"""시간 소스 모듈 — 만료 비교를 위한 주입 가능한 시계.

Time source module — Injectable clock for every expiry comparison.
Services and the token issuer take a Clock instead of calling
datetime.now() directly, so tests can freeze or advance time.
"""

from datetime import datetime, timezone


class Clock:
    """현재 UTC 시각을 제공하는 시계.

    Wall clock returning timezone-aware UTC datetimes.
    """

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """naive datetime을 UTC aware datetime으로 변환합니다.

    Some drivers (SQLite) return naive datetimes even for
    DateTime(timezone=True) columns; stored values are always UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# 싱글턴 인스턴스 — Singleton instance
system_clock: Clock = Clock()
