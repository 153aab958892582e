"""Redis-backed daily traffic counters."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..keyspace import Keyspace
from ..redis_gate import RedisGate
from .tokens import utc_date_string, visitor_token

logger = logging.getLogger(__name__)

ANALYTICS_TTL_SECONDS = 370 * 24 * 60 * 60
ALLOWED_DAYS = frozenset({1, 7, 30, 90, 365})
DEFAULT_DAYS = 30
WEEKLY_THRESHOLD_DAYS = 90


@dataclass(frozen=True)
class Visit:
    ip: str
    user_agent: str
    accept_language: str


@dataclass
class DailyPoint:
    date: str
    pageviews: int
    uniques: int


@dataclass(frozen=True)
class Sample:
    mode: str
    step: int


def parse_days(value: Any) -> int:
    """Map a ``days`` query value onto the allowed windows, defaulting to 30."""
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return DEFAULT_DAYS
    if not parsed.is_integer() or int(parsed) not in ALLOWED_DAYS:
        return DEFAULT_DAYS
    return int(parsed)


def resolve_sample(days: int, sample: Optional[str]) -> Sample:
    if sample == "daily":
        return Sample("daily", 1)
    if sample == "weekly":
        return Sample("weekly", 7)
    if days > WEEKLY_THRESHOLD_DAYS:
        return Sample("weekly", 7)
    return Sample("daily", 1)


def last_utc_dates(days: int, now: Optional[datetime] = None) -> List[str]:
    """Return ``days`` consecutive UTC dates, oldest first, ending today."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    today = now.date()
    return [(today - timedelta(days=offset)).isoformat() for offset in range(days - 1, -1, -1)]


def bucket_series(series: Sequence[DailyPoint], step: int) -> List[DailyPoint]:
    """Sum consecutive chunks of ``step`` points, labelled by each chunk's first date.

    Chunks start at the first point, not at calendar week boundaries. Unique
    estimates are summed, so visitors seen on several days are counted once
    per day.
    """
    if step <= 1:
        return list(series)
    buckets: List[DailyPoint] = []
    for index, point in enumerate(series):
        if index % step == 0:
            buckets.append(DailyPoint(date=point.date, pageviews=0, uniques=0))
        bucket = buckets[-1]
        bucket.pageviews += point.pageviews
        bucket.uniques += point.uniques
    return buckets


def _as_int(raw: Any) -> int:
    if raw is None:
        return 0
    try:
        return int(raw)
    except (TypeError, ValueError):
        return 0


class AnalyticsStore:
    """Records page views and reads them back per UTC day."""

    def __init__(
        self,
        gate: RedisGate,
        keys: Keyspace,
        secret: str,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._gate = gate
        self._keys = keys
        self._secret = secret
        self._clock = clock

    def today(self) -> str:
        return utc_date_string(self._clock())

    async def record_visit(self, visit: Visit) -> bool:
        """Count one page view. Returns False when Redis is unreachable."""
        if await self._gate.get_client() is None:
            return False

        date = self.today()
        pv_key = self._keys.pageviews(date)
        uu_key = self._keys.uniques(date)
        token = visitor_token(self._secret, date, visit.ip, visit.user_agent, visit.accept_language)

        async with self._gate.connection() as client:
            async with client.pipeline(transaction=True) as pipe:
                pipe.incr(pv_key)
                pipe.expire(pv_key, ANALYTICS_TTL_SECONDS)
                pipe.pfadd(uu_key, token)
                pipe.expire(uu_key, ANALYTICS_TTL_SECONDS)
                await pipe.execute()
        return True

    async def read_days(self, dates: Sequence[str]) -> List[DailyPoint]:
        async with self._gate.connection() as client:
            async with client.pipeline(transaction=True) as pipe:
                for date in dates:
                    pipe.get(self._keys.pageviews(date))
                    pipe.pfcount(self._keys.uniques(date))
                results = await pipe.execute()

        return [
            DailyPoint(
                date=date,
                pageviews=_as_int(results[index * 2]),
                uniques=_as_int(results[index * 2 + 1]),
            )
            for index, date in enumerate(dates)
        ]

    async def get_summary(self, days: int) -> Dict[str, Any]:
        points = await self.read_days(last_utc_dates(days, self._clock()))
        total_pageviews = sum(point.pageviews for point in points)
        total_uniques = sum(point.uniques for point in points)
        return {
            "days": days,
            "timezone": "UTC",
            "total_pageviews": total_pageviews,
            "total_uniques": total_uniques,
            "average_pageviews": total_pageviews / days,
            "average_uniques": total_uniques / days,
        }

    async def get_timeseries(self, days: int, sample: Optional[str]) -> Dict[str, Any]:
        resolved = resolve_sample(days, sample)
        points = await self.read_days(last_utc_dates(days, self._clock()))
        series = bucket_series(points, resolved.step)
        return {
            "days": days,
            "timezone": "UTC",
            "sample": asdict(resolved),
            "series": [asdict(point) for point in series],
        }
