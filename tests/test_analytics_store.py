"""Tests for the analytics store and its date/sample helpers."""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from backend.app.analytics.store import (
    ANALYTICS_TTL_SECONDS,
    AnalyticsStore,
    DailyPoint,
    Sample,
    Visit,
    bucket_series,
    last_utc_dates,
    parse_days,
    resolve_sample,
)
from backend.app.analytics.tokens import daily_secret, hmac_base64url, utc_date_string, visitor_token

FIXED_NOW = datetime(2024, 3, 10, 0, 0, tzinfo=timezone.utc)
VISIT = Visit(ip="203.0.113.7", user_agent="Mozilla/5.0", accept_language="de-DE")


class TestVisitorToken:
    def test_deterministic(self):
        first = visitor_token("secret", "2024-03-10", "1.2.3.4", "UA", "de")
        second = visitor_token("secret", "2024-03-10", "1.2.3.4", "UA", "de")
        assert first == second

    def test_changes_with_date(self):
        today = visitor_token("secret", "2024-03-10", "1.2.3.4", "UA", "de")
        tomorrow = visitor_token("secret", "2024-03-11", "1.2.3.4", "UA", "de")
        assert today != tomorrow

    def test_changes_with_server_secret(self):
        assert visitor_token("a", "2024-03-10", "1.2.3.4", "UA", "de") != visitor_token(
            "b", "2024-03-10", "1.2.3.4", "UA", "de"
        )

    def test_is_keyed_by_daily_secret(self):
        expected = hmac_base64url(daily_secret("secret", "2024-03-10"), "1.2.3.4|UA|de")
        assert visitor_token("secret", "2024-03-10", "1.2.3.4", "UA", "de") == expected

    def test_base64url_without_padding(self):
        token = visitor_token("secret", "2024-03-10", "1.2.3.4", "UA", "de")
        assert len(token) == 43
        assert "=" not in token and "+" not in token and "/" not in token
        assert "1.2.3.4" not in token

    def test_utc_date_string_converts_timezone(self):
        just_after_midnight_berlin = datetime(2024, 3, 10, 0, 30, tzinfo=timezone(timedelta(hours=1)))
        assert utc_date_string(just_after_midnight_berlin) == "2024-03-09"


class TestParseDays:
    @pytest.mark.parametrize("raw,expected", [
        ("1", 1),
        ("7", 7),
        ("30", 30),
        ("90", 90),
        ("365", 365),
        ("7.0", 7),
        (None, 30),
        ("", 30),
        ("14", 30),
        ("abc", 30),
        ("-7", 30),
        ("7.5", 30),
        ("inf", 30),
    ])
    def test_parse_days(self, raw, expected):
        assert parse_days(raw) == expected


class TestResolveSample:
    def test_auto_above_ninety_days_is_weekly(self):
        assert resolve_sample(100, "auto") == Sample("weekly", 7)

    def test_auto_thirty_days_is_daily(self):
        assert resolve_sample(30, "auto") == Sample("daily", 1)

    def test_auto_ninety_days_is_daily(self):
        assert resolve_sample(90, "auto") == Sample("daily", 1)

    def test_explicit_weekly(self):
        assert resolve_sample(7, "weekly") == Sample("weekly", 7)

    def test_explicit_daily_overrides_long_window(self):
        assert resolve_sample(365, "daily") == Sample("daily", 1)

    def test_unknown_mode_behaves_like_auto(self):
        assert resolve_sample(365, "hourly") == Sample("weekly", 7)
        assert resolve_sample(7, None) == Sample("daily", 1)


class TestLastUtcDates:
    def test_seven_days_ending_today(self):
        assert last_utc_dates(7, FIXED_NOW) == [
            "2024-03-04",
            "2024-03-05",
            "2024-03-06",
            "2024-03-07",
            "2024-03-08",
            "2024-03-09",
            "2024-03-10",
        ]

    def test_single_day(self):
        assert last_utc_dates(1, FIXED_NOW) == ["2024-03-10"]

    def test_crosses_leap_day(self):
        dates = last_utc_dates(30, FIXED_NOW)
        assert len(dates) == 30
        assert "2024-02-29" in dates
        assert dates == sorted(dates)
        assert len(set(dates)) == 30


class TestBucketSeries:
    def test_fourteen_days_make_two_weekly_buckets(self):
        series = [DailyPoint(date=f"2024-03-{day:02d}", pageviews=day, uniques=1) for day in range(1, 15)]
        buckets = bucket_series(series, 7)
        assert [bucket.date for bucket in buckets] == ["2024-03-01", "2024-03-08"]
        assert buckets[0].pageviews == sum(range(1, 8))
        assert buckets[1].pageviews == sum(range(8, 15))
        assert buckets[0].uniques == 7

    def test_partial_last_bucket(self):
        series = [DailyPoint(date=str(index), pageviews=1, uniques=1) for index in range(30)]
        buckets = bucket_series(series, 7)
        assert len(buckets) == 5
        assert buckets[-1].pageviews == 2

    def test_daily_step_returns_points_unchanged(self):
        series = [DailyPoint(date="2024-03-10", pageviews=3, uniques=2)]
        assert bucket_series(series, 1) == series


class TestAnalyticsStore:
    def _store(self, make_gate, keys, now=FIXED_NOW):
        return AnalyticsStore(make_gate(), keys, "secret", clock=lambda: now)

    def test_same_visitor_twice_counts_two_views_one_unique(self, make_gate, keys, redis_sync):
        async def scenario():
            store = self._store(make_gate, keys)
            assert await store.record_visit(VISIT) is True
            assert await store.record_visit(VISIT) is True

        asyncio.run(scenario())
        assert redis_sync.get(keys.pageviews("2024-03-10")) == "2"
        assert redis_sync.pfcount(keys.uniques("2024-03-10")) == 1

    def test_different_visitors_are_distinct(self, make_gate, keys, redis_sync):
        async def scenario():
            store = self._store(make_gate, keys)
            await store.record_visit(VISIT)
            await store.record_visit(Visit(ip="198.51.100.1", user_agent="Mozilla/5.0", accept_language="de-DE"))

        asyncio.run(scenario())
        assert redis_sync.pfcount(keys.uniques("2024-03-10")) == 2

    def test_keys_expire_after_retention(self, make_gate, keys, redis_sync):
        asyncio.run(self._store(make_gate, keys).record_visit(VISIT))
        for key in (keys.pageviews("2024-03-10"), keys.uniques("2024-03-10")):
            ttl = redis_sync.ttl(key)
            assert 0 < ttl <= ANALYTICS_TTL_SECONDS
            assert ttl > ANALYTICS_TTL_SECONDS - 60

    def test_raw_visitor_data_is_not_stored(self, make_gate, keys, redis_sync):
        asyncio.run(self._store(make_gate, keys).record_visit(VISIT))
        for key in redis_sync.keys("*"):
            assert VISIT.ip not in key

    def test_unreachable_store_skips(self, make_gate, keys, redis_server):
        redis_server.connected = False
        assert asyncio.run(self._store(make_gate, keys).record_visit(VISIT)) is False

    def test_summary(self, make_gate, keys, redis_sync):
        redis_sync.set(keys.pageviews("2024-03-09"), 4)
        redis_sync.set(keys.pageviews("2024-03-10"), 6)
        redis_sync.pfadd(keys.uniques("2024-03-10"), "a", "b", "c")
        redis_sync.set(keys.pageviews("2024-03-01"), 1000)  # outside the window

        summary = asyncio.run(self._store(make_gate, keys).get_summary(7))

        assert summary == {
            "days": 7,
            "timezone": "UTC",
            "total_pageviews": 10,
            "total_uniques": 3,
            "average_pageviews": 10 / 7,
            "average_uniques": 3 / 7,
        }

    def test_missing_and_garbage_values_read_as_zero(self, make_gate, keys, redis_sync):
        redis_sync.set(keys.pageviews("2024-03-10"), "not-a-number")
        points = asyncio.run(self._store(make_gate, keys).read_days(["2024-03-09", "2024-03-10"]))
        assert points == [
            DailyPoint(date="2024-03-09", pageviews=0, uniques=0),
            DailyPoint(date="2024-03-10", pageviews=0, uniques=0),
        ]

    def test_timeseries_daily(self, make_gate, keys, redis_sync):
        redis_sync.set(keys.pageviews("2024-03-10"), 2)
        redis_sync.pfadd(keys.uniques("2024-03-10"), "a")

        result = asyncio.run(self._store(make_gate, keys).get_timeseries(7, "auto"))

        assert result["sample"] == {"mode": "daily", "step": 1}
        assert len(result["series"]) == 7
        assert result["series"][-1] == {"date": "2024-03-10", "pageviews": 2, "uniques": 1}
        assert result["series"][0] == {"date": "2024-03-04", "pageviews": 0, "uniques": 0}

    def test_timeseries_weekly_buckets_start_at_window_start(self, make_gate, keys, redis_sync):
        for date in last_utc_dates(365, FIXED_NOW):
            redis_sync.set(keys.pageviews(date), 1)

        result = asyncio.run(self._store(make_gate, keys).get_timeseries(365, "auto"))

        assert result["sample"] == {"mode": "weekly", "step": 7}
        assert len(result["series"]) == 53
        assert result["series"][0]["date"] == last_utc_dates(365, FIXED_NOW)[0]
        assert result["series"][0]["pageviews"] == 7
        assert result["series"][-1]["pageviews"] == 1
        assert sum(point["pageviews"] for point in result["series"]) == 365
