"""
Tests for the reporting window and listing URL.
Run with: pytest tests/test_dates.py -v
"""
from datetime import date, datetime, timezone

from bushinavi_scraper.core import ScraperConfig
from bushinavi_scraper.dates import build_listing_url, last_week_window, today_in_tokyo


class TestLastWeekWindow:
    def test_midweek(self):
        # Wednesday 2026-10-21
        assert last_week_window(date(2026, 10, 21)) == (date(2026, 10, 12), date(2026, 10, 18))

    def test_monday(self):
        assert last_week_window(date(2026, 10, 19)) == (date(2026, 10, 12), date(2026, 10, 18))

    def test_saturday(self):
        assert last_week_window(date(2026, 10, 24)) == (date(2026, 10, 12), date(2026, 10, 18))

    def test_sunday_window_ends_today(self):
        assert last_week_window(date(2026, 10, 18)) == (date(2026, 10, 12), date(2026, 10, 18))

    def test_window_spans_monday_to_sunday(self):
        start, end = last_week_window(date(2026, 3, 4))
        assert start.weekday() == 0
        assert end.weekday() == 6
        assert (end - start).days == 6


class TestTodayInTokyo:
    def test_utc_evening_is_next_day_in_tokyo(self):
        now = datetime(2026, 10, 18, 20, 0, tzinfo=timezone.utc)
        assert today_in_tokyo(now) == date(2026, 10, 19)

    def test_naive_treated_as_tokyo(self):
        assert today_in_tokyo(datetime(2026, 10, 18, 23, 30)) == date(2026, 10, 18)


class TestBuildListingUrl:
    def test_default_query(self):
        url = build_listing_url(date(2026, 10, 12), date(2026, 10, 18))
        assert url == (
            "https://www.bushi-navi.com/event/result/list?game_title_id[]=6&limit=500&offset=0"
            "&series_type[]=3&end_date=2026-10-18&start_date=2026-10-12"
        )

    def test_config_overrides(self):
        config = ScraperConfig(game_title_id=2, series_type=1, limit=100)
        url = build_listing_url(date(2026, 1, 5), date(2026, 1, 11), config)
        assert 'game_title_id[]=2' in url
        assert 'series_type[]=1' in url
        assert 'limit=100' in url
