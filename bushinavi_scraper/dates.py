"""
Reporting window and listing URL.

Weeks are counted Sunday-first in Japan time; the window is the Monday to
Sunday ending on the most recent Sunday (today, when today is Sunday).
"""

from datetime import date, datetime, timedelta
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from .core import LIST_PAGE_URL, ScraperConfig

TOKYO = ZoneInfo('Asia/Tokyo')


def today_in_tokyo(now: Optional[datetime] = None) -> date:
    now = now or datetime.now(TOKYO)
    if now.tzinfo is None:
        now = now.replace(tzinfo=TOKYO)
    return now.astimezone(TOKYO).date()


def last_week_window(today: Optional[date] = None) -> Tuple[date, date]:
    """(monday, sunday) of the reporting week for the given Tokyo date"""
    today = today or today_in_tokyo()
    # date.weekday(): Monday=0 ... Sunday=6
    week_start = today - timedelta(days=(today.weekday() + 1) % 7)
    return week_start - timedelta(days=6), week_start


def build_listing_url(start: date, end: date, config: Optional[ScraperConfig] = None) -> str:
    config = config or ScraperConfig()
    return (
        f"{LIST_PAGE_URL}?game_title_id[]={config.game_title_id}"
        f"&limit={config.limit}&offset=0"
        f"&series_type[]={config.series_type}"
        f"&end_date={end.isoformat()}&start_date={start.isoformat()}"
    )
