"""Date manipulation utilities"""

from datetime import date, datetime, timedelta, timezone


def utcnow() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)


def day_window(end: date, days: int) -> tuple[date, date]:
    """Inclusive (start, end) window of ``days`` calendar days ending on ``end``"""
    days = max(days, 1)
    return end - timedelta(days=days - 1), end


def tomorrow_of(day: date) -> date:
    return day + timedelta(days=1)


def yesterday_of(day: date) -> date:
    return day - timedelta(days=1)
