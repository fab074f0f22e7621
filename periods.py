from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from config import get_settings


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


def local_today() -> date:
    settings = get_settings()
    tz = ZoneInfo(settings.timezone)
    return datetime.now(tz).date()


def parse_month_key(month: str) -> tuple[int, int]:
    try:
        year_str, month_str = month.split("-")
        year, month_num = int(year_str), int(month_str)
    except ValueError as exc:
        raise ValueError(f"Invalid month key: {month!r}") from exc
    if not 1 <= month_num <= 12:
        raise ValueError(f"Invalid month key: {month!r}")
    return year, month_num


def month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def month_period(month: str) -> Period:
    year, month_num = parse_month_key(month)
    first = date(year, month_num, 1)
    if month_num == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month_num + 1, 1)
    return Period(month, first, next_month - date.resolution)


def previous_month_key(month: str) -> str:
    first = month_period(month).start
    return month_key(first - date.resolution)


def trailing_windows(days: int, *, today: Optional[date] = None) -> tuple[Period, Period]:
    """Return the trailing window ending today and the equally long window before it."""
    today = today or date.today()
    current_start = today - timedelta(days=days - 1)
    previous_end = current_start - date.resolution
    previous_start = previous_end - timedelta(days=days - 1)
    return (
        Period("current", current_start, today),
        Period("previous", previous_start, previous_end),
    )


def resolve_period(
    period: Optional[str],
    start: Optional[str],
    end: Optional[str],
    *,
    today: Optional[date] = None,
) -> Period:
    today = today or date.today()
    if not period or period == "all":
        return Period("all", date(1970, 1, 1), today)
    if period == "last_30_days":
        current, _ = trailing_windows(30, today=today)
        return Period("last_30_days", current.start, current.end)
    if period == "custom":
        if not start or not end:
            raise ValueError("Custom period requires start and end dates")
        start_date = date.fromisoformat(start)
        end_date = date.fromisoformat(end)
        if start_date > end_date:
            raise ValueError("Start date must be before end date")
        return Period("custom", start_date, end_date)

    current = month_period(month_key(today))
    return Period("this_month", current.start, current.end)
