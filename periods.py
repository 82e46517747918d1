from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional
from zoneinfo import ZoneInfo

from config import get_settings
from models import BudgetPeriod


@dataclass(frozen=True)
class Period:
    slug: str
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


def local_now(tz_name: Optional[str] = None) -> datetime:
    """Current wall-clock time in the configured zone, without tzinfo.

    Transaction dates are stored as naive local times, so window bounds are
    naive as well.
    """
    tz = ZoneInfo(tz_name or get_settings().timezone)
    return datetime.now(tz).replace(tzinfo=None)


def _month_end(year: int, month: int) -> date:
    if month == 12:
        return date(year + 1, 1, 1) - date.resolution
    return date(year, month + 1, 1) - date.resolution


def month_period(year: int, month: int) -> Period:
    if not 1 <= month <= 12:
        raise ValueError("Month must be between 1 and 12")
    start = datetime.combine(date(year, month, 1), time.min)
    end = datetime.combine(_month_end(year, month), time.max)
    return Period(f"{year:04d}-{month:02d}", start, end)


def budget_window(period: BudgetPeriod, now: datetime) -> Period:
    # Open-ended at "now": later-dated entries in the same month do not count.
    if period == BudgetPeriod.yearly:
        start = datetime(now.year, 1, 1)
    else:
        start = datetime(now.year, now.month, 1)
    return Period(period.value, start, now)
