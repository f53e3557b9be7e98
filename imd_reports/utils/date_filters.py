"""
Date range handling shared by every aggregator.

All instants are timezone-aware UTC. Date-only inputs are anchored to the
start (00:00:00.000) or end (23:59:59.999) of the UTC day.
"""
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, Optional

PERIODS = ('today', 'week', 'month', 'custom')
REPORT_TYPES = ('daily', 'weekly', 'monthly', 'custom')
DAILY_WINDOWS = ('calendar_day', 'trailing_24h')

REPORT_TYPE_PERIODS = {
    'daily': 'today',
    'weekly': 'week',
    'monthly': 'month',
    'custom': 'custom',
}

START_OF_DAY = time(0, 0, 0, 0)
END_OF_DAY = time(23, 59, 59, 999000)
ONE_DAY = timedelta(days=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Read naive datetimes as UTC; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_day(value) -> datetime:
    if isinstance(value, datetime):
        value = as_utc(value).date()
    return datetime.combine(value, START_OF_DAY, tzinfo=timezone.utc)


def end_of_day(value) -> datetime:
    if isinstance(value, datetime):
        value = as_utc(value).date()
    return datetime.combine(value, END_OF_DAY, tzinfo=timezone.utc)


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse YYYY-MM-DD (or a full ISO timestamp) into a date. Raises ValueError."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return as_utc(value).date()
    if isinstance(value, date):
        return value
    value = value.strip()
    if len(value) == 10:
        return datetime.strptime(value, '%Y-%m-%d').date()
    return as_utc(datetime.fromisoformat(value.replace('Z', '+00:00'))).date()


def iter_days(start: datetime, end: datetime) -> Iterator[date]:
    """Every calendar day from start to end inclusive."""
    current = as_utc(start).date()
    last = as_utc(end).date()
    while current <= last:
        yield current
        current += ONE_DAY


def days_between_ceil(later: datetime, earlier: datetime) -> int:
    """Whole days between two instants, rounding any partial day up."""
    return math.ceil((later - earlier).total_seconds() / ONE_DAY.total_seconds())


@dataclass(frozen=True)
class DateFilter:
    start: datetime
    end: datetime
    period: str = 'custom'

    def __post_init__(self):
        object.__setattr__(self, 'start', as_utc(self.start))
        object.__setattr__(self, 'end', as_utc(self.end))
        if self.period not in PERIODS:
            raise ValueError(f"Invalid period '{self.period}'. Must be one of: {', '.join(PERIODS)}")
        if self.end < self.start:
            raise ValueError('end must not be before start')

    @classmethod
    def from_dates(cls, start_date: date, end_date: date, period: str = 'custom') -> 'DateFilter':
        return cls(start_of_day(start_date), end_of_day(end_date), period)

    @classmethod
    def today(cls, now: Optional[datetime] = None) -> 'DateFilter':
        now = as_utc(now) if now else utc_now()
        return cls(start_of_day(now), end_of_day(now), 'today')

    def contains(self, value: Optional[datetime]) -> bool:
        if value is None:
            return False
        value = as_utc(value)
        return self.start <= value <= self.end

    def through_end_of_day(self) -> 'DateFilter':
        """The same range with the end forced to 23:59:59.999 of its day."""
        return DateFilter(self.start, end_of_day(self.end), self.period)

    def to_dict(self):
        return {
            'start_date': self.start.isoformat(),
            'end_date': self.end.isoformat(),
            'period': self.period,
        }


@dataclass(frozen=True)
class ReportFilters:
    """Filter set sent by the reporting screen (dateFrom/dateTo/reportType/specialty/searchQuery)."""
    date_from: date
    date_to: date
    report_type: str = 'custom'
    specialty: str = 'all'
    search_query: str = ''

    def __post_init__(self):
        if self.report_type not in REPORT_TYPES:
            raise ValueError(f"Invalid reportType '{self.report_type}'. Must be one of: {', '.join(REPORT_TYPES)}")

    @classmethod
    def from_payload(cls, payload: dict, today: Optional[date] = None) -> 'ReportFilters':
        today = today or utc_now().date()
        date_from = parse_date(payload.get('dateFrom')) or today
        date_to = parse_date(payload.get('dateTo')) or today
        return cls(
            date_from=date_from,
            date_to=date_to,
            report_type=payload.get('reportType') or 'custom',
            specialty=payload.get('specialty') or 'all',
            search_query=(payload.get('searchQuery') or '').strip(),
        )

    @property
    def period(self) -> str:
        return REPORT_TYPE_PERIODS[self.report_type]

    def resolve(self, now: Optional[datetime] = None, daily_window: str = 'calendar_day') -> DateFilter:
        """
        Turn the filter set into a concrete instant range.

        A daily report ignores dateFrom/dateTo: ``calendar_day`` covers today
        midnight to 23:59:59.999, ``trailing_24h`` covers the last 24 hours.
        """
        if daily_window not in DAILY_WINDOWS:
            raise ValueError(f"Invalid daily window '{daily_window}'")
        now = as_utc(now) if now else utc_now()
        if self.report_type == 'daily':
            if daily_window == 'trailing_24h':
                return DateFilter(now - ONE_DAY, now, 'today')
            return DateFilter.today(now)
        return DateFilter.from_dates(self.date_from, self.date_to, self.period)

    def matches_specialty(self, value: Optional[str]) -> bool:
        return self.specialty == 'all' or value == self.specialty

    def matches_search(self, *values: Optional[str]) -> bool:
        if not self.search_query:
            return True
        needle = self.search_query.lower()
        return any(needle in (v or '').lower() for v in values)
