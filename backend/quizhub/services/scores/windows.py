from datetime import date, datetime, time as dt_time, timedelta
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from flask import current_app

from quizhub.errors import ApiError

THURSDAY = 3
SATURDAY = 5
DAY_NAMES = {THURSDAY: 'Thursday', SATURDAY: 'Saturday'}


def quiz_timezone() -> ZoneInfo:
    return ZoneInfo(current_app.config.get('QUIZ_TIMEZONE', 'Europe/London'))


def quiz_now(now: Optional[datetime] = None) -> datetime:
    """Current wall-clock time in the quiz time zone."""
    tz = quiz_timezone()
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        return now.replace(tzinfo=tz)
    return now.astimezone(tz)


def parse_hhmm(value: str) -> Tuple[int, int]:
    hour, minute = value.split(':', 1)
    return int(hour), int(minute)


def parse_date(value, field='date') -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (TypeError, ValueError):
        raise ApiError(f'Invalid {field}, expected YYYY-MM-DD')


def week_window(at: date) -> Tuple[date, date]:
    """ISO week (Monday..Sunday) containing ``at``."""
    monday = at - timedelta(days=at.weekday())
    return monday, monday + timedelta(days=6)


def month_window(at: date) -> Tuple[date, date]:
    first = at.replace(day=1)
    next_first = (first + timedelta(days=32)).replace(day=1)
    return first, next_first - timedelta(days=1)


def most_recent_weekday_at(now: datetime, weekday: int, hour: int, minute: int) -> datetime:
    diff = (now.weekday() - weekday) % 7
    day = (now - timedelta(days=diff)).date()
    return datetime.combine(day, dt_time(hour, minute), tzinfo=now.tzinfo)


def jvq_result_window(now: datetime, weekday: int) -> Tuple[date, bool]:
    """Date of the most recent JVQ for ``weekday`` and whether its results show.

    Results are visible from the submission cut-off on quiz day until
    midnight seven days later.
    """
    hour, minute = parse_hhmm(current_app.config.get('JVQ_SUBMIT_AFTER', '20:30'))
    last_quiz = most_recent_weekday_at(now, weekday, hour, minute)
    hide_at = datetime.combine(last_quiz.date() + timedelta(days=7), dt_time(0, 0), tzinfo=now.tzinfo)
    return last_quiz.date(), last_quiz <= now < hide_at


def ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = 'th'
    else:
        suffix = {1: 'st', 2: 'nd', 3: 'rd'}.get(n % 10, 'th')
    return f'{n}{suffix}'
