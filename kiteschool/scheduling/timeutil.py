"""
Clock-time arithmetic for the scheduling core.

All scheduling code converts between "HH:MM" strings, minutes since
midnight and absolute datetimes through these functions. Event datetimes
are stored and compared in UTC.

Mutation paths call time_to_minutes() and let InvalidTimeFormat propagate.
Display paths may use time_to_minutes_or_midnight(), which logs and falls
back to 00:00.
"""

import logging
import re
from datetime import UTC, date, datetime, time, timedelta

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60

_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


class InvalidTimeFormat(ValueError):
    """Raised for clock strings that are not a valid 24h "HH:MM"."""


def time_to_minutes(hhmm: str) -> int:
    """Parse "HH:MM" into minutes since midnight."""
    if not isinstance(hhmm, str):
        raise InvalidTimeFormat(f"Expected 'HH:MM' string, got {type(hhmm).__name__}")

    match = _HHMM_RE.match(hhmm.strip())
    if not match:
        raise InvalidTimeFormat(f"Invalid time format (use HH:MM): {hhmm!r}")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise InvalidTimeFormat(f"Time out of range: {hhmm!r}")

    return hours * 60 + minutes


def time_to_minutes_or_midnight(hhmm: str) -> int:
    """Display-path variant of time_to_minutes(): malformed input reads as 00:00."""
    try:
        return time_to_minutes(hhmm)
    except InvalidTimeFormat as e:
        logger.warning("Falling back to midnight for display: %s", e)
        return 0


def minutes_to_time(minutes: int) -> str:
    """Format minutes since midnight as "HH:MM", wrapping around the clock."""
    minutes = int(minutes) % MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def add_minutes_to_time(hhmm: str, delta: int) -> str:
    return minutes_to_time(time_to_minutes(hhmm) + delta)


def parse_date(value: date | datetime | str) -> date:
    """Accept a date, a datetime or an ISO string and return the calendar date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value[:10])
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid date (use YYYY-MM-DD): {value!r}") from e


def parse_datetime(value: datetime | str) -> datetime:
    """
    Parse an ISO datetime into an aware UTC datetime.

    Naive values are taken to be UTC already.
    """
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise ValueError(f"Invalid datetime: {value!r}") from e
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def combine_date_and_time(day: date | datetime | str, hhmm: str) -> datetime:
    """Build the absolute UTC datetime for a calendar date and a clock time."""
    minutes = time_to_minutes(hhmm)
    return datetime.combine(parse_date(day), time(minutes // 60, minutes % 60), tzinfo=UTC)


def extract_time(moment: datetime | str) -> str:
    """Clock time ("HH:MM") of an absolute datetime, in UTC."""
    moment = parse_datetime(moment)
    return f"{moment.hour:02d}:{moment.minute:02d}"


def minutes_of_day(moment: datetime | str) -> int:
    """Minutes since midnight (UTC) of an absolute datetime."""
    moment = parse_datetime(moment)
    return moment.hour * 60 + moment.minute


def add_minutes(moment: datetime, delta: int) -> datetime:
    return moment + timedelta(minutes=delta)


def format_duration(minutes: int) -> str:
    """Human readable duration, e.g. 150 -> "2:30hrs"."""
    hours, mins = divmod(int(minutes), 60)
    return f"{hours}:{mins:02d}hrs"
