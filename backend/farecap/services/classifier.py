"""Peak/off-peak and zone-combination classification of journeys."""

import re
from datetime import datetime
from typing import Union

from farecap.exceptions import InvalidInputError
from farecap.models import Journey, TimeOfTravel, ZoneCombination

# Peak windows in minutes from midnight, inclusive at both ends
WEEKDAY_PEAK_WINDOWS = (
    (420, 630),    # 07:00-10:30
    (1020, 1200),  # 17:00-20:00
)
WEEKEND_PEAK_WINDOWS = (
    (540, 660),    # 09:00-11:00
    (1080, 1320),  # 18:00-22:00
)

SATURDAY = 5

_SINGLE_DIGIT_HOUR = re.compile(r"([T ])(\d):")
_TIMESTAMP_FORMAT = re.compile(
    r"\d{4}-\d{2}-\d{2}"
    r"(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d{3}|\.\d{6})?)?(?:Z|[+-]\d{2}:\d{2})?)?"
)


def zone_combination(from_zone: int, to_zone: int) -> ZoneCombination:
    """Order-sensitive fare-table key for a zone pair, e.g. "1-2"."""
    return f"{from_zone}-{to_zone}"


def normalize_timestamp(value: str) -> str:
    """Pad a single-digit hour, so "2023-01-03T8:00:00" reads as "2023-01-03T08:00:00"."""
    return _SINGLE_DIGIT_HOUR.sub(r"\g<1>0\2:", value.strip(), count=1)


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """
    Parse a journey timestamp into a naive wall-clock datetime.

    Accepts "T" or a single space between date and time, optional seconds
    (with millisecond or microsecond fractions), and a bare date (read as
    midnight). A trailing "Z" or "+HH:MM" offset is discarded; the local
    time written in the timestamp is what gets priced. Other ISO 8601
    forms (week dates, compact "20230102T0830") are rejected.

    Raises:
        InvalidInputError: If the value is not a parseable timestamp
    """
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if not isinstance(value, str):
        raise InvalidInputError(f"Invalid timestamp: {value!r}")

    normalized = normalize_timestamp(value)
    if not _TIMESTAMP_FORMAT.fullmatch(normalized):
        raise InvalidInputError(f"Invalid timestamp: {value!r}")
    if normalized.endswith("Z"):
        normalized = normalized[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError as e:
        raise InvalidInputError(f"Invalid timestamp: {value!r}") from e
    return parsed.replace(tzinfo=None)


def minutes_from_midnight(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def is_peak(timestamp: Union[str, datetime]) -> bool:
    """
    Check whether a timestamp falls inside a peak window.

    Weekdays (Mon-Fri) and weekends (Sat-Sun) have separate windows.
    """
    moment = parse_timestamp(timestamp)
    minutes = minutes_from_midnight(moment)
    windows = WEEKEND_PEAK_WINDOWS if moment.weekday() >= SATURDAY else WEEKDAY_PEAK_WINDOWS
    return any(start <= minutes <= end for start, end in windows)


def time_of_travel(journey: Journey) -> TimeOfTravel:
    """Pricing band for a journey."""
    return TimeOfTravel.PEAK if is_peak(journey.date_time) else TimeOfTravel.OFF_PEAK
