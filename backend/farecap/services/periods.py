"""Day and week boundaries used to reset rolling cap totals."""

from datetime import date, datetime, timedelta
from typing import Dict, Union

from farecap.exceptions import ConfigurationMissingError
from farecap.models import ZoneCombination
from farecap.services.classifier import parse_timestamp

DateLike = Union[str, date, datetime]

# Cheapest to most expensive, for the reference two-zone table
ZONE_COMBINATION_PRIORITY = ["1-1", "2-2", "1-2", "2-1"]


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_timestamp(value).date()


def journey_date(timestamp: DateLike) -> date:
    """Calendar date of a timestamp ("T" and space separators parse alike)."""
    return _as_date(timestamp)


def is_same_day(first: DateLike, second: DateLike) -> bool:
    return _as_date(first) == _as_date(second)


def week_start(value: DateLike) -> date:
    """
    Monday on or before the given date (ISO week start).

    Raises:
        InvalidInputError: If the value cannot be parsed as a date
    """
    day = _as_date(value)
    return day - timedelta(days=day.weekday())


def is_same_week(first: DateLike, second: DateLike) -> bool:
    return week_start(first) == week_start(second)


def highest_zone_combination(first: ZoneCombination, second: ZoneCombination) -> ZoneCombination:
    """
    Return whichever combination ranks higher in the fixed priority list.

    Raises:
        ConfigurationMissingError: If either combination is not in the list
    """
    for combo in (first, second):
        if combo not in ZONE_COMBINATION_PRIORITY:
            raise ConfigurationMissingError(combo, "cap priority")
    if ZONE_COMBINATION_PRIORITY.index(second) > ZONE_COMBINATION_PRIORITY.index(first):
        return second
    return first


def _cap_rank(combo: ZoneCombination, caps: Dict[ZoneCombination, int]) -> tuple:
    if combo not in caps:
        raise ConfigurationMissingError(combo, "cap")
    if combo in ZONE_COMBINATION_PRIORITY:
        priority = ZONE_COMBINATION_PRIORITY.index(combo)
    else:
        priority = len(ZONE_COMBINATION_PRIORITY)
    return caps[combo], priority, combo


def highest_capped_combination(
    first: ZoneCombination,
    second: ZoneCombination,
    caps: Dict[ZoneCombination, int],
) -> ZoneCombination:
    """
    Return whichever combination carries the larger cap.

    Equal caps fall back to the fixed priority list, then to the
    combination string, so the choice is stable for any zone set.

    Raises:
        ConfigurationMissingError: If either combination has no cap
    """
    if _cap_rank(second, caps) > _cap_rank(first, caps):
        return second
    return first
