# Reminder rules — parse reminder specifiers and turn them into absolute timestamps.
# Created: 2026-03-02
#
# Specifier grammar (optionally prefixed "trial_", which has no effect on timing):
#   sameday[_HH:MM]
#   1day_HH:MM | 2days_HH:MM | 3days_HH:MM | 7days_HH:MM
#   custom_<N>_HH:MM                 N days before the payment date
#   customdate_<Y>_<M>_<D>_HH:MM     absolute date, month 1-12
#
# HH:MM falls back to 09:00 when missing or unparseable.

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

DEFAULT_TIME = time(9, 0)

TRIAL_PREFIX = "trial_"

# Fixed day-offset kinds
_FIXED_OFFSETS: dict[str, int] = {
    "1day": 1,
    "2days": 2,
    "3days": 3,
    "7days": 7,
}

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{1,2})$")


@dataclass(frozen=True)
class SameDay:
    """Fire on the payment date itself."""

    at: time = DEFAULT_TIME


@dataclass(frozen=True)
class DaysBefore:
    """Fire ``days`` calendar days before the payment date."""

    days: int
    at: time = DEFAULT_TIME


@dataclass(frozen=True)
class AbsoluteDate:
    """Fire on a fixed calendar date, regardless of the payment date."""

    year: int
    month: int  # 1-based
    day: int
    at: time = DEFAULT_TIME


ReminderRule = SameDay | DaysBefore | AbsoluteDate


def parse_time(value: str | None) -> time:
    """Parse ``HH:MM``, falling back to 09:00."""
    if not value:
        return DEFAULT_TIME
    m = _TIME_RE.match(value.strip())
    if not m:
        return DEFAULT_TIME
    hour, minute = int(m.group(1)), int(m.group(2))
    if hour > 23 or minute > 59:
        return DEFAULT_TIME
    return time(hour, minute)


def _parse_int(value: str) -> int | None:
    try:
        return int(value)
    except ValueError:
        return None


def parse_specifier(specifier: str) -> ReminderRule | None:
    """Parse a specifier string into a rule. Returns None if not recognized."""
    if not specifier or not isinstance(specifier, str):
        return None

    spec = specifier.strip()
    if spec.startswith(TRIAL_PREFIX):
        spec = spec[len(TRIAL_PREFIX) :]

    if spec == "sameday":
        return SameDay()

    kind, sep, rest = spec.partition("_")
    if not sep:
        return None

    if kind == "sameday":
        return SameDay(parse_time(rest.split("_")[0]))

    if kind in _FIXED_OFFSETS:
        return DaysBefore(_FIXED_OFFSETS[kind], parse_time(rest.split("_")[0]))

    if kind == "custom":
        parts = rest.split("_")
        # Non-numeric day counts mean "on the payment date"
        days = _parse_int(parts[0]) or 0
        return DaysBefore(days, parse_time(parts[1] if len(parts) > 1 else None))

    if kind == "customdate":
        parts = rest.split("_")
        if len(parts) < 4:
            return None
        year, month, day = (_parse_int(p) for p in parts[:3])
        if year is None or month is None or day is None:
            return None
        return AbsoluteDate(year, month, day, parse_time(parts[3]))

    return None


def evaluate(reference: datetime, specifier: str | ReminderRule) -> datetime | None:
    """Compute when a reminder should fire.

    Args:
        reference: The subscription's next payment date. Its ``tzinfo`` (or
            lack of one) is carried over to the result.
        specifier: A specifier string or an already parsed rule.

    Returns:
        The absolute timestamp with seconds and microseconds zeroed, or None
        if the specifier is invalid.
    """
    rule = parse_specifier(specifier) if isinstance(specifier, str) else specifier
    if rule is None or not isinstance(reference, datetime):
        return None

    tz = reference.tzinfo
    match rule:
        case SameDay(at=at):
            day = reference.date()
        case DaysBefore(days=days, at=at):
            try:
                day = reference.date() - timedelta(days=days)
            except OverflowError:
                return None
        case AbsoluteDate(year=year, month=month, day=dom, at=at):
            try:
                day = date(year, month, dom)
            except ValueError:
                return None
        case _:
            return None

    return datetime.combine(day, at, tzinfo=tz)
