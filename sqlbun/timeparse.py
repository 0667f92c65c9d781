"""Parsing of the textual date and time forms SQL databases return."""

from __future__ import annotations

import re
from datetime import datetime, time, timedelta, timezone, tzinfo

_DATE = r"(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})"
_TIME = r"(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})(?:\.(?P<frac>\d{1,9}))?"
_TZ_HMS = r"(?P<sign>[+-])(?P<oh>\d{2}):(?P<om>\d{2}):(?P<os>\d{2})"
_TZ_HM = r"(?P<sign>[+-])(?P<oh>\d{2}):(?P<om>\d{2})"
_TZ_H = r"(?P<sign>[+-])(?P<oh>\d{2})"
_TZ_RFC = r"(?:(?P<zulu>Z)|(?P<sign>[+-])(?P<oh>\d{2}):(?P<om>\d{2}))"

_TIMESTAMP = re.compile(_DATE + " " + _TIME)
_TIMESTAMPTZ_HMS = re.compile(_DATE + " " + _TIME + _TZ_HMS)
_TIMESTAMPTZ_HM = re.compile(_DATE + " " + _TIME + _TZ_HM)
_TIMESTAMPTZ_H = re.compile(_DATE + " " + _TIME + _TZ_H)
_RFC3339 = re.compile(_DATE + "T" + _TIME + _TZ_RFC)
_DATE_ONLY = re.compile(_DATE)
_TIME_ONLY = re.compile(_TIME)
_TIMETZ_HMS = re.compile(_TIME + _TZ_HMS)
_TIMETZ_HM = re.compile(_TIME + _TZ_HM)
_TIMETZ_H = re.compile(_TIME + _TZ_H)

# (position from the end of the string, pattern) in the order they are tried.
_TIMESTAMPTZ_CANDIDATES = ((6, _TIMESTAMPTZ_HM), (3, _TIMESTAMPTZ_H), (9, _TIMESTAMPTZ_HMS))
_TIMETZ_CANDIDATES = ((6, _TIMETZ_HM), (3, _TIMETZ_H), (9, _TIMETZ_HMS))


def _error(s: str) -> ValueError:
    return ValueError(f"can't parse time={s!r}")


def _fields(pattern: re.Pattern[str], s: str) -> dict[str, str | None]:
    match = pattern.fullmatch(s)
    if match is None:
        raise _error(s)
    return match.groupdict()


def _tz(fields: dict[str, str | None]) -> tzinfo:
    sign = fields.get("sign")
    if fields.get("zulu") or sign is None:
        return timezone.utc
    delta = timedelta(
        hours=int(fields["oh"] or 0),
        minutes=int(fields.get("om") or 0),
        seconds=int(fields.get("os") or 0),
    )
    return timezone(-delta if sign == "-" else delta)


def _microseconds(frac: str | None) -> int:
    return int((frac or "").ljust(9, "0")[:6])


def _to_datetime(pattern: re.Pattern[str], s: str) -> datetime:
    fields = _fields(pattern, s)
    try:
        return datetime(
            int(fields["year"] or 0),
            int(fields["month"] or 0),
            int(fields["day"] or 0),
            int(fields.get("hour") or 0),
            int(fields.get("minute") or 0),
            int(fields.get("second") or 0),
            _microseconds(fields.get("frac")),
            tzinfo=_tz(fields),
        )
    except ValueError as exc:
        raise _error(s) from exc


def _to_time(pattern: re.Pattern[str], s: str) -> time:
    fields = _fields(pattern, s)
    try:
        return time(
            int(fields["hour"] or 0),
            int(fields["minute"] or 0),
            int(fields["second"] or 0),
            _microseconds(fields.get("frac")),
            tzinfo=_tz(fields),
        )
    except ValueError as exc:
        raise _error(s) from exc


def _is_sign(s: str, pos_from_end: int) -> bool:
    return s[len(s) - pos_from_end] in ("+", "-")


def parse_time(s: str) -> datetime | time:
    """Parse a date, time, timestamp or timestamptz string.

    Timestamps and dates give an aware :class:`datetime` (UTC when no offset
    is present); times of day give an aware :class:`time`. Fractions finer
    than a microsecond are truncated. Raises :class:`ValueError`.
    """
    n = len(s)

    if n >= len("2006-01-02 15:04:05"):
        if s[10] == " ":
            for pos, pattern in _TIMESTAMPTZ_CANDIDATES:
                if _is_sign(s, pos):
                    return _to_datetime(pattern, s)
            return _to_datetime(_TIMESTAMP, s)
        if s[10] == "T":
            return _to_datetime(_RFC3339, s)

    if n >= len("15:04:05-07"):
        for pos, pattern in _TIMETZ_CANDIDATES:
            if _is_sign(s, pos):
                return _to_time(pattern, s)

    if n < len("15:04:05"):
        raise _error(s)

    if s[2] == ":":
        return _to_time(_TIME_ONLY, s)
    return _to_datetime(_DATE_ONLY, s)