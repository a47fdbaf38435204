from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta
from typing import Iterable

from clinic_booking.domain.entities.work_shift import WorkShift

_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2})(?:\.\d+)?)?\s*$")


def parse_time_of_day(value: str) -> time | None:
    """Parse ``HH:MM`` or ``HH:MM:SS`` into a time. Returns None if malformed."""
    if not isinstance(value, str):
        return None
    match = _TIME_RE.match(value)
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return time(hour, minute)


def format_time_of_day(value: time) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def normalize_time_string(value: str) -> str | None:
    """``08:00:00`` -> ``08:00``; None if the value is not a time of day."""
    parsed = parse_time_of_day(value)
    return format_time_of_day(parsed) if parsed else None


def parse_iso_date(value: str | date) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def earliest_bookable(day: date, now: datetime, lead_minutes: int) -> time | None:
    """
    First time of day on ``day`` that respects the lead window.
    Returns time.min for future days and None when the whole day is out of reach.
    """
    now_naive = now.replace(tzinfo=None)
    threshold = now_naive + timedelta(minutes=lead_minutes)
    if threshold.date() < day:
        return time.min
    if threshold.date() > day:
        return None
    return threshold.time()


def enumerate_shift_slots(
    shifts: Iterable[WorkShift],
    day: date,
    now: datetime,
    lead_minutes: int = 120,
    interval_minutes: int = 30,
) -> list[str]:
    """
    Enumerate bookable HH:MM starts inside the shifts of ``day``.
    Slots start on the shift start and step by ``interval_minutes`` while still
    inside [start, end). Slots before now + lead are dropped.
    """
    cutoff = earliest_bookable(day, now, lead_minutes)
    if cutoff is None:
        return []

    found: set[str] = set()
    for shift in shifts:
        if shift.date != day:
            continue
        current = datetime.combine(day, shift.start_time)
        end = datetime.combine(day, shift.end_time)
        while current < end:
            if current.time() >= cutoff:
                found.add(format_time_of_day(current.time()))
            current += timedelta(minutes=interval_minutes)

    return sorted(found)


def clip_slots(
    slots: Iterable[str],
    shifts: Iterable[WorkShift],
    day: date,
    now: datetime,
    lead_minutes: int = 120,
) -> list[str]:
    """Keep only well-formed slots inside some shift of ``day`` and past the lead window."""
    cutoff = earliest_bookable(day, now, lead_minutes)
    if cutoff is None:
        return []

    day_shifts = [s for s in shifts if s.date == day]
    kept: list[str] = []
    for raw in slots:
        moment = parse_time_of_day(raw)
        if moment is None or moment < cutoff:
            continue
        if not any(shift.contains(moment) for shift in day_shifts):
            continue
        slot = format_time_of_day(moment)
        if slot not in kept:
            kept.append(slot)
    return sorted(kept)
