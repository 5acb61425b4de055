"""
Time and preference helpers shared by the scanner and the booking pipeline.

The portal renders ranges like "7:00 PM - 8:00 PM"; everything downstream of
the DOM works in zero-padded 24-hour "HH:MM" strings.
"""

import logging
import re
from datetime import date, datetime, timedelta

import pytz

from booker.models.schemas import Preferences
from booker.providers.base import Slot

logger = logging.getLogger(__name__)

TIME_12H_PATTERN = r"\d{1,2}:\d{2}\s*[AaPp]\.?[Mm]\.?"
TIME_12H_RE = re.compile(TIME_12H_PATTERN)
TIME_RANGE_RE = re.compile(rf"({TIME_12H_PATTERN})\s*[-–—]\s*({TIME_12H_PATTERN})")

PLACEHOLDER_TIME_24H = "19:00"
PLACEHOLDER_MINUTES = 60
PLACEHOLDER_LOCATION = "UBC Tennis Centre – Indoor Court 3"


def to_24h(label: str) -> str | None:
    """Convert a 12-hour label such as '7:00 PM' or '07:00pm' to '19:00'."""
    text = label.strip().upper().replace(".", "")
    if not text:
        return None

    for fmt in ("%I:%M %p", "%I:%M%p"):
        try:
            return datetime.strptime(text, fmt).strftime("%H:%M")
        except ValueError:
            continue

    logger.debug(f"Failed to parse 12-hour time: '{label}'")
    return None


def to_12h_label(time_24h: str) -> str:
    """Convert '19:00' to the portal's label form '7:00 PM' (no leading zero)."""
    parsed = datetime.strptime(time_24h, "%H:%M")
    return f"{parsed.hour % 12 or 12}:{parsed.minute:02d} {'AM' if parsed.hour < 12 else 'PM'}"


def minutes_of_day(time_24h: str) -> int:
    hours, minutes = time_24h.split(":")
    return int(hours) * 60 + int(minutes)


def duration_minutes(start_24h: str, end_24h: str) -> int:
    """Minutes from start to end on the same day (negative if end precedes start)."""
    return minutes_of_day(end_24h) - minutes_of_day(start_24h)


def parse_time_range(text: str) -> tuple[str, str] | None:
    """
    Extract a (start, end) pair of 24-hour times from a range label.

    Returns None when the text holds no range or the range is not positive.
    """
    if not text:
        return None

    match = TIME_RANGE_RE.search(text)
    if not match:
        return None

    start = to_24h(match.group(1))
    end = to_24h(match.group(2))
    if start is None or end is None:
        return None
    # "12:00 AM" as an end time means midnight at the close of the day
    if end == "00:00" and start != "00:00":
        end = "24:00"
    if duration_minutes(start, end) <= 0:
        logger.debug(f"Discarding non-positive range '{text}'")
        return None
    return start, end


def range_starts_at(range_label: str, time_24h: str) -> bool:
    """True when the range label's start time is the requested 24-hour time."""
    parsed = parse_time_range(range_label)
    if parsed is not None:
        return parsed[0] == time_24h
    # No range: the first time in the label is the start
    match = TIME_12H_RE.search(range_label)
    if match is None:
        return False
    return to_24h(re.sub(r"\s+", " ", match.group(0))) == time_24h


def portal_today(timezone: str) -> date:
    return datetime.now(pytz.timezone(timezone)).date()


def passes_preferences(slot: Slot, preferences: Preferences, today: date) -> bool:
    """
    Apply the preference filters to a discovered slot.

    Hours are inclusive at start_hour and exclusive at end_hour. Every filter
    only ever removes slots, so widening a preference never drops a slot that
    passed a narrower one.
    """
    start_hour = minutes_of_day(slot.time_24h) // 60

    if preferences.start_hour is not None and start_hour < preferences.start_hour:
        return False
    if preferences.end_hour is not None and start_hour >= preferences.end_hour:
        return False
    if preferences.min_minutes is not None and slot.minutes < preferences.min_minutes:
        return False

    if preferences.dates:
        if slot.date_iso not in {d.isoformat() for d in preferences.dates}:
            return False
    if preferences.days_ahead is not None:
        latest = today + timedelta(days=preferences.days_ahead)
        if slot.date_iso > latest.isoformat():
            return False

    location = slot.location.lower()
    if preferences.indoor_only and "indoor" not in location:
        return False
    if preferences.locations:
        if not any(wanted.strip().lower() in location for wanted in preferences.locations):
            return False

    return True


def sort_slots(slots: list[Slot]) -> list[Slot]:
    return sorted(slots, key=lambda s: (s.date_iso, s.time_24h))


def placeholder_slot(today: date) -> Slot:
    return Slot(
        date_iso=today.isoformat(),
        time_24h=PLACEHOLDER_TIME_24H,
        minutes=PLACEHOLDER_MINUTES,
        location=PLACEHOLDER_LOCATION,
        deep_link=None,
    )
