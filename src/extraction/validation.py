"""Schema check for event objects coming back from the generation service.

The generator is an untrusted producer, so every element goes through
``validate_event`` right after ``json.loads`` and comes out as either
``Accepted`` (a frozen ``StructuredEvent``) or ``Rejected`` (with a reason).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, List, Optional, Sequence, Union

from pydantic import ValidationError

from schedule_ai.models import DEFAULT_DURATION, StructuredEvent

logger = logging.getLogger(__name__)

SINGLE_REQUIRED = ("title", "date", "startTime")
BULK_REQUIRED = ("title", "date", "startTime", "endTime")

_TIME_FORMATS = ("%H:%M", "%H:%M:%S", "%H.%M")
LAST_MINUTE = time(23, 59)


@dataclass(frozen=True)
class Accepted:
    event: StructuredEvent


@dataclass(frozen=True)
class Rejected:
    reason: str
    missing: List[str] = field(default_factory=list)


Validation = Union[Accepted, Rejected]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_date(value: Any) -> date:
    return date.fromisoformat(str(value).strip())


def parse_time(value: Any) -> time:
    s = str(value).strip()
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(s, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"unrecognised time {s!r}")


def default_end_time(start: time) -> Optional[time]:
    """start + 60 minutes on the same date; clamped to 23:59, None when no room is left."""
    anchor = datetime.combine(date.min, start)
    end = anchor + DEFAULT_DURATION
    if end.date() == anchor.date():
        return end.time()
    if start < LAST_MINUTE:
        return LAST_MINUTE
    return None


def validate_event(
    raw: Any,
    *,
    fallback_id: str,
    required: Sequence[str] = SINGLE_REQUIRED,
    source_text: Optional[str] = None,
) -> Validation:
    if not isinstance(raw, dict):
        return Rejected(f"expected a JSON object, got {type(raw).__name__}")

    missing = [name for name in required if _is_blank(raw.get(name))]
    if missing:
        return Rejected(f"missing required fields: {', '.join(missing)}", missing=missing)

    try:
        day = parse_date(raw["date"])
        start = parse_time(raw["startTime"])
    except ValueError as e:
        return Rejected(f"invalid date/startTime: {e}")

    end: Optional[time] = None
    if not _is_blank(raw.get("endTime")):
        try:
            end = parse_time(raw["endTime"])
        except ValueError as e:
            return Rejected(f"invalid endTime: {e}")
        if end <= start:
            logger.warning(
                f"endTime {raw['endTime']} is not after startTime {raw['startTime']}; using default duration"
            )
            end = None

    if end is None:
        end = default_end_time(start)
        if end is None:
            return Rejected(f"startTime {raw['startTime']} leaves no room for an end time on {day.isoformat()}")

    raw_id = raw.get("id")
    try:
        event = StructuredEvent(
            id=fallback_id if _is_blank(raw_id) else str(raw_id).strip(),
            title=str(raw["title"]),
            date=day,
            start_time=start,
            end_time=end,
            location=None if _is_blank(raw.get("location")) else str(raw["location"]).strip(),
            category=raw.get("category"),
            priority=raw.get("priority"),
            confidence=raw.get("confidence"),
            source_text=source_text,
        )
    except ValidationError as e:
        return Rejected(f"schema validation failed: {e.errors()[0].get('msg', str(e))}")

    return Accepted(event)
