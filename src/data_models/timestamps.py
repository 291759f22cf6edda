# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Optional

logger = logging.getLogger(__name__)

WIRE_DATE_FORMAT = "%Y-%m-%d"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ParsedTimestamp:
    """
    Result of parsing a timestamp field.

    ``fallback_used`` is set when the raw value could not be parsed and ``value`` holds the
    time of parsing instead. Ordering based on such a value is not meaningful.
    """
    value: datetime
    fallback_used: bool


def try_parse_timestamp(raw: Optional[str]) -> Optional[datetime]:
    """
    Parses an ISO-8601 date-time with a zone designator, fractional seconds optional.

    Returns None for values without a time part, without a zone, or that do not parse.
    """
    if not raw or "T" not in raw:
        return None
    try:
        value = datetime.fromisoformat(raw.strip())
    except ValueError:
        return None
    if value.tzinfo is None:
        return None
    return value.astimezone(timezone.utc)


def parse_timestamp(raw: Optional[str], clock: Callable[[], datetime] = utc_now) -> ParsedTimestamp:
    """Like try_parse_timestamp, but a rejected value is replaced by ``clock()`` instead."""
    value = try_parse_timestamp(raw)
    if value is not None:
        return ParsedTimestamp(value=value, fallback_used=False)

    logger.warning(f"Unparsable timestamp {raw!r}, substituting current time")
    return ParsedTimestamp(value=clock(), fallback_used=True)


def format_timestamp(value: datetime) -> str:
    """Formats a datetime as an ISO-8601 UTC string without fractional seconds."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def format_wire_date(value: date) -> str:
    """Formats a calendar date as zero-padded yyyy-MM-dd."""
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def parse_wire_date(raw: str) -> date:
    """Parses a yyyy-MM-dd calendar date. Raises ValueError on any other shape."""
    return datetime.strptime(raw, WIRE_DATE_FORMAT).date()
