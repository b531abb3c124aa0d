"""Helpers shared by the command modules: flags, validation, time and output formatting."""

from __future__ import annotations

import argparse
import calendar
import json
import math
import re
import time
from datetime import datetime, timezone
from decimal import Decimal
from itertools import groupby
from typing import Any, Iterable, Sequence

from .services import (
    CORE_COMMAND_SERVICE_KEY,
    CORE_DATA_SERVICE_KEY,
    CORE_METADATA_SERVICE_KEY,
    SUPPORT_NOTIFICATIONS_SERVICE_KEY,
    SUPPORT_SCHEDULER_SERVICE_KEY,
    Service,
    core_service,
    core_services,
)

LOCKED = "LOCKED"
UNLOCKED = "UNLOCKED"
UP = "UP"
DOWN = "DOWN"
UNKNOWN = "UNKNOWN"

RFC822_LAYOUT = "02 Jan 06 15:04 MST"

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_RFC822_PATTERN = re.compile(
    r"(\d{2}) ([A-Za-z]{3}) (\d{2}) (\d{2}):(\d{2}) ([A-Z]{3,5})"
)

_SERVICE_FLAGS = (
    ("metadata", CORE_METADATA_SERVICE_KEY),
    ("data", CORE_DATA_SERVICE_KEY),
    ("command", CORE_COMMAND_SERVICE_KEY),
    ("notifications", SUPPORT_NOTIFICATIONS_SERVICE_KEY),
    ("scheduler", SUPPORT_SCHEDULER_SERVICE_KEY),
)

_HTML_ESCAPES = str.maketrans({
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
})


def get_labels(labels: str) -> list[str]:
    """Split a comma-delimited label string; an empty string gives no labels."""
    return labels.split(",") if labels else []


def validate_admin_state(state: str) -> str:
    if state not in (LOCKED, UNLOCKED):
        raise ValueError(f"admin state should be {LOCKED} or {UNLOCKED}")
    return state


def validate_operating_state(state: str) -> str:
    if state not in (UP, DOWN, UNKNOWN):
        raise ValueError(f"operating state should be one of {UP},{DOWN} or {UNKNOWN}")
    return state


def _format_local(seconds: int) -> str:
    moment = datetime.fromtimestamp(seconds, tz=timezone.utc).astimezone()
    return (
        f"{moment.day:02d} {_MONTHS[moment.month - 1]} {moment.year % 100:02d} "
        f"{moment.hour:02d}:{moment.minute:02d} {moment.tzname()}"
    )


def rfc822_from_millis(millis: int) -> str:
    """Format a millisecond timestamp as local RFC 822 time; zero gives "0"."""
    if millis == 0:
        return "0"
    return _format_local(millis // 1000)


def rfc822_from_nanos(nanos: int) -> str:
    """Format a nanosecond timestamp as local RFC 822 time."""
    return _format_local(nanos // 1_000_000_000)


def millis_from_rfc822(text: str) -> int:
    """Parse an RFC 822 time such as "01 jan 20 00:00 GMT" into Unix milliseconds."""
    match = _RFC822_PATTERN.fullmatch(text)
    if match is None:
        raise ValueError(f'parsing time "{text}" as "{RFC822_LAYOUT}": cannot parse')
    day, month_name, short_year, hour, minute, zone = match.groups()
    months = [name.lower() for name in _MONTHS]
    if month_name.lower() not in months:
        raise ValueError(f'parsing time "{text}": month out of range')
    year = int(short_year)
    year += 1900 if year >= 69 else 2000
    try:
        naive = datetime(
            year, months.index(month_name.lower()) + 1, int(day), int(hour), int(minute)
        )
    except ValueError as exc:
        raise ValueError(f'parsing time "{text}": {exc}') from None

    if zone not in ("UTC", "GMT") and zone in time.tzname:
        seconds = int(time.mktime(naive.timetuple()))
    else:
        seconds = calendar.timegm(naive.timetuple())
    return seconds * 1000


def selected_service_key(args: argparse.Namespace) -> str:
    """Return the key of the service chosen by the standard flags, or ""."""
    for flag, key in _SERVICE_FLAGS:
        if getattr(args, flag, False):
            return key
    return ""


def selected_services(args: argparse.Namespace) -> dict[str, Service]:
    """Return the services a standard command should talk to."""
    key = selected_service_key(args)
    if not key:
        if not getattr(args, "json", False):
            return core_services()
        key = CORE_METADATA_SERVICE_KEY
    return {key: core_service(key)}


def add_format_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-j", "--json", action="store_true",
                        help="Show the raw JSON response")


def add_verbose_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Show verbose output")


def add_limit_offset_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-l", "--limit", type=int, default=50,
        help="The number of items to return. Specifying -1 will return all remaining items",
    )
    parser.add_argument("-o", "--offset", type=int, default=0,
                        help="The number of items to skip")


def add_labels_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--labels", default="",
                        help="Comma-delimited list of user-defined labels")


def add_standard_flags(parser: argparse.ArgumentParser) -> None:
    add_format_flag(parser)
    parser.add_argument("-d", "--data", action="store_true",
                        help="use core-data service endpoint")
    parser.add_argument("-c", "--command", action="store_true",
                        help="use core-command service endpoint")
    parser.add_argument("-m", "--metadata", action="store_true",
                        help="use core-metadata service endpoint")
    parser.add_argument("-s", "--scheduler", action="store_true",
                        help="use support-scheduler service endpoint")
    parser.add_argument("-n", "--notifications", action="store_true",
                        help="use support-notifications service endpoint")


def _go_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"

    sign, digit_tuple, exponent = Decimal(repr(value)).normalize().as_tuple()
    digits = "".join(map(str, digit_tuple))
    prefix = "-" if sign else ""
    leading = len(digits) + exponent - 1

    if leading < -4 or leading >= 21:
        mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
        return f"{prefix}{mantissa}e{'-' if leading < 0 else '+'}{abs(leading):02d}"
    if exponent >= 0:
        return prefix + digits + "0" * exponent
    point = len(digits) + exponent
    if point > 0:
        return f"{prefix}{digits[:point]}.{digits[point:]}"
    return f"{prefix}0.{'0' * -point}{digits}"


def go_format(value: Any) -> str:
    """Render a decoded JSON value the way the default value verb prints it."""
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _go_float(value)
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(go_format(item) for item in value) + "]"
    if isinstance(value, dict):
        entries = sorted(value.items(), key=lambda item: str(item[0]))
        return "map[" + " ".join(
            f"{go_format(key)}:{go_format(item)}" for key, item in entries
        ) + "]"
    return str(value)


def format_table(rows: Iterable[Sequence[Any]], padding: int = 2) -> str:
    """Align tab-separated cells into columns; the last cell of a row is not aligned."""
    lines = [[cell if isinstance(cell, str) else go_format(cell) for cell in row]
             for row in rows]
    widths: list[list[int]] = [[] for _ in lines]

    def assign(indices: list[int], column: int) -> None:
        for has_cell, block in groupby(indices, key=lambda k: len(lines[k]) - 1 > column):
            if not has_cell:
                continue
            members = list(block)
            width = max([1, *(len(lines[k][column]) + padding for k in members)])
            for k in members:
                widths[k].append(width)
            assign(members, column + 1)

    assign(list(range(len(lines))), 0)

    rendered = []
    for cells, cell_widths in zip(lines, widths):
        aligned = "".join(cell.ljust(width) for cell, width in zip(cells, cell_widths))
        rendered.append(aligned + (cells[-1] if cells else "") + "\n")
    return "".join(rendered)


def to_json(obj: Any) -> str:
    """Serialise compactly, escaping HTML-sensitive characters."""
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":")).translate(_HTML_ESCAPES)