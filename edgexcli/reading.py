"""The reading command: count and list readings held by core data."""

from __future__ import annotations

import argparse
import base64
import binascii
from typing import Any, TextIO
from urllib.parse import quote

from .common import (
    add_format_flag,
    add_verbose_flag,
    format_table,
    go_format,
    rfc822_from_nanos,
    to_json,
)
from .services import CORE_DATA_SERVICE_KEY, Service, core_service

_SHORT_HEADER = ["Origin", "Device", "ProfileName", "Value", "ValueType"]
_VERBOSE_HEADER = ["Origin", "DeviceName", "ProfileName", "Value", "ValueType",
                   "Id", "MediaType", "BinaryValue"]


def _core_data() -> Service:
    return core_service(CORE_DATA_SERVICE_KEY)


def _binary_value(value: Any) -> str:
    if isinstance(value, str):
        try:
            return go_format(list(base64.b64decode(value)))
        except (binascii.Error, ValueError):
            return value
    return go_format(value or [])


def _reading_row(reading: dict[str, Any], verbose: bool) -> list[str]:
    row = [
        rfc822_from_nanos(int(reading.get("origin") or 0)),
        go_format(reading.get("deviceName", "")),
        go_format(reading.get("profileName", "")),
        go_format(reading.get("value", "")),
        go_format(reading.get("valueType", "")),
    ]
    if verbose:
        row += [
            go_format(reading.get("id", "")),
            go_format(reading.get("mediaType", "")),
            _binary_value(reading.get("binaryValue")),
        ]
    return row


def handle_count(args: argparse.Namespace, out: TextIO) -> None:
    if args.device:
        path = f"/reading/count/device/name/{quote(args.device, safe='')}"
    else:
        path = "/reading/count"
    reply = _core_data().request("GET", path)
    if args.json:
        out.write(to_json(reply) + "\n")
        return
    count = go_format((reply or {}).get("count", 0))
    if args.device:
        out.write(f"Total {args.device} readings: {count}\n")
    else:
        out.write(f"Total readings: {count}\n")


def handle_list(args: argparse.Namespace, out: TextIO) -> None:
    reply = _core_data().request(
        "GET", "/reading/all", params={"offset": args.offset, "limit": args.limit}
    )
    if args.json:
        out.write(to_json(reply) + "\n")
        return
    readings = (reply or {}).get("readings") or []
    if not readings:
        out.write("No readings available\n")
        return
    rows = [list(_VERBOSE_HEADER if args.verbose else _SHORT_HEADER)]
    rows.extend(_reading_row(reading, args.verbose) for reading in readings)
    out.write(format_table(rows))


def register(subparsers: Any) -> None:
    """Add the reading command and its subcommands to a subparser set."""
    reading_parser = subparsers.add_parser("reading", help="Count and list readings",
                                           description="Count and list readings")
    commands = reading_parser.add_subparsers(dest="reading_command", metavar="command")

    list_parser = commands.add_parser(
        "list", help="List all readings",
        description="List all readings, optionally specifying a limit and offset",
    )
    list_parser.add_argument(
        "-l", "--limit", type=int, default=50,
        help="The number of items to return. Specifying -1 will return all remaining items",
    )
    list_parser.add_argument("-o", "--offset", type=int, default=0,
                             help="The number of items to skip")
    add_format_flag(list_parser)
    add_verbose_flag(list_parser)
    list_parser.set_defaults(handler=handle_list)

    count = commands.add_parser(
        "count", help="Count available readings",
        description="Count the number of readings in core data, optionally filtering by device name",
    )
    count.add_argument("-d", "--device", default="", help="Device name")
    add_format_flag(count)
    count.set_defaults(handler=handle_count)