"""The event command: add, remove, count and list events held by core data."""

from __future__ import annotations

import argparse
import random
import struct
import time
import uuid
from typing import Any, Callable, TextIO
from urllib.parse import quote

from .common import (
    add_format_flag,
    add_verbose_flag,
    format_table,
    go_format,
    rfc822_from_nanos,
    to_json,
)
from .services import CORE_DATA_SERVICE_KEY, EdgexError, Service, core_service

API_VERSION = "v2"

_TYPE_ERROR = ("type must be one of [bool | string | uint8 | uint16 | uint32 | uint64 | "
               "int8 | int16 | int32 | int64 | float32 | float64 ]")

_SHORT_HEADER = ["Origin", "Device", "Profile", "Source", "Number of readings"]
_VERBOSE_HEADER = ["Origin", "Device", "Profile", "Source", "Id", "Versionable", "Readings"]

_RM_DESCRIPTION = """Remove events, specifying either device name or maximum event age \
in milliseconds

'edgex-cli event rm --device {devicename}' removes all events for the specified device
'edgex-cli event rm --age {ms}' removes all events generated in the last {ms} milliseconds"""


def _core_data() -> Service:
    return core_service(CORE_DATA_SERVICE_KEY)


def normalize_value_type(value_type: str) -> str:
    """Lower-case the type name and capitalise the first letter of each word."""
    result = []
    after_separator = True
    for char in value_type.lower():
        result.append(char.upper() if after_separator else char)
        after_separator = not (char.isalnum() or char == "_")
    return "".join(result)


def _to_float32(value: float) -> float:
    return struct.unpack("<f", struct.pack("<f", value))[0]


def _format_exponent(value: float, single: bool) -> str:
    """Shortest exponent-form text that reads back as the same value."""
    max_digits = 9 if single else 17
    for digits in range(1, max_digits + 1):
        text = f"{value:.{digits - 1}e}"
        back = float(text)
        if (_to_float32(back) if single else back) == value:
            return text
    return f"{value:.{max_digits - 1}e}"


def _wrap(number: int, bits: int, signed: bool) -> int:
    number &= (1 << bits) - 1
    if signed and number >= 1 << (bits - 1):
        number -= 1 << bits
    return number


def _integer(bits: int, signed: bool) -> Callable[[int, int], str]:
    return lambda r64, index: str(_wrap(r64, bits, signed))


_GENERATORS: dict[str, Callable[[int, int], str]] = {
    "Bool": lambda r64, index: "true" if r64 & 1 == 0 else "false",
    "String": lambda r64, index: f"Reading {index}",
    "Uint8": _integer(8, False),
    "Uint16": _integer(16, False),
    "Uint32": _integer(32, False),
    "Uint64": _integer(64, False),
    "Int8": _integer(8, True),
    "Int16": _integer(16, True),
    "Int32": _integer(32, True),
    "Int64": _integer(64, True),
    "Float32": lambda r64, index: _format_exponent(
        _to_float32(_to_float32(float(r64)) / 100), True),
    "Float64": lambda r64, index: _format_exponent(float(r64) / 100, False),
}


def random_value(value_type: str, index: int, rng: random.Random) -> str:
    """Return a random reading value of the given type, as the text sent to core data."""
    generator = _GENERATORS.get(normalize_value_type(value_type))
    if generator is None:
        raise ValueError(_TYPE_ERROR)
    r64 = (rng.getrandbits(32) << 32) + rng.getrandbits(32)
    return generator(r64, index)


def build_event(
    profile: str,
    device: str,
    source: str,
    value_type: str,
    count: int,
    rng: random.Random,
) -> dict[str, Any]:
    """Build an event carrying ``count`` random readings."""
    if count < 1:
        raise ValueError("the number of readings must be at least 1")
    value_type = normalize_value_type(value_type)
    if value_type not in _GENERATORS:
        raise ValueError(_TYPE_ERROR)
    origin = time.time_ns()
    readings = [
        {
            "apiVersion": API_VERSION,
            "id": str(uuid.uuid4()),
            "origin": time.time_ns(),
            "deviceName": device,
            "resourceName": source,
            "profileName": profile,
            "valueType": value_type,
            "value": random_value(value_type, index, rng),
        }
        for index in range(count)
    ]
    return {
        "apiVersion": API_VERSION,
        "id": str(uuid.uuid4()),
        "deviceName": device,
        "profileName": profile,
        "sourceName": source,
        "origin": origin,
        "readings": readings,
    }


def handle_add(args: argparse.Namespace, out: TextIO) -> None:
    event = build_event(args.profile, args.device, args.source, args.type,
                        args.readings, random.Random())
    path = "/event/" + "/".join(
        quote(part, safe="") for part in (args.profile, args.device, args.source)
    )
    reply = _core_data().request(
        "POST", path, body={"apiVersion": API_VERSION, "event": event}
    )
    event_id = reply.get("id", "") if isinstance(reply, dict) else ""
    out.write(f"Added event {go_format(event_id)}\n")


def handle_rm(args: argparse.Namespace, out: TextIO) -> None:
    if args.device and args.age:
        raise ValueError("either specify device name or event age, but not both")
    if args.device:
        path = f"/event/device/name/{quote(args.device, safe='')}"
    elif args.age:
        path = f"/event/age/{args.age}"
    else:
        raise ValueError("event ID, device name or event age must be specified")
    try:
        _core_data().request("DELETE", path)
    except EdgexError:
        # A failed removal is not reported, matching the command's documented behaviour.
        pass


def handle_count(args: argparse.Namespace, out: TextIO) -> None:
    if args.device:
        path = f"/event/count/device/name/{quote(args.device, safe='')}"
    else:
        path = "/event/count"
    reply = _core_data().request("GET", path)
    if args.json:
        out.write(to_json(reply) + "\n")
        return
    count = go_format((reply or {}).get("count", 0))
    if args.device:
        out.write(f"Total {args.device} events: {count}\n")
    else:
        out.write(f"Total events: {count}\n")


def _event_row(event: dict[str, Any], verbose: bool) -> list[str]:
    readings = event.get("readings") or []
    row = [
        rfc822_from_nanos(int(event.get("origin") or 0)),
        go_format(event.get("deviceName", "")),
        go_format(event.get("profileName", "")),
        go_format(event.get("sourceName", "")),
    ]
    if verbose:
        return row + [
            go_format(event.get("id", "")),
            "{" + go_format(event.get("apiVersion", "")) + "}",
            go_format(readings),
        ]
    return row + [str(len(readings))]


def handle_list(args: argparse.Namespace, out: TextIO) -> None:
    reply = _core_data().request(
        "GET", "/event/all", params={"offset": args.offset, "limit": args.limit}
    )
    if args.json:
        out.write(to_json(reply) + "\n")
        return
    events = (reply or {}).get("events") or []
    if not events:
        out.write("No events available\n")
        return
    rows = [list(_VERBOSE_HEADER if args.verbose else _SHORT_HEADER)]
    rows.extend(_event_row(event, args.verbose) for event in events)
    out.write(format_table(rows))


def register(subparsers: Any) -> None:
    """Add the event command and its subcommands to a subparser set."""
    summary = "Add, remove and list events"
    parent = subparsers.add_parser("event", help=summary, description=summary)
    commands = parent.add_subparsers(dest="event_command", metavar="command")

    list_parser = commands.add_parser(
        "list", help="List events",
        description="List all events, optionally specifying a limit and offset",
    )
    add_format_flag(list_parser)
    add_verbose_flag(list_parser)
    list_parser.add_argument(
        "-l", "--limit", type=int, default=50,
        help="The number of items to return. Specifying -1 will return all remaining items",
    )
    list_parser.add_argument("-o", "--offset", type=int, default=0,
                             help="The number of items to skip")
    list_parser.set_defaults(handler=handle_list)

    count = commands.add_parser(
        "count", help="Count available events",
        description="Count the number of events in core data, optionally filtering by "
                    "device name",
    )
    count.add_argument("-d", "--device", default="", help="Device name")
    add_format_flag(count)
    count.set_defaults(handler=handle_count)

    rm = commands.add_parser("rm", help="Remove events", description=_RM_DESCRIPTION,
                             formatter_class=argparse.RawDescriptionHelpFormatter)
    rm.add_argument("-d", "--device", default="", help="Device name")
    rm.add_argument("-a", "--age", type=int, default=0, help="Event age (in milliseconds)")
    rm.set_defaults(handler=handle_rm)

    add = commands.add_parser("add", help="Create an event",
                              description="Create an event with a specified number of "
                                          "random readings")
    add.add_argument("-d", "--device", required=True, help="Device name")
    add.add_argument("-p", "--profile", required=True, help="Profile name")
    add.add_argument(
        "-t", "--type", default="string",
        help="Readings value type  [bool | string | uint8 | uint16 | uint32 | uint64 | "
             "int8 | int16 | int32 | int64 | float32 | float64 ]",
    )
    add.add_argument("-s", "--source", required=True,
                     help="Event source name (ResourceName or CommandName)")
    add.add_argument("-r", "--readings", type=int, default=1,
                     help="Number of sample readings to create")
    add.set_defaults(handler=handle_add)