"""The command command: read, write and list device commands through core command."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, TextIO
from urllib.parse import quote

from .common import add_format_flag, add_limit_offset_flags, format_table, go_format, to_json
from .services import CORE_COMMAND_SERVICE_KEY, Service, core_service

_LIST_HEADER = ["Name", "Device Name", "Profile Name", "Methods", "URL"]
_READ_HEADER = ["Command Name", "Device Name", "Profile Name", "Value Type", "Value"]
_FLAG_WORDS = {True: "yes", False: "no"}


def _core_command() -> Service:
    return core_service(CORE_COMMAND_SERVICE_KEY)


def _command_path(device: str, command: str) -> str:
    return f"/device/name/{quote(device, safe='')}/{quote(command, safe='')}"


def methods_to_string(command: dict[str, Any]) -> str:
    """Describe the methods a core command supports, as shown in the list table."""
    if command.get("get") and command.get("set"):
        return "Get, Put"
    if command.get("get"):
        return "Get"
    return "Put"


def yes_no(flag: bool) -> str:
    """Render a flag as the yes/no word that core command query parameters expect."""
    return _FLAG_WORDS[bool(flag)]


def handle_read(args: argparse.Namespace, out: TextIO) -> None:
    if not args.pushevent and args.noreturnevent:
        out.write("Nothing to do. Please remove -noreturnevent flag or set -pushevent flag.\n")
        return

    params = {
        "ds-pushevent": yes_no(args.pushevent),
        "ds-returnevent": yes_no(not args.noreturnevent),
    }
    reply = _core_command().request(
        "GET", _command_path(args.device, args.command_name), params=params
    )
    if reply is None:
        out.write("Request successful. Pushed results to EdgeX system.\n")
        return
    if args.json:
        out.write(to_json(reply) + "\n")
        return

    readings = ((reply.get("event") or {}) if isinstance(reply, dict) else {}).get("readings") or []
    rows = [list(_READ_HEADER)]
    rows.extend(
        [
            args.command_name,
            go_format(reading.get("deviceName", "")),
            go_format(reading.get("profileName", "")),
            go_format(reading.get("valueType", "")),
            go_format(reading.get("value", "")),
        ]
        for reading in readings
    )
    out.write(format_table(rows))


def _parse_settings(text: str) -> dict[str, str]:
    settings = json.loads(text)
    if settings is None:
        return {}
    if not isinstance(settings, dict) or not all(
        isinstance(value, str) for value in settings.values()
    ):
        raise ValueError("request body must be a JSON object with string values")
    return settings


def handle_write(args: argparse.Namespace, out: TextIO) -> None:
    if bool(args.body) == bool(args.file):
        raise ValueError(
            "please specify request data using one of the provided ways: --body or --file"
        )
    body = Path(args.file).read_text() if args.file else args.body
    settings = _parse_settings(body)

    reply = _core_command().request(
        "PUT", _command_path(args.device, args.command_name), body=settings
    )
    reply = reply if isinstance(reply, dict) else {}
    if args.json:
        out.write(to_json(reply) + "\n")
    else:
        out.write(
            f"apiVersion: {reply.get('apiVersion', '')},"
            f"statusCode: {int(reply.get('statusCode') or 0)}\n"
        )


def _command_row(command: dict[str, Any], device_name: str, profile_name: str) -> list[str]:
    return [
        go_format(command.get("name", "")),
        go_format(device_name),
        go_format(profile_name),
        methods_to_string(command),
        f"{command.get('url', '')}{command.get('path', '')}",
    ]


def handle_list(args: argparse.Namespace, out: TextIO) -> None:
    service = _core_command()
    if args.device:
        reply = service.request("GET", f"/device/name/{quote(args.device, safe='')}")
        if args.json:
            out.write(to_json(reply) + "\n")
            return
        devices = [(reply or {}).get("deviceCoreCommand") or {}]
    else:
        reply = service.request(
            "GET", "/device/all", params={"offset": args.offset, "limit": args.limit}
        )
        if args.json:
            out.write(to_json(reply) + "\n")
            return
        devices = (reply or {}).get("deviceCoreCommands") or []

    rows = [list(_LIST_HEADER)]
    for device in devices:
        device_name = device.get("deviceName", "")
        profile_name = device.get("profileName", "")
        rows.extend(
            _command_row(command, device_name, profile_name)
            for command in device.get("coreCommands") or []
        )
    out.write(format_table(rows))


def register(subparsers: Any) -> None:
    """Add the command command and its subcommands to a subparser set."""
    summary = "Read, write and list commands [Core Command]"
    command_parser = subparsers.add_parser("command", help=summary, description=summary)
    commands = command_parser.add_subparsers(dest="command_action", metavar="command")

    read = commands.add_parser("read", help="Issue a read command to the specified device",
                               description="Issue a read command to the specified device")
    read.add_argument("-d", "--device", required=True, help="specify the name of device")
    read.add_argument("-c", "--command", dest="command_name", required=True,
                      help="specify the name of the command to be executed")
    read.add_argument(
        "-p", "--pushevent", action="store_true",
        help="if set, a successful read command will result in an event being pushed "
             "to the EdgeX system",
    )
    read.add_argument(
        "-r", "--noreturnevent", action="store_true",
        help="if set, there will be no event returned in the HTTP response",
    )
    add_format_flag(read)
    read.set_defaults(handler=handle_read)

    write = commands.add_parser("write", help="Issue a write command to the specified device",
                                description="Issue a write command to the specified device")
    write.add_argument("-d", "--device", required=True, help="specify the name of the device")
    write.add_argument("-c", "--command", dest="command_name", required=True,
                       help="specify the name of the command to be executed")
    write.add_argument(
        "-b", "--body", default="",
        help="specify the write command's request body, which provides the value(s) "
             "being written to the device",
    )
    write.add_argument(
        "-f", "--file", default="",
        help="specify a file containing the write command's request body, which provides "
             "the value(s) being written to the device",
    )
    add_format_flag(write)
    write.set_defaults(handler=handle_write)

    list_parser = commands.add_parser(
        "list", help="A list of device supported commands",
        description="Returns a paginated list of all supported device commands, "
                    "optionally filtered by device name",
    )
    list_parser.add_argument("-d", "--device", default="",
                             help="list commands specified by device name")
    add_limit_offset_flags(list_parser)
    add_format_flag(list_parser)
    list_parser.set_defaults(handler=handle_list)