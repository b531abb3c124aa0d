"""The deviceprofile command: add, remove, get and list device profiles in core metadata."""

from __future__ import annotations

import argparse
import json
from typing import Any, TextIO
from urllib.parse import quote

from .common import (
    add_format_flag,
    add_labels_flag,
    add_limit_offset_flags,
    add_verbose_flag,
    format_table,
    get_labels,
    go_format,
    rfc822_from_millis,
    to_json,
)
from .services import CORE_METADATA_SERVICE_KEY, Service, core_service

API_VERSION = "v2"

_RESOURCES_ERROR = (
    r'please specify device resources using a JSON value. Example: -r '
    r'"[{\"name\": \"SwitchButton\",\"description\": \"Switch On/Off.\",'
    r'\"properties\": {\"valueType\": \"String\",\"readWrite\": \"RW\",'
    r'\"defaultValue\": \"On\",\"units\": \"On/Off\" } }]"'
)
_COMMANDS_ERROR = (
    r'please specify device resources using a JSON value. Example: -c '
    r'"[{\"name\": \"Switch\",\"readWrite\": \"RW\",\"resourceOperations\": '
    r'[{\"deviceResource\": \"SwitchButton\",\"DefaultValue\": \"false\" }]} ]"'
)

_ADD_DESCRIPTION = """Add a new device profile.

 Example:
 edgex-cli deviceprofile add
\t -n testprofile
\t -r "[{\\"name\\": \\"SwitchButton\\",\\"description\\": \\"Switch On/Off.\\",\
\\"properties\\": {\\"valueType\\": \\"String\\",\\"readWrite\\": \\"RW\\",\
\\"defaultValue\\": \\"On\\",\\"units\\": \\"On/Off\\" } }]"
\t -c "[{\\"name\\": \\"Switch\\",\\"readWrite\\": \\"RW\\",\\"resourceOperations\\": \
[{\\"deviceResource\\": \\"SwitchButton\\",\\"DefaultValue\\": \\"false\\" }]} ]"
"""

_VERBOSE_HEADER = ["Id", "Name", "Created", "Description", "# DeviceCommands",
                   "# DeviceResources", "Manufacturer", "Model", "Name"]
_SHORT_HEADER = ["Name", "Description", "Manufacturer", "Model", "Name"]


def _metadata() -> Service:
    return core_service(CORE_METADATA_SERVICE_KEY)


def _parse_object_list(text: str, message: str) -> list[dict[str, Any]] | None:
    if not text:
        return None
    try:
        parsed = json.loads(text)
    except ValueError:
        raise ValueError(message) from None
    if parsed is None:
        return None
    if not isinstance(parsed, list) or not all(isinstance(item, dict) for item in parsed):
        raise ValueError(message)
    return parsed


def profile_attributes(
    resources: str, commands: str, labels: str
) -> tuple[list[dict[str, Any]] | None, list[dict[str, Any]] | None, list[str]]:
    """Parse the resources and commands JSON arrays and the comma-delimited labels."""
    label_list = get_labels(labels)
    parsed_resources = _parse_object_list(resources, _RESOURCES_ERROR)
    parsed_commands = _parse_object_list(commands, _COMMANDS_ERROR)
    return parsed_resources, parsed_commands, label_list


def profile_header(verbose: bool) -> list[str]:
    return list(_VERBOSE_HEADER if verbose else _SHORT_HEADER)


def profile_row(profile: dict[str, Any], verbose: bool) -> list[str]:
    """Return the table cells describing one device profile."""
    name = go_format(profile.get("name", ""))
    description = go_format(profile.get("description", ""))
    manufacturer = go_format(profile.get("manufacturer", ""))
    model = go_format(profile.get("model", ""))
    if verbose:
        return [
            go_format(profile.get("id", "")),
            name,
            rfc822_from_millis(int(profile.get("created") or 0)),
            description,
            str(len(profile.get("deviceCommands") or [])),
            str(len(profile.get("deviceResources") or [])),
            manufacturer,
            model,
            name,
        ]
    return [name, description, manufacturer, model, name]


def handle_add(args: argparse.Namespace, out: TextIO) -> None:
    resources, commands, labels = profile_attributes(args.resources, args.commands, args.labels)

    profile: dict[str, Any] = {"name": args.name, "deviceResources": resources or []}
    if args.description:
        profile["description"] = args.description
    if args.manufacturer:
        profile["manufacturer"] = args.manufacturer
    if args.model:
        profile["model"] = args.model
    if labels:
        profile["labels"] = labels
    if commands:
        profile["deviceCommands"] = commands

    reply = _metadata().request(
        "POST", "/deviceprofile", body=[{"apiVersion": API_VERSION, "profile": profile}]
    )
    if isinstance(reply, list) and reply:
        out.write(to_json(reply[0]) + "\n")


def handle_list(args: argparse.Namespace, out: TextIO) -> None:
    params: dict[str, Any] = {"offset": args.offset, "limit": args.limit}
    labels = get_labels(args.labels)
    if labels:
        params["labels"] = ",".join(labels)
    reply = _metadata().request("GET", "/deviceprofile/all", params=params)
    if args.json:
        out.write(to_json(reply) + "\n")
        return
    profiles = (reply or {}).get("profiles") or []
    if not profiles:
        out.write("No profiles available\n")
        return
    rows = [profile_header(args.verbose)]
    rows.extend(profile_row(profile, args.verbose) for profile in profiles)
    out.write(format_table(rows))


def handle_name(args: argparse.Namespace, out: TextIO) -> None:
    reply = _metadata().request("GET", f"/deviceprofile/name/{quote(args.name, safe='')}")
    if args.json:
        out.write(to_json(reply) + "\n")
        return
    profile = (reply or {}).get("profile") or {}
    out.write(format_table([profile_header(args.verbose), profile_row(profile, args.verbose)]))


def handle_rm(args: argparse.Namespace, out: TextIO) -> None:
    reply = _metadata().request("DELETE", f"/deviceprofile/name/{quote(args.name, safe='')}")
    out.write(to_json(reply) + "\n")


def register(subparsers: Any) -> None:
    """Add the deviceprofile command and its subcommands to a subparser set."""
    summary = "Add, remove, get and list device profiles [Core Metadata]"
    profile_parser = subparsers.add_parser("deviceprofile", help=summary, description=summary)
    commands = profile_parser.add_subparsers(dest="deviceprofile_command", metavar="command")

    rm = commands.add_parser("rm", help="Remove a device profile",
                             description="Removes a device profile from the core-metadata database")
    rm.add_argument("-n", "--name", required=True, help="Device Profile name")
    rm.set_defaults(handler=handle_rm)

    list_parser = commands.add_parser(
        "list", help="List device profiles",
        description="List all device profiles, optionally specifying a limit, offset and/or label(s)",
    )
    add_format_flag(list_parser)
    add_verbose_flag(list_parser)
    add_limit_offset_flags(list_parser)
    add_labels_flag(list_parser)
    list_parser.set_defaults(handler=handle_list)

    add = commands.add_parser("add", help="Add a new device profile",
                              description=_ADD_DESCRIPTION,
                              formatter_class=argparse.RawDescriptionHelpFormatter)
    add.add_argument("-n", "--name", required=True, help="Device profile name")
    add.add_argument("-d", "--description", default="", help="Device profile description")
    add.add_argument("-m", "--manufacturer", default="", help="Manufacturer of the device")
    add.add_argument("--model", default="", help="Model of the device")
    add.add_argument(
        "-r", "--resources", default="",
        help="JSON structure representing a device resource that can be read or written",
    )
    add.add_argument(
        "-c", "--commands", default="",
        help="JSON structure defining read/write capabilities native to the device",
    )
    add_labels_flag(add)
    add.set_defaults(handler=handle_add)

    name = commands.add_parser("name", help="Returns a device profile by name",
                               description="Returns a device profile by name")
    name.add_argument("-n", "--name", required=True, help="Device profile name")
    add_format_flag(name)
    add_verbose_flag(name)
    name.set_defaults(handler=handle_name)