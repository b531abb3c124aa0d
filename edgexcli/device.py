"""The device command: add, remove, get, list and modify devices in core metadata."""

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
    validate_admin_state,
    validate_operating_state,
)
from .services import CORE_METADATA_SERVICE_KEY, Service, core_service

API_VERSION = "v2"

_PROTOCOLS_ERROR = (
    r'please specify protocols using a JSON value. Example: --protocols '
    r'"{\"modbus-tcp\":{\"Address\": \"localhost\",\"Port\": \"1234\" }}""'
)

_ADD_DESCRIPTION = """Provision a new device

Example:
\tedgex-cli device add -n TestDevice -p TestDeviceProfile -s TestDeviceService \
--protocols "{\\"modbus-tcp\\":{\\"Address\\": \\"localhost\\",\\"Port\\": \\"1234\\" }}"
"""

_UPDATE_DESCRIPTION = """Update an existing device
'id' and 'name' must be specified in order to identify the service.
Any other provided non-blank property will be updated.

Example:
 edgex-cli device update -n AWS IOT Button1 -i "edaa7c0f-05c6-4368-89f1-3be5e197cf6a" -l "new-label"
"""

_VERBOSE_HEADER = [
    "Id", "Name", "Description", "ServiceName", "ProfileName", "AdminState",
    "OperatingState", "LastReported", "LastConnected", "Labels", "Location",
    "AutoEvents", "Protocols",
]
_SHORT_HEADER = ["Name", "Description", "ServiceName", "ProfileName", "Labels", "AutoEvents"]


def _metadata() -> Service:
    return core_service(CORE_METADATA_SERVICE_KEY)


def _is_protocols(value: Any) -> bool:
    if value is None:
        return True
    if not isinstance(value, dict):
        return False
    return all(
        isinstance(properties, dict)
        and all(isinstance(item, str) for item in properties.values())
        for properties in value.values()
    )


def device_attributes(
    protocols: str, labels: str
) -> tuple[dict[str, dict[str, str]] | None, list[str]]:
    """Parse the protocols JSON and the comma-delimited labels given on the command line."""
    label_list = get_labels(labels)
    if not protocols:
        return None, label_list
    try:
        parsed = json.loads(protocols)
    except ValueError:
        raise ValueError(_PROTOCOLS_ERROR) from None
    if not _is_protocols(parsed):
        raise ValueError(_PROTOCOLS_ERROR)
    return parsed, label_list


def _format_auto_events(events: Any) -> str:
    if not isinstance(events, list):
        return go_format(events)
    parts = []
    for event in events:
        if isinstance(event, dict):
            parts.append(
                "{%s %s %s}" % (
                    event.get("interval", ""),
                    go_format(bool(event.get("onChange", False))),
                    event.get("sourceName", ""),
                )
            )
        else:
            parts.append(go_format(event))
    return "[" + " ".join(parts) + "]"


def device_header(verbose: bool) -> list[str]:
    return list(_VERBOSE_HEADER if verbose else _SHORT_HEADER)


def device_row(device: dict[str, Any], verbose: bool) -> list[str]:
    """Return the table cells describing one device."""
    labels = go_format(device.get("labels") or [])
    auto_events = _format_auto_events(device.get("autoEvents") or [])
    if verbose:
        return [
            go_format(device.get("id", "")),
            go_format(device.get("name", "")),
            go_format(device.get("description", "")),
            go_format(device.get("serviceName", "")),
            go_format(device.get("profileName", "")),
            go_format(device.get("adminState", "")),
            go_format(device.get("operatingState", "")),
            rfc822_from_millis(int(device.get("lastReported") or 0)),
            rfc822_from_millis(int(device.get("lastConnected") or 0)),
            labels,
            go_format(device.get("location")),
            auto_events,
            go_format(device.get("protocols") or {}),
        ]
    return [
        go_format(device.get("name", "")),
        go_format(device.get("description", "")),
        go_format(device.get("serviceName", "")),
        go_format(device.get("profileName", "")),
        labels,
        auto_events,
    ]


def _write_first(reply: Any, out: TextIO) -> None:
    if isinstance(reply, list) and reply:
        out.write(to_json(reply[0]) + "\n")


def handle_add(args: argparse.Namespace, out: TextIO) -> None:
    validate_admin_state(args.admin_state)
    validate_operating_state(args.operating_state)
    protocols, labels = device_attributes(args.protocols, args.labels)

    device: dict[str, Any] = {
        "name": args.name,
        "serviceName": args.service,
        "profileName": args.profile,
        "adminState": args.admin_state,
        "operatingState": args.operating_state,
        "protocols": protocols,
    }
    if args.description:
        device["description"] = args.description
    if labels:
        device["labels"] = labels
    if args.location:
        device["location"] = args.location

    reply = _metadata().request(
        "POST", "/device", body=[{"apiVersion": API_VERSION, "device": device}]
    )
    _write_first(reply, out)


def handle_update(args: argparse.Namespace, out: TextIO) -> None:
    if args.admin_state:
        validate_admin_state(args.admin_state)
    protocols, labels = device_attributes(args.protocols, args.labels)

    candidates = {
        "name": args.name,
        "id": args.id,
        "description": args.description,
        "serviceName": args.service,
        "profileName": args.profile,
        "adminState": args.admin_state,
        "operatingState": args.operating_state,
        "location": args.location,
    }
    device: dict[str, Any] = {key: value for key, value in candidates.items() if value}
    if labels:
        device["labels"] = labels
    if protocols is not None:
        device["protocols"] = protocols

    reply = _metadata().request(
        "PATCH", "/device", body=[{"apiVersion": API_VERSION, "device": device}]
    )
    _write_first(reply, out)


def handle_name(args: argparse.Namespace, out: TextIO) -> None:
    reply = _metadata().request("GET", f"/device/name/{quote(args.name, safe='')}")
    if args.json:
        out.write(to_json(reply) + "\n")
        return
    device = (reply or {}).get("device") or {}
    out.write(format_table([device_header(args.verbose), device_row(device, args.verbose)]))


def handle_list(args: argparse.Namespace, out: TextIO) -> None:
    params: dict[str, Any] = {"offset": args.offset, "limit": args.limit}
    labels = get_labels(args.labels)
    if labels:
        params["labels"] = ",".join(labels)
    reply = _metadata().request("GET", "/device/all", params=params)
    if args.json:
        out.write(to_json(reply) + "\n")
        return
    devices = (reply or {}).get("devices") or []
    if not devices:
        out.write("No devices available\n")
        return
    rows = [device_header(args.verbose)]
    rows.extend(device_row(device, args.verbose) for device in devices)
    out.write(format_table(rows))


def handle_rm(args: argparse.Namespace, out: TextIO) -> None:
    reply = _metadata().request("DELETE", f"/device/name/{quote(args.name, safe='')}")
    out.write(to_json(reply) + "\n")


def _add_device_fields(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-d", "--description", default="", help="Device description")
    parser.add_argument("-a", "--admin-state", dest="admin_state", default="UNLOCKED",
                        help="Admin state [LOCKED | UNLOCKED]")
    parser.add_argument("-o", "--operating-state", dest="operating_state", default="UP",
                        help="Operating state [UP | DOWN | UNKNOWN]")
    parser.add_argument("-l", "--location", default="", help="Device location")
    add_labels_flag(parser)


def register(subparsers: Any) -> None:
    """Add the device command and its subcommands to a subparser set."""
    summary = "Add, remove, get, list and modify devices [Core Metadata]"
    device_parser = subparsers.add_parser("device", help=summary, description=summary)
    commands = device_parser.add_subparsers(dest="device_command", metavar="command")

    add = commands.add_parser("add", help="Provision a new device",
                              description=_ADD_DESCRIPTION,
                              formatter_class=argparse.RawDescriptionHelpFormatter)
    add.add_argument("-n", "--name", required=True, help="Device name")
    add.add_argument("-p", "--profile", required=True, help="Associated device profile")
    add.add_argument("-s", "--service", required=True, help="Associated device service")
    add.add_argument("--protocols", required=True, help="A map of supported protocols")
    _add_device_fields(add)
    add.set_defaults(handler=handle_add)

    list_parser = commands.add_parser(
        "list", help="List devices",
        description="List all devices, optionally specifying a limit, offset and/or label(s)",
    )
    add_format_flag(list_parser)
    add_verbose_flag(list_parser)
    add_limit_offset_flags(list_parser)
    add_labels_flag(list_parser)
    list_parser.set_defaults(handler=handle_list)

    name = commands.add_parser("name", help="Returns a device by name",
                               description="Returns a device by name")
    name.add_argument("-n", "--name", required=True, help="Device name")
    add_format_flag(name)
    add_verbose_flag(name)
    name.set_defaults(handler=handle_name)

    rm = commands.add_parser("rm", help="Remove a device",
                             description="Removes a device from the core-metadata database")
    rm.add_argument("-n", "--name", required=True, help="Device name")
    rm.set_defaults(handler=handle_rm)

    update = commands.add_parser("update", help="Update an existing device",
                                 description=_UPDATE_DESCRIPTION,
                                 formatter_class=argparse.RawDescriptionHelpFormatter)
    update.add_argument("-n", "--name", required=True, help="Device name")
    update.add_argument("-i", "--id", required=True, help="Device ID")
    update.add_argument("-p", "--profile", default="", help="Associated device profile")
    update.add_argument("-s", "--service", default="", help="Associated device service")
    update.add_argument("--protocols", default="", help="A map of supported protocols")
    _add_device_fields(update)
    update.set_defaults(handler=handle_update)