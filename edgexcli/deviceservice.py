"""The deviceservice command: add, remove, get, list and modify device services."""

from __future__ import annotations

import argparse
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
)
from .services import CORE_METADATA_SERVICE_KEY, Service, core_service

API_VERSION = "v2"

_ADD_DESCRIPTION = """Add a new device service

Example:
 edgex-cli deviceservice add -n TestDeviceService -b "http://localhost:51234" \
--labels label-one,label-two,label-three
"""

_UPDATE_DESCRIPTION = """Update an existing device service definition.
'id' and 'deviceServiceName' must be populated in order to identify the service.
Any other property that is populated in the request will be updated. \
Empty/blank properties will not be considered.

Example:
 edgex-cli deviceservice update -n TestDeviceService -b "http://localhost:51234" \
--labels label-one,label-two,label-three
"""

_VERBOSE_HEADER = ["Name", "BaseAddress", "Description", "AdminState", "Id", "Labels",
                   "LastConnected", "LastReported", "Modified"]
_SHORT_HEADER = ["Name", "BaseAddress", "Description"]


def _metadata() -> Service:
    return core_service(CORE_METADATA_SERVICE_KEY)


def _name_path(name: str) -> str:
    return f"/deviceservice/name/{quote(name, safe='')}"


def service_header(verbose: bool) -> list[str]:
    return list(_VERBOSE_HEADER if verbose else _SHORT_HEADER)


def service_row(service: dict[str, Any], verbose: bool) -> list[str]:
    """Return the table cells describing one device service."""
    name = go_format(service.get("name", ""))
    base_address = go_format(service.get("baseAddress", ""))
    description = go_format(service.get("description", ""))
    if not verbose:
        return [name, base_address, description]
    return [
        name,
        base_address,
        description,
        go_format(service.get("adminState", "")),
        go_format(service.get("id", "")),
        go_format(service.get("labels") or []),
        rfc822_from_millis(int(service.get("lastConnected") or 0)),
        rfc822_from_millis(int(service.get("lastReported") or 0)),
        rfc822_from_millis(int(service.get("modified") or 0)),
    ]


def _write_first(reply: Any, out: TextIO) -> None:
    if isinstance(reply, list) and reply:
        out.write(to_json(reply[0]) + "\n")


def handle_add(args: argparse.Namespace, out: TextIO) -> None:
    validate_admin_state(args.admin_state)
    service: dict[str, Any] = {
        "name": args.name,
        "baseAddress": args.base_address,
        "adminState": args.admin_state,
    }
    if args.description:
        service["description"] = args.description
    labels = get_labels(args.labels)
    if labels:
        service["labels"] = labels
    reply = _metadata().request(
        "POST", "/deviceservice", body=[{"apiVersion": API_VERSION, "service": service}]
    )
    _write_first(reply, out)


def handle_update(args: argparse.Namespace, out: TextIO) -> None:
    if args.admin_state:
        validate_admin_state(args.admin_state)
    candidates = {
        "name": args.name,
        "id": args.id,
        "description": args.description,
        "baseAddress": args.base_address,
        "adminState": args.admin_state,
    }
    service: dict[str, Any] = {key: value for key, value in candidates.items() if value}
    labels = get_labels(args.labels)
    if labels:
        service["labels"] = labels
    reply = _metadata().request(
        "PATCH", "/deviceservice", body=[{"apiVersion": API_VERSION, "service": service}]
    )
    _write_first(reply, out)


def handle_rm(args: argparse.Namespace, out: TextIO) -> None:
    reply = _metadata().request("DELETE", _name_path(args.name))
    out.write(to_json(reply) + "\n")


def handle_name(args: argparse.Namespace, out: TextIO) -> None:
    reply = _metadata().request("GET", _name_path(args.name))
    if args.json:
        out.write(to_json(reply) + "\n")
        return
    service = (reply or {}).get("service") or {}
    out.write(format_table([service_header(args.verbose), service_row(service, args.verbose)]))


def handle_list(args: argparse.Namespace, out: TextIO) -> None:
    params: dict[str, Any] = {"offset": args.offset, "limit": args.limit}
    labels = get_labels(args.labels)
    if labels:
        params["labels"] = ",".join(labels)
    reply = _metadata().request("GET", "/deviceservice/all", params=params)
    if args.json:
        out.write(to_json(reply) + "\n")
        return
    services = (reply or {}).get("services") or []
    if not services:
        out.write("No device services available\n")
        return
    rows = [service_header(args.verbose)]
    rows.extend(service_row(service, args.verbose) for service in services)
    out.write(format_table(rows))


def register(subparsers: Any) -> None:
    """Add the deviceservice command and its subcommands to a subparser set."""
    summary = "Add, remove, get, list and modify device services [Core Metadata]"
    parent = subparsers.add_parser("deviceservice", help=summary, description=summary)
    add_format_flag(parent)
    commands = parent.add_subparsers(dest="deviceservice_command", metavar="command")

    rm = commands.add_parser("rm", help="Remove a device service",
                             description="Removes a device service from the core-metadata database")
    rm.add_argument("-n", "--name", required=True, help="Device name")
    rm.set_defaults(handler=handle_rm)

    list_parser = commands.add_parser(
        "list", help="List device services",
        description="List all device services, optionally specifying a limit, offset "
                    "and/or label(s)",
    )
    add_format_flag(list_parser)
    add_verbose_flag(list_parser)
    add_limit_offset_flags(list_parser)
    add_labels_flag(list_parser)
    list_parser.set_defaults(handler=handle_list)

    add = commands.add_parser("add", help="Add a new device service",
                              description=_ADD_DESCRIPTION,
                              formatter_class=argparse.RawDescriptionHelpFormatter)
    add.add_argument("-n", "--name", required=True, help="Device name")
    add.add_argument("-d", "--description", default="", help="Device service description")
    add.add_argument("-a", "--admin-state", dest="admin_state", default="UNLOCKED",
                     help="Admin state [LOCKED | UNLOCKED]")
    add.add_argument("-b", "--base-address", dest="base_address", required=True,
                     help="Base URL for the service")
    add_labels_flag(add)
    add.set_defaults(handler=handle_add)

    update = commands.add_parser("update", help="Update a new device service",
                                 description=_UPDATE_DESCRIPTION,
                                 formatter_class=argparse.RawDescriptionHelpFormatter)
    update.add_argument("-n", "--name", required=True, help="Device service name")
    update.add_argument("-i", "--id", required=True, help="Device service ID")
    update.add_argument("-d", "--description", default="", help="Device service description")
    update.add_argument("-a", "--admin-state", dest="admin_state", default="UNLOCKED",
                        help="Admin state [LOCKED | UNLOCKED]")
    update.add_argument("-b", "--base-address", dest="base_address", default="",
                        help="Base URL for the service")
    add_labels_flag(update)
    update.set_defaults(handler=handle_update)

    name = commands.add_parser("name", help="Returns a device service by its unique name",
                               description="Returns a device service by its unique name")
    name.add_argument("-n", "--name", default="", help="Device name")
    add_format_flag(name)
    add_verbose_flag(name)
    name.set_defaults(handler=handle_name)