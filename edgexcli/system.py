"""The ping, version, config and metrics commands, run against the core services."""

from __future__ import annotations

import argparse
import json
from typing import Any, Iterator, TextIO

from .common import add_standard_flags, format_table, go_format, selected_services, to_json
from .services import EdgexError

_HTML_ESCAPES = str.maketrans({
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
})

_METRIC_FIELDS = (
    "cpuBusyAvg",
    "memAlloc",
    "memFrees",
    "memLiveObjects",
    "memMallocs",
    "memSys",
    "memTotalAlloc",
)


def _replies(args: argparse.Namespace, path: str) -> Iterator[tuple[str, dict[str, Any]]]:
    """Yield each selected service's reply, skipping services that fail."""
    for name, service in selected_services(args).items():
        try:
            reply = service.request("GET", path)
        except EdgexError:
            continue
        yield name, reply if isinstance(reply, dict) else {}


def handle_ping(args: argparse.Namespace, out: TextIO) -> None:
    for name, reply in _replies(args, "/ping"):
        if args.json:
            out.write(to_json(reply) + "\n")
        else:
            out.write(f"{name}: {reply.get('timestamp', '')}\n")


def handle_version(args: argparse.Namespace, out: TextIO) -> None:
    for name, reply in _replies(args, "/version"):
        if args.json:
            out.write(to_json(reply) + "\n")
        else:
            out.write(f"{name}: {reply.get('version', '')}\n")


def handle_config(args: argparse.Namespace, out: TextIO) -> None:
    for name, reply in _replies(args, "/config"):
        if args.json:
            out.write(to_json(reply) + "\n")
        else:
            out.write(f"{name}:\n")
            indented = json.dumps(
                reply.get("config"), indent=4, sort_keys=True, ensure_ascii=False
            )
            out.write(indented.translate(_HTML_ESCAPES) + "\n")


def handle_metrics(args: argparse.Namespace, out: TextIO) -> None:
    rows: list[list[str]] = []
    if not args.json:
        rows.append(["Service", "CpuBusyAvg", "MemAlloc", "MemFrees", "MemLiveObjects",
                     "MemMallocs", "MemSys", "MemTotalAlloc"])
    for name, reply in _replies(args, "/metrics"):
        if args.json:
            out.write(to_json(reply) + "\n")
        else:
            metrics = reply.get("metrics") or {}
            rows.append([name, *(go_format(metrics.get(field, 0)) for field in _METRIC_FIELDS)])
    if not args.json:
        out.write(format_table(rows, 1))


_COMMANDS = (
    ("ping", "Ping (health check) all EdgeX core/support microservices", handle_ping),
    ("version", "Output the current version of EdgeX CLI and EdgeX microservices",
     handle_version),
    ("config", "Return the current configuration of all EdgeX core/support microservices",
     handle_config),
    ("metrics", "Output the CPU/memory usage stats for all EdgeX core/support microservices",
     handle_metrics),
)


def register(subparsers: Any) -> None:
    """Add the ping, version, config and metrics commands to a subparser set."""
    for name, summary, handler in _COMMANDS:
        parser = subparsers.add_parser(name, help=summary, description=summary)
        add_standard_flags(parser)
        parser.set_defaults(handler=handler)