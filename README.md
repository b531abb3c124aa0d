# edgexcli

`edgexcli` is a Python library of command handlers for the REST APIs of an
EdgeX deployment. It talks to the core and support microservices: it checks
that they are alive, shows their version, configuration and metrics, and
manages devices, device profiles, device services, events, readings and
device commands.

Each command module offers a `register(subparsers)` function that adds its
commands to an `argparse` subparser set, and `handle_*(args, out)` functions
that run a parsed command and write its output to a text stream.

## Installation

```
pip install .
```

## Services

Requests go to the microservices on `localhost` at their standard ports,
under the `/api/v2` prefix:

| Service                | Port  |
|------------------------|-------|
| core-data              | 59880 |
| core-metadata          | 59881 |
| core-command           | 59882 |
| support-notifications  | 59860 |
| support-scheduler      | 59861 |

`edgexcli.services.core_service(key)` returns the `Service` for one key and
`core_services()` returns all of them. `Service.request(method, path, params,
body)` sends a request and returns the decoded JSON reply.

## Usage

Build a parser from the modules you need and dispatch to the handler that
the chosen command sets:

```python
import argparse
import sys

from edgexcli import command, device, deviceprofile, deviceservice, event, reading, system

parser = argparse.ArgumentParser(prog="edgex")
subparsers = parser.add_subparsers(dest="group")
for module in (system, device, deviceprofile, deviceservice, command, event, reading):
    module.register(subparsers)

args = parser.parse_args(["device", "list", "--labels", "label-one"])
args.handler(args, sys.stdout)
```

The commands each module registers:

- `system`: `ping`, `version`, `config`, `metrics`. Each queries every
  service unless narrowed with `-d` (core-data), `-c` (core-command),
  `-m` (core-metadata), `-s` (support-scheduler) or `-n`
  (support-notifications). With `-j` and no service flag, core-metadata is
  queried. Services that fail to answer are skipped.
- `device`: `add`, `list`, `name`, `rm`, `update`.
- `deviceprofile`: `add`, `list`, `name`, `rm`.
- `deviceservice`: `add`, `list`, `name`, `rm`, `update`.
- `command`: `read`, `write` (body given with `-b` or read from a file with
  `-f`, exactly one of the two), `list`.
- `event`: `add` (an event with `-r` random readings of type `bool`,
  `string`, `uint8` … `uint64`, `int8` … `int64`, `float32` or `float64`),
  `list`, `count`, `rm` (by `-d` device or `-a` age, not both).
- `reading`: `list`, `count`.

Listings and lookups print an aligned table; `-j`/`--json` prints the raw
JSON reply instead and `-v`/`--verbose`, where offered, adds columns.
Listings accept `-l`/`--limit` (default 50, `-1` for all remaining items)
and `-o`/`--offset` (default 0). Admin state must be `LOCKED` or
`UNLOCKED`; operating state must be `UP`, `DOWN` or `UNKNOWN`.

`edgexcli.common` also holds the shared helpers: flag adders, state
validation, RFC 822 time conversion (`rfc822_from_millis`,
`rfc822_from_nanos`, `millis_from_rfc822`), `format_table` and `to_json`.

## Errors

A failed request raises `edgexcli.services.EdgexError`, carrying the HTTP
status code where there is one. Invalid arguments raise `ValueError`.

## What it does not do

- It installs no command of its own; the caller builds the parser as shown
  above and handles the exceptions.
- It has no commands for notifications, subscriptions, transmissions or
  scheduler intervals and interval actions.
- Service locations are fixed at `localhost` and the standard ports; there
  is no configuration file.

## Development

```
pip install -e ".[test]"
pytest
```