import argparse
import io
import json
import random

import pytest
import responses

from edgexcli import event

BASE = "http://localhost:59880/api/v2"


@pytest.fixture
def rsps():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as mock:
        yield mock


def run(argv):
    parser = argparse.ArgumentParser()
    event.register(parser.add_subparsers())
    args = parser.parse_args(argv)
    out = io.StringIO()
    args.handler(args, out)
    return out.getvalue()


@pytest.mark.parametrize("given, expected", [
    ("FLOAT32", "Float32"),
    ("uint8", "Uint8"),
    ("string", "String"),
    ("Bool", "Bool"),
])
def test_normalize_value_type(given, expected):
    assert event.normalize_value_type(given) == expected


def test_string_value_uses_index():
    assert event.random_value("string", 3, random.Random(1)) == "Reading 3"


def test_bool_value_is_true_or_false():
    rng = random.Random(7)
    values = {event.random_value("bool", i, rng) for i in range(50)}
    assert values <= {"true", "false"}
    assert len(values) == 2


@pytest.mark.parametrize("value_type, low, high", [
    ("uint8", 0, 255),
    ("int8", -128, 127),
    ("uint16", 0, 65535),
    ("int32", -(2 ** 31), 2 ** 31 - 1),
    ("uint64", 0, 2 ** 64 - 1),
])
def test_integer_values_in_range(value_type, low, high):
    rng = random.Random(3)
    for index in range(40):
        assert low <= int(event.random_value(value_type, index, rng)) <= high


def test_float_values_in_exponent_form():
    rng = random.Random(5)
    for value_type in ("float32", "float64"):
        text = event.random_value(value_type, 0, rng)
        assert "e" in text
        assert float(text) >= 0


def test_random_value_is_deterministic_for_seed():
    first = event.random_value("uint64", 0, random.Random(42))
    second = event.random_value("uint64", 0, random.Random(42))
    assert first == second


def test_random_value_rejects_unknown_type():
    with pytest.raises(ValueError, match="type must be one of"):
        event.random_value("complex", 0, random.Random(0))


def test_build_event_readings():
    built = event.build_event("prof", "dev", "src", "INT16", 4, random.Random(9))
    assert built["deviceName"] == "dev"
    assert built["profileName"] == "prof"
    assert built["sourceName"] == "src"
    assert len(built["readings"]) == 4
    assert {r["valueType"] for r in built["readings"]} == {"Int16"}
    assert {r["resourceName"] for r in built["readings"]} == {"src"}
    assert len({r["id"] for r in built["readings"]}) == 4


def test_build_event_needs_a_reading():
    with pytest.raises(ValueError, match="at least 1"):
        event.build_event("p", "d", "s", "string", 0, random.Random(0))


def test_build_event_rejects_bad_type():
    with pytest.raises(ValueError, match="type must be one of"):
        event.build_event("p", "d", "s", "text", 1, random.Random(0))


def test_add_posts_event(rsps):
    rsps.add(responses.POST, f"{BASE}/event/prof/dev/src",
             json={"apiVersion": "v2", "id": "abc", "statusCode": 201}, status=201)
    output = run(["event", "add", "-d", "dev", "-p", "prof", "-s", "src", "-r", "2"])
    assert output == "Added event abc\n"
    body = json.loads(rsps.calls[0].request.body)
    assert body["apiVersion"] == "v2"
    assert [r["value"] for r in body["event"]["readings"]] == ["Reading 0", "Reading 1"]


def test_rm_both_filters_is_error():
    with pytest.raises(ValueError, match="not both"):
        run(["event", "rm", "-d", "dev", "-a", "100"])


def test_rm_needs_a_filter():
    with pytest.raises(ValueError, match="must be specified"):
        run(["event", "rm"])


def test_rm_by_device(rsps):
    rsps.add(responses.DELETE, f"{BASE}/event/device/name/dev",
             json={"apiVersion": "v2", "statusCode": 202})
    assert run(["event", "rm", "-d", "dev"]) == ""
    assert len(rsps.calls) == 1


def test_count_by_device(rsps):
    rsps.add(responses.GET, f"{BASE}/event/count/device/name/dev",
             json={"apiVersion": "v2", "count": 5})
    assert run(["event", "count", "-d", "dev"]) == "Total dev events: 5\n"


def test_count_json(rsps):
    reply = {"apiVersion": "v2", "count": 5}
    rsps.add(responses.GET, f"{BASE}/event/count", json=reply)
    assert json.loads(run(["event", "count", "-j"])) == reply


def test_list_empty(rsps):
    rsps.add(responses.GET, f"{BASE}/event/all", json={"events": []})
    assert run(["event", "list"]) == "No events available\n"


def test_list_counts_readings(rsps):
    rsps.add(responses.GET, f"{BASE}/event/all", json={"events": [
        {"deviceName": "dev", "profileName": "prof", "sourceName": "src",
         "origin": 0, "readings": [{}, {}, {}]},
    ]})
    lines = run(["event", "list"]).splitlines()
    assert lines[0].split()[:4] == ["Origin", "Device", "Profile", "Source"]
    cells = lines[1].split()
    assert cells[-4:] == ["dev", "prof", "src", "3"]
    assert len(lines) == 2