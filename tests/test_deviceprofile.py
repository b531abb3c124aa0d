import argparse
import io
import json
from urllib.parse import parse_qs, urlparse

import pytest
import responses

from edgexcli.deviceprofile import (
    handle_add,
    profile_attributes,
    profile_header,
    profile_row,
    register,
)

BASE = "http://localhost:59881/api/v2"


@pytest.fixture
def rsps():
    with responses.RequestsMock() as mock:
        yield mock


def parse(argv):
    parser = argparse.ArgumentParser()
    register(parser.add_subparsers())
    return parser.parse_args(argv)


def run(argv):
    args = parse(argv)
    out = io.StringIO()
    args.handler(args, out)
    return out.getvalue()


def test_attributes_empty():
    assert profile_attributes("", "", "") == (None, None, [])


def test_attributes_parse_round_trip():
    resources = [{"name": "SwitchButton", "properties": {"valueType": "String"}}]
    commands = [{"name": "Switch", "readWrite": "RW"}]
    parsed = profile_attributes(json.dumps(resources), json.dumps(commands), "a,b")
    assert parsed == (resources, commands, ["a", "b"])


def test_attributes_bad_resources():
    with pytest.raises(ValueError, match="device resources"):
        profile_attributes("{not json", "", "")


def test_attributes_resources_must_be_array():
    with pytest.raises(ValueError, match="-r"):
        profile_attributes('{"name": "x"}', "", "")


def test_attributes_bad_commands():
    with pytest.raises(ValueError, match="-c"):
        profile_attributes("", "[1, 2]", "")


def test_header_short():
    assert profile_header(False) == ["Name", "Description", "Manufacturer", "Model", "Name"]


def test_header_verbose_matches_row_length():
    profile = {"name": "p"}
    assert len(profile_header(True)) == len(profile_row(profile, True))
    assert len(profile_header(False)) == len(profile_row(profile, False))


def test_row_verbose_counts():
    profile = {
        "id": "id-1", "name": "p1", "description": "desc", "created": 0,
        "deviceCommands": [{"name": "c"}],
        "deviceResources": [{"name": "r1"}, {"name": "r2"}],
        "manufacturer": "acme", "model": "m1",
    }
    row = profile_row(profile, True)
    assert row == ["id-1", "p1", "0", "desc", "1", "2", "acme", "m1", "p1"]


def test_row_short():
    row = profile_row({"name": "p1", "manufacturer": "acme"}, False)
    assert row == ["p1", "", "acme", "", "p1"]


def test_add_posts_profile(rsps):
    rsps.add(responses.POST, f"{BASE}/deviceprofile",
             json=[{"apiVersion": "v2", "statusCode": 201, "id": "abc"}])
    output = run(["deviceprofile", "add", "-n", "prof", "-m", "acme",
                  "-r", '[{"name": "r1"}]', "--labels", "x,y"])
    sent = json.loads(rsps.calls[0].request.body)
    assert sent[0]["apiVersion"] == "v2"
    assert sent[0]["profile"]["name"] == "prof"
    assert sent[0]["profile"]["manufacturer"] == "acme"
    assert sent[0]["profile"]["deviceResources"] == [{"name": "r1"}]
    assert sent[0]["profile"]["labels"] == ["x", "y"]
    assert json.loads(output) == {"apiVersion": "v2", "statusCode": 201, "id": "abc"}


def test_add_invalid_resources_sends_nothing():
    args = parse(["deviceprofile", "add", "-n", "prof", "-r", "oops"])
    with pytest.raises(ValueError):
        handle_add(args, io.StringIO())


def test_list_empty(rsps):
    rsps.add(responses.GET, f"{BASE}/deviceprofile/all", json={"profiles": []})
    assert run(["deviceprofile", "list"]) == "No profiles available\n"
    query = parse_qs(urlparse(rsps.calls[0].request.url).query)
    assert query == {"offset": ["0"], "limit": ["50"]}


def test_list_json_round_trip(rsps):
    payload = {"apiVersion": "v2", "profiles": [{"name": "p1"}]}
    rsps.add(responses.GET, f"{BASE}/deviceprofile/all", json=payload)
    assert json.loads(run(["deviceprofile", "list", "-j", "--labels", "l1"])) == payload
    query = parse_qs(urlparse(rsps.calls[0].request.url).query)
    assert query["labels"] == ["l1"]


def test_list_table(rsps):
    rsps.add(responses.GET, f"{BASE}/deviceprofile/all",
             json={"profiles": [{"name": "p1", "manufacturer": "acme", "model": "m1"}]})
    lines = run(["deviceprofile", "list"]).splitlines()
    assert lines[0].split() == ["Name", "Description", "Manufacturer", "Model", "Name"]
    assert lines[1].split() == ["p1", "acme", "m1", "p1"]


def test_name_table(rsps):
    rsps.add(responses.GET, f"{BASE}/deviceprofile/name/my%20prof",
             json={"profile": {"name": "my prof", "model": "m2"}})
    lines = run(["deviceprofile", "name", "-n", "my prof"]).splitlines()
    assert len(lines) == 2
    assert lines[1].startswith("my prof")
    assert "m2" in lines[1]


def test_rm(rsps):
    rsps.add(responses.DELETE, f"{BASE}/deviceprofile/name/p1",
             json={"apiVersion": "v2", "statusCode": 200})
    assert json.loads(run(["deviceprofile", "rm", "-n", "p1"])) == {
        "apiVersion": "v2", "statusCode": 200}