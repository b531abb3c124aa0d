import argparse
import io
import json
from urllib.parse import parse_qs, urlparse

import pytest
import responses

from edgexcli import reading
from edgexcli.common import rfc822_from_nanos
from edgexcli.services import CORE_DATA_SERVICE_KEY, EdgexError, core_service

BASE = core_service(CORE_DATA_SERVICE_KEY).base_url() + "/api/v2"


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def parse(argv):
    parser = argparse.ArgumentParser()
    sub = parser.add_subparsers()
    reading.register(sub)
    return parser.parse_args(argv)


def run(argv):
    args = parse(argv)
    out = io.StringIO()
    args.handler(args, out)
    return out.getvalue()


def test_count_all(mocked):
    mocked.add(responses.GET, BASE + "/reading/count", json={"count": 42})
    args = parse(["reading", "count"])
    out = io.StringIO()
    reading.handle_count(args, out)
    assert out.getvalue() == "Total readings: 42\n"
    assert len(mocked.calls) == 1


def test_count_by_device(mocked):
    mocked.add(responses.GET, BASE + "/reading/count/device/name/Random-Device",
               json={"count": 7})
    output = run(["reading", "count", "-d", "Random-Device"])
    assert output == "Total Random-Device readings: 7\n"
    assert urlparse(mocked.calls[0].request.url).path.endswith("/device/name/Random-Device")


def test_count_json_round_trip(mocked):
    payload = {"apiVersion": "v2", "statusCode": 200, "count": 3}
    mocked.add(responses.GET, BASE + "/reading/count", json=payload)
    assert json.loads(run(["reading", "count", "-j"])) == payload


def test_list_default_paging_and_table(mocked):
    origin = 1600000000000000000
    payload = {"readings": [{"origin": origin, "deviceName": "dev", "profileName": "prof",
                             "value": "12", "valueType": "Int32"}]}
    mocked.add(responses.GET, BASE + "/reading/all", json=payload)
    output = run(["reading", "list"])
    query = parse_qs(urlparse(mocked.calls[0].request.url).query)
    assert query == {"offset": ["0"], "limit": ["50"]}
    lines = output.splitlines()
    assert lines[0].split() == ["Origin", "Device", "ProfileName", "Value", "ValueType"]
    assert lines[1].startswith(rfc822_from_nanos(origin))
    assert lines[1].split()[-4:] == ["dev", "prof", "12", "Int32"]


def test_list_passes_limit_and_offset(mocked):
    mocked.add(responses.GET, BASE + "/reading/all", json={"readings": []})
    run(["reading", "list", "-l", "5", "-o", "10"])
    query = parse_qs(urlparse(mocked.calls[0].request.url).query)
    assert query == {"offset": ["10"], "limit": ["5"]}


def test_list_empty(mocked):
    mocked.add(responses.GET, BASE + "/reading/all", json={"readings": None})
    args = parse(["reading", "list"])
    out = io.StringIO()
    reading.handle_list(args, out)
    assert out.getvalue() == "No readings available\n"
    assert len(mocked.calls) == 1


def test_list_verbose_decodes_binary_value(mocked):
    origin = 1600000000000000000
    payload = {"readings": [{"origin": origin, "deviceName": "dev", "profileName": "prof",
                             "valueType": "Binary", "id": "r1",
                             "mediaType": "application/octet-stream",
                             "binaryValue": "AQID"}]}
    mocked.add(responses.GET, BASE + "/reading/all", json=payload)
    args = parse(["reading", "list", "-v"])
    out = io.StringIO()
    reading.handle_list(args, out)
    lines = out.getvalue().splitlines()
    assert lines[0].split() == ["Origin", "DeviceName", "ProfileName", "Value", "ValueType",
                                "Id", "MediaType", "BinaryValue"]
    assert lines[1].startswith(rfc822_from_nanos(origin))
    assert lines[1].endswith("[1 2 3]")
    assert "application/octet-stream" in lines[1]
    assert len(lines) == 2


def test_list_json_round_trip(mocked):
    payload = {"readings": [{"deviceName": "dev", "value": "1"}]}
    mocked.add(responses.GET, BASE + "/reading/all", json=payload)
    assert json.loads(run(["reading", "list", "--json"])) == payload


def test_http_failure_raises(mocked):
    mocked.add(responses.GET, BASE + "/reading/count", status=500, body="boom")
    args = parse(["reading", "count"])
    out = io.StringIO()
    with pytest.raises(EdgexError) as info:
        reading.handle_count(args, out)
    assert info.value.status_code == 500
    assert out.getvalue() == ""