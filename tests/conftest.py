"""Shared fixtures: in-process responses, a scripted transport and a recording log sink."""

import json
from typing import Any, List, Optional

import pytest
import requests

from resilient_api.clients.http import ConnectError, Ok, RequestFailed, ResponseError


def build_response(status: int, body: Any = "", content_type: Optional[str] = None) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    if not isinstance(body, (str, bytes)):
        body = json.dumps(body)
    resp._content = body.encode("utf-8") if isinstance(body, str) else body
    resp.encoding = "utf-8"
    if content_type is not None:
        resp.headers["Content-Type"] = content_type
    return resp


class ScriptedTransport:
    """Transport returning queued results; the last result repeats."""

    def __init__(self, results: List[Any]):
        self.results = list(results)
        self.calls = []
        self.closed = False

    def send(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, BaseException):
            raise result
        return result

    def close(self):
        self.closed = True


class RecordingSink:
    def __init__(self):
        self.events = []

    def log(self, message, level="info", **fields):
        self.events.append({"message": message, "level": level, **fields})


@pytest.fixture
def response():
    return build_response


@pytest.fixture
def ok(response):
    def make(status=200, body="", content_type=None):
        return Ok(response(status, body, content_type))

    return make


@pytest.fixture
def server_error(response):
    def make(status=503, body="", content_type=None):
        return ResponseError(response(status, body, content_type))

    return make


@pytest.fixture
def connect_error():
    return ConnectError(requests.ConnectionError("Connection refused"))


@pytest.fixture
def request_failed():
    return RequestFailed(requests.TooManyRedirects("Exceeded 30 redirects."))


@pytest.fixture
def scripted():
    return ScriptedTransport


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def sleeps():
    """List recording every backoff delay; call it to sleep."""

    class Recorder(list):
        def __call__(self, seconds):
            self.append(seconds)

    return Recorder()
