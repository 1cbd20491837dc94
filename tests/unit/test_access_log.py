"""
Unit tests for access logging.
"""

import json
import logging

import pytest

from scratchhttp.access_log import AccessLogger, RequestLog
from scratchhttp.http.request import HTTPRequest
from scratchhttp.http.response import ResponseBuilder, not_found


@pytest.fixture
def request_() -> HTTPRequest:
    return HTTPRequest(
        method="GET",
        path="/echo/hi",
        headers={"User-Agent": "pytest"},
        client_address=("10.0.0.7", 41000),
    )


class TestRequestLog:
    """Tests for the RequestLog record."""

    def test_from_exchange(self, request_):
        response = ResponseBuilder().text("hi").build()
        entry = RequestLog.from_exchange(request_, response, 1.234, connection_id="abcd1234")

        assert entry.connection_id == "abcd1234"
        assert entry.method == "GET"
        assert entry.path == "/echo/hi"
        assert entry.version == "HTTP/1.1"
        assert entry.client_ip == "10.0.0.7"
        assert entry.user_agent == "pytest"
        assert entry.status_code == 200
        assert entry.content_length == 2

    def test_missing_user_agent_is_dash(self):
        request = HTTPRequest(method="GET", path="/")
        entry = RequestLog.from_exchange(request, not_found(), 0.0)

        assert entry.user_agent == "-"
        assert entry.client_ip == "-"

    def test_to_text(self, request_):
        entry = RequestLog.from_exchange(request_, not_found(), 2.5)
        text = entry.to_text()

        assert text.startswith("10.0.0.7 - - [")
        assert '"GET /echo/hi HTTP/1.1" 404 0 2.50ms' in text

    def test_to_dict_rounds_duration(self, request_):
        entry = RequestLog.from_exchange(request_, not_found(), 1.23456)
        data = entry.to_dict()

        assert data["duration_ms"] == 1.23
        assert data["status_code"] == 404


class TestAccessLogger:
    """Tests for AccessLogger output."""

    def test_text_format(self, request_, caplog):
        with caplog.at_level(logging.INFO, logger="scratchhttp.access"):
            AccessLogger("text").log(request_, not_found(), 1.0, connection_id="c1")

        assert '"GET /echo/hi HTTP/1.1" 404' in caplog.text

    def test_json_format(self, request_, caplog):
        with caplog.at_level(logging.INFO, logger="scratchhttp.access"):
            AccessLogger("json").log(request_, not_found(), 1.0, connection_id="c1")

        record = caplog.records[-1]
        data = json.loads(record.getMessage())
        assert data["connection_id"] == "c1"
        assert data["path"] == "/echo/hi"
        assert data["status_code"] == 404

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            AccessLogger("xml")
