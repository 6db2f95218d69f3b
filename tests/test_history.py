"""Tests for the Signal K history client."""

import asyncio
from datetime import timedelta
from unittest.mock import Mock

import pytest
import requests

from pmcharts.storage.history import HistoryError, HistoryQuery, SignalKHistoryClient
from conftest import T0

QUERY = HistoryQuery(
    start=T0,
    end=T0 + timedelta(hours=1),
    resolution_s=10,
    path="navigation.position",
    aggregate="average",
)


def _client(body=None, exc=None, status_error=None):
    response = Mock()
    response.json.return_value = body
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    session = Mock(spec=requests.Session)
    if exc is not None:
        session.get.side_effect = exc
    else:
        session.get.return_value = response
    return SignalKHistoryClient("http://boat.local:3000/", session=session), session


class TestSignalKHistoryClient:

    def test_request_parameters(self):
        client, session = _client({"data": []})
        asyncio.run(client.get_values(QUERY))
        url = session.get.call_args.args[0]
        params = session.get.call_args.kwargs["params"]
        assert url == "http://boat.local:3000/signalk/v2/api/history/values"
        assert params == {
            "from": "2024-01-01T00:00:00.000Z",
            "to": "2024-01-01T01:00:00.000Z",
            "context": "vessels.self",
            "paths": "navigation.position:average",
            "resolution": 10,
        }

    def test_rows(self):
        body = {
            "context": "vessels.self",
            "data": [
                ["2024-01-01T00:00:00Z", [10.0, 50.0]],
                ["2024-01-01T00:00:10Z", None],
                "garbage",
            ],
        }
        client, _ = _client(body)
        rows = asyncio.run(client.get_values(QUERY))
        assert rows == [("2024-01-01T00:00:00Z", [10.0, 50.0]), ("2024-01-01T00:00:10Z", None)]

    def test_missing_data_is_empty(self):
        client, _ = _client({"context": "vessels.self"})
        assert asyncio.run(client.get_values(QUERY)) == []

    @pytest.mark.parametrize("kwargs", [
        {"exc": requests.ConnectionError("refused")},
        {"body": {}, "status_error": requests.HTTPError("500 Server Error")},
        {"body": ["not", "an", "object"]},
        {"body": {"data": "nope"}},
    ])
    def test_failures_raise_history_error(self, kwargs):
        client, _ = _client(**kwargs)
        with pytest.raises(HistoryError):
            asyncio.run(client.get_values(QUERY))
