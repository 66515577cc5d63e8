from datetime import datetime, timezone
from sharelink.json_utils import dumps, loads, parse_datetime

def test_dumps_basic():
    json_str = dumps({"key": "value", "number": 42})
    assert isinstance(json_str, str)
    assert '"key":"value"' in json_str
    assert '"number":42' in json_str

def test_dumps_datetime_round_trip():
    now = datetime(2026, 1, 15, 12, 30, tzinfo=timezone.utc)

    data = loads(dumps({"expires_at": now}))

    assert data["expires_at"] == "2026-01-15T12:30:00Z"
    assert parse_datetime(data["expires_at"]) == now

def test_dumps_with_indent():
    json_str = dumps({"nested": {"key": "value"}}, indent=True)
    assert "\n" in json_str

def test_loads_with_bytes():
    assert loads(b'{"key": "value"}')["key"] == "value"

def test_parse_datetime_empty():
    assert parse_datetime(None) is None
    assert parse_datetime("") is None
