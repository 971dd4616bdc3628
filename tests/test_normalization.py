from __future__ import annotations

import pytest

from tripsync.config import FeedConfig, TripSyncConfig
from tripsync.exceptions import TripSyncConfigError
from tripsync.ingestion.normalize import (
    as_list,
    has_id,
    normalize_hhmm,
    parse_updated_at,
    safe_bool,
    safe_float,
    safe_int,
    safe_str,
)


def test_safe_float_rejects_bool_nan_and_garbage() -> None:
    assert safe_float("3.5") == 3.5
    assert safe_float(True) is None
    assert safe_float(float("nan")) is None
    assert safe_float("abc") is None
    assert safe_float("") is None


def test_safe_int_and_str() -> None:
    assert safe_int("7.9") == 7
    assert safe_int(None) is None
    assert safe_str("") is None
    assert safe_str(12) == "12"


def test_safe_bool() -> None:
    assert safe_bool("Yes") is True
    assert safe_bool("off") is False
    assert safe_bool(1) is True
    assert safe_bool(None) is False


def test_has_id_requires_non_blank_id() -> None:
    assert has_id({"id": "a"})
    assert has_id({"id": 0})
    assert not has_id({"id": ""})
    assert not has_id({"id": None})
    assert not has_id(None)
    assert not has_id(["id"])


def test_as_list() -> None:
    assert as_list(None) == []
    assert as_list((1, 2)) == [1, 2]
    assert as_list("abc") == []


def test_normalize_hhmm_pads_hours() -> None:
    assert normalize_hhmm("8:05") == "08:05"
    assert normalize_hhmm(" 23:59 ") == "23:59"
    assert normalize_hhmm("noon") == "noon"
    assert normalize_hhmm(None) == ""


def test_normalize_hhmm_pads_single_digit_minutes() -> None:
    assert normalize_hhmm("9:5") == "09:05"
    assert normalize_hhmm("9:5") < normalize_hhmm("9:45")
    assert normalize_hhmm("10:30 pm") == "10:30 pm"


def test_parse_updated_at_milliseconds_and_iso() -> None:
    assert parse_updated_at(1_770_928_447_000) == 1_770_928_447.0
    assert parse_updated_at("1_770_928_447") is None
    assert parse_updated_at("2026-01-01T00:00:00") == parse_updated_at("2026-01-01T00:00:00Z")
    assert parse_updated_at(-5) is None


# ------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------


def test_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TRIPSYNC_BASE_URL", "https://db.example/rest/v1")
    monkeypatch.setenv("TRIPSYNC_API_KEY", "anon")
    monkeypatch.setenv("TRIPSYNC_REQUEST_TIMEOUT", "5")
    monkeypatch.setenv("TRIPSYNC_FEED_HOST", "broker.example")
    monkeypatch.setenv("TRIPSYNC_FEED_PORT", "1883")
    monkeypatch.setenv("TRIPSYNC_FEED_TLS", "false")
    monkeypatch.setenv("TRIPSYNC_REVISION_GUARD", "true")

    config = TripSyncConfig.from_env()

    assert config.base_url == "https://db.example/rest/v1"
    assert config.api_key == "anon"
    assert config.request_timeout == 5.0
    assert config.feed.host == "broker.example"
    assert config.feed.port == 1883
    assert config.feed.tls is False
    assert config.revision_guard is True
    assert config.feed_enabled is True
    assert config.table == "trips"
    assert config.cache_schema_version == "trip-storage-v3"


def test_config_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TRIPSYNC_TABLE", "from_env")
    monkeypatch.setenv("TRIPSYNC_FEED_HOST", "broker.example")

    config = TripSyncConfig.from_env(table="explicit", feed={"enabled": False})

    assert config.table == "explicit"
    assert config.feed.host == "broker.example"
    assert config.feed_enabled is False


def test_feed_disabled_without_host() -> None:
    assert TripSyncConfig().feed_enabled is False


def test_config_validation() -> None:
    with pytest.raises(TripSyncConfigError):
        TripSyncConfig(request_timeout=0)
    with pytest.raises(TripSyncConfigError):
        TripSyncConfig(table=" ")
    with pytest.raises(TripSyncConfigError):
        TripSyncConfig(feed=FeedConfig(port=70000))


def test_config_rejects_bad_numbers(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TRIPSYNC_FEED_PORT", "eighty")
    with pytest.raises(TripSyncConfigError):
        TripSyncConfig.from_env()
