from __future__ import annotations

from tripsync._redact import redact_headers


def test_redact_headers_masks_credentials() -> None:
    headers = {
        "apikey": "anon-key",
        "Authorization": "Bearer anon-key",
        "User-Agent": "tripsync/0.1",
        "Prefer": "resolution=merge-duplicates",
    }

    redacted = redact_headers(headers)

    assert redacted["apikey"] == "<redacted>"
    assert redacted["Authorization"] == "Bearer <redacted>"
    assert redacted["User-Agent"] == "tripsync/0.1"
    assert redacted["Prefer"] == "resolution=merge-duplicates"
    assert headers["apikey"] == "anon-key"


def test_redact_headers_masks_schemeless_authorization() -> None:
    assert redact_headers({"authorization": "anon-key", "Cookie": "sid=1"}) == {
        "authorization": "<redacted>",
        "Cookie": "<redacted>",
    }
