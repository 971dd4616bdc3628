"""Masking of credential headers before DEBUG logging.

Every REST call carries the project API key twice: as ``apikey`` and as a
bearer ``Authorization`` header.
"""

from __future__ import annotations

from collections.abc import Mapping

_CREDENTIAL_HEADERS: frozenset[str] = frozenset({"apikey", "authorization", "cookie"})


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Return a copy of *headers* with credential values masked.

    An ``Authorization`` value keeps its scheme (``Bearer <redacted>``).
    """
    redacted: dict[str, str] = {}
    for name, value in headers.items():
        if name.lower() not in _CREDENTIAL_HEADERS:
            redacted[name] = value
            continue
        scheme, sep, _credential = str(value).partition(" ")
        if name.lower() == "authorization" and sep:
            redacted[name] = f"{scheme} <redacted>"
        else:
            redacted[name] = "<redacted>"
    return redacted
