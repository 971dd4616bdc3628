"""HTTP transport for the row-per-trip REST table."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from tripsync._constants import USER_AGENT
from tripsync._redact import redact_headers
from tripsync.config import TripSyncConfig
from tripsync.exceptions import TripSyncTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the REST repository.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`RestTransport`) concrete.
    """

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any: ...


class RestTransport:
    """JSON-over-HTTP transport that adds API-key headers and maps failures."""

    def __init__(self, config: TripSyncConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def _base_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "accept": "application/json",
            "content-type": "application/json; charset=UTF-8",
            "user-agent": USER_AGENT,
        }
        if self._config.api_key:
            headers["apikey"] = self._config.api_key
            headers["authorization"] = f"Bearer {self._config.api_key}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (``None`` when empty).

        Raises
        ------
        TripSyncTransportError
            On network failure, a non-2xx status, or a body that is not JSON.
        """
        url = f"{self._config.base_url.rstrip('/')}/{path.lstrip('/')}"
        merged_headers = self._base_headers()
        if headers:
            merged_headers.update(headers)
        data = json.dumps(body, separators=(",", ":")) if body is not None else None

        _logger.debug(
            "%s %s params=%s headers=%s",
            method,
            url,
            dict(params or {}),
            redact_headers(merged_headers),
        )

        try:
            async with self._http.request(
                method,
                url,
                params=dict(params) if params else None,
                data=data,
                headers=merged_headers,
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                if not 200 <= resp.status < 300:
                    raise TripSyncTransportError(
                        f"HTTP {resp.status} from {method} {path}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=path,
                    )
        except TripSyncTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise TripSyncTransportError(
                f"Request {method} {path} failed: {exc}",
                endpoint=path,
            ) from exc

        if not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise TripSyncTransportError(
                f"Invalid JSON from {method} {path}: {text[:200]}",
                endpoint=path,
            ) from exc
