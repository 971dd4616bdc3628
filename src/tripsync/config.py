"""Client configuration for tripsync."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from tripsync._constants import DEFAULT_CACHE_SCHEMA_VERSION, DEFAULT_TABLE, DEFAULT_TOPIC_PREFIX
from tripsync.exceptions import TripSyncConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class FeedConfig:
    """Change-feed broker settings.

    The change feed publishes one topic per trip, ``<topic_prefix>/<trip_id>``,
    carrying the full trip row whenever it changes remotely.
    """

    enabled: bool = True
    host: str = ""
    port: int = 8883
    topic_prefix: str = DEFAULT_TOPIC_PREFIX
    keepalive: int = 60
    tls: bool = True
    username: str | None = None
    password: str | None = None


@dataclasses.dataclass(frozen=True)
class TripSyncConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        Root URL of the REST endpoint that exposes the trips table
        (e.g. ``"https://project.example.co/rest/v1"``).
    api_key : str
        API key sent as ``apikey`` and bearer token on every request.
    table : str
        Name of the table holding one row per trip.
    request_timeout : float
        Total timeout in seconds for a single REST call.
    cache_path : str or None
        File used as the local durable cache.  ``None`` disables the cache.
    cache_schema_version : str
        Key under which the cache is stored.  Changing it starts from an
        empty cache instead of migrating old data.
    revision_guard : bool
        Discard change-feed pushes whose revision is not newer than the
        local one.  Off by default (pure last-write-wins).
    feed : FeedConfig
        Change-feed broker settings.
    """

    base_url: str = ""
    api_key: str = ""
    table: str = DEFAULT_TABLE
    request_timeout: float = 15.0
    cache_path: str | None = None
    cache_schema_version: str = DEFAULT_CACHE_SCHEMA_VERSION
    revision_guard: bool = False
    feed: FeedConfig = dataclasses.field(default_factory=FeedConfig)

    def __post_init__(self) -> None:
        if self.request_timeout <= 0:
            raise TripSyncConfigError(f"request_timeout must be positive, got {self.request_timeout}")
        if not self.table.strip():
            raise TripSyncConfigError("table must be non-empty")
        if not self.cache_schema_version.strip():
            raise TripSyncConfigError("cache_schema_version must be non-empty")
        if not 0 < self.feed.port < 65536:
            raise TripSyncConfigError(f"feed port out of range: {self.feed.port}")

    @property
    def feed_enabled(self) -> bool:
        """Whether a change-feed runtime should be started."""
        return self.feed.enabled and bool(self.feed.host)

    @classmethod
    def from_env(cls, **overrides: Any) -> TripSyncConfig:
        """Create configuration from environment variables.

        Reads ``TRIPSYNC_BASE_URL``, ``TRIPSYNC_API_KEY`` and optional
        ``TRIPSYNC_*`` variables.  Explicit keyword arguments override
        environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        TripSyncConfig
            Populated configuration.

        Raises
        ------
        TripSyncConfigError
            If a numeric variable cannot be parsed.
        """
        env = os.environ

        feed_kwargs: dict[str, Any] = {}
        _ENV_FEED_MAP = {
            "TRIPSYNC_FEED_HOST": "host",
            "TRIPSYNC_FEED_TOPIC_PREFIX": "topic_prefix",
            "TRIPSYNC_FEED_USERNAME": "username",
            "TRIPSYNC_FEED_PASSWORD": "password",
        }
        for env_key, field_name in _ENV_FEED_MAP.items():
            val = env.get(env_key)
            if val is not None:
                feed_kwargs[field_name] = val

        try:
            port_env = env.get("TRIPSYNC_FEED_PORT")
            if port_env is not None:
                feed_kwargs["port"] = int(port_env)
            keepalive_env = env.get("TRIPSYNC_FEED_KEEPALIVE")
            if keepalive_env is not None:
                feed_kwargs["keepalive"] = int(keepalive_env)
        except ValueError as exc:
            raise TripSyncConfigError(f"Invalid feed setting: {exc}") from exc

        feed_kwargs["enabled"] = _env_bool(env.get("TRIPSYNC_FEED_ENABLED"), True)
        feed_kwargs["tls"] = _env_bool(env.get("TRIPSYNC_FEED_TLS"), True)

        # Allow overriding feed fields via a nested dict
        feed_overrides = overrides.pop("feed", None)
        if isinstance(feed_overrides, dict):
            feed_kwargs.update(feed_overrides)
        elif isinstance(feed_overrides, FeedConfig):
            feed_kwargs = dataclasses.asdict(feed_overrides)

        _ENV_CONFIG_MAP = {
            "TRIPSYNC_BASE_URL": "base_url",
            "TRIPSYNC_API_KEY": "api_key",
            "TRIPSYNC_TABLE": "table",
            "TRIPSYNC_CACHE_PATH": "cache_path",
            "TRIPSYNC_CACHE_SCHEMA_VERSION": "cache_schema_version",
        }
        config_kwargs: dict[str, Any] = {"feed": FeedConfig(**feed_kwargs)}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        timeout_env = env.get("TRIPSYNC_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            try:
                config_kwargs["request_timeout"] = float(timeout_env)
            except ValueError as exc:
                raise TripSyncConfigError(f"Invalid TRIPSYNC_REQUEST_TIMEOUT: {timeout_env!r}") from exc

        if "revision_guard" not in overrides:
            config_kwargs["revision_guard"] = _env_bool(env.get("TRIPSYNC_REVISION_GUARD"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
