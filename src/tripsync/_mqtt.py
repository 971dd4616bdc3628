"""Internal change-feed runtime over MQTT.

The broker publishes one retained-free message per remote row change on
``<topic_prefix>/<trip_id>``.  The runtime runs paho's network loop on
its own thread and hands every decoded message to the asyncio loop.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, cast

import paho.mqtt.client as mqtt

from tripsync.config import FeedConfig
from tripsync.exceptions import TripSyncError


@dataclass(frozen=True)
class FeedMessage:
    """Decoded change-feed message."""

    trip_id: str
    topic: str
    payload: dict[str, Any]


def topic_for(prefix: str, trip_id: str) -> str:
    return f"{prefix.rstrip('/')}/{trip_id}"


def trip_id_from_topic(prefix: str, topic: str) -> str | None:
    head = f"{prefix.rstrip('/')}/"
    if not topic.startswith(head):
        return None
    trip_id = topic[len(head) :]
    return trip_id or None


def decode_feed_payload(payload: bytes) -> dict[str, Any]:
    """Parse a change-feed message body into a JSON object."""
    parsed = json.loads(payload.decode("utf-8"))
    if not isinstance(parsed, dict):
        raise TripSyncError("Change-feed payload is not a JSON object")
    return parsed


class ChangeFeedRuntime:
    """Threaded paho-mqtt runtime that emits parsed messages onto an asyncio loop."""

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        config: FeedConfig,
        on_message: Callable[[FeedMessage], None],
        client_id: str = "",
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._config = config
        self._on_message = on_message
        self._client_id = client_id
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._topics: set[str] = set()

    @property
    def is_running(self) -> bool:
        """Whether the MQTT runtime is actively running."""
        return self._running

    @property
    def topics(self) -> frozenset[str]:
        return frozenset(self._topics)

    def _handle_payload(self, topic: str, payload: bytes) -> None:
        trip_id = trip_id_from_topic(self._config.topic_prefix, topic)
        if trip_id is None:
            self._logger.debug("Ignoring change-feed message on foreign topic=%s", topic)
            return
        try:
            parsed = decode_feed_payload(payload)
        except (UnicodeDecodeError, json.JSONDecodeError, TripSyncError):
            self._logger.debug("Change-feed payload parse failure topic=%s", topic, exc_info=True)
            return
        message = FeedMessage(trip_id=trip_id, topic=topic, payload=parsed)
        self._loop.call_soon_threadsafe(self._on_message, message)

    def start(self) -> None:
        """Connect to the broker and (re)subscribe every tracked topic."""
        self.stop_network()
        self._logger.debug(
            "Change feed start requested host=%s port=%s prefix=%s",
            self._config.host,
            self._config.port,
            self._config.topic_prefix,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=self._client_id,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if self._config.username:
            client.username_pw_set(self._config.username, self._config.password)
        if self._config.tls:
            client.tls_set()

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("Change feed connect failed: %s", reason_code)
                return
            self._logger.debug("Change feed connected reason=%s", reason_code)
            for topic in sorted(self._topics):
                c.subscribe(topic, qos=1)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            self._handle_payload(msg.topic, msg.payload)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.debug("Change feed disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        client.connect(self._config.host, self._config.port, keepalive=self._config.keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("Change feed network loop started")

    def subscribe(self, topic: str) -> None:
        """Track *topic*; subscribes immediately when connected."""
        self._topics.add(topic)
        if self._client is not None and self._running:
            self._client.subscribe(topic, qos=1)

    def unsubscribe(self, topic: str) -> None:
        self._topics.discard(topic)
        if self._client is not None and self._running:
            self._client.unsubscribe(topic)

    def stop_network(self) -> None:
        """Stop and disconnect the current MQTT client if running; keeps tracked topics."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("Change feed disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("Change feed network loop stopped")

    def stop(self) -> None:
        """Stop the network loop and forget all topics."""
        self.stop_network()
        self._topics.clear()
