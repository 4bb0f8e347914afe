from __future__ import annotations

"""Publishes record change notifications to Redis so other sessions can refresh."""

import json
import logging
from typing import Any, Dict, Optional

import redis


logger = logging.getLogger("gdp.events")

CHANNEL_PREFIX = "gdp.events"


class RedisPublisher:
    def __init__(self, url: str) -> None:
        self._url = url
        self._client = None
        self._connect()

    def _connect(self) -> None:
        try:
            self._client = redis.Redis.from_url(self._url, socket_timeout=0.5)
            self._client.ping()
        except Exception:
            logger.warning("Redis at %s not reachable; change events are paused", self._url)
            self._client = None

    @property
    def connected(self) -> bool:
        return self._client is not None

    def publish(self, event_type: str, payload: Dict[str, Any]) -> bool:
        if not self._client:
            self._connect()
        if not self._client:
            return False
        channel = f"{CHANNEL_PREFIX}.{event_type}"
        try:
            self._client.publish(channel, json.dumps(payload))
        except Exception:
            logger.warning("Publishing %s failed; will reconnect on next event", channel)
            self._client = None
            return False
        return True

    def __call__(self, change: Dict[str, Any]) -> None:
        self.publish("records.changed", change)


def build_publisher(redis_url: Optional[str]) -> Optional[RedisPublisher]:
    if not redis_url:
        return None
    return RedisPublisher(redis_url)
