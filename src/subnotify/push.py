# Push subscription capability — who this device is to OneSignal.
# Created: 2026-03-02
#
# The OneSignal SDK runs on the device; after the user grants permission it
# yields a subscription id. This side only consumes that id through
# PushSubscriptionProtocol, so tests and other hosts can inject their own.

from __future__ import annotations

import json
import logging
from typing import Protocol

from subnotify.store import KeyValueStoreProtocol

logger = logging.getLogger(__name__)

SUBSCRIBER_STORE_KEY = "push_subscriber_id"


class PushSubscriptionProtocol(Protocol):
    """Capability exposed by the push provider integration."""

    async def init(self) -> bool:
        """Prepare the capability. Returns False if it cannot work at all."""
        ...

    async def get_subscriber_id(self) -> str | None:
        """Current subscriber id, or None if the device is not subscribed yet."""
        ...

    async def request_permission(self) -> bool:
        """Ask for push permission. Returns True if granted."""
        ...


class StoredPushSubscription:
    """Subscriber id registered by the device and kept in the key-value store.

    The device calls ``register()`` (via ``PUT /api/v1/push/subscriber``)
    once the OneSignal SDK reports its subscription id.
    """

    def __init__(self, store: KeyValueStoreProtocol):
        self.store = store
        self._initialized = False

    async def init(self) -> bool:
        self._initialized = True
        return True

    async def get_subscriber_id(self) -> str | None:
        if not self._initialized:
            await self.init()
        raw = self.store.get(SUBSCRIBER_STORE_KEY)
        if not raw:
            return None
        try:
            value = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Stored subscriber id is unreadable: %s", e)
            return None
        if not isinstance(value, str) or not value.strip():
            return None
        return value.strip()

    async def request_permission(self) -> bool:
        # Permission lives on the device; a registered id means it was granted
        return await self.get_subscriber_id() is not None

    def register(self, subscriber_id: str) -> None:
        subscriber_id = subscriber_id.strip()
        if not subscriber_id:
            raise ValueError("Subscriber id is empty")
        if len(subscriber_id) < 30:
            logger.warning("Subscriber id %s... looks unusually short", subscriber_id[:8])
        self.store.set(SUBSCRIBER_STORE_KEY, json.dumps(subscriber_id))
        logger.info("Registered push subscriber %s...", subscriber_id[:8])

    def unregister(self) -> bool:
        return self.store.delete(SUBSCRIBER_STORE_KEY)
