# Credentials — where the OneSignal REST API key comes from.
# Created: 2026-03-02
#
# The key may be absent at startup and arrive later (env reload or saved via
# the API), so callers ask for it again before every reconciliation pass.

from __future__ import annotations

import json
import logging
from typing import Protocol

from subnotify.config import get_settings
from subnotify.store import KeyValueStoreProtocol

logger = logging.getLogger(__name__)

REST_KEY_STORE_KEY = "onesignal_rest_api_key"

# Prefixes users paste along with the key (copied from a curl example)
_AUTH_PREFIXES = ("Key ", "Basic ", "Bearer ")


def strip_auth_prefix(key: str | None) -> str | None:
    """Return the bare key, without any ``Key``/``Basic``/``Bearer`` prefix."""
    if not key:
        return None
    key = key.strip()
    for prefix in _AUTH_PREFIXES:
        if key.startswith(prefix):
            key = key[len(prefix) :].strip()
            break
    return key or None


def mask_key(key: str | None) -> str:
    """Shorten a key for log output."""
    if not key:
        return "<none>"
    return key[:8] + "..."


class CredentialSourceProtocol(Protocol):
    def get_rest_api_key(self) -> str | None:
        """Return the current REST API key, or None if not configured."""
        ...


class SettingsCredentialSource:
    """REST key from settings first, then from a key saved at runtime."""

    def __init__(self, store: KeyValueStoreProtocol | None = None):
        self.store = store

    def get_rest_api_key(self) -> str | None:
        key = strip_auth_prefix(get_settings().onesignal_rest_api_key)
        if key:
            return key

        if self.store is None:
            return None
        raw = self.store.get(REST_KEY_STORE_KEY)
        if not raw:
            return None
        try:
            return strip_auth_prefix(json.loads(raw))
        except (json.JSONDecodeError, TypeError, AttributeError) as e:
            logger.warning("Stored REST API key is unreadable: %s", e)
            return None

    def save_rest_api_key(self, key: str) -> str:
        """Persist a REST key entered at runtime. Returns the bare key."""
        bare = strip_auth_prefix(key)
        if not bare:
            raise ValueError("REST API key is empty")
        if self.store is None:
            raise RuntimeError("No store configured for runtime credentials")
        self.store.set(REST_KEY_STORE_KEY, json.dumps(bare))
        logger.info("Saved OneSignal REST API key %s", mask_key(bare))
        return bare

    def clear_rest_api_key(self) -> bool:
        if self.store is None:
            return False
        return self.store.delete(REST_KEY_STORE_KEY)
