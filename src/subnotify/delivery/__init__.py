"""Delivery to OneSignal: credentials and the scheduling client."""

from subnotify.delivery.credentials import (
    CredentialSourceProtocol,
    SettingsCredentialSource,
    strip_auth_prefix,
)
from subnotify.delivery.onesignal import (
    DELIVERY_STRATEGIES,
    DeliveryStrategy,
    OneSignalClient,
)

__all__ = [
    "CredentialSourceProtocol",
    "SettingsCredentialSource",
    "strip_auth_prefix",
    "DELIVERY_STRATEGIES",
    "DeliveryStrategy",
    "OneSignalClient",
]
