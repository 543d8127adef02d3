# OneSignal client — schedule one push notification per reminder via the REST API.
# Created: 2026-03-02
#
# OneSignal has two wire variants: the current Messages API (Authorization: Key,
# include_subscription_ids) and the legacy v1 API (Basic/Bearer auth,
# include_player_ids). Requests walk DELIVERY_STRATEGIES in order and only move
# on when the provider answers with an auth or validation error.

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import httpx

from subnotify.config import Settings, get_settings
from subnotify.delivery.credentials import (
    CredentialSourceProtocol,
    SettingsCredentialSource,
    mask_key,
)
from subnotify.reminders.models import (
    DeliveryError,
    DeliveryResult,
    ScheduledReminder,
    now_utc,
    parse_instant,
)

logger = logging.getLogger(__name__)

# Responses that mean "this variant/auth scheme is wrong", not "this reminder is wrong"
_FALLBACK_STATUSES = frozenset({400, 401, 403})

DEFAULT_TITLE = "Recordatorio de Suscripción"
DEFAULT_BODY = "Tu suscripción vence pronto"

TEST_TITLE = "Prueba de notificación"
TEST_BODY = "Si ves esto, las notificaciones push funcionan correctamente."


@dataclass(frozen=True)
class DeliveryStrategy:
    """One (endpoint, auth scheme) combination to try."""

    name: str
    endpoint: str  # "current" | "legacy"
    auth_scheme: str  # "Key" | "Basic" | "Bearer"
    target_field: str  # subscriber addressing field
    target_channel: bool = False


DELIVERY_STRATEGIES: tuple[DeliveryStrategy, ...] = (
    DeliveryStrategy("current", "current", "Key", "include_subscription_ids", target_channel=True),
    DeliveryStrategy("legacy-basic", "legacy", "Basic", "include_player_ids"),
    DeliveryStrategy("legacy-bearer", "legacy", "Bearer", "include_player_ids"),
)


def format_errors(data: dict[str, Any], status_code: int) -> str:
    """Flatten OneSignal's ``errors`` field (list, dict or string) into one message."""
    errors = data.get("errors")
    if isinstance(errors, list) and errors:
        return ", ".join(str(e) for e in errors)
    if isinstance(errors, dict) and errors:
        return "; ".join(f"{k}: {v}" for k, v in errors.items())
    if isinstance(errors, str) and errors:
        return errors
    return f"HTTP {status_code}"


def message_name(subscription_name: str | None, send_after: Any) -> str:
    """Internal name shown in the OneSignal dashboard (Messages)."""
    name = (subscription_name or "Suscripción")[:30]
    local = send_after.astimezone().strftime("%d/%m/%y %H:%M")
    return f"Recordatorio: {name} - {local}"


class OneSignalClient:
    """HTTP client for OneSignal's notification scheduling API.

    ``submit()`` always returns a DeliveryResult; it never raises.
    """

    def __init__(
        self,
        credentials: CredentialSourceProtocol | None = None,
        settings: Settings | None = None,
        strategies: tuple[DeliveryStrategy, ...] = DELIVERY_STRATEGIES,
    ):
        self.settings = settings or get_settings()
        self.credentials = credentials or SettingsCredentialSource()
        self.strategies = strategies
        self.app_id = self.settings.onesignal_app_id
        self.rest_api_key: str | None = None
        self.refresh_credentials()

        if self.rest_api_key:
            logger.info("OneSignal REST API key loaded: %s", mask_key(self.rest_api_key))
        else:
            logger.warning("OneSignal REST API key not configured yet")

    def refresh_credentials(self) -> str | None:
        """Re-read the REST key (it may have been saved after startup)."""
        key = self.credentials.get_rest_api_key()
        if key and key != self.rest_api_key and self.rest_api_key is not None:
            logger.info("OneSignal REST API key updated: %s", mask_key(key))
        self.rest_api_key = key or None
        return self.rest_api_key

    def _url(self, strategy: DeliveryStrategy) -> str:
        if strategy.endpoint == "legacy":
            return self.settings.onesignal_legacy_api_url
        return self.settings.onesignal_api_url

    def build_payload(
        self,
        strategy: DeliveryStrategy,
        reminder: ScheduledReminder,
        subscriber_id: str,
        send_after: str,
        data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Build the request body for one strategy."""
        payload: dict[str, Any] = {"app_id": self.app_id}
        if strategy.target_channel:
            payload["target_channel"] = "push"
        payload[strategy.target_field] = [subscriber_id]
        payload["headings"] = {"en": reminder.title or DEFAULT_TITLE}
        payload["contents"] = {"en": reminder.body or DEFAULT_BODY}
        payload["send_after"] = send_after
        if strategy.endpoint == "current":
            payload["name"] = message_name(
                reminder.subscription_name, parse_instant(send_after)
            )
        payload["data"] = (
            data
            if data is not None
            else {
                "subscriptionId": reminder.subscription_id,
                "subscriptionName": reminder.subscription_name,
                "nextPayment": reminder.next_payment,
            }
        )
        return payload

    async def submit(
        self,
        reminder: ScheduledReminder,
        subscriber_id: str | None,
        data: dict[str, Any] | None = None,
    ) -> DeliveryResult:
        """Schedule one reminder for one subscriber.

        Args:
            reminder: The reminder to deliver at its ``notification_date``.
            subscriber_id: OneSignal subscription (player) id of the device.
            data: Custom payload data; defaults to the subscription metadata.

        Returns:
            DeliveryResult. Success means a 2xx answer carrying a notification id.
        """
        if not self.rest_api_key or not self.app_id:
            logger.error(
                "OneSignal credentials missing (app id or REST API key). "
                "Set SUBNOTIFY_ONESIGNAL_APP_ID / SUBNOTIFY_ONESIGNAL_REST_API_KEY."
            )
            return DeliveryResult.fail(
                DeliveryError.MISSING_CREDENTIAL, "OneSignal REST API key not configured"
            )

        if not subscriber_id:
            logger.error("No subscriber id given for reminder %s", reminder.id)
            return DeliveryResult.fail(
                DeliveryError.MISSING_SUBSCRIBER, "No push subscriber id for this device"
            )

        instant = parse_instant(reminder.notification_date)
        if instant is None:
            logger.error("Invalid notification date: %r", reminder.notification_date)
            return DeliveryResult.fail(
                DeliveryError.INVALID_DATE,
                f"Invalid notification date: {reminder.notification_date!r}",
            )

        now = now_utc()
        if instant < now:
            # OneSignal decides whether a past send_after is still accepted
            logger.warning(
                "Notification date %s is %ds in the past; OneSignal may reject it",
                instant.isoformat(),
                round((now - instant) / timedelta(seconds=1)),
            )

        send_after = instant.isoformat().replace("+00:00", "Z")

        try:
            async with httpx.AsyncClient(timeout=self.settings.request_timeout) as client:
                for index, strategy in enumerate(self.strategies):
                    payload = self.build_payload(
                        strategy, reminder, subscriber_id, send_after, data
                    )
                    logger.debug(
                        "Sending to OneSignal (%s): subscriber=%s... send_after=%s",
                        strategy.name,
                        subscriber_id[:8],
                        send_after,
                    )
                    resp = await client.post(
                        self._url(strategy),
                        json=payload,
                        headers={
                            "Content-Type": "application/json",
                            "Authorization": f"{strategy.auth_scheme} {self.rest_api_key}",
                        },
                    )
                    is_last = index == len(self.strategies) - 1
                    if resp.status_code in _FALLBACK_STATUSES and not is_last:
                        logger.info(
                            "OneSignal %s answered HTTP %d, trying next variant",
                            strategy.name,
                            resp.status_code,
                        )
                        continue
                    break

                return self._interpret(resp, strategy, reminder)

        except httpx.HTTPError as e:
            logger.error("OneSignal request failed for %s: %s", reminder.id, e)
            return DeliveryResult.fail(DeliveryError.TRANSPORT_FAILURE, str(e) or repr(e))
        except Exception as e:
            # Unreadable body, bad header value, ...
            logger.error("OneSignal response unusable for %s: %s", reminder.id, e)
            return DeliveryResult.fail(DeliveryError.TRANSPORT_FAILURE, str(e) or repr(e))

    def _interpret(
        self,
        resp: httpx.Response,
        strategy: DeliveryStrategy,
        reminder: ScheduledReminder,
    ) -> DeliveryResult:
        status = resp.status_code
        try:
            body = resp.json()
        except ValueError:
            # Empty or non-JSON body (HTML error page, 204, ...)
            body = None
        data: dict[str, Any] = body if isinstance(body, dict) else {}

        if 200 <= status < 300:
            remote_id = data.get("id")
            if remote_id:
                logger.info(
                    "Scheduled reminder %s via %s (OneSignal id %s)",
                    reminder.id,
                    strategy.name,
                    remote_id,
                )
                return DeliveryResult.ok(str(remote_id), status_code=status)

            error = (
                format_errors(data, status)
                if data.get("errors")
                else "OneSignal accepted the request but returned no notification id"
            )
            logger.error("OneSignal returned no id for %s: %s", reminder.id, error)
            return DeliveryResult.fail(DeliveryError.REMOTE_REJECTED, error, status_code=status)

        error = format_errors(data, status)
        logger.error(
            "OneSignal rejected reminder %s via %s (HTTP %d): %s",
            reminder.id,
            strategy.name,
            status,
            error,
        )
        return DeliveryResult.fail(DeliveryError.REMOTE_REJECTED, error, status_code=status)

    async def submit_test(self, subscriber_id: str | None) -> DeliveryResult:
        """Schedule a test notification one minute from now."""
        reminder = ScheduledReminder(
            id="test",
            notification_date=(now_utc() + timedelta(minutes=1)).isoformat(),
            title=TEST_TITLE,
            body=TEST_BODY,
        )
        return await self.submit(reminder, subscriber_id, data={"test": True})
