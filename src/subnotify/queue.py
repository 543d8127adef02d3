"""Reconciliation queue.

Created: 2026-03-02

Owns the persisted list of ScheduledReminder entries and hands the due ones
to OneSignal:
- enqueue() merges freshly built reminders into the list
- reconcile() submits every unsent, still-due reminder, marks the accepted
  ones as sent and prunes old sent entries
- schedule_subscription() does build + enqueue + reconcile for one subscription

A pass reads the whole list, mutates the in-memory copy and writes the whole
list back. Passes must not overlap; callers await one before starting the next.
Failed reminders stay unsent and are picked up again by the next pass.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta

from subnotify.config import Settings, get_settings
from subnotify.delivery.credentials import SettingsCredentialSource
from subnotify.delivery.onesignal import OneSignalClient
from subnotify.push import PushSubscriptionProtocol, StoredPushSubscription
from subnotify.reminders.builder import build_reminders
from subnotify.reminders.models import (
    DeliveryError,
    DeliveryResult,
    ReconcileResult,
    ScheduledReminder,
    Subscription,
    now_utc,
    parse_instant,
)
from subnotify.store import FileKeyValueStore, ReminderRepository

logger = logging.getLogger(__name__)

NO_SUBSCRIBER_ERROR = (
    "This device is not subscribed to push notifications in OneSignal. "
    "Open the app over https, go to Settings > Notifications and subscribe."
)


class ReconciliationQueue:
    """Drives persisted reminders through the OneSignal client."""

    def __init__(
        self,
        repository: ReminderRepository,
        client: OneSignalClient,
        push: PushSubscriptionProtocol,
        settings: Settings | None = None,
    ):
        self.repository = repository
        self.client = client
        self.push = push
        self.settings = settings or get_settings()

    # =========================================================================
    # Enqueue
    # =========================================================================

    def list_reminders(self) -> list[ScheduledReminder]:
        return self.repository.load()

    def enqueue(self, subscription_id: str, reminders: list[ScheduledReminder]) -> int:
        """Merge the reminders just built for one subscription into the persisted list.

        Existing ids are left as stored. Unsent reminders of ``subscription_id``
        that are not in ``reminders`` any more are dropped, so an empty list
        clears everything still pending for that subscription.

        Returns:
            Number of reminders added.
        """
        stored = self.repository.load()
        new_ids = {r.id for r in reminders}

        merged = [
            r
            for r in stored
            if r.sent or r.subscription_id != subscription_id or r.id in new_ids
        ]
        known = {r.id for r in merged}
        added: list[ScheduledReminder] = []
        for r in reminders:
            if r.id not in known:
                known.add(r.id)
                added.append(r)
        merged.extend(added)

        self.repository.save(merged)
        logger.info(
            "Queued %d new reminder(s), dropped %d stale",
            len(added),
            len(stored) - (len(merged) - len(added)),
        )
        return len(added)

    async def schedule_subscription(self, subscription: Subscription) -> ReconcileResult:
        """Build reminders for a saved subscription, queue them and run a pass."""
        reminders = build_reminders(
            subscription,
            lead=timedelta(seconds=self.settings.schedule_lead_seconds),
        )
        self.enqueue(subscription.id, reminders)
        if not reminders:
            return ReconcileResult()
        return await self.reconcile()

    # =========================================================================
    # Reconciliation
    # =========================================================================

    def _is_due(self, reminder: ScheduledReminder, now: datetime) -> bool:
        if reminder.sent:
            return False
        instant = parse_instant(reminder.notification_date)
        if instant is None:
            logger.debug("Skipping %s: invalid date %r", reminder.id, reminder.notification_date)
            return False
        # Up to due_tolerance_seconds in the past still counts as due
        if instant < now - timedelta(seconds=self.settings.due_tolerance_seconds):
            logger.debug("Skipping %s: already elapsed (%s)", reminder.id, instant.isoformat())
            return False
        return True

    def _prune(self, reminders: list[ScheduledReminder], now: datetime) -> list[ScheduledReminder]:
        cutoff = now - timedelta(days=self.settings.sent_retention_days)
        kept = []
        for r in reminders:
            if r.sent:
                sent_at = parse_instant(r.sent_at)
                if sent_at is not None and sent_at <= cutoff:
                    continue
            kept.append(r)
        return kept

    async def _resolve_subscriber(self) -> str | None:
        for attempt in range(2):
            if attempt:
                await asyncio.sleep(self.settings.subscriber_retry_delay)
            try:
                subscriber_id = await self.push.get_subscriber_id()
            except Exception as e:
                logger.warning("Could not read push subscriber id: %s", e)
                subscriber_id = None
            if subscriber_id:
                return subscriber_id
        return None

    async def reconcile(self) -> ReconcileResult:
        """Run one reconciliation pass.

        Returns:
            ReconcileResult with the number sent, the number attempted and,
            when nothing could be sent, the first failure reason.
        """
        if not self.client.refresh_credentials():
            logger.error(
                "OneSignal REST API key not configured. "
                "Set SUBNOTIFY_ONESIGNAL_REST_API_KEY or save it via PUT /api/v1/push/rest-api-key"
            )
            return ReconcileResult()
        if not self.client.app_id:
            logger.error("OneSignal app id not configured. Set SUBNOTIFY_ONESIGNAL_APP_ID")
            return ReconcileResult()

        reminders = self.repository.load()
        now = now_utc()
        candidates = [r for r in reminders if self._is_due(r, now)]
        logger.info(
            "Reconciling: %d stored, %d due for OneSignal", len(reminders), len(candidates)
        )

        if not candidates:
            return ReconcileResult()

        subscriber_id = await self._resolve_subscriber()
        if not subscriber_id:
            logger.error("No push subscriber id; %d reminder(s) left pending", len(candidates))
            return ReconcileResult(sent=0, pending=len(candidates), error=NO_SUBSCRIBER_ERROR)

        sent = 0
        first_error: str | None = None
        for reminder in candidates:
            logger.info(
                "Scheduling %s - %s", reminder.subscription_name, reminder.notification_date
            )
            result = await self.client.submit(reminder, subscriber_id)
            if result.success:
                reminder.mark_sent()
                sent += 1
            elif first_error is None:
                first_error = result.error or "Unknown OneSignal error"

        kept = self._prune(reminders, now_utc())
        self.repository.save(kept)

        logger.info(
            "Reconciliation done: %d/%d scheduled, %d stored (%d pending)",
            sent,
            len(candidates),
            len(kept),
            sum(1 for r in kept if not r.sent),
        )
        return ReconcileResult(
            sent=sent,
            pending=len(candidates),
            error=first_error if sent == 0 else None,
        )

    async def send_test_notification(self) -> DeliveryResult:
        """Schedule a test push one minute ahead. Nothing is persisted."""
        self.client.refresh_credentials()
        subscriber_id = await self._resolve_subscriber()
        if not subscriber_id:
            return DeliveryResult.fail(DeliveryError.MISSING_SUBSCRIBER, NO_SUBSCRIBER_ERROR)
        return await self.client.submit_test(subscriber_id)


# Singleton
_queue_instance: ReconciliationQueue | None = None


def get_reconciliation_queue() -> ReconciliationQueue:
    """Get or create the process-wide queue wired to the file store."""
    global _queue_instance
    if _queue_instance is None:
        store = FileKeyValueStore()
        _queue_instance = ReconciliationQueue(
            repository=ReminderRepository(store),
            client=OneSignalClient(SettingsCredentialSource(store)),
            push=StoredPushSubscription(store),
        )
    return _queue_instance


def reset_reconciliation_queue() -> None:
    """Reset the queue singleton (for testing)."""
    global _queue_instance
    _queue_instance = None
