# Reminders router — list, queue, reconcile.
# Created: 2026-03-03

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

from fastapi import APIRouter, Query

from subnotify.api.v1.schemas.reminders import (
    QueueRemindersResponse,
    ReconcileResponse,
    ReminderInfo,
    ReminderListResponse,
    SubscriptionRequest,
)
from subnotify.reminders.builder import build_reminders

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Reminders"])

# Reconciliation passes must not overlap
_pass_lock = asyncio.Lock()


@router.get("/reminders", response_model=ReminderListResponse)
async def list_reminders():
    """Get all persisted reminders, sent and pending."""
    from subnotify.queue import get_reconciliation_queue

    queue = get_reconciliation_queue()
    reminders = queue.list_reminders()

    return ReminderListResponse(
        reminders=[ReminderInfo.from_reminder(r) for r in reminders],
        pending=sum(1 for r in reminders if not r.sent),
    )


@router.post("/reminders", response_model=QueueRemindersResponse)
async def queue_reminders(
    body: SubscriptionRequest,
    schedule_now: bool = Query(False, description="Run a reconciliation pass right away"),
):
    """Build reminders for a saved subscription and add them to the queue."""
    from subnotify.queue import get_reconciliation_queue

    queue = get_reconciliation_queue()
    subscription = body.to_subscription()
    reminders = build_reminders(
        subscription,
        lead=timedelta(seconds=queue.settings.schedule_lead_seconds),
    )

    async with _pass_lock:
        queued = queue.enqueue(subscription.id, reminders)
        result = await queue.reconcile() if schedule_now else None

    return QueueRemindersResponse(
        queued=queued,
        reminders=[ReminderInfo.from_reminder(r) for r in reminders],
        result=ReconcileResponse.from_result(result) if result is not None else None,
    )


@router.post("/reminders/reconcile", response_model=ReconcileResponse)
async def reconcile_reminders():
    """Hand every due reminder to OneSignal."""
    from subnotify.queue import get_reconciliation_queue

    queue = get_reconciliation_queue()
    async with _pass_lock:
        result = await queue.reconcile()

    return ReconcileResponse.from_result(result)
