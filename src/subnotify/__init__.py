"""subnotify - subscription payment reminders delivered through OneSignal.

Usage:
    from subnotify import Subscription, get_reconciliation_queue

    queue = get_reconciliation_queue()
    result = await queue.schedule_subscription(
        Subscription(
            id="netflix",
            name="Netflix",
            next_payment="2026-03-15T00:00:00",
            notifications=["3days_09:00", "sameday_08:30"],
        )
    )
    print(result.sent, result.pending, result.error)
"""

from subnotify.queue import (
    ReconciliationQueue,
    get_reconciliation_queue,
    reset_reconciliation_queue,
)
from subnotify.reminders import (
    ReconcileResult,
    ScheduledReminder,
    Subscription,
    build_reminders,
    evaluate,
)

__all__ = [
    "ReconcileResult",
    "ReconciliationQueue",
    "ScheduledReminder",
    "Subscription",
    "build_reminders",
    "evaluate",
    "get_reconciliation_queue",
    "reset_reconciliation_queue",
]
