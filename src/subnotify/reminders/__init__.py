"""Reminder rules, models and the reminder set builder.

Usage:
    from subnotify.reminders import Subscription, build_reminders

    sub = Subscription(
        id="netflix",
        name="Netflix",
        next_payment="2026-03-15T00:00:00",
        notifications=["3days_09:00", "sameday"],
    )
    reminders = build_reminders(sub)
"""

from subnotify.reminders.builder import build_reminders
from subnotify.reminders.models import (
    DeliveryError,
    DeliveryResult,
    ReconcileResult,
    ScheduledReminder,
    Subscription,
    parse_instant,
)
from subnotify.reminders.rules import (
    AbsoluteDate,
    DaysBefore,
    ReminderRule,
    SameDay,
    evaluate,
    parse_specifier,
)

__all__ = [
    # Rules
    "AbsoluteDate",
    "DaysBefore",
    "ReminderRule",
    "SameDay",
    "evaluate",
    "parse_specifier",
    # Models
    "DeliveryError",
    "DeliveryResult",
    "ReconcileResult",
    "ScheduledReminder",
    "Subscription",
    "parse_instant",
    # Builder
    "build_reminders",
]
