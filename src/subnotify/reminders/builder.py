# Reminder builder — turn a saved subscription into ScheduledReminder entries.
# Created: 2026-03-02

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from subnotify.reminders.models import ScheduledReminder, Subscription, now_utc, parse_instant
from subnotify.reminders.rules import evaluate

logger = logging.getLogger(__name__)

DEFAULT_NAME = "Suscripción"
TITLE_PREFIX = "Recordatorio: "

# Reminders this close to "now" would fire before OneSignal schedules them
DEFAULT_LEAD = timedelta(seconds=5)


def _reference_date(value: datetime | str | None) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def reminder_title(name: str | None) -> str:
    return TITLE_PREFIX + (name or DEFAULT_NAME)


def reminder_body(name: str | None) -> str:
    return f'Tu suscripción "{name or ""}" vence pronto'


def build_reminders(
    subscription: Subscription,
    now: datetime | None = None,
    lead: timedelta = DEFAULT_LEAD,
) -> list[ScheduledReminder]:
    """Build one reminder per valid, still-future specifier.

    Args:
        subscription: The subscription being saved.
        now: Current instant (defaults to the wall clock).
        lead: Results at or before ``now + lead`` are dropped.

    Returns:
        New unsent reminders, in specifier order. Invalid specifiers are
        skipped silently.
    """
    if not subscription.notifications:
        return []

    reference = _reference_date(subscription.next_payment)
    if reference is None:
        logger.debug("Subscription %s has no usable next payment date", subscription.id)
        return []

    cutoff = parse_instant(now or now_utc()) + lead
    next_payment = reference.isoformat()

    reminders: list[ScheduledReminder] = []
    seen: set[str] = set()
    for specifier in subscription.notifications:
        when = evaluate(reference, specifier)
        if when is None:
            logger.debug("Skipping unrecognized reminder rule %r", specifier)
            continue

        instant = parse_instant(when)
        if instant is None or instant <= cutoff:
            logger.debug("Skipping elapsed reminder %r (%s)", specifier, when.isoformat())
            continue

        reminder_id = f"{subscription.id}_{specifier}_{int(instant.timestamp())}"
        if reminder_id in seen:
            logger.debug("Skipping repeated reminder rule %r", specifier)
            continue
        seen.add(reminder_id)

        reminders.append(
            ScheduledReminder(
                id=reminder_id,
                subscription_id=subscription.id,
                subscription_name=subscription.name,
                notification_date=when.isoformat(),
                title=reminder_title(subscription.name),
                body=reminder_body(subscription.name),
                next_payment=next_payment,
            )
        )

    logger.info(
        "Built %d reminder(s) for %s from %d rule(s)",
        len(reminders),
        subscription.name or subscription.id,
        len(subscription.notifications),
    )
    return reminders
