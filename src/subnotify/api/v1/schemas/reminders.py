# Reminder schemas.
# Created: 2026-03-03

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from subnotify.reminders.models import ReconcileResult, ScheduledReminder, Subscription


class ReminderInfo(BaseModel):
    """A single persisted reminder."""

    id: str
    subscription_id: str
    subscription_name: str
    notification_date: str
    title: str
    body: str
    sent: bool = False
    sent_at: str | None = None

    @classmethod
    def from_reminder(cls, r: ScheduledReminder) -> ReminderInfo:
        return cls(
            id=r.id,
            subscription_id=r.subscription_id,
            subscription_name=r.subscription_name,
            notification_date=r.notification_date,
            title=r.title,
            body=r.body,
            sent=r.sent,
            sent_at=r.sent_at,
        )


class ReminderListResponse(BaseModel):
    """All persisted reminders."""

    reminders: list[ReminderInfo]
    pending: int = 0


class SubscriptionRequest(BaseModel):
    """A saved subscription, in the application's camelCase shape."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    name: str = ""
    next_payment: str | None = Field(default=None, alias="nextPayment")
    notifications: list[str] = Field(default_factory=list)

    def to_subscription(self) -> Subscription:
        return Subscription(
            id=self.id,
            name=self.name,
            next_payment=self.next_payment,
            notifications=list(self.notifications),
        )


class ReconcileResponse(BaseModel):
    """Outcome of one reconciliation pass."""

    sent: int = 0
    pending: int = 0
    error: str | None = None

    @classmethod
    def from_result(cls, result: ReconcileResult) -> ReconcileResponse:
        return cls(sent=result.sent, pending=result.pending, error=result.error)


class QueueRemindersResponse(BaseModel):
    """Reminders built for a subscription, plus the pass result if one ran."""

    queued: int
    reminders: list[ReminderInfo]
    result: ReconcileResponse | None = None
