"""Reminder data models.

Created: 2026-03-02

These models define the data flowing through reminder scheduling:
- Subscription (read-only input owned by the application)
- ScheduledReminder (one persisted reminder per rule per subscription)
- DeliveryResult (outcome of one OneSignal submission)
- ReconcileResult (outcome of one reconciliation pass)

Design notes:
- Dataclasses with explicit to_dict/from_dict (camelCase on disk, the
  format the application already writes)
- Timestamps are ISO 8601 strings when persisted; parse_instant() turns
  them into aware UTC datetimes for comparisons
- Unknown persisted keys survive a load/save cycle through ``extra``
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

# ============================================================================
# Enums
# ============================================================================


class DeliveryError(str, Enum):
    """Why a reminder could not be scheduled."""

    INVALID_SPECIFIER = "invalid_specifier"  # Rule not recognized (dropped by the builder)
    MISSING_CREDENTIAL = "missing_credential"  # No REST API key / app id
    MISSING_SUBSCRIBER = "missing_subscriber"  # Device not subscribed to push
    INVALID_DATE = "invalid_date"  # notificationDate does not parse
    REMOTE_REJECTED = "remote_rejected"  # Provider refused or returned no id
    TRANSPORT_FAILURE = "transport_failure"  # Network error or unreadable body


# ============================================================================
# Helper Functions
# ============================================================================


def now_utc() -> datetime:
    """Get the current instant as an aware UTC datetime."""
    return datetime.now(UTC)


def now_iso() -> str:
    """Get current UTC time as ISO 8601 string."""
    return now_utc().isoformat()


def parse_instant(value: Any) -> datetime | None:
    """Parse a datetime or ISO 8601 string into an aware UTC instant.

    Naive values are read as local wall-clock time. Returns None for
    anything that is not a valid timestamp.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        try:
            dt = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None

    try:
        return dt.astimezone(UTC)
    except (OverflowError, OSError, ValueError):
        return None


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


# ============================================================================
# Data Models
# ============================================================================


@dataclass
class Subscription:
    """
    A tracked subscription, as stored by the application.

    Attributes:
        id: Application-side identifier
        name: Display name (e.g., "Netflix")
        next_payment: Next payment date (datetime or ISO string)
        notifications: Reminder specifiers (e.g., ["3days_09:00", "sameday"])
    """

    id: str
    name: str = ""
    next_payment: datetime | str | None = None
    notifications: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Subscription:
        """Create from the application's camelCase dictionary."""
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name") or "",
            next_payment=data.get("nextPayment", data.get("next_payment")),
            notifications=list(data.get("notifications") or []),
        )


_REMINDER_KEYS = (
    "id",
    "subscriptionId",
    "subscriptionName",
    "nextPayment",
    "notificationDate",
    "title",
    "body",
    "sent",
    "sentAt",
)


@dataclass
class ScheduledReminder:
    """
    A reminder waiting to be handed to OneSignal, or already handed over.

    Attributes:
        id: Unique identifier
        subscription_id: Owning subscription (no referential integrity)
        subscription_name: Name at build time, used in the message
        notification_date: When the push should be delivered (ISO 8601)
        title: Notification heading
        body: Notification text
        next_payment: Payment date the reminder refers to (sent as metadata)
        sent: True once OneSignal accepted it and returned an id
        sent_at: When it was accepted (ISO 8601)
        extra: Unknown keys found in storage, written back unchanged
    """

    id: str
    subscription_id: str = ""
    subscription_name: str = ""
    notification_date: str = ""
    title: str = ""
    body: str = ""
    next_payment: str | None = None
    sent: bool = False
    sent_at: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def mark_sent(self, when: datetime | None = None) -> None:
        self.sent = True
        self.sent_at = (when or now_utc()).isoformat()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = dict(self.extra)
        data.update(
            {
                "id": self.id,
                "subscriptionId": self.subscription_id,
                "subscriptionName": self.subscription_name,
                "nextPayment": self.next_payment,
                "notificationDate": self.notification_date,
                "title": self.title,
                "body": self.body,
                "sent": self.sent,
                "sentAt": self.sent_at,
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScheduledReminder:
        """Create from dictionary."""
        return cls(
            id=str(data.get("id", "")),
            subscription_id=str(data.get("subscriptionId") or ""),
            subscription_name=data.get("subscriptionName") or "",
            notification_date=_to_text(data.get("notificationDate")) or "",
            title=data.get("title") or "",
            body=data.get("body") or "",
            next_payment=_to_text(data.get("nextPayment")),
            sent=data.get("sent") is True,
            sent_at=_to_text(data.get("sentAt")),
            extra={k: v for k, v in data.items() if k not in _REMINDER_KEYS},
        )


@dataclass
class DeliveryResult:
    """Outcome of one submission to OneSignal. Never persisted."""

    success: bool
    remote_id: str | None = None
    error: str | None = None
    kind: DeliveryError | None = None
    status_code: int | None = None

    @classmethod
    def ok(cls, remote_id: str, status_code: int | None = None) -> DeliveryResult:
        return cls(success=True, remote_id=remote_id, status_code=status_code)

    @classmethod
    def fail(
        cls, kind: DeliveryError, error: str, status_code: int | None = None
    ) -> DeliveryResult:
        return cls(success=False, error=error, kind=kind, status_code=status_code)


@dataclass
class ReconcileResult:
    """Outcome of one reconciliation pass."""

    sent: int = 0
    pending: int = 0  # candidates attempted this pass
    error: str | None = None

    @property
    def failed(self) -> int:
        return self.pending - self.sent

    def to_dict(self) -> dict[str, Any]:
        return {"sent": self.sent, "pending": self.pending, "error": self.error}
