# Push setup schemas.
# Created: 2026-03-03

from __future__ import annotations

from pydantic import BaseModel, Field


class RegisterSubscriberRequest(BaseModel):
    """OneSignal subscription id reported by the device SDK."""

    subscriber_id: str = Field(..., min_length=1, max_length=200)


class SaveRestApiKeyRequest(BaseModel):
    """REST API key copied from OneSignal > Settings > Keys & IDs."""

    key: str = Field(..., min_length=1, max_length=500)


class PushStatusResponse(BaseModel):
    """Whether this host can schedule pushes."""

    subscribed: bool
    has_rest_api_key: bool
    has_app_id: bool


class PushTestResponse(BaseModel):
    """Result of scheduling the one-minute test push."""

    ok: bool
    notification_id: str | None = None
    error: str | None = None
