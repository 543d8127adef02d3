# Push router — device registration, REST key, test notification.
# Created: 2026-03-03

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from subnotify.api.v1.schemas.common import OkResponse
from subnotify.api.v1.schemas.push import (
    PushStatusResponse,
    PushTestResponse,
    RegisterSubscriberRequest,
    SaveRestApiKeyRequest,
)
from subnotify.delivery.credentials import SettingsCredentialSource
from subnotify.push import StoredPushSubscription

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Push"])


def _stored_push():
    from subnotify.queue import get_reconciliation_queue

    push = get_reconciliation_queue().push
    if not isinstance(push, StoredPushSubscription):
        raise HTTPException(status_code=409, detail="Subscriber id is managed elsewhere")
    return push


def _credential_source():
    from subnotify.queue import get_reconciliation_queue

    credentials = get_reconciliation_queue().client.credentials
    if not isinstance(credentials, SettingsCredentialSource):
        raise HTTPException(status_code=409, detail="REST API key is managed elsewhere")
    return credentials


@router.get("/push/status", response_model=PushStatusResponse)
async def push_status():
    """Report whether a subscriber and credentials are available."""
    from subnotify.queue import get_reconciliation_queue

    queue = get_reconciliation_queue()
    return PushStatusResponse(
        subscribed=await queue.push.get_subscriber_id() is not None,
        has_rest_api_key=queue.client.refresh_credentials() is not None,
        has_app_id=bool(queue.client.app_id),
    )


@router.put("/push/subscriber", response_model=OkResponse)
async def register_subscriber(body: RegisterSubscriberRequest):
    """Store the OneSignal subscription id of this device."""
    push = _stored_push()
    try:
        push.register(body.subscriber_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return OkResponse()


@router.delete("/push/subscriber", response_model=OkResponse)
async def unregister_subscriber():
    """Forget the stored subscription id."""
    push = _stored_push()
    if not push.unregister():
        raise HTTPException(status_code=404, detail="No subscriber registered")
    return OkResponse()


@router.put("/push/rest-api-key", response_model=OkResponse)
async def save_rest_api_key(body: SaveRestApiKeyRequest):
    """Save the OneSignal REST API key for later passes."""
    credentials = _credential_source()
    try:
        credentials.save_rest_api_key(body.key)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return OkResponse()


@router.delete("/push/rest-api-key", response_model=OkResponse)
async def clear_rest_api_key():
    """Remove a REST API key saved at runtime."""
    credentials = _credential_source()
    if not credentials.clear_rest_api_key():
        raise HTTPException(status_code=404, detail="No saved REST API key")
    return OkResponse()


@router.post("/push/test", response_model=PushTestResponse)
async def send_test_notification():
    """Schedule a test push one minute from now."""
    from subnotify.queue import get_reconciliation_queue

    result = await get_reconciliation_queue().send_test_notification()
    return PushTestResponse(ok=result.success, notification_id=result.remote_id, error=result.error)
