# Tests for delivery/onesignal.py
# Created: 2026-03-02

import json
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from subnotify.config import Settings
from subnotify.delivery.credentials import mask_key, strip_auth_prefix
from subnotify.delivery.onesignal import (
    DELIVERY_STRATEGIES,
    OneSignalClient,
    format_errors,
)
from subnotify.reminders.models import DeliveryError, ScheduledReminder

SUBSCRIBER = "0f1e2d3c-4b5a-6978-8796-a5b4c3d2e1f0"


class FakeCredentials:
    def __init__(self, key="os_v2_app_testkey"):
        self.key = key
        self.calls = 0

    def get_rest_api_key(self):
        self.calls += 1
        return self.key


@pytest.fixture
def settings(tmp_path):
    return Settings(onesignal_app_id="app-123", data_dir=tmp_path)


@pytest.fixture
def client(settings):
    return OneSignalClient(credentials=FakeCredentials(), settings=settings)


@pytest.fixture
def reminder():
    when = datetime.now(UTC) + timedelta(days=2)
    return ScheduledReminder(
        id="sub-1_3days_09:00_1770000000",
        subscription_id="sub-1",
        subscription_name="Netflix",
        notification_date=when.isoformat(),
        title="Recordatorio: Netflix",
        body='Tu suscripción "Netflix" vence pronto',
        next_payment=(when + timedelta(days=3)).isoformat(),
    )


def _response(status_code, body):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = body
    return resp


def _mock_http(*responses, side_effect=None):
    mock_client = AsyncMock()
    if side_effect is not None:
        mock_client.post.side_effect = side_effect
    else:
        mock_client.post.side_effect = list(responses)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    return mock_client


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestFormatErrors:
    def test_list(self):
        assert format_errors({"errors": ["a", "b"]}, 400) == "a, b"

    def test_dict(self):
        assert format_errors({"errors": {"invalid_ids": "x"}}, 400) == "invalid_ids: x"

    def test_string(self):
        assert format_errors({"errors": "bad app"}, 400) == "bad app"

    def test_missing(self):
        assert format_errors({}, 502) == "HTTP 502"


class TestCredentialsHelpers:
    @pytest.mark.parametrize(
        "raw", ["abc123", "Key abc123", "Basic abc123", "Bearer abc123", "  abc123  "]
    )
    def test_strip_auth_prefix(self, raw):
        assert strip_auth_prefix(raw) == "abc123"

    def test_strip_empty(self):
        assert strip_auth_prefix("") is None
        assert strip_auth_prefix("Key ") is None

    def test_mask(self):
        assert mask_key("os_v2_app_abcdef") == "os_v2_ap..."
        assert mask_key(None) == "<none>"


# ---------------------------------------------------------------------------
# Payload
# ---------------------------------------------------------------------------


class TestBuildPayload:
    def test_current_endpoint(self, client, reminder):
        payload = client.build_payload(
            DELIVERY_STRATEGIES[0], reminder, SUBSCRIBER, "2026-04-01T09:00:00Z"
        )
        assert payload["app_id"] == "app-123"
        assert payload["target_channel"] == "push"
        assert payload["include_subscription_ids"] == [SUBSCRIBER]
        assert payload["headings"] == {"en": "Recordatorio: Netflix"}
        assert payload["send_after"] == "2026-04-01T09:00:00Z"
        assert payload["name"].startswith("Recordatorio: Netflix - ")
        assert payload["data"]["subscriptionId"] == "sub-1"

    def test_legacy_endpoint(self, client, reminder):
        payload = client.build_payload(
            DELIVERY_STRATEGIES[1], reminder, SUBSCRIBER, "2026-04-01T09:00:00Z"
        )
        assert payload["include_player_ids"] == [SUBSCRIBER]
        assert "include_subscription_ids" not in payload
        assert "target_channel" not in payload
        assert "name" not in payload

    def test_default_texts(self, client):
        bare = ScheduledReminder(id="r", notification_date="2026-04-01T09:00:00Z")
        payload = client.build_payload(
            DELIVERY_STRATEGIES[0], bare, SUBSCRIBER, "2026-04-01T09:00:00Z"
        )
        assert payload["headings"]["en"] == "Recordatorio de Suscripción"
        assert payload["contents"]["en"] == "Tu suscripción vence pronto"

    def test_custom_data(self, client, reminder):
        payload = client.build_payload(
            DELIVERY_STRATEGIES[0], reminder, SUBSCRIBER, "2026-04-01T09:00:00Z", {"test": True}
        )
        assert payload["data"] == {"test": True}


# ---------------------------------------------------------------------------
# submit()
# ---------------------------------------------------------------------------


class TestSubmit:
    async def test_success_on_current_endpoint(self, client, reminder):
        mock_client = _mock_http(_response(200, {"id": "notif-1", "recipients": 1}))
        with patch("httpx.AsyncClient", return_value=mock_client):
            result = await client.submit(reminder, SUBSCRIBER)

        assert result.success is True
        assert result.remote_id == "notif-1"
        assert mock_client.post.call_count == 1

        url = mock_client.post.call_args.args[0]
        headers = mock_client.post.call_args.kwargs["headers"]
        body = mock_client.post.call_args.kwargs["json"]
        assert url == "https://api.onesignal.com/notifications?c=push"
        assert headers["Authorization"] == "Key os_v2_app_testkey"
        assert body["send_after"].endswith("Z")

    async def test_falls_back_in_order(self, client, reminder):
        mock_client = _mock_http(
            _response(401, {"errors": ["Access denied"]}),
            _response(403, {"errors": ["Forbidden"]}),
            _response(200, {"id": "notif-legacy"}),
        )
        with patch("httpx.AsyncClient", return_value=mock_client):
            result = await client.submit(reminder, SUBSCRIBER)

        assert result.success is True
        assert result.remote_id == "notif-legacy"
        calls = mock_client.post.call_args_list
        assert [c.kwargs["headers"]["Authorization"].split()[0] for c in calls] == [
            "Key",
            "Basic",
            "Bearer",
        ]
        assert calls[1].args[0] == "https://onesignal.com/api/v1/notifications"
        assert calls[1].kwargs["json"]["include_player_ids"] == [SUBSCRIBER]

    async def test_all_variants_rejected(self, client, reminder):
        mock_client = _mock_http(
            _response(400, {"errors": ["bad"]}),
            _response(401, {"errors": ["bad"]}),
            _response(401, {"errors": ["Invalid REST API key"]}),
        )
        with patch("httpx.AsyncClient", return_value=mock_client):
            result = await client.submit(reminder, SUBSCRIBER)

        assert result.success is False
        assert result.kind == DeliveryError.REMOTE_REJECTED
        assert result.error == "Invalid REST API key"
        assert result.status_code == 401
        assert mock_client.post.call_count == 3

    async def test_server_error_does_not_fall_back(self, client, reminder):
        mock_client = _mock_http(_response(500, {}))
        with patch("httpx.AsyncClient", return_value=mock_client):
            result = await client.submit(reminder, SUBSCRIBER)

        assert result.success is False
        assert result.error == "HTTP 500"
        assert mock_client.post.call_count == 1

    async def test_2xx_without_id_is_failure(self, client, reminder):
        body = {"id": "", "errors": ["All included players are not subscribed"]}
        mock_client = _mock_http(_response(200, body))
        with patch("httpx.AsyncClient", return_value=mock_client):
            result = await client.submit(reminder, SUBSCRIBER)

        assert result.success is False
        assert result.kind == DeliveryError.REMOTE_REJECTED
        assert "not subscribed" in result.error

    async def test_2xx_without_id_or_errors(self, client, reminder):
        mock_client = _mock_http(_response(200, {}))
        with patch("httpx.AsyncClient", return_value=mock_client):
            result = await client.submit(reminder, SUBSCRIBER)

        assert result.success is False
        assert "no notification id" in result.error

    async def test_dict_errors(self, client, reminder):
        mock_client = _mock_http(_response(422, {"errors": {"invalid_player_ids": [SUBSCRIBER]}}))
        with patch("httpx.AsyncClient", return_value=mock_client):
            result = await client.submit(reminder, SUBSCRIBER)

        assert result.success is False
        assert result.error.startswith("invalid_player_ids: ")

    async def test_transport_error(self, client, reminder):
        mock_client = _mock_http(side_effect=httpx.ConnectError("connection refused"))
        with patch("httpx.AsyncClient", return_value=mock_client):
            result = await client.submit(reminder, SUBSCRIBER)

        assert result.success is False
        assert result.kind == DeliveryError.TRANSPORT_FAILURE
        assert "connection refused" in result.error

    async def test_empty_2xx_body(self, client, reminder):
        resp = _response(200, None)
        resp.json.side_effect = json.JSONDecodeError("Expecting value", "", 0)
        mock_client = _mock_http(resp)
        with patch("httpx.AsyncClient", return_value=mock_client):
            result = await client.submit(reminder, SUBSCRIBER)

        assert result.success is False
        assert result.kind == DeliveryError.REMOTE_REJECTED
        assert result.status_code == 200
        assert "no notification id" in result.error

    async def test_html_error_page_keeps_status(self, client, reminder):
        resp = _response(502, None)
        resp.json.side_effect = json.JSONDecodeError("Expecting value", "<html>", 0)
        mock_client = _mock_http(resp)
        with patch("httpx.AsyncClient", return_value=mock_client):
            result = await client.submit(reminder, SUBSCRIBER)

        assert result.kind == DeliveryError.REMOTE_REJECTED
        assert result.status_code == 502
        assert result.error == "HTTP 502"
        assert mock_client.post.call_count == 1

    async def test_malformed_key_never_succeeds(self, settings, reminder):
        client = OneSignalClient(credentials=FakeCredentials("not\na-key"), settings=settings)
        mock_client = _mock_http(
            side_effect=[
                _response(400, {"errors": ["Invalid"]}),
                _response(401, {"errors": ["Invalid"]}),
                _response(401, {"errors": ["Invalid"]}),
            ]
        )
        with patch("httpx.AsyncClient", return_value=mock_client):
            result = await client.submit(reminder, SUBSCRIBER)

        assert result.success is False

    async def test_past_date_is_still_sent(self, client, reminder):
        reminder.notification_date = (datetime.now(UTC) - timedelta(seconds=30)).isoformat()
        mock_client = _mock_http(_response(200, {"id": "late"}))
        with patch("httpx.AsyncClient", return_value=mock_client):
            result = await client.submit(reminder, SUBSCRIBER)

        assert result.success is True
        assert mock_client.post.call_count == 1


class TestPreconditions:
    async def test_missing_key(self, settings, reminder):
        client = OneSignalClient(credentials=FakeCredentials(None), settings=settings)
        with patch("httpx.AsyncClient") as mock_cls:
            result = await client.submit(reminder, SUBSCRIBER)

        assert result.kind == DeliveryError.MISSING_CREDENTIAL
        assert result.error == "OneSignal REST API key not configured"
        mock_cls.assert_not_called()

    async def test_missing_app_id(self, tmp_path, reminder):
        client = OneSignalClient(
            credentials=FakeCredentials(), settings=Settings(data_dir=tmp_path)
        )
        with patch("httpx.AsyncClient") as mock_cls:
            result = await client.submit(reminder, SUBSCRIBER)

        assert result.kind == DeliveryError.MISSING_CREDENTIAL
        mock_cls.assert_not_called()

    async def test_missing_subscriber(self, client, reminder):
        with patch("httpx.AsyncClient") as mock_cls:
            result = await client.submit(reminder, None)

        assert result.kind == DeliveryError.MISSING_SUBSCRIBER
        mock_cls.assert_not_called()

    async def test_invalid_date(self, client, reminder):
        reminder.notification_date = "someday"
        with patch("httpx.AsyncClient") as mock_cls:
            result = await client.submit(reminder, SUBSCRIBER)

        assert result.kind == DeliveryError.INVALID_DATE
        mock_cls.assert_not_called()


class TestRefreshAndTest:
    def test_refresh_picks_up_new_key(self, settings):
        creds = FakeCredentials(None)
        client = OneSignalClient(credentials=creds, settings=settings)
        assert client.rest_api_key is None

        creds.key = "later-key"
        assert client.refresh_credentials() == "later-key"
        assert client.rest_api_key == "later-key"

    async def test_submit_test(self, client):
        mock_client = _mock_http(_response(200, {"id": "test-notif"}))
        with patch("httpx.AsyncClient", return_value=mock_client):
            result = await client.submit_test(SUBSCRIBER)

        assert result.success is True
        body = mock_client.post.call_args.kwargs["json"]
        assert body["data"] == {"test": True}
        assert body["headings"]["en"] == "Prueba de notificación"
