# Shared fixtures: keep every test away from the real ~/.subnotify and env.
# Created: 2026-03-02

import pytest

from subnotify.config import get_settings
from subnotify.queue import reset_reconciliation_queue


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.delenv("SUBNOTIFY_ONESIGNAL_APP_ID", raising=False)
    monkeypatch.delenv("SUBNOTIFY_ONESIGNAL_REST_API_KEY", raising=False)
    monkeypatch.setenv("SUBNOTIFY_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    reset_reconciliation_queue()
    yield
    get_settings.cache_clear()
    reset_reconciliation_queue()
