"""
Shared pytest fixtures for the update panel tests.

Route tests run against a JSON file store in a temp directory, a notifier
that records calls instead of posting webhooks, and a session identity
injected through a dependency override.
"""

import io
import zipfile
from typing import Any, Dict, List, Tuple

import pytest
from fastapi.testclient import TestClient

from update_panel import auth
from update_panel.config import Settings
from update_panel.main import create_app
from update_panel.notifier import WebhookNotifier
from update_panel.store import JsonFileStore

OWNER_ID = "111111111111111111"


# ==================== HELPERS ====================

def make_zip(name: str = "bot.py", content: str = "print('hello')") -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr(name, content)
    return buffer.getvalue()


async def _noop() -> None:
    return None


class RecordingNotifier(WebhookNotifier):
    """Records notifications at call time instead of sending them."""

    def __init__(self):
        super().__init__(webhook_url=None)
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []

    def notify_release(self, release):
        self.calls.append(("release", (release.version,)))
        return _noop()

    def notify_revert(self, release):
        self.calls.append(("revert", (release.version,)))
        return _noop()

    def notify_obsolete(self, bot_id, reported_version, latest):
        self.calls.append(("obsolete", (bot_id, reported_version, latest)))
        return _noop()

    def of_kind(self, kind: str) -> List[Tuple[Any, ...]]:
        return [args for name, args in self.calls if name == kind]


# ==================== FIXTURES ====================

@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        owner_ids=[OWNER_ID],
        session_secret="test-session-secret",
        token_encryption_secret="test-token-secret",
        public_base_url="http://panel.test",
        data_dir=tmp_path / "data",
        upload_dir=tmp_path / "uploads",
    )


@pytest.fixture
def store(settings) -> JsonFileStore:
    return JsonFileStore(settings.data_dir)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def app(settings, store, notifier):
    return create_app(settings, store=store, notifier=notifier)


@pytest.fixture
def identity() -> Dict[str, Any]:
    return {"id": OWNER_ID, "username": "owner"}


@pytest.fixture
def client(app, identity):
    app.dependency_overrides[auth.get_identity] = lambda: identity
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(app):
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client


@pytest.fixture
def zip_bytes() -> bytes:
    return make_zip()
