"""Shared fixtures: everything runs against the in-memory store and fake push provider."""

import pytest

from adon.core.config import Settings
from adon.core.fcm_manager import FakePushProvider
from adon.core.memory_store import InMemoryStore
from adon.services.notification_service import NotificationDispatcher


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        STORE_BACKEND="memory",
        PUSH_BACKEND="fake",
        ALGOLIA_APP_ID="TESTAPP",
        ALGOLIA_ADMIN_KEY="algolia-key",
        ALGOLIA_INDEX_NAME="listings",
        AZURE_TRANSLATOR_KEY="azure-key",
        AZURE_TRANSLATOR_REGION="westeurope",
        EVENTS_SHARED_SECRET="event-secret",
    )


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def push():
    return FakePushProvider()


@pytest.fixture
def dispatcher(store, push):
    return NotificationDispatcher(store, push)


@pytest.fixture
def seed_user(store):
    """Seed a user profile; returns the user id."""

    def _seed(user_id, push_token=..., language="en", notification_settings=None, **extra):
        if push_token is ...:
            push_token = f"fcm-token-{user_id}"
        data = {"name": user_id.title(), "language": language, **extra}
        if push_token is not None:
            data["pushToken"] = push_token
        if notification_settings is not None:
            data["notificationSettings"] = notification_settings
        store.seed(f"users/{user_id}", data)
        return user_id

    return _seed
