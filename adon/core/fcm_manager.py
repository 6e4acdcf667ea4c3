import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Set
from uuid import uuid4

import firebase_admin
from firebase_admin import exceptions as firebase_exceptions
from firebase_admin import messaging

from adon.core.errors import PushDeliveryError, StaleTokenError

logger = logging.getLogger(__name__)


class PushProvider(ABC):
    """Delivers one notification to one device token."""

    @abstractmethod
    async def send(self, token: str, title: str, body: str, data: Dict[str, str]) -> str:
        """
        Send a push notification and return the provider message id.

        Raises PushDeliveryError (StaleTokenError for dead tokens) on failure.
        """


class FCMManager(PushProvider):
    """Firebase Cloud Messaging sender bound to an initialized Firebase app."""

    def __init__(self, app: Optional[firebase_admin.App] = None):
        self.app = app

    async def send(self, token: str, title: str, body: str, data: Dict[str, str]) -> str:
        if not token:
            raise PushDeliveryError("No FCM token provided")

        # Visible notification block plus the data block the app routes on
        message = messaging.Message(
            token=token,
            notification=messaging.Notification(title=title, body=body),
            data=data,
            android=messaging.AndroidConfig(priority="high"),
            apns=messaging.APNSConfig(headers={"apns-priority": "10"}),
        )

        try:
            # Use to_thread for the synchronous blocking network call
            response = await asyncio.to_thread(messaging.send, message, app=self.app)
        except (messaging.UnregisteredError, messaging.SenderIdMismatchError) as e:
            raise StaleTokenError(f"Token is invalid/unregistered: {token[:10]}...") from e
        except firebase_exceptions.NotFoundError as e:
            raise StaleTokenError(f"FCM token not found in current project: {token[:10]}...") from e
        except firebase_exceptions.FirebaseError as e:
            raise PushDeliveryError(f"FCM send failed: {e}") from e

        logger.debug(f"FCM accepted message {response}")
        return response


class FakePushProvider(PushProvider):
    """Push provider that records sends in memory for local runs and test assertions."""

    def __init__(self):
        self.sent: List[Dict] = []
        self.failing_tokens: Set[str] = set()
        self.stale_tokens: Set[str] = set()

    async def send(self, token: str, title: str, body: str, data: Dict[str, str]) -> str:
        if token in self.stale_tokens:
            raise StaleTokenError(f"Token is invalid/unregistered: {token[:10]}...")
        if token in self.failing_tokens:
            raise PushDeliveryError("Push delivery failed")

        message_id = f"push-{uuid4().hex[:12]}"
        self.sent.append({
            "message_id": message_id,
            "token": token,
            "title": title,
            "body": body,
            "data": dict(data),
        })
        return message_id

    def reset(self):
        self.sent.clear()
        self.failing_tokens.clear()
        self.stale_tokens.clear()
