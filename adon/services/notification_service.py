import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional

from adon.core.errors import PushDeliveryError, StaleTokenError
from adon.core.fcm_manager import PushProvider
from adon.core.store import DocumentStore
from adon.models.notification import (
    NotificationKind,
    NotificationRecord,
    build_notification_data,
    to_push_data,
)
from adon.models.user import User
from adon.services.localization import localize
from adon.services.preferences import push_allowed

logger = logging.getLogger(__name__)

USERS = "users"
NOTIFICATIONS = "notifications"


class DispatchStatus(str, Enum):
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class DispatchResult:
    recipient_id: str
    status: DispatchStatus
    reason: Optional[str] = None
    message_id: Optional[str] = None


async def get_user(store: DocumentStore, user_id: str) -> Optional[User]:
    """Read a user profile; None when missing."""
    if not user_id:
        return None
    data = await store.get(f"{USERS}/{user_id}")
    if data is None:
        return None
    return User.from_document(user_id, data)


class NotificationDispatcher:
    """
    Reads the recipient, applies the preference gate, localizes and sends.

    Missing profiles, missing tokens and blocked preferences are normal
    outcomes (SKIPPED), not errors. Provider failures come back as FAILED
    and are only logged.
    """

    def __init__(self, store: DocumentStore, push_provider: PushProvider):
        self.store = store
        self.push_provider = push_provider

    async def dispatch(self, recipient_id: str, kind: NotificationKind, context: Mapping[str, Any]) -> DispatchResult:
        kind = NotificationKind(kind)
        user = await get_user(self.store, recipient_id)

        if user is None:
            logger.info(f"No profile for user {recipient_id}, skipping {kind.value} push")
            return DispatchResult(recipient_id, DispatchStatus.SKIPPED, "no_profile")

        if not user.push_token:
            logger.info(f"No push token for user {recipient_id}")
            return DispatchResult(recipient_id, DispatchStatus.SKIPPED, "no_token")

        if not push_allowed(user.notification_settings, kind):
            logger.info(f"User {recipient_id} has disabled {kind.value} notifications.")
            return DispatchResult(recipient_id, DispatchStatus.SKIPPED, "preference_blocked")

        text = localize(user.language, kind, context)
        data = to_push_data(build_notification_data(kind, context))

        try:
            message_id = await self.push_provider.send(
                token=user.push_token,
                title=text.title,
                body=text.body,
                data=data,
            )
        except StaleTokenError as e:
            # The profile belongs to the client app; we only report the dead token
            logger.warning(f"⚠️ Stale push token for user {recipient_id}: {e}")
            return DispatchResult(recipient_id, DispatchStatus.FAILED, "stale_token")
        except PushDeliveryError as e:
            logger.warning(f"❌ Failed to send {kind.value} notification to {recipient_id}: {e}")
            return DispatchResult(recipient_id, DispatchStatus.FAILED, str(e))

        logger.info(f"✅ {kind.value} notification sent to {recipient_id} in {user.language or 'en'}")
        return DispatchResult(recipient_id, DispatchStatus.SENT, message_id=message_id)

    async def dispatch_many(
        self,
        recipient_ids: Iterable[str],
        kind: NotificationKind,
        context: Mapping[str, Any],
    ) -> List[DispatchResult]:
        """
        Fan out to every recipient concurrently and wait for all of them.

        One recipient's failure (including an unexpected exception) never
        cancels or fails the others.
        """
        recipients = list(recipient_ids)
        outcomes = await asyncio.gather(
            *(self.dispatch(recipient_id, kind, context) for recipient_id in recipients),
            return_exceptions=True,
        )

        results = []
        for recipient_id, outcome in zip(recipients, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"❌ Error notifying {recipient_id}: {outcome!r}")
                outcome = DispatchResult(recipient_id, DispatchStatus.FAILED, repr(outcome))
            results.append(outcome)
        return results

    async def record_notification(
        self,
        user_id: str,
        kind: NotificationKind,
        title: str,
        body: str,
        data: Mapping[str, Any],
        notification_id: Optional[str] = None,
    ) -> Optional[str]:
        """
        Save a copy of the notification for the in-app inbox.

        With `notification_id` the write is create-if-absent, so a redelivered
        event does not add a second copy. Returns the id, or None when the
        record already existed.
        """
        record = NotificationRecord(
            user_id=user_id,
            type=kind,
            title=title,
            body=body,
            data=dict(data),
            read=False,
            created_at=self.store.server_timestamp(),
        )
        document = record.to_document()

        if notification_id is None:
            return await self.store.add(NOTIFICATIONS, document)

        created = await self.store.create(f"{NOTIFICATIONS}/{notification_id}", document)
        if not created:
            logger.info(f"Notification {notification_id} already recorded, not duplicating")
            return None
        return notification_id
