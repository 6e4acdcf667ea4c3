"""
Notification kinds, their data payloads and the durable in-app record.

The data payload is a tagged union keyed by `type`: each kind carries its
own fields (chat -> conversationId, like/priceDrop -> listingId). The same
payload goes into the push data block and the in-app record.
"""
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Mapping, Optional, Union

from pydantic import Field, TypeAdapter

from adon.models.base import DocumentModel


class NotificationKind(str, Enum):
    CHAT = "chat"
    LIKE = "like"
    PRICE_DROP = "priceDrop"


class ChatData(DocumentModel):
    type: Literal["chat"] = "chat"
    conversation_id: str


class LikeData(DocumentModel):
    type: Literal["like"] = "like"
    listing_id: str


class PriceDropData(DocumentModel):
    type: Literal["priceDrop"] = "priceDrop"
    listing_id: str


NotificationData = Annotated[
    Union[ChatData, LikeData, PriceDropData],
    Field(discriminator="type"),
]

_data_adapter = TypeAdapter(NotificationData)


def build_notification_data(kind: NotificationKind, context: Mapping[str, Any]) -> NotificationData:
    """Pick the payload variant for `kind` from the handler context (camelCase keys)."""
    kind = NotificationKind(kind)
    payload: Dict[str, Any] = {"type": kind.value}
    if kind is NotificationKind.CHAT:
        payload["conversationId"] = context.get("conversationId")
    else:
        payload["listingId"] = context.get("listingId")
    return _data_adapter.validate_python(payload)


def to_push_data(data: NotificationData) -> Dict[str, str]:
    """FCM data blocks only accept string values."""
    return {key: str(value) for key, value in data.to_document().items()}


class NotificationRecord(DocumentModel):
    """In-app notification shown in the notifications screen."""

    id: Optional[str] = None
    user_id: str
    type: NotificationKind
    title: str
    body: str
    data: Dict[str, Any] = {}
    read: bool = False
    created_at: Optional[Any] = None
