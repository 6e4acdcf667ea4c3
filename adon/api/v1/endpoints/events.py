import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header

from adon.api.deps import get_components
from adon.core.components import Components
from adon.core.errors import ConfigurationError, UnauthenticatedError
from adon.core.events import DocumentEvent, decode_value
from adon.schemas.event import EventAck, FirestoreEventIn

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/firestore", response_model=EventAck)
async def receive_firestore_event(
    event_in: FirestoreEventIn,
    x_adon_event_secret: Optional[str] = Header(default=None),
    components: Components = Depends(get_components),
):
    """
    Ingress for document write events.

    Handler failures are returned as errors so the sender redelivers the event.
    """
    expected = components.settings.EVENTS_SHARED_SECRET
    if not expected:
        raise ConfigurationError("EVENTS_SHARED_SECRET is not configured")
    if not x_adon_event_secret or not secrets.compare_digest(x_adon_event_secret, expected):
        raise UnauthenticatedError("Invalid event secret")

    event = DocumentEvent(
        path=event_in.document.strip("/"),
        before=decode_value(event_in.before),
        after=decode_value(event_in.after),
        event_id=event_in.event_id,
    )
    handled = await components.router.dispatch(event)
    if handled == 0:
        logger.info(f"No handler for {event.path}")
    return EventAck(handled=handled)
