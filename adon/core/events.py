"""
Document change events and the trigger router.

Handlers are registered against document-path templates such as
"conversations/{conversationId}/messages/{messageId}" and a change type.
Delivery is at-least-once and unordered, so handlers must tolerate repeats.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from google.cloud.firestore import GeoPoint

logger = logging.getLogger(__name__)


class ChangeType(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    WRITTEN = "written"  # any of the three


@dataclass
class DocumentEvent:
    path: str
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None
    params: Dict[str, str] = field(default_factory=dict)
    event_id: Optional[str] = None

    @property
    def change_type(self) -> ChangeType:
        if self.before is None and self.after is not None:
            return ChangeType.CREATED
        if self.after is None:
            return ChangeType.DELETED
        return ChangeType.UPDATED

    @property
    def document_id(self) -> str:
        return self.path.rstrip("/").rsplit("/", 1)[-1]


Handler = Callable[[DocumentEvent], Awaitable[Any]]


TIMESTAMP_KEYS = {"_seconds", "_nanoseconds"}
GEOPOINT_KEYS = {"_latitude", "_longitude"}
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def decode_value(value: Any) -> Any:
    """
    Rebuild typed store values from their JSON form, recursively.

    Snapshots forwarded as JSON carry timestamps as
    {"_seconds": s, "_nanoseconds": n} and geo points as
    {"_latitude": lat, "_longitude": lng}, the way the Firebase Admin SDK
    serializes them. Those become datetime (UTC) and GeoPoint; everything
    else is returned as is.
    """
    if isinstance(value, dict):
        keys = set(value)
        if keys == TIMESTAMP_KEYS and _is_int(value["_seconds"]) and _is_int(value["_nanoseconds"]):
            return _EPOCH + timedelta(seconds=value["_seconds"], microseconds=value["_nanoseconds"] // 1000)
        if keys == GEOPOINT_KEYS and _is_number(value["_latitude"]) and _is_number(value["_longitude"]):
            return GeoPoint(value["_latitude"], value["_longitude"])
        return {key: decode_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [decode_value(item) for item in value]
    return value


def match_template(template: str, path: str) -> Optional[Dict[str, str]]:
    """Return the path parameters when `path` fits `template`, else None."""
    template_parts = template.strip("/").split("/")
    path_parts = path.strip("/").split("/")
    if len(template_parts) != len(path_parts):
        return None

    params = {}
    for expected, actual in zip(template_parts, path_parts):
        if expected.startswith("{") and expected.endswith("}"):
            if not actual:
                return None
            params[expected[1:-1]] = actual
        elif expected != actual:
            return None
    return params


class EventRouter:
    """Maps (path template, change type) to async handlers."""

    def __init__(self):
        self._routes: List[Tuple[str, ChangeType, Handler]] = []

    def register(self, template: str, change_type: ChangeType, handler: Handler) -> None:
        self._routes.append((template, change_type, handler))

    def on_document_created(self, template: str):
        return self._decorator(template, ChangeType.CREATED)

    def on_document_updated(self, template: str):
        return self._decorator(template, ChangeType.UPDATED)

    def on_document_deleted(self, template: str):
        return self._decorator(template, ChangeType.DELETED)

    def on_document_written(self, template: str):
        return self._decorator(template, ChangeType.WRITTEN)

    def _decorator(self, template: str, change_type: ChangeType):
        def wrap(handler: Handler) -> Handler:
            self.register(template, change_type, handler)
            return handler
        return wrap

    async def dispatch(self, event: DocumentEvent) -> int:
        """
        Run every handler whose template and change type match the event.

        Every matching handler runs even when an earlier one fails; the first
        error is then re-raised so the caller reports failure and the event
        gets redelivered. Returns the number of handlers run.
        """
        if event.before is None and event.after is None:
            logger.info(f"Event for {event.path} carries no snapshots, ignoring")
            return 0

        change_type = event.change_type
        ran = 0
        first_error: Optional[Exception] = None
        for template, route_type, handler in self._routes:
            if route_type not in (change_type, ChangeType.WRITTEN):
                continue
            params = match_template(template, event.path)
            if params is None:
                continue
            routed = DocumentEvent(
                path=event.path,
                before=event.before,
                after=event.after,
                params={**event.params, **params},
                event_id=event.event_id,
            )
            logger.info(f"⚡ {change_type.value} {event.path} -> {getattr(handler, '__name__', handler)}")
            ran += 1
            try:
                await handler(routed)
            except Exception as e:
                logger.error(f"❌ {getattr(handler, '__name__', handler)} failed for {event.path}: {e!r}")
                if first_error is None:
                    first_error = e

        if first_error is not None:
            raise first_error
        return ran
