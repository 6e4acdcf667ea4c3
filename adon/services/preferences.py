from typing import Any, Mapping, Optional

from adon.models.notification import NotificationKind

PUSH_ENABLED = "pushEnabled"
CHAT_ENABLED = "chatEnabled"
PRICE_DROP_ENABLED = "priceDropEnabled"

# Likes have no capability of their own, only the generic push switch applies
KIND_CAPABILITY = {
    NotificationKind.CHAT: CHAT_ENABLED,
    NotificationKind.PRICE_DROP: PRICE_DROP_ENABLED,
    NotificationKind.LIKE: None,
}


def allowed(settings: Optional[Mapping[str, Any]], capability: str) -> bool:
    """Default-open: only an explicit boolean False blocks, not 0 or "false"."""
    if not settings:
        return True
    return settings.get(capability) is not False


def push_allowed(settings: Optional[Mapping[str, Any]], kind: NotificationKind) -> bool:
    """Generic push switch AND the kind's own switch, when it has one."""
    if not allowed(settings, PUSH_ENABLED):
        return False
    capability = KIND_CAPABILITY[NotificationKind(kind)]
    return capability is None or allowed(settings, capability)
