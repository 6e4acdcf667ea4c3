"""
Localized titles and bodies for push and in-app notifications.

Pure lookup: unsupported or missing language codes fall back to English and
missing context values render as empty strings, so this never raises.
"""
from typing import Any, Mapping, NamedTuple, Optional

from adon.models.notification import NotificationKind

SUPPORTED_LANGUAGES = ("en", "ko", "hu")
DEFAULT_LANGUAGE = "en"

TITLES = {
    NotificationKind.CHAT: {
        "en": "New Message",
        "ko": "새 메시지가 도착했습니다",
        "hu": "Új üzenet",
    },
    NotificationKind.LIKE: {
        "en": "Someone liked your listing! ❤️",
        "ko": "누군가 회원님의 상품을 찜했어요! ❤️",
        "hu": "Valaki kedvencekbe tette a termékedet! ❤️",
    },
    NotificationKind.PRICE_DROP: {
        "en": "Price Drop! 💸",
        "ko": "가격 인하! 💸",
        "hu": "Árcsökkenés! 💸",
    },
}

BODIES = {
    NotificationKind.CHAT: {
        "en": "You have a new message",
        "ko": "새로운 메시지를 확인해보세요",
        "hu": "Új üzeneted érkezett",
    },
    NotificationKind.LIKE: {
        "en": "{listingTitle} got a new like.",
        "ko": "{listingTitle}에 새로운 관심이 생겼어요.",
        "hu": "{listingTitle} új kedvencet kapott.",
    },
    NotificationKind.PRICE_DROP: {
        "en": "{listingTitle} is now {price}!",
        "ko": "{listingTitle}의 가격이 {price}로 내려갔어요!",
        "hu": "{listingTitle} már csak {price}!",
    },
}


class LocalizedText(NamedTuple):
    title: str
    body: str


class _Context(dict):
    def __missing__(self, key):
        return ""


def resolve_language(code: Optional[str]) -> str:
    if code in SUPPORTED_LANGUAGES:
        return code
    return DEFAULT_LANGUAGE


def localize(language: Optional[str], kind: NotificationKind, context: Optional[Mapping[str, Any]] = None) -> LocalizedText:
    """Title and body for `kind` in `language`.

    Chat bodies use the message text verbatim when there is one.
    """
    lang = resolve_language(language)
    kind = NotificationKind(kind)
    context = _Context({k: "" if v is None else v for k, v in (context or {}).items()})

    title = TITLES[kind][lang]
    if kind is NotificationKind.CHAT and context.get("messageText"):
        return LocalizedText(title, str(context["messageText"]))

    body = BODIES[kind][lang].format_map(context)
    return LocalizedText(title, body)
