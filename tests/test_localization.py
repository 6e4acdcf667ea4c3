from adon.models.notification import NotificationKind
from adon.services.localization import localize, resolve_language


def test_supported_language_is_used():
    text = localize("hu", NotificationKind.CHAT, {})
    assert text.title == "Új üzenet"
    assert text.body == "Új üzeneted érkezett"


def test_unsupported_and_missing_language_fall_back_to_english():
    assert resolve_language("de") == "en"
    assert resolve_language(None) == "en"
    assert localize("fr", NotificationKind.PRICE_DROP, {"listingTitle": "Bike", "price": 50}).title == "Price Drop! 💸"


def test_chat_body_uses_message_text_verbatim():
    text = localize("ko", NotificationKind.CHAT, {"messageText": "Is it still available?"})
    assert text.title == "새 메시지가 도착했습니다"
    assert text.body == "Is it still available?"


def test_chat_body_falls_back_to_default_when_text_empty():
    assert localize("en", NotificationKind.CHAT, {"messageText": ""}).body == "You have a new message"
    assert localize("en", NotificationKind.CHAT, {"messageText": None}).body == "You have a new message"


def test_like_and_price_drop_bodies_are_filled_from_context():
    assert localize("en", NotificationKind.LIKE, {"listingTitle": "Lamp"}).body == "Lamp got a new like."
    assert localize("en", NotificationKind.PRICE_DROP, {"listingTitle": "Lamp", "price": 1200}).body == "Lamp is now 1200!"


def test_missing_context_values_never_raise():
    text = localize("en", NotificationKind.PRICE_DROP)
    assert text.body == " is now !"
