"""
Reactions to store writes: chat pushes, like notifications, price-drop
fan-out and search index sync.

Each handler is a single-shot pipeline. Missing documents and skipped
recipients end the pipeline quietly; only index sync errors propagate.
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from adon.core.events import ChangeType, DocumentEvent, EventRouter
from adon.core.store import DocumentStore
from adon.models.chat import Conversation, Message
from adon.models.listing import Listing
from adon.models.notification import NotificationKind, build_notification_data
from adon.models.wishlist import WishlistEntry
from adon.services.index_sync import LISTINGS, IndexSynchronizer
from adon.services.localization import localize
from adon.services.notification_service import DispatchResult, NotificationDispatcher, get_user

logger = logging.getLogger(__name__)

CONVERSATIONS = "conversations"
WISHLISTS = "wishlists"

MESSAGE_TEMPLATE = "conversations/{conversationId}/messages/{messageId}"
WISHLIST_TEMPLATE = "wishlists/{wishlistId}"
LISTING_TEMPLATE = "listings/{listingId}"


def like_notification_id(wishlist_id: str) -> str:
    """One in-app like notification per wishlist entry, however often the event arrives."""
    return f"like_{wishlist_id}"


class ChangeHandlers:
    def __init__(self, store: DocumentStore, dispatcher: NotificationDispatcher, index_sync: IndexSynchronizer):
        self.store = store
        self.dispatcher = dispatcher
        self.index_sync = index_sync

    def register(self, router: EventRouter) -> EventRouter:
        router.register(MESSAGE_TEMPLATE, ChangeType.CREATED, self.on_message_created)
        router.register(WISHLIST_TEMPLATE, ChangeType.CREATED, self.on_wishlist_created)
        # Index sync is registered ahead of the price-drop fan-out
        router.register(LISTING_TEMPLATE, ChangeType.WRITTEN, self.on_listing_written)
        router.register(LISTING_TEMPLATE, ChangeType.UPDATED, self.on_listing_updated)
        return router

    async def _get_listing(self, listing_id: Optional[str]) -> Optional[Listing]:
        if not listing_id:
            return None
        data = await self.store.get(f"{LISTINGS}/{listing_id}")
        if data is None:
            return None
        try:
            return Listing.from_document(listing_id, data)
        except ValidationError as e:
            logger.warning(f"⚠️ Listing {listing_id} is malformed, skipping: {e}")
            return None

    # -----------------------------------------------------------------------
    # Chat
    # -----------------------------------------------------------------------
    async def on_message_created(self, event: DocumentEvent) -> Optional[DispatchResult]:
        conversation_id = event.params.get("conversationId")
        message = Message.from_document(event.document_id, event.after or {})

        conversation_data = await self.store.get(f"{CONVERSATIONS}/{conversation_id}")
        if conversation_data is None:
            logger.info(f"Conversation {conversation_id} not found, no chat push")
            return None

        conversation = Conversation.from_document(conversation_id, conversation_data)
        recipient_id = conversation.recipient_for(message.sender_id)
        if recipient_id is None:
            logger.info(f"No recipient for message {message.id} in {conversation_id}")
            return None

        return await self.dispatcher.dispatch(
            recipient_id,
            NotificationKind.CHAT,
            {"conversationId": conversation_id, "messageText": message.text},
        )

    # -----------------------------------------------------------------------
    # Likes
    # -----------------------------------------------------------------------
    async def on_wishlist_created(self, event: DocumentEvent) -> Optional[DispatchResult]:
        """
        Tell the seller their listing was liked.

        The in-app record is written whatever the seller's push settings are;
        the push itself then goes through the usual preference gate.
        """
        wishlist_id = event.params.get("wishlistId") or event.document_id
        entry = WishlistEntry.from_document(wishlist_id, event.after or {})

        listing = await self._get_listing(entry.listing_id)
        if listing is None:
            logger.info(f"Listing {entry.listing_id} not found for wishlist {wishlist_id}")
            return None

        seller_id = listing.seller_id
        if not seller_id:
            logger.info(f"Listing {listing.id} has no seller")
            return None
        if seller_id == entry.user_id:
            logger.info(f"Self-like on {listing.id} by {seller_id}, ignoring")
            return None

        seller = await get_user(self.store, seller_id)
        if seller is None:
            logger.info(f"Seller {seller_id} has no profile, no like notification")
            return None

        context = {"listingId": listing.id, "listingTitle": listing.title}
        text = localize(seller.language, NotificationKind.LIKE, context)
        await self.dispatcher.record_notification(
            seller_id,
            NotificationKind.LIKE,
            text.title,
            text.body,
            build_notification_data(NotificationKind.LIKE, context).to_document(),
            notification_id=like_notification_id(wishlist_id),
        )

        return await self.dispatcher.dispatch(seller_id, NotificationKind.LIKE, context)

    # -----------------------------------------------------------------------
    # Listings
    # -----------------------------------------------------------------------
    async def on_listing_updated(self, event: DocumentEvent) -> List[DispatchResult]:
        listing_id = event.params.get("listingId") or event.document_id
        before_price = (event.before or {}).get("price")
        after_price = (event.after or {}).get("price")

        if not _is_price_drop(before_price, after_price):
            return []

        entries = await self.store.query(WISHLISTS, {"listingId": listing_id})
        if not entries:
            logger.info(f"Price drop on {listing_id} but nobody wishlisted it")
            return []

        recipients: List[str] = []
        for _, data in entries:
            user_id = data.get("userId")
            if user_id and user_id not in recipients:
                recipients.append(user_id)

        logger.info(f"💸 Price drop on {listing_id}: {before_price} -> {after_price}, notifying {len(recipients)} users")
        context: Dict[str, Any] = {
            "listingId": listing_id,
            "listingTitle": event.after.get("title"),
            "price": after_price,
        }
        return await self.dispatcher.dispatch_many(recipients, NotificationKind.PRICE_DROP, context)

    async def on_listing_written(self, event: DocumentEvent) -> None:
        listing_id = event.params.get("listingId") or event.document_id
        await self.index_sync.sync(listing_id, event.after)


def _is_price_drop(before: Any, after: Any) -> bool:
    """Strict decrease only; a missing or non-numeric price never counts."""
    numeric = (int, float)
    if isinstance(before, bool) or isinstance(after, bool):
        return False
    if not isinstance(before, numeric) or not isinstance(after, numeric):
        return False
    return after < before
