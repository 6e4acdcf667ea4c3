"""
Composition root. Every component is built once per process and receives the
store handle, push provider and settings through its constructor.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import firebase_admin
import httpx

from adon.core.config import Settings
from adon.core.errors import ConfigurationError
from adon.core.events import EventRouter
from adon.core.fcm_manager import FakePushProvider, FCMManager, PushProvider
from adon.core.memory_store import InMemoryStore
from adon.core.store import DocumentStore
from adon.services.change_handlers import ChangeHandlers
from adon.services.index_sync import IndexSynchronizer
from adon.services.notification_service import NotificationDispatcher
from adon.services.transaction_service import TransactionService
from adon.services.translation_service import TranslationGateway

logger = logging.getLogger(__name__)


@dataclass
class Components:
    settings: Settings
    store: DocumentStore
    push_provider: PushProvider
    dispatcher: NotificationDispatcher
    index_sync: IndexSynchronizer
    translator: TranslationGateway
    transactions: TransactionService
    handlers: ChangeHandlers
    router: EventRouter
    firebase_app: Optional[firebase_admin.App] = None


def _build_store(settings: Settings, firebase_app: Optional[firebase_admin.App]) -> DocumentStore:
    if settings.STORE_BACKEND == "memory":
        return InMemoryStore()
    if settings.STORE_BACKEND == "firestore":
        from firebase_admin import firestore

        from adon.core.store import FirestoreStore

        return FirestoreStore(firestore.client(app=firebase_app))
    raise ConfigurationError(f"Unknown STORE_BACKEND: {settings.STORE_BACKEND}")


def _build_push_provider(settings: Settings, firebase_app: Optional[firebase_admin.App]) -> PushProvider:
    if settings.PUSH_BACKEND == "fake":
        return FakePushProvider()
    if settings.PUSH_BACKEND == "fcm":
        return FCMManager(app=firebase_app)
    raise ConfigurationError(f"Unknown PUSH_BACKEND: {settings.PUSH_BACKEND}")


def build_components(
    settings: Settings,
    store: Optional[DocumentStore] = None,
    push_provider: Optional[PushProvider] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    firebase_app: Optional[firebase_admin.App] = None,
) -> Components:
    if store is None:
        store = _build_store(settings, firebase_app)
    if push_provider is None:
        push_provider = _build_push_provider(settings, firebase_app)

    dispatcher = NotificationDispatcher(store, push_provider)
    index_sync = IndexSynchronizer(settings, client=http_client)
    translator = TranslationGateway(settings, store=store, client=http_client)
    transactions = TransactionService(store, enforce_transitions=settings.ESCROW_ENFORCE_TRANSITIONS)
    handlers = ChangeHandlers(store, dispatcher, index_sync)
    router = handlers.register(EventRouter())

    logger.info(f"🧩 Components ready (store={type(store).__name__}, push={type(push_provider).__name__})")
    return Components(
        settings=settings,
        store=store,
        push_provider=push_provider,
        dispatcher=dispatcher,
        index_sync=index_sync,
        translator=translator,
        transactions=transactions,
        handlers=handlers,
        router=router,
        firebase_app=firebase_app,
    )
