"""
Re-index every listing in Algolia.

Usage: python sync_all_listings.py
Needs ALGOLIA_APP_ID / ALGOLIA_ADMIN_KEY and Firebase credentials (see .env).
"""
import asyncio
import logging
import sys

from adon.core.components import build_components
from adon.core.config import settings
from adon.core.errors import AdonError
from adon.core.firebase import initialize_firebase
from adon.services.index_sync import LISTINGS

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def sync_all_listings() -> int:
    firebase_app = initialize_firebase(settings)
    components = build_components(settings, firebase_app=firebase_app)
    print(f"🔄 Syncing all {LISTINGS} to Algolia index '{settings.ALGOLIA_INDEX_NAME}'...")
    count = await components.index_sync.reindex_all(components.store, LISTINGS)
    print(f"✅ Synced {count} listings")
    return count


if __name__ == "__main__":
    try:
        asyncio.run(sync_all_listings())
    except AdonError as e:
        print(f"❌ Sync failed: {e.message}")
        sys.exit(1)
