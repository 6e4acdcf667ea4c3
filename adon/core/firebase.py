import json
import logging
import os

import firebase_admin
from firebase_admin import credentials

from adon.core.config import Settings

logger = logging.getLogger(__name__)


def initialize_firebase(settings: Settings) -> firebase_admin.App:
    """
    Initialize the Firebase Admin app exactly once for the process.

    Called from the application lifespan; the returned app is passed to the
    store and push provider instead of being looked up ambiently.
    """
    # 1. Reuse an app another entrypoint already initialized
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    # 2. Service account JSON from the environment (production)
    if settings.FIREBASE_SERVICE_ACCOUNT:
        try:
            cred = credentials.Certificate(json.loads(settings.FIREBASE_SERVICE_ACCOUNT))
        except ValueError as e:
            logger.warning(f"⚠️ Failed to parse FIREBASE_SERVICE_ACCOUNT JSON: {e}")
        else:
            app = firebase_admin.initialize_app(cred)
            logger.info("✅ Firebase Admin SDK initialized from ENV")
            return app

    # 3. Local JSON file (development)
    cred_path = os.path.join(
        os.path.dirname(__file__),
        "..",
        "..",
        settings.FIREBASE_CREDENTIALS
    )
    if os.path.exists(cred_path):
        app = firebase_admin.initialize_app(credentials.Certificate(cred_path))
        logger.info("✅ Firebase Admin SDK initialized from local file")
        return app

    # 4. Application default credentials (Cloud Run / Functions runtime)
    app = firebase_admin.initialize_app()
    logger.info("✅ Firebase Admin SDK initialized with application default credentials")
    return app
