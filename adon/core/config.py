import os
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "Adon - Marketplace Backend"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = ["*"]

    # Backends: "firestore" / "fcm" in production, "memory" / "fake" for local runs and tests
    STORE_BACKEND: str = "firestore"
    PUSH_BACKEND: str = "fcm"

    # Firebase
    FIREBASE_SERVICE_ACCOUNT: Optional[str] = None
    FIREBASE_CREDENTIALS: str = "firebase-service-account.json"
    FUNCTIONS_REGION: str = "europe-west1"

    # Search index (Algolia)
    ALGOLIA_APP_ID: Optional[str] = None
    ALGOLIA_ADMIN_KEY: Optional[str] = None
    ALGOLIA_INDEX_NAME: str = "listings"

    # Translation provider (Azure Translator)
    AZURE_TRANSLATOR_KEY: Optional[str] = None
    AZURE_TRANSLATOR_REGION: Optional[str] = None
    AZURE_TRANSLATOR_ENDPOINT: str = "https://api.cognitive.microsofttranslator.com"

    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Trigger ingress
    EVENTS_SHARED_SECRET: Optional[str] = None

    # Escrow: reject transitions missing from the transition table
    ESCROW_ENFORCE_TRANSITIONS: bool = False

    model_config = SettingsConfigDict(env_file=os.path.join(os.path.dirname(__file__), "..", "..", ".env"), case_sensitive=True, extra="ignore")

settings = Settings()
