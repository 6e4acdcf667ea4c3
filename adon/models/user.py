from typing import Any, Dict, Optional

from adon.models.base import DocumentModel


class User(DocumentModel):
    """User profile. Written by the client app; the backend only reads it."""

    id: str
    name: Optional[str] = None
    push_token: Optional[str] = None
    # Raw code as stored; the localization resolver falls back to "en"
    language: Optional[str] = "en"
    # Capability name -> enabled. Stored as written; only a boolean False disables.
    notification_settings: Optional[Dict[str, Any]] = None
    sales: int = 0
