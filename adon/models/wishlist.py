from typing import Optional

from adon.models.base import DocumentModel


class WishlistEntry(DocumentModel):
    """One user hearting one listing. Immutable once created."""

    id: Optional[str] = None
    user_id: Optional[str] = None
    listing_id: Optional[str] = None
