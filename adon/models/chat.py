from typing import Any, List, Optional

from adon.models.base import DocumentModel


class Conversation(DocumentModel):
    id: str
    participants: List[str] = []
    listing_id: Optional[str] = None

    def recipient_for(self, sender_id: Optional[str]) -> Optional[str]:
        """The participant that is not the sender; None unless exactly one exists."""
        others = {p for p in self.participants if p and p != sender_id}
        if len(others) != 1:
            return None
        return others.pop()


class Message(DocumentModel):
    id: Optional[str] = None
    sender_id: Optional[str] = None
    text: Optional[str] = None
    sender_language: Optional[str] = None
    created_at: Optional[Any] = None
