from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional

class FirestoreEventIn(BaseModel):
    """A document write forwarded by the trigger infrastructure."""
    model_config = ConfigDict(populate_by_name=True)

    document: str = Field(min_length=1)
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None
    event_id: Optional[str] = Field(default=None, alias="eventId")

class EventAck(BaseModel):
    handled: int
