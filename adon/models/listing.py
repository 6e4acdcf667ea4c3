from typing import Any, Optional

from pydantic import ConfigDict

from adon.models.base import DocumentModel


class Listing(DocumentModel):
    # Client-written document: keep every field and accept whatever shape the
    # app stored. Only the seller id has to be a string to be usable.
    model_config = ConfigDict(extra="allow")

    id: str
    seller_id: Optional[str] = None
    title: Any = None
    price: Any = None
    photos: Any = None
    status: Any = None
