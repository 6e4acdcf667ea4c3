from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DocumentModel(BaseModel):
    """Base for store documents: snake_case in Python, camelCase in the store."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        extra="ignore",
    )

    @classmethod
    def from_document(cls, doc_id: Optional[str], data: Dict[str, Any]):
        """Build from raw store data; the document id wins over any stored `id`."""
        payload = dict(data)
        if doc_id is not None:
            payload["id"] = doc_id
        return cls.model_validate(payload)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
