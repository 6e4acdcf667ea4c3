from pydantic import BaseModel
from typing import Any, Dict, Optional

class CallableRequest(BaseModel):
    """Firebase callable request body. Fields inside `data` are validated by the service."""
    data: Dict[str, Any] = {}

class LanguageResult(BaseModel):
    language: Optional[str] = None

class TextResult(BaseModel):
    text: Optional[str] = None

class LanguageResponse(BaseModel):
    result: LanguageResult

class TextResponse(BaseModel):
    result: TextResult
