"""
Callable RPC surface for the mobile client.

Requests and responses follow the Firebase callable protocol: arguments
arrive under "data", results go back under "result", errors as
{"error": {"status", "message"}}.
"""
from typing import Optional

from fastapi import APIRouter, Depends

from adon.api.deps import get_caller, get_components
from adon.core.components import Components
from adon.core.security import CallerIdentity
from adon.schemas.callable import CallableRequest, LanguageResponse, TextResponse

router = APIRouter()

@router.post("/detectLanguage", response_model=LanguageResponse)
async def detect_language(
    request: CallableRequest,
    caller: Optional[CallerIdentity] = Depends(get_caller),
    components: Components = Depends(get_components),
):
    language = await components.translator.detect(caller, request.data.get("text"))
    return {"result": {"language": language}}

@router.post("/translateText", response_model=TextResponse)
async def translate_text(
    request: CallableRequest,
    caller: Optional[CallerIdentity] = Depends(get_caller),
    components: Components = Depends(get_components),
):
    data = request.data
    text = await components.translator.translate(caller, data.get("text"), data.get("fromLang"), data.get("toLang"))
    return {"result": {"text": text}}

@router.post("/getTranslation", response_model=TextResponse)
async def get_translation(
    request: CallableRequest,
    caller: Optional[CallerIdentity] = Depends(get_caller),
    components: Components = Depends(get_components),
):
    """Cached translation of one chat message, translating on a cache miss."""
    data = request.data
    text = await components.translator.translate_message(
        caller, data.get("conversationId"), data.get("messageId"), data.get("targetLang")
    )
    return {"result": {"text": text}}

@router.post("/detectMessageLanguage", response_model=LanguageResponse)
async def detect_message_language(
    request: CallableRequest,
    caller: Optional[CallerIdentity] = Depends(get_caller),
    components: Components = Depends(get_components),
):
    data = request.data
    language = await components.translator.detect_and_store_language(
        caller, data.get("conversationId"), data.get("messageId"), data.get("fallbackLang")
    )
    return {"result": {"language": language}}
