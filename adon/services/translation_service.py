"""
Translation gateway: authenticated proxy to Azure Translator.

Check order for every call: caller identity, input validation, short
circuits (no provider call), credentials, then the single provider call.
"""
import logging
from typing import Any, Dict, NamedTuple, Optional

import httpx

from adon.core.config import Settings
from adon.core.errors import (
    ConfigurationError,
    InvalidArgumentError,
    NotFoundError,
    QuotaExceededError,
    UpstreamError,
)
from adon.core.security import CallerIdentity, require_caller
from adon.core.store import DocumentStore
from adon.services.localization import DEFAULT_LANGUAGE, SUPPORTED_LANGUAGES

logger = logging.getLogger(__name__)

API_VERSION = "3.0"
MIN_DETECT_LENGTH = 3


class TranslatorCredentials(NamedTuple):
    key: str
    region: str
    endpoint: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "TranslatorCredentials":
        if not settings.AZURE_TRANSLATOR_KEY or not settings.AZURE_TRANSLATOR_REGION:
            raise ConfigurationError("Translator credentials are not configured (AZURE_TRANSLATOR_KEY / AZURE_TRANSLATOR_REGION)")
        return cls(settings.AZURE_TRANSLATOR_KEY, settings.AZURE_TRANSLATOR_REGION, settings.AZURE_TRANSLATOR_ENDPOINT.rstrip("/"))

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Ocp-Apim-Subscription-Key": self.key,
            "Ocp-Apim-Subscription-Region": self.region,
            "Content-Type": "application/json",
        }


def _require_text(value: Optional[str], name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(f"{name} must be a non-empty string.")
    return value


class TranslationGateway:
    def __init__(self, settings: Settings, store: Optional[DocumentStore] = None, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.store = store
        self._client = client

    async def _post(self, path: str, params: Dict[str, str], text: str) -> Any:
        creds = TranslatorCredentials.from_settings(self.settings)
        url = f"{creds.endpoint}/{path}"
        query = {"api-version": API_VERSION, **params}
        body = [{"text": text}]

        if self._client is not None:
            response = await self._client.post(url, params=query, json=body, headers=creds.headers)
        else:
            async with httpx.AsyncClient(timeout=self.settings.HTTP_TIMEOUT_SECONDS) as client:
                response = await client.post(url, params=query, json=body, headers=creds.headers)

        if response.status_code == 429:
            logger.warning("Azure quota exceeded (429)")
            raise QuotaExceededError("Translation quota exceeded. Try again later.", status_code=429)
        if not response.is_success:
            logger.error(f"❌ Azure {path} failed {response.status_code}: {response.text}")
            raise UpstreamError(
                f"Translation provider returned {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        return response.json()

    async def detect(self, caller: Optional[CallerIdentity], text: Optional[str]) -> Optional[str]:
        """Language code in SUPPORTED_LANGUAGES, or None when undetermined."""
        require_caller(caller)
        text = _require_text(text, "text").strip()

        if len(text) < MIN_DETECT_LENGTH:
            return None

        data = await self._post("detect", {}, text)
        detected = _first(data).get("language")
        if detected not in SUPPORTED_LANGUAGES:
            logger.info(f"Detected unsupported language {detected!r}, reporting none")
            return None
        return detected

    async def translate(
        self,
        caller: Optional[CallerIdentity],
        text: Optional[str],
        from_lang: Optional[str],
        to_lang: Optional[str],
    ) -> Optional[str]:
        require_caller(caller)
        text = _require_text(text, "text")
        from_lang = _require_text(from_lang, "fromLang").strip()
        to_lang = _require_text(to_lang, "toLang").strip()
        if to_lang not in SUPPORTED_LANGUAGES:
            raise InvalidArgumentError(f"Unsupported target language: {to_lang}")

        if from_lang == to_lang:
            return text

        data = await self._post("translate", {"from": from_lang, "to": to_lang}, text)
        translations = _first(data).get("translations") or []
        if not translations:
            return None
        return translations[0].get("text") or None

    # -------------------------------------------------------------------
    # Message helpers (chat screen): cached per target language on the message
    # -------------------------------------------------------------------
    def _message_path(self, conversation_id: Optional[str], message_id: Optional[str]) -> str:
        if self.store is None:
            raise ConfigurationError("Message translation needs a document store")
        conversation_id = _require_text(conversation_id, "conversationId")
        message_id = _require_text(message_id, "messageId")
        return f"conversations/{conversation_id}/messages/{message_id}"

    async def _get_message(self, path: str) -> Dict[str, Any]:
        message = await self.store.get(path)
        if message is None:
            raise NotFoundError(f"Message not found: {path}")
        return message

    async def translate_message(
        self,
        caller: Optional[CallerIdentity],
        conversation_id: Optional[str],
        message_id: Optional[str],
        target_lang: Optional[str],
    ) -> Optional[str]:
        """Cached translation of a chat message; translates and caches on a miss."""
        require_caller(caller)
        path = self._message_path(conversation_id, message_id)
        target_lang = _require_text(target_lang, "targetLang").strip()
        message = await self._get_message(path)

        cached = (message.get("translations") or {}).get(target_lang) or {}
        if cached.get("text"):
            logger.info(f"Using cached {target_lang} translation for {path}")
            return cached["text"]

        translated = await self.translate(
            caller,
            message.get("text"),
            message.get("senderLanguage") or DEFAULT_LANGUAGE,
            target_lang,
        )
        if not translated:
            return None

        await self.store.update(path, {
            f"translations.{target_lang}": {
                "text": translated,
                "translatedAt": self.store.server_timestamp(),
            }
        })
        return translated

    async def detect_and_store_language(
        self,
        caller: Optional[CallerIdentity],
        conversation_id: Optional[str],
        message_id: Optional[str],
        fallback_lang: Optional[str] = None,
    ) -> str:
        """Detect a message's language and store it as senderLanguage."""
        require_caller(caller)
        path = self._message_path(conversation_id, message_id)
        message = await self._get_message(path)

        text = message.get("text")
        detected = await self.detect(caller, text) if isinstance(text, str) and text.strip() else None
        language = detected or fallback_lang or DEFAULT_LANGUAGE
        await self.store.update(path, {"senderLanguage": language})
        return language


def _first(data: Any) -> Dict[str, Any]:
    if isinstance(data, list) and data and isinstance(data[0], dict):
        return data[0]
    return {}
