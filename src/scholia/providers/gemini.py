"""
Google Gemini adapter (Generative Language REST API).

Gemini differs from the chat-completions shape in three ways that matter here:

* the system prompt travels as ``system_instruction``, never inside ``contents``, and
  ``contents`` must not be empty;
* the default safety thresholds reject ordinary academic text, so every category is sent with
  ``BLOCK_NONE``;
* a blocked prompt comes back as HTTP 200 with no candidates, which must surface as
  :class:`SafetyBlockError` carrying the vendor's block reason.
"""

import logging
from typing import (
    Any,
    Dict,
    List,
)

import httpx

from scholia.core.errors import (
    ProviderError,
    SafetyBlockError,
)
from scholia.core.schema import (
    CanonicalResponse,
    ChatMessage,
    Role,
)
from scholia.providers import (
    BaseProvider,
    register_provider,
    split_system,
)

logger = logging.getLogger(__name__)

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)

# finishReason values meaning the candidate was withheld rather than malformed
_BLOCK_FINISH_REASONS = {"SAFETY", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII", "RECITATION"}


@register_provider("gemini")
class GeminiProvider(BaseProvider):
    """Gemini ``generateContent`` over httpx."""

    def build_request(self, messages: List[ChatMessage], temperature: float) -> Dict[str, Any]:
        """Translate canonical messages into a ``generateContent`` body."""
        if not messages:
            raise ProviderError(self.name, "message history is empty")

        system, turns = split_system(messages)
        body: Dict[str, Any] = {
            "contents": [
                {
                    "role": "model" if m.role == Role.ASSISTANT else "user",
                    "parts": [{"text": m.content}],
                }
                for m in turns
            ],
            "generationConfig": {"temperature": temperature},
            "safetySettings": [
                {"category": category, "threshold": "BLOCK_NONE"}
                for category in SAFETY_CATEGORIES
            ],
        }
        if system is not None:
            body["system_instruction"] = {"parts": [{"text": system}]}
        return body

    def parse_response(self, resp: httpx.Response) -> CanonicalResponse:
        """Validate a ``generateContent`` reply and normalize it."""
        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderError(
                self.name, f"non-JSON response (HTTP {resp.status_code})", vendor_detail=resp.text
            ) from e

        if resp.is_error:
            error = data.get("error") if isinstance(data, dict) else None
            message = (error or {}).get("message") or f"HTTP {resp.status_code}"
            logger.error("Gemini API error: %s", message)
            raise ProviderError(self.name, message, vendor_detail=data)
        if not isinstance(data, dict):
            raise ProviderError(self.name, "unexpected response shape", vendor_detail=data)

        candidates = data.get("candidates") or []
        if not candidates:
            reason = (data.get("promptFeedback") or {}).get("blockReason") or "EMPTY_RESPONSE"
            logger.error("Gemini returned no candidates: %s", reason)
            raise SafetyBlockError(self.name, reason, vendor_detail=data)

        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        if not text:
            finish_reason = candidate.get("finishReason")
            if finish_reason in _BLOCK_FINISH_REASONS:
                raise SafetyBlockError(self.name, finish_reason, vendor_detail=data)
            raise ProviderError(self.name, "invalid response structure", vendor_detail=data)

        return CanonicalResponse(text=text, usage=data.get("usageMetadata"))

    async def _complete(
        self, model: str, messages: List[ChatMessage], temperature: float
    ) -> CanonicalResponse:
        body = self.build_request(messages, temperature)
        # Key goes in a header so it never shows up in logged URLs.
        headers = {"x-goog-api-key": self.credential}
        resp = await self._post_json(GEMINI_ENDPOINT.format(model=model), body, headers)
        return self.parse_response(resp)
