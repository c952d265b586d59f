"""Anthropic Claude adapter (Messages API)."""

import logging
from typing import (
    Any,
    Dict,
    List,
)

from scholia.core.errors import ProviderError
from scholia.core.schema import (
    CanonicalResponse,
    ChatMessage,
)
from scholia.providers import (
    BaseProvider,
    register_provider,
    split_system,
)

logger = logging.getLogger(__name__)


@register_provider("anthropic")
class AnthropicProvider(BaseProvider):
    """The system prompt is a separate field and the turn list must not be empty."""

    async def _complete(
        self, model: str, messages: List[ChatMessage], temperature: float
    ) -> CanonicalResponse:
        import anthropic  # pylint: disable=import-outside-toplevel

        if not messages:
            raise ProviderError(self.name, "message history is empty")

        system, turns = split_system(messages)
        request: Dict[str, Any] = {
            "model": model,
            "max_tokens": self.max_output_tokens,
            "messages": [m.model_dump(mode="json") for m in turns],
            "temperature": temperature,
        }
        if system is not None:
            request["system"] = system

        try:
            client = anthropic.AsyncAnthropic(**self._sdk_kwargs())
        except (TypeError, ValueError, anthropic.AnthropicError) as e:
            logger.error("Anthropic client setup failed: %s", e)
            raise ProviderError(self.name, f"client setup failed: {e}") from e

        try:
            response = await client.messages.create(**request)
        except anthropic.APIStatusError as e:
            logger.error("Anthropic API error (%s): %s", e.status_code, e.message)
            raise ProviderError(self.name, e.message, vendor_detail=e.body) from e
        except anthropic.APIError as e:
            logger.error("Anthropic request error: %s", str(e))
            raise ProviderError(self.name, f"request failed: {e}") from e
        finally:
            if self.http_client is None:
                await client.close()

        # Handle different content block types from Anthropic API
        text = "".join(block.text for block in response.content if block.type == "text")
        if not text:
            raise ProviderError(
                self.name, f"no text content (stop_reason={response.stop_reason})"
            )

        usage = response.usage.model_dump() if response.usage is not None else None
        return CanonicalResponse(text=text, usage=usage)
