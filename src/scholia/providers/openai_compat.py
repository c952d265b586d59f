"""Adapters for vendors speaking the OpenAI chat-completions wire format."""

import logging
from typing import (
    ClassVar,
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
)

logger = logging.getLogger(__name__)


@register_provider("openai")
class OpenAIProvider(BaseProvider):
    """Full message list in, one text completion out.  No special casing."""

    base_url: ClassVar[str | None] = None  # SDK default

    async def _complete(
        self, model: str, messages: List[ChatMessage], temperature: float
    ) -> CanonicalResponse:
        import openai  # pylint: disable=import-outside-toplevel

        try:
            client = openai.AsyncOpenAI(base_url=self.base_url, **self._sdk_kwargs())
        except (TypeError, ValueError, openai.OpenAIError) as e:
            logger.error("%s client setup failed: %s", self.name, e)
            raise ProviderError(self.name, f"client setup failed: {e}") from e

        try:
            resp = await client.chat.completions.create(
                model=model,
                messages=[m.model_dump(mode="json") for m in messages],  # type: ignore[misc]
                temperature=temperature,
            )
        except openai.APIStatusError as e:
            logger.error("%s API error (%s): %s", self.name, e.status_code, e.message)
            raise ProviderError(self.name, e.message, vendor_detail=e.body) from e
        except openai.APIError as e:
            logger.error("%s request error: %s", self.name, str(e))
            raise ProviderError(self.name, f"request failed: {e}") from e
        finally:
            # An injected client belongs to the caller; only close the one the SDK created.
            if self.http_client is None:
                await client.close()

        if not resp.choices:
            raise ProviderError(self.name, "response contained no choices")
        content = resp.choices[0].message.content
        if not content:
            raise ProviderError(self.name, "empty completion")

        usage = resp.usage.model_dump() if resp.usage is not None else None
        return CanonicalResponse(text=content, usage=usage)


@register_provider("deepseek")
class DeepSeekProvider(OpenAIProvider):
    """DeepSeek's OpenAI-compatible endpoint; model ids must carry the ``deepseek-`` prefix."""

    base_url: ClassVar[str | None] = "https://api.deepseek.com/v1"
