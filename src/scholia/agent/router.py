"""Intent router: one cheap classification call that picks the fast or heavy path."""

import logging

from scholia.agent import prompts
from scholia.core.client import MultiProviderClient
from scholia.core.errors import (
    ExtractionError,
    ProviderError,
)
from scholia.core.extractor import extract
from scholia.core.schema import (
    ChatMessage,
    Intent,
)

logger = logging.getLogger(__name__)

DEFAULT_INTENT = Intent.DEEP_ANALYSIS
ROUTER_TEMPERATURE = 0.1


class IntentRouter:
    """
    Classifies a query into one of the five :class:`Intent` values.

    Classification never blocks an answer: any provider or parse failure yields
    :data:`DEFAULT_INTENT` (the most capable path).  A missing credential is a precondition
    failure and is not swallowed.
    """

    def __init__(self, client: MultiProviderClient) -> None:
        self.client = client

    async def classify(self, query: str, provider: str, model_id: str) -> Intent:
        messages = [
            ChatMessage.system(prompts.ROUTER_SYSTEM),
            ChatMessage.user(prompts.ROUTER_PROMPT.format(query=query)),
        ]
        try:
            response = await self.client.send(
                provider, model_id, messages, temperature=ROUTER_TEMPERATURE
            )
            data = extract(response.text)
        except (ProviderError, ExtractionError) as exc:
            logger.warning("Routing failed, defaulting to %s: %s", DEFAULT_INTENT.value, exc)
            return DEFAULT_INTENT

        raw = data.get("intent") if isinstance(data, dict) else None
        try:
            intent = Intent(str(raw).strip().lower())
        except ValueError:
            logger.warning("Router returned unknown intent %r, using %s", raw, DEFAULT_INTENT.value)
            return DEFAULT_INTENT

        logger.info("Identified intent: %s", intent.value)
        return intent
