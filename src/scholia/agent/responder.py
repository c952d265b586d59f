"""Fast-path responder: a single style-constrained call for lightweight intents."""

import logging
import re
from typing import (
    List,
    Sequence,
)

from scholia.agent import prompts
from scholia.core.client import MultiProviderClient
from scholia.core.schema import (
    ChatMessage,
    Intent,
    Role,
    Track,
)

logger = logging.getLogger(__name__)

_BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")


def trim_to_bullets(text: str, count: int = 3) -> str:
    """
    Keep only the first *count* bullet lines of *text*.

    Models sometimes wrap the bullets in a preamble or a closing remark.  When fewer than
    *count* bullets are present the text is returned unchanged.
    """
    bullets = [line.rstrip() for line in text.splitlines() if _BULLET_RE.match(line)]
    if len(bullets) < count:
        return text.strip()
    return "\n".join(bullets[:count])


class FastPathResponder:
    """Answers ``chat``, ``explain_compact`` and ``summary_3lines`` queries in one call."""

    def __init__(
        self,
        client: MultiProviderClient,
        context_chars: int = 15000,
        language: str | None = None,
    ) -> None:
        self.client = client
        self.context_chars = context_chars
        self.language = language

    def style_for(self, intent: Intent, provider: str) -> str:
        style = prompts.FAST_STYLES.get(intent, prompts.FAST_DEFAULT_STYLE)
        style += prompts.language_directive(self.language)
        # Some vendors pad answers heavily; normalize brevity across providers.
        if self.client.is_verbose(provider):
            style += prompts.ANTI_VERBOSITY
        return style

    def build_messages(
        self,
        intent: Intent,
        query: str,
        document: str,
        history: Sequence[ChatMessage],
        provider: str,
    ) -> List[ChatMessage]:
        excerpt = document[: self.context_chars]
        return [
            ChatMessage.system(prompts.FAST_SYSTEM.format(style=self.style_for(intent, provider))),
            # Pass history for chat continuity
            *[m for m in history if m.role != Role.SYSTEM],
            ChatMessage.user(prompts.FAST_USER.format(document=excerpt, query=query)),
        ]

    async def respond(
        self,
        intent: Intent,
        query: str,
        document: str,
        history: Sequence[ChatMessage],
        provider: str,
        model_id: str,
    ) -> str:
        """
        Generate the fast-path answer.

        Raises :class:`ValueError` for heavy intents; provider errors propagate to the caller.
        """
        if intent.track is not Track.FAST:
            raise ValueError(f"Intent '{intent.value}' is not handled by the fast path.")

        messages = self.build_messages(intent, query, document, history, provider)
        response = await self.client.send(provider, model_id, messages)
        logger.info("Fast-path response generated (%s)", intent.value)

        if intent is Intent.SUMMARY_3LINES:
            return trim_to_bullets(response.text)
        return response.text
