"""
Context windowing for the heavy path.

Long documents are first scanned by the provider's cheaper model, which copies the passages
relevant to the query verbatim (paragraph markers included, so citations still point at the
right place).  The expensive synthesis call then sees a small excerpt instead of a blind prefix
that may cut off the one paragraph that matters.
"""

import logging
from enum import Enum
from typing import (
    Iterable,
    NamedTuple,
)

from scholia.agent import prompts
from scholia.core.client import MultiProviderClient
from scholia.core.schema import ChatMessage

logger = logging.getLogger(__name__)

ALL_RELEVANT = "ALL_RELEVANT"
NOT_FOUND = "NOT_FOUND"


class ScanKind(str, Enum):
    SPECIFIC = "specific"
    ALL_RELEVANT = "all_relevant"
    NOT_FOUND = "not_found"


class ScanResult(NamedTuple):
    kind: ScanKind
    excerpt: str


def mark_paragraphs(paragraphs: Iterable[str], start: int = 1) -> str:
    """Join *paragraphs* with ``[P<n>]`` markers the scan pass preserves."""
    return "\n\n".join(f"[P{i}] {p.strip()}" for i, p in enumerate(paragraphs, start) if p.strip())


def interpret_scan(reply: str, full_document: str, all_relevant_chars: int) -> ScanResult:
    """Map the scanner's reply onto the context the synthesis step should use."""
    text = reply.strip()
    # Match sentinels loosely: models like to decorate them ("`NOT_FOUND`.").
    bare = text.strip("`*\"'. \n").upper()
    if bare == NOT_FOUND:
        return ScanResult(ScanKind.NOT_FOUND, NOT_FOUND)
    if bare == ALL_RELEVANT or not text:
        return ScanResult(ScanKind.ALL_RELEVANT, full_document[:all_relevant_chars])
    return ScanResult(ScanKind.SPECIFIC, text)


class ContextScanner:
    """Runs the cheap-model excerption pass."""

    def __init__(
        self,
        client: MultiProviderClient,
        threshold_chars: int = 12000,
        all_relevant_chars: int = 30000,
    ) -> None:
        self.client = client
        self.threshold_chars = threshold_chars
        self.all_relevant_chars = all_relevant_chars

    def scan_model(self, provider: str, model_id: str) -> str | None:
        """The cheaper model to scan with, or ``None`` when the provider has none."""
        cheap = self.client.cheap_model(provider)
        if not cheap or cheap == model_id:
            return None
        return cheap

    def should_scan(self, document: str, provider: str, model_id: str, anchored: bool) -> bool:
        if anchored or len(document) <= self.threshold_chars:
            return False
        return self.scan_model(provider, model_id) is not None

    async def scan(
        self, query: str, full_document: str, provider: str, model_id: str
    ) -> ScanResult:
        """
        Shrink *full_document* to the passages relevant to *query*.

        *model_id* is the active (expensive) model; the call itself goes to the provider's cheap
        model.  Provider errors propagate.
        """
        scan_model = self.scan_model(provider, model_id) or model_id
        messages = [
            ChatMessage.system(
                prompts.SCAN_SYSTEM.format(all_relevant=ALL_RELEVANT, not_found=NOT_FOUND)
            ),
            ChatMessage.user(prompts.SCAN_USER.format(query=query, document=full_document)),
        ]
        response = await self.client.send(provider, scan_model, messages, temperature=0.0)
        result = interpret_scan(response.text, full_document, self.all_relevant_chars)
        logger.info(
            "Scan pass (%s) reduced %d chars to %d (%s)",
            scan_model,
            len(full_document),
            len(result.excerpt),
            result.kind.value,
        )
        return result
