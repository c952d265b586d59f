"""
One-shot document tasks (metadata, suggested questions, structured summary, highlights...).

Each task is a single provider call.  Tasks that expect structured output parse it with
:func:`scholia.core.extractor.extract` and fall back to a documented default instead of raising
when the reply cannot be parsed.
"""

import logging
from typing import (
    Any,
    Dict,
    List,
)

from pydantic import ValidationError

from scholia.agent.prompts import language_directive
from scholia.core.client import MultiProviderClient
from scholia.core.errors import (
    ExtractionError,
    ProviderError,
)
from scholia.core.extractor import extract
from scholia.core.schema import (
    AlignedSentence,
    ChatMessage,
    Highlight,
    PaperSummary,
)

logger = logging.getLogger(__name__)

DEFAULT_QUESTIONS = [
    "What is the core contribution of this work?",
    "What are the limitations of the proposed method?",
    "Are the experimental results statistically significant?",
    "How could this research be applied in practice?",
]

METADATA_PROMPT = (
    "Extract the scientific paper title and authors from the provided text. Return ONLY JSON: "
    '{ "title": "...", "author": "..." }. Keep the title in its original language.'
)

QUESTIONS_PROMPT = """\
You are a Research Mentor. Based on the abstract and intro of the paper provided, suggest 4 \
insightful, specific questions a researcher should ask about this paper.

Criteria:
1. Questions must be specific to the paper's topic (not generic).
2. Cover different angles: Methodology, Results, Implications, or Comparisons.
3. Phrased as if the user is asking the AI agent.
4. Return ONLY a JSON array of strings: [ "Question 1?", "Question 2?", ... ]"""

SUMMARY_PROMPT = """\
You are a high-level research synthesizer. Analyze the paper and provide a structured summary.
1. Return ONLY a JSON object: { "takeaway": "...", "objective": "...", "methodology": "...", \
"results": "...", "limitations": "..." }
2. For EACH field, use a bulleted list format starting with '-'.
3. If there are multiple sentences or points, split them into separate '-' bullets.
4. Use hierarchical depth (indentation) if necessary for sub-details."""

ONE_LINE_PROMPT = """\
You are a paper summarization expert. Summarize the core content of this paper.
- Use bullet points starting with '-'.
- Put separate sentences on separate '-' bullets.
- Indent sub-points where more depth is needed.
- Keep a professional tone and only the essentials."""

EXPLAIN_PROMPT = (
    "As an expert research assistant, explain the selected passage clearly and accurately. "
    "Use the surrounding context, when provided, to interpret it correctly."
)

SUMMARIZE_SELECTION_PROMPT = (
    "Condense the key contribution or finding of the selected text into 1-2 sentences. Keep it "
    "short and strong enough for a research log."
)

ANSWER_PROMPT = (
    "Answer the user's question about the scientific paper passage provided. Be concise and use "
    "evidence from the text."
)

HIGHLIGHT_PROMPT = """\
You are an expert academic research assistant. Analyze the provided paper text and identify the \
top 5-7 most critical sentences that represent:
1. Novelty (The unique contribution or gap being filled)
2. Method (The key technique or experimental setup)
3. Result (The main finding or performance metric)

Return ONLY a JSON array of objects:
[
  { "text": "exact sentence from text", "type": "novelty" | "method" | "result", \
"reason": "brief explanation" }
]"""

ALIGN_PROMPT = """\
You are a precision translation aligner. Given a paragraph and its translation, align them into \
sentence pairs. Some source sentences might be combined or split in the translation. Ensure EVERY \
source sentence is represented.
Return ONLY a JSON array of objects: [{ "source": "...", "translation": "..." }]"""

REPAIR_PROMPT = """\
You are a precision text repair specialist. The input text has parsing artifacts:
1. Inline math formulas/SVG paths may appear as "M123 456..." strings.
2. Citation tags may be broken (e.g., "[ 1 2 ]").
3. Words may be randomly split or repeated.

Task:
1. Reconstruct the broken text into clean, readable Markdown/LaTeX ($...$) or plain text.
2. Replace SVG path data with a placeholder like "[Equation]" unless the math is obvious.
3. Fix mangled numbers/dates (e.g., "2 0 2 4" -> "2024").
4. Return ONLY a JSON object: { "source": "...", "translation": "..." }"""


def _with_context(body: str, context: str | None) -> str:
    return f"Context:\n{context}\n\n{body}" if context else body


class DocumentTasks:
    """Single-call helpers that operate on a document or a selected passage."""

    def __init__(
        self,
        client: MultiProviderClient,
        provider: str,
        model_id: str,
        language: str | None = None,
    ) -> None:
        self.client = client
        self.provider = provider
        self.model_id = model_id
        self.language = language

    async def _ask(self, system: str, user: str, temperature: float | None = None) -> str:
        messages = [
            ChatMessage.system(system + language_directive(self.language)),
            ChatMessage.user(user),
        ]
        response = await self.client.send(
            self.provider, self.model_id, messages, temperature=temperature
        )
        return response.text

    async def _ask_json(self, system: str, user: str, temperature: float | None = None) -> Any:
        """Like :meth:`_ask` but parses the reply; raises :class:`ExtractionError`."""
        return extract(await self._ask(system, user, temperature))

    # ------------------------------------------------------------------ #
    # Whole-document tasks
    # ------------------------------------------------------------------ #
    async def extract_metadata(self, text: str) -> Dict[str, str]:
        try:
            data = await self._ask_json(METADATA_PROMPT, text[:5000])
        except ExtractionError as e:
            logger.warning("Failed to parse metadata JSON: %s", e)
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: str(v) for k, v in data.items() if k in ("title", "author") and v}

    async def suggest_questions(self, text: str) -> List[str]:
        try:
            data = await self._ask_json(QUESTIONS_PROMPT, text[:10000], temperature=0.7)
        except (ProviderError, ExtractionError) as e:
            logger.warning("Question suggestion failed: %s", e)
            return list(DEFAULT_QUESTIONS)
        if not isinstance(data, list):
            return []
        return [str(q) for q in data if isinstance(q, str) and q.strip()][:4]

    async def summarize_paper(self, text: str) -> PaperSummary:
        try:
            data = await self._ask_json(SUMMARY_PROMPT, text[:20000], temperature=0.1)
            return PaperSummary.model_validate(data)
        except (ExtractionError, ValidationError) as e:
            logger.warning("Failed to parse paper summary: %s", e)
            return PaperSummary(takeaway="Summary generation failed due to format error.")

    async def one_line_summary(self, text: str) -> str:
        return await self._ask(ONE_LINE_PROMPT, text[:10000])

    async def auto_highlight(self, text: str) -> List[Highlight]:
        try:
            data = await self._ask_json(HIGHLIGHT_PROMPT, text[:15000])
        except ExtractionError as e:
            logger.warning("Failed to parse auto-highlights: %s", e)
            return []
        if not isinstance(data, list):
            return []

        highlights: List[Highlight] = []
        for item in data:
            try:
                highlights.append(Highlight.model_validate(item))
            except ValidationError:
                logger.debug("Dropping invalid highlight: %s", item)
        return highlights

    # ------------------------------------------------------------------ #
    # Selection tasks
    # ------------------------------------------------------------------ #
    async def explain_selection(self, selection: str, context: str | None = None) -> str:
        return await self._ask(
            EXPLAIN_PROMPT, _with_context(f'Passage to explain: "{selection}"', context)
        )

    async def summarize_selection(self, selection: str, context: str | None = None) -> str:
        return await self._ask(
            SUMMARIZE_SELECTION_PROMPT,
            _with_context(f'Passage to summarize: "{selection}"', context),
        )

    async def answer_question(
        self, question: str, selection: str, context: str | None = None
    ) -> str:
        return await self._ask(
            ANSWER_PROMPT,
            _with_context(f'Passage: "{selection}"\n\nQuestion: {question}', context),
        )

    # ------------------------------------------------------------------ #
    # Translation helpers
    # ------------------------------------------------------------------ #
    async def align_sentences(self, source: str, translation: str) -> List[AlignedSentence]:
        fallback = [AlignedSentence(source=source, translation=translation)]
        try:
            data = await self._ask_json(
                ALIGN_PROMPT, f"Source:\n{source}\n\nTranslation:\n{translation}", temperature=0.1
            )
            if not isinstance(data, list):
                return fallback
            return [AlignedSentence.model_validate(item) for item in data]
        except (ExtractionError, ValidationError) as e:
            logger.warning("Failed to parse alignment JSON: %s", e)
            return fallback

    async def repair_paragraph(self, source: str, translation: str) -> AlignedSentence:
        try:
            data = await self._ask_json(
                REPAIR_PROMPT,
                f"Mangled source:\n{source}\n\nMangled translation:\n{translation}",
                temperature=0.1,
            )
            return AlignedSentence.model_validate(data)
        except (ExtractionError, ValidationError) as e:
            logger.warning("Failed to parse repair JSON: %s", e)
            return AlignedSentence(source=source, translation=translation)
