"""Prompt text used by the agent pipeline and the document tasks."""

from typing import Sequence

from scholia.core.schema import (
    ChatMessage,
    Intent,
)


def language_directive(language: str | None) -> str:
    """Suffix pinning the reply language, or an empty string when none is configured."""
    return f" Always respond in {language}." if language else ""


def format_history(history: Sequence[ChatMessage], max_chars: int) -> str:
    """Render prior turns as ``ROLE: text`` lines, keeping the most recent *max_chars*."""
    if not history:
        return ""
    rendered = "\n".join(f"{m.role.value.upper()}: {m.content}" for m in history)
    return f"Previous Conversation Context:\n{rendered[-max_chars:]}\n\n"


# ---------------------------------------------------------------------------
# Intent routing
# ---------------------------------------------------------------------------
ROUTER_SYSTEM = "You are a semantic intent classifier. Output JSON only."

ROUTER_PROMPT = """\
Analyze the user query and strictly classify it into one of these intents:

1. "chat": Casual discussion, follow-up questions, simple debates, subjective opinions. \
(Lightweight)
2. "explain_compact": Asking for examples, clarifying a concept, "what does this mean?", \
"give me an analogy". (Lightweight)
3. "summary_3lines": "summarize in 3 lines", "tl;dr", "brief summary", "gist". (Lightweight)
4. "summary_obsidian": "Markdown summary", "detailed summary", "summarize for obsidian", \
"structure note". (Heavy)
5. "deep_analysis": "Critique this", "Analyze limitations", "methodology review", \
"future work", complex research tasks. (Heavy)

User Query: "{query}"

Return ONLY JSON: {{ "intent": "chat" | "explain_compact" | "summary_3lines" | \
"summary_obsidian" | "deep_analysis" }}"""


# ---------------------------------------------------------------------------
# Fast path
# ---------------------------------------------------------------------------
FAST_SYSTEM = "You are an intelligent research assistant. {style}"

FAST_STYLES = {
    Intent.CHAT: (
        "Engage in a natural, intellectual conversation. Be sharp and direct. Don't lecture "
        "the user. If they disagree, debate constructively."
    ),
    Intent.EXPLAIN_COMPACT: (
        "Explain the concept simply using an analogy or standard example. Keep it under 200 "
        "words if possible."
    ),
    Intent.SUMMARY_3LINES: (
        "Provide exactly 3 bullet points. No intro, no outro. Just the facts."
    ),
}

FAST_DEFAULT_STYLE = (
    "Answer directly and concisely. Avoid filler phrases like 'Here is the explanation'."
)

ANTI_VERBOSITY = (
    "\n\nCRITICAL INSTRUCTION: Be extremely concise. Do not repeat the user's question. Do not "
    "start with 'Sure, I can help'. Keep the answer as short as a terse assistant would."
)

FAST_USER = "Document Context:\n{document}\n\nUser Query: {query}"


# ---------------------------------------------------------------------------
# Heavy path
# ---------------------------------------------------------------------------
PLANNER_SYSTEM = "You represent a JSON-speaking planning module."

PLANNER_PROMPT = """\
You are a Research Architect. Break down this user query into 1-3 concrete sub-tasks.
Available Tools:
{tools}

{history}User Query: "{query}"

Return ONLY a JSON array: [{{ "tool": "<tool name>", "goal": "..." }}]{language}"""

STEP_USER = "Goal: {goal}\n\nDocument Context:\n{document}"

SYNTH_SYSTEM = (
    "You are the Lead Researcher. Synthesize the sub-agent outputs into a final, "
    "comprehensive answer for the user."
)

SYNTH_MARKDOWN = (
    "\n\n**IMPORTANT**: The user requested structured markdown output. Format your response "
    "with proper markdown syntax including:\n- Headers (##, ###)\n- Code blocks (```language)\n"
    "- Bullet points and numbered lists\n- Bold/italic emphasis\n- Tables if applicable\n"
    "Provide a well-organized, structured document."
)

SYNTH_SUMMARY = (
    "\n\n**IMPORTANT**: The user requested a summary. Provide a concise, conversational summary "
    "in plain text (not heavily structured markdown). Focus on key insights and main points in "
    "2-3 paragraphs."
)

SYNTH_NOT_FOUND = (
    "\n\nIf the document context is exactly {sentinel}, the document does not contain the "
    "answer: say so plainly instead of guessing."
)

SYNTH_USER = "Original Query: {query}\n\nAgent Findings:\n{findings}"

SYNTH_USER_WITH_CONTEXT = (
    "Original Query: {query}\n\nDocument Context:\n{document}\n\nAgent Findings:\n{findings}"
)


# ---------------------------------------------------------------------------
# Scan pass
# ---------------------------------------------------------------------------
SCAN_SYSTEM = """\
You are a precise document scanner. Copy VERBATIM every passage of the document that is \
relevant to the user query. Do not summarize, paraphrase or comment.
Keep paragraph markers such as [P12] exactly as they appear, at the start of each copied passage.
If essentially the whole document is relevant, reply with exactly {all_relevant}.
If no passage is relevant, reply with exactly {not_found}."""

SCAN_USER = "User Query: {query}\n\nDocument:\n{document}"
