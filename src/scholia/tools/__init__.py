"""
Tool registry for Scholia.

A "tool" is a sub-task kind the planner may schedule.  Each registered function returns the
system directive that turns the model into the right specialist for that sub-task; its
docstring is the description shown to the planner.
"""

import logging
from typing import (
    Callable,
    Dict,
    List,
)

from scholia.agent.prompts import language_directive
from scholia.core.schema import ToolKind

TOOL_REGISTRY: Dict[str, Callable[[], str]] = {}
"""Global registry of tool directive builders."""

DEFAULT_TOOL = ToolKind.ANALYZE.value


def register_tool(name: str) -> Callable:
    """
    Register a directive builder under *name*.

    The name must be unique and is used to look up the directive when the planner schedules a
    step of that kind.

    Raises
    ------
    ValueError
        If a function with the same name is already registered.
    """
    if name in TOOL_REGISTRY:
        raise ValueError(f"Tool '{name}' is already registered.")
    logger = logging.getLogger(__name__)
    logger.debug("Registering tool '%s'", name)

    def wrapper(fn: Callable[[], str]) -> Callable[[], str]:
        TOOL_REGISTRY[name] = fn
        return fn

    return wrapper


def get_directive(name: str, language: str | None = None) -> str:
    """Return the system directive for *name*, falling back to generic analysis."""
    fn = TOOL_REGISTRY.get(name) or TOOL_REGISTRY[DEFAULT_TOOL]
    return fn() + language_directive(language)


def describe_tools() -> str:
    """One ``- name: description`` line per registered tool, for the planning prompt."""
    lines: List[str] = []
    for name, fn in TOOL_REGISTRY.items():
        description = (fn.__doc__ or "").strip().splitlines()[0] if fn.__doc__ else ""
        lines.append(f"- {name}: {description}")
    return "\n".join(lines)


@register_tool(ToolKind.SEARCH.value)
def field_researcher() -> str:
    """Search for real-world context/applications outside the document."""
    return (
        "You are a field researcher. Contextualize the document's findings within the current "
        "state of the industry/field. Use your internal knowledge as the 'search tool'."
    )


@register_tool(ToolKind.EXTRACT.value)
def data_extractor() -> str:
    """Find and format specific data/facts into Markdown code blocks."""
    return (
        "You are a data extraction specialist. Extract the requested information and format it "
        "in Clean Markdown Code Blocks. Provide a brief rationale for each block."
    )


@register_tool(ToolKind.AUTHOR_SIM.value)
def author_simulation() -> str:
    """Roleplay as the author to explain the "why"."""
    return (
        "You are the primary author of the document below. Answer questions with the "
        "confidence, nuance, and perspective of the researcher who wrote it. Justify your "
        "choices."
    )


@register_tool(ToolKind.ANALYZE.value)
def generic_analysis() -> str:
    """Perform deep technical analysis of the document content."""
    return "Perform high-level academic analysis of the document text provided."


@register_tool(ToolKind.CRITIC.value)
def adversarial_critic() -> str:
    """Rigorously challenge the methodology, assumptions, and results."""
    return (
        "You are a Rigorous Peer Reviewer. Your goal is to find holes. Challenge the "
        "experimental setup, the statistical significance, the generalizability of results, and "
        "the logical leaps between the data and conclusions. Be critical but constructive."
    )


@register_tool(ToolKind.HYPOTHESIZE.value)
def hypothesis_generator() -> str:
    """Propose 3-5 concrete "Future Work" research directions based on findings."""
    return (
        "You are a Research Visionary. Based on the document's contributions, propose the next "
        "logical extensions and the fields they could transform. Propose concrete, testable "
        "hypotheses for follow-up studies."
    )
