"""
Planner for the heavy path.

Turns a query into 1-3 :class:`PlanStep` objects.  Planning never fails the invocation: call
errors, unparseable output and empty plans all collapse into :func:`fallback_plan`.
"""

import logging
from typing import (
    Any,
    List,
    Sequence,
)

from pydantic import ValidationError

from scholia.agent import prompts
from scholia.core.client import MultiProviderClient
from scholia.core.errors import (
    ExtractionError,
    ProviderError,
)
from scholia.core.extractor import extract
from scholia.core.schema import (
    ChatMessage,
    PlanStep,
    ToolKind,
)
from scholia.tools import (
    TOOL_REGISTRY,
    describe_tools,
)

logger = logging.getLogger(__name__)

PLANNER_TEMPERATURE = 0.1
FALLBACK_GOAL = "Analyze the document to answer the user query"

# Synthesis is the orchestrator's own final call, never a planned step
PLANNABLE_TOOLS = {
    k.value for k in ToolKind if k is not ToolKind.SYNTHESIZE and k.value in TOOL_REGISTRY
}


def fallback_plan() -> List[PlanStep]:
    """The single generic analysis step used whenever planning yields nothing usable."""
    return [PlanStep(tool=ToolKind.ANALYZE, goal=FALLBACK_GOAL)]


def parse_plan(payload: Any, query: str) -> List[PlanStep]:
    """Validate the extracted planner payload; unknown tools become ``analyze``."""
    if isinstance(payload, dict):
        # A lone step, or the array wrapped as {"plan": [...]} / {"steps": [...]}
        payload = [payload] if "tool" in payload else payload.get("plan") or payload.get("steps")
    if not isinstance(payload, list):
        return []

    steps: List[PlanStep] = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        tool = str(item.get("tool", "")).strip().lower()
        if tool not in PLANNABLE_TOOLS:
            logger.debug("Unknown tool %r in plan, using analyze", tool)
            tool = ToolKind.ANALYZE.value
        goal = str(item.get("goal") or "").strip() or query
        try:
            steps.append(PlanStep(tool=ToolKind(tool), goal=goal))
        except ValidationError as e:
            logger.warning("Dropping invalid plan step %s: %s", item, e)
    return steps


class Planner:
    """Issues the planning call and normalizes its output."""

    def __init__(
        self,
        client: MultiProviderClient,
        max_steps: int = 3,
        history_chars: int = 3000,
        language: str | None = None,
    ) -> None:
        self.client = client
        self.max_steps = max_steps
        self.history_chars = history_chars
        self.language = language

    def build_messages(self, query: str, history: Sequence[ChatMessage]) -> List[ChatMessage]:
        prompt = prompts.PLANNER_PROMPT.format(
            tools=describe_tools(),
            history=prompts.format_history(history, self.history_chars),
            query=query,
            language=prompts.language_directive(self.language),
        )
        # Keep the prompt in a user turn: some vendors reject system-only conversations.
        return [ChatMessage.system(prompts.PLANNER_SYSTEM), ChatMessage.user(prompt)]

    async def plan(
        self,
        query: str,
        provider: str,
        model_id: str,
        history: Sequence[ChatMessage] = (),
    ) -> List[PlanStep]:
        try:
            response = await self.client.send(
                provider,
                model_id,
                self.build_messages(query, history),
                temperature=PLANNER_TEMPERATURE,
            )
            steps = parse_plan(extract(response.text), query)
        except (ProviderError, ExtractionError) as exc:
            logger.warning("Plan parsing failed, falling back to basic analysis: %s", exc)
            return fallback_plan()

        if not steps:
            logger.info("Planner returned an empty plan, falling back to basic analysis")
            return fallback_plan()
        if len(steps) > self.max_steps:
            logger.warning("Planner returned %d steps, keeping %d", len(steps), self.max_steps)
            steps = steps[: self.max_steps]

        logger.info("Plan created: %d steps %s", len(steps), [s.tool.value for s in steps])
        return steps
