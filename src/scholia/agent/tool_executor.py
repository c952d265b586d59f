"""Runs one plan step against the document and wraps provider errors."""

import logging

from scholia.agent import prompts
from scholia.core.client import MultiProviderClient
from scholia.core.errors import ProviderError
from scholia.core.schema import (
    ChatMessage,
    PlanStep,
)
from scholia.tools import get_directive

logger = logging.getLogger(__name__)


class ToolExecutionError(RuntimeError):
    """Raised when a plan step's provider call fails."""

    def __init__(self, step: PlanStep, cause: ProviderError) -> None:
        super().__init__(f"Tool '{step.tool.value}' failed: {cause}")
        self.step = step
        self.cause = cause


async def execute_step(
    client: MultiProviderClient,
    provider: str,
    model_id: str,
    step: PlanStep,
    document: str,
    language: str | None = None,
) -> str:
    """
    Execute *step* and return its result tagged with the tool name.

    Parameters
    ----------
    client:
        Client used for the single provider call.
    provider, model_id:
        Target model.
    step:
        The planned sub-task; its tool selects the system directive.
    document:
        Bounded document excerpt the step works on.
    language:
        Optional reply language.

    Returns
    -------
    str
        ``"[TOOL] <model output>"``

    Raises
    ------
    ToolExecutionError
        If the provider call fails.
    """
    messages = [
        ChatMessage.system(get_directive(step.tool.value, language)),
        ChatMessage.user(prompts.STEP_USER.format(goal=step.goal, document=document)),
    ]
    try:
        logger.debug("Executing tool '%s' with goal=%s", step.tool.value, step.goal)
        response = await client.send(provider, model_id, messages)
    except ProviderError as exc:
        logger.warning("Provider error in tool '%s': %s", step.tool.value, exc)
        raise ToolExecutionError(step, exc) from exc

    return f"[{step.tool.value.upper()}] {response.text}"
