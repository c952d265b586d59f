"""Planner tests."""

import asyncio
import json

from scholia.agent.planner import (
    FALLBACK_GOAL,
    PLANNER_TEMPERATURE,
    Planner,
    fallback_plan,
    parse_plan,
)
from scholia.core.errors import ProviderError
from scholia.core.schema import (
    ChatMessage,
    PlanStep,
    ToolKind,
)


def _plan(client, **kwargs):
    return asyncio.run(Planner(client, **kwargs).plan("Critique it", "openai", "gpt-4o-mini"))


def test_parse_plan_maps_unknown_tools_to_analyze() -> None:
    steps = parse_plan(
        [{"tool": "critic", "goal": "find holes"}, {"tool": "browse", "goal": "look online"}],
        "q",
    )
    assert steps == [
        PlanStep(tool=ToolKind.CRITIC, goal="find holes"),
        PlanStep(tool=ToolKind.ANALYZE, goal="look online"),
    ]


def test_parse_plan_single_object_and_wrapper() -> None:
    assert parse_plan({"tool": "search", "goal": "g"}, "q") == [
        PlanStep(tool=ToolKind.SEARCH, goal="g")
    ]
    assert parse_plan({"steps": [{"tool": "author-sim", "goal": "why"}]}, "q") == [
        PlanStep(tool=ToolKind.AUTHOR_SIM, goal="why")
    ]


def test_parse_plan_missing_goal_uses_query() -> None:
    assert parse_plan([{"tool": "extract"}, "junk"], "the query") == [
        PlanStep(tool=ToolKind.EXTRACT, goal="the query")
    ]


def test_plan_happy_path(scripted) -> None:
    payload = [{"tool": "critic", "goal": "g1"}, {"tool": "hypothesize", "goal": "g2"}]
    client = scripted([json.dumps(payload)])

    steps = _plan(client)

    assert [s.tool for s in steps] == [ToolKind.CRITIC, ToolKind.HYPOTHESIZE]
    assert client.calls[0].temperature == PLANNER_TEMPERATURE
    # The planning prompt lists the registered tools
    assert "- critic:" in client.calls[0].user


def test_plan_is_truncated(scripted) -> None:
    payload = [{"tool": "analyze", "goal": f"g{i}"} for i in range(5)]
    steps = _plan(scripted([json.dumps(payload)]), max_steps=3)
    assert [s.goal for s in steps] == ["g0", "g1", "g2"]


def test_empty_plan_falls_back(scripted) -> None:
    steps = _plan(scripted(["[]"]))
    assert steps == fallback_plan()
    assert steps[0].tool is ToolKind.ANALYZE
    assert steps[0].goal == FALLBACK_GOAL


def test_unparseable_plan_falls_back(scripted) -> None:
    assert _plan(scripted(["Step one: read the paper."])) == fallback_plan()


def test_provider_failure_falls_back(scripted) -> None:
    assert _plan(scripted([ProviderError("openai", "rate limited")])) == fallback_plan()


def test_history_and_language_in_prompt(scripted) -> None:
    planner = Planner(scripted(), history_chars=40, language="French")
    history = [ChatMessage.user("x" * 100), ChatMessage.assistant("last answer")]

    messages = planner.build_messages("Critique it", history)

    prompt = messages[-1].content
    assert "Previous Conversation Context:" in prompt
    assert "ASSISTANT: last answer" in prompt
    assert "x" * 60 not in prompt
    assert prompt.endswith("Always respond in French.")
