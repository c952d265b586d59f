"""
Shared fixtures.

``ScriptedClient`` is a real :class:`MultiProviderClient` (credential and catalog lookups
included) whose ``send`` replays canned replies instead of calling a vendor.
"""

from typing import (
    Iterable,
    List,
    Mapping,
    NamedTuple,
    Sequence,
    Union,
)

import pytest

from scholia.core.client import MultiProviderClient
from scholia.core.schema import (
    CanonicalResponse,
    ChatMessage,
    ProviderModels,
)

Reply = Union[str, Exception]


class SentRequest(NamedTuple):
    provider: str
    model_id: str
    messages: List[ChatMessage]
    temperature: float | None

    @property
    def system(self) -> str:
        return "\n".join(m.content for m in self.messages if m.role.value == "system")

    @property
    def user(self) -> str:
        return self.messages[-1].content


class ScriptedClient(MultiProviderClient):
    """Replays *replies* in order; an exception instance is raised instead of returned."""

    def __init__(
        self,
        replies: Iterable[Reply] = (),
        credentials: Mapping[str, str] | None = None,
        catalog: Mapping[str, ProviderModels] | None = None,
    ) -> None:
        if credentials is None:
            credentials = {"deepseek": "sk-test", "openai": "sk-test"}
        super().__init__(credentials, catalog)
        self.replies: List[Reply] = list(replies)
        self.calls: List[SentRequest] = []

    async def send(
        self,
        provider: str,
        model_id: str,
        messages: Sequence[ChatMessage],
        temperature: float | None = None,
    ) -> CanonicalResponse:
        self.adapter(provider)  # same precondition checks as the real client
        self.calls.append(SentRequest(provider, model_id, list(messages), temperature))
        if not self.replies:
            raise AssertionError(f"unexpected provider call #{len(self.calls)}")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return CanonicalResponse(text=reply)


@pytest.fixture
def scripted() -> type:
    """The :class:`ScriptedClient` class, for tests that build their own script."""
    return ScriptedClient
